"""TDD phase sandbox: phase machine, policy matching and SKILL.md loading."""

from .guard import SandboxDecision, SandboxGuard
from .loader import (
    get_policy_for_phase,
    load_sandbox_config,
    parse_frontmatter,
    parse_sandbox_config,
)
from .matcher import (
    glob_match,
    is_command_allowed,
    is_valid_glob_pattern,
    is_write_allowed,
    matches_any,
    prefix_match,
)
from .models import (
    SandboxConfig,
    SandboxPolicy,
    TDDContext,
    TDDEvent,
    TDDEventType,
    TDDPhase,
)
from .state_machine import TDDMachine

__all__ = [
    "SandboxConfig",
    "SandboxDecision",
    "SandboxGuard",
    "SandboxPolicy",
    "TDDContext",
    "TDDEvent",
    "TDDEventType",
    "TDDMachine",
    "TDDPhase",
    "get_policy_for_phase",
    "glob_match",
    "is_command_allowed",
    "is_valid_glob_pattern",
    "is_write_allowed",
    "load_sandbox_config",
    "matches_any",
    "parse_frontmatter",
    "parse_sandbox_config",
    "prefix_match",
]
