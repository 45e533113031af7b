"""Tiered enforcement of blocked intents and completion checks for the agent hooks."""

from .activation import (
    ConflictError,
    ResolutionResult,
    activate_profile,
    match_profile_to_prompt,
    resolve_chain,
)
from .engine import HookExitResult, PreToolUseHook, PreToolUseResult, evaluate
from .formatter import (
    format_activation,
    format_completion_denial,
    format_guidance,
    format_intent_denial,
    format_progress_line,
    format_status_summary,
)
from .stop import StopHook, StopHookResult
from .tiers import IntentImpact, intent_impact, should_block, tier_for_intent

__all__ = [
    "ConflictError",
    "HookExitResult",
    "IntentImpact",
    "PreToolUseHook",
    "PreToolUseResult",
    "ResolutionResult",
    "StopHook",
    "StopHookResult",
    "activate_profile",
    "evaluate",
    "format_activation",
    "format_completion_denial",
    "format_guidance",
    "format_intent_denial",
    "format_progress_line",
    "format_status_summary",
    "intent_impact",
    "match_profile_to_prompt",
    "resolve_chain",
    "should_block",
    "tier_for_intent",
]
