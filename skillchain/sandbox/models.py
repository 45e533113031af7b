"""
Sandbox data types: TDD phases, per-phase policies and the loaded config.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional


class TDDPhase(str, Enum):
    """Node of the TDD cycle."""
    BLOCKED = "BLOCKED"
    RED = "RED"
    GREEN = "GREEN"
    COMPLETE = "COMPLETE"


class TDDEventType(str, Enum):
    TEST_WRITTEN = "TEST_WRITTEN"
    TEST_PASSED = "TEST_PASSED"
    REFACTOR_DONE = "REFACTOR_DONE"
    NEW_FEATURE = "NEW_FEATURE"
    FORCE_PHASE = "FORCE_PHASE"
    RESET = "RESET"


@dataclass(frozen=True)
class TDDEvent:
    """
    Signal fed to the phase machine.

    ``phase`` is only read for FORCE_PHASE; ``file`` is recorded as the
    test file on TEST_WRITTEN and as the implementation file on TEST_PASSED.
    """
    type: TDDEventType
    phase: Optional[TDDPhase] = None
    file: Optional[str] = None


@dataclass
class TDDContext:
    current_phase: TDDPhase = TDDPhase.BLOCKED
    attempt_count: int = 0
    last_error: Optional[str] = None
    test_file: Optional[str] = None
    impl_file: Optional[str] = None


@dataclass(frozen=True)
class SandboxPolicy:
    """Allow/deny rules for commands and write paths within one phase."""
    name: str
    allow_commands: tuple[str, ...] = ()
    deny_commands: tuple[str, ...] = ()
    allow_write: tuple[str, ...] = ()
    deny_write: tuple[str, ...] = ()


@dataclass(frozen=True)
class SandboxConfig:
    """Initial phase plus a policy per phase. Immutable once loaded."""
    state: TDDPhase
    profiles: Mapping[TDDPhase, SandboxPolicy] = field(default_factory=dict)

    def policy_for(self, phase: TDDPhase) -> Optional[SandboxPolicy]:
        return self.profiles.get(phase)
