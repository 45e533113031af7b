"""
Stop enforcement.

When the agent tries to finish, a strict session's profile must have all
of its completion requirements satisfied. Advisory and permissive
sessions, and sessions whose profile lists no requirements, always stop
with a progress line.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..evidence import EvidenceChecker, EvidenceResult
from ..schema import CompletionRequirement, ProfileSpec, ProfilesConfig, Strictness
from ..session import SessionStore
from .engine import HookExitResult
from .formatter import format_completion_denial, format_progress_line


logger = logging.getLogger(__name__)

DEFAULT_STOP_MESSAGE = "Stop blocked by chain enforcement"


@dataclass
class StopHookResult:
    allowed: bool
    message: str = ""
    missing_requirements: list[tuple[CompletionRequirement, EvidenceResult]] = field(default_factory=list)


class StopHook:
    """Decides whether the active session may stop."""

    def __init__(
        self,
        store: SessionStore,
        profiles: Optional[ProfilesConfig] = None,
        profile: Optional[ProfileSpec] = None,
        checker: Optional[EvidenceChecker] = None,
    ):
        self.store = store
        self.profiles = profiles
        self.profile = profile
        self.checker = checker or EvidenceChecker(store.working_dir)

    def _profile_for(self, profile_id: str) -> Optional[ProfileSpec]:
        if self.profile is not None:
            return self.profile
        if self.profiles is None:
            return None
        return self.profiles.get(profile_id)

    def check(self) -> StopHookResult:
        state = self.store.load_current()
        if state is None:
            return StopHookResult(allowed=True)

        if state.strictness != Strictness.STRICT:
            return StopHookResult(allowed=True, message=format_progress_line(state))

        profile = self._profile_for(state.profile_id)
        if profile is None:
            logger.warning("Profile '%s' not found, allowing stop", state.profile_id)
            return StopHookResult(allowed=True, message=format_progress_line(state))

        missing = [
            (req, result)
            for req, result in self.checker.check_all(profile.completion_requirements)
            if not result.satisfied
        ]
        if not missing:
            return StopHookResult(allowed=True, message=format_progress_line(state))

        logger.info("Stop blocked: %d completion requirement(s) missing", len(missing))
        return StopHookResult(
            allowed=False,
            message=format_completion_denial(missing, state),
            missing_requirements=missing,
        )

    def check_with_exit_code(self) -> HookExitResult:
        result = self.check()
        if result.allowed:
            return HookExitResult(exit_code=0, stdout=result.message)
        return HookExitResult(exit_code=1, stderr=result.message or DEFAULT_STOP_MESSAGE)
