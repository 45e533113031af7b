"""
SandboxGuard ties the phase machine to the policy matcher.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .matcher import is_command_allowed, is_write_allowed
from .models import SandboxConfig, SandboxPolicy, TDDEvent, TDDPhase
from .state_machine import TDDMachine


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SandboxDecision:
    allowed: bool
    phase: TDDPhase
    policy: Optional[str]
    reason: str


class SandboxGuard:
    """
    Applies the current phase's policy to commands and write paths.

    Start it from the persisted phase; after ``send`` the caller persists
    ``phase`` again. A phase without a policy denies everything.
    """

    def __init__(self, config: SandboxConfig, phase: Optional[TDDPhase] = None):
        self.config = config
        self.machine = TDDMachine(initial=phase or config.state)

    @property
    def phase(self) -> TDDPhase:
        return self.machine.phase

    @property
    def policy(self) -> Optional[SandboxPolicy]:
        return self.config.policy_for(self.phase)

    def send(self, event: TDDEvent) -> TDDPhase:
        return self.machine.send(event)

    def check_command(self, command: str) -> SandboxDecision:
        return self._decide(command, "command", is_command_allowed)

    def check_write(self, path: str) -> SandboxDecision:
        return self._decide(path, "write", is_write_allowed)

    def _decide(self, value, kind, check) -> SandboxDecision:
        policy = self.policy
        if policy is None:
            logger.warning("No sandbox policy for phase %s, denying %s", self.phase.value, kind)
            return SandboxDecision(
                allowed=False,
                phase=self.phase,
                policy=None,
                reason=f"No sandbox policy for phase {self.phase.value}",
            )

        allowed = check(value, policy)
        if allowed:
            reason = f"{kind} allowed by policy '{policy.name}' in phase {self.phase.value}"
        else:
            reason = f"{kind} '{value}' not permitted by policy '{policy.name}' in phase {self.phase.value}"
        logger.debug(reason)
        return SandboxDecision(allowed=allowed, phase=self.phase, policy=policy.name, reason=reason)
