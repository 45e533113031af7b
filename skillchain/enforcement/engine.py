"""
Pre-tool-use enforcement.

Classifies the tool call, looks its intents up in the session's blocked
intents, applies each registering skill's tier and renders either
guidance (allowed) or a denial banner (blocked). A missing or unreadable
session always allows the call.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..errors import ChainError
from ..intents import BlockedIntent, ToolInvocation, find_blocked_intents
from ..schema import ProfilesConfig, SessionState, SkillsConfig, SkillSpec
from ..session import SessionStore
from .activation import activate_profile, match_profile_to_prompt
from .formatter import format_activation, format_guidance, format_intent_denial
from .tiers import should_block, tier_for_intent


logger = logging.getLogger(__name__)

DEFAULT_BLOCK_MESSAGE = "Tool blocked by chain enforcement"


@dataclass
class PreToolUseResult:
    allowed: bool
    message: str = ""
    blocked_intents: list[BlockedIntent] = field(default_factory=list)
    waived_intents: list[BlockedIntent] = field(default_factory=list)
    activated_profile: Optional[str] = None


@dataclass(frozen=True)
class HookExitResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""


def evaluate(
    invocation: ToolInvocation,
    state: SessionState,
    skills: list[SkillSpec],
) -> PreToolUseResult:
    """Decide a tool call against an active session. Pure."""
    hits = find_blocked_intents(invocation, state.blocked_intents)

    blocked, waived = [], []
    for hit in hits:
        tier = tier_for_intent(hit.intent, skills, state.chain)
        if should_block(tier, hit.intent):
            blocked.append(hit)
        else:
            logger.debug("Intent %s waived by %s tier", hit.intent, tier.value)
            waived.append(hit)

    if blocked:
        logger.info(
            "Blocked %s: %s", invocation.tool, ", ".join(b.intent for b in blocked)
        )
        return PreToolUseResult(
            allowed=False,
            message=format_intent_denial(blocked, state, skills),
            blocked_intents=blocked,
            waived_intents=waived,
        )

    message = format_guidance(state, skills)
    if waived:
        notes = "\n".join(f"[chain] advisory: {w.intent} - {w.reason}" for w in waived)
        message = f"{message}\n{notes}"
    return PreToolUseResult(allowed=True, message=message, waived_intents=waived)


class PreToolUseHook:
    """Session-aware entry point used by the CLI hook."""

    def __init__(
        self,
        store: SessionStore,
        skills: Optional[SkillsConfig] = None,
        profiles: Optional[ProfilesConfig] = None,
        auto_select: bool = True,
    ):
        self.store = store
        self.skills = skills or SkillsConfig()
        self.profiles = profiles
        self.auto_select = auto_select

    def check(
        self,
        invocation: ToolInvocation,
        prompt: Optional[str] = None,
        auto_select: Optional[bool] = None,
    ) -> PreToolUseResult:
        auto_select = self.auto_select if auto_select is None else auto_select
        state = self.store.load_current()

        if state is None:
            activated = self._maybe_activate(prompt, auto_select)
            if activated is None:
                logger.debug("No active session, allowing %s", invocation.tool)
                return PreToolUseResult(allowed=True)
            result = evaluate(invocation, activated, self.skills.skills)
            result.activated_profile = activated.profile_id
            if result.allowed:
                result.message = format_activation(activated, self.skills.skills)
            return result

        return evaluate(invocation, state, self.skills.skills)

    def _maybe_activate(self, prompt: Optional[str], auto_select: bool) -> Optional[SessionState]:
        if not auto_select or not prompt or self.profiles is None:
            return None
        profile = match_profile_to_prompt(prompt, self.profiles.profiles)
        if profile is None:
            return None
        try:
            return activate_profile(profile, self.skills.skills, self.store)
        except (ChainError, OSError) as e:
            logger.warning("Could not activate profile '%s', continuing without a session: %s", profile.name, e)
            return None

    def check_with_exit_code(
        self,
        invocation: ToolInvocation,
        prompt: Optional[str] = None,
        auto_select: Optional[bool] = None,
    ) -> HookExitResult:
        result = self.check(invocation, prompt=prompt, auto_select=auto_select)
        if result.allowed:
            return HookExitResult(exit_code=0, stdout=result.message)
        return HookExitResult(exit_code=1, stderr=result.message or DEFAULT_BLOCK_MESSAGE)
