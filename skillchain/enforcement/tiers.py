"""
Enforcement tiers and intent impact.

hard  - every blocked intent is denied (the default)
soft  - only high-impact intents are denied; test-scoped writes pass
none  - nothing is denied, blocks become advisory
"""

from enum import Enum
from typing import Iterable, Optional

from ..intents import EDIT_TEST, WRITE_TEST
from ..schema import EnforcementTier, SkillSpec


class IntentImpact(str, Enum):
    HIGH = "high"
    LOW = "low"


LOW_IMPACT_INTENTS = frozenset({WRITE_TEST, EDIT_TEST})

TIER_STRENGTH = {
    EnforcementTier.NONE: 0,
    EnforcementTier.SOFT: 1,
    EnforcementTier.HARD: 2,
}


def intent_impact(intent: str) -> IntentImpact:
    """Test-scoped writes are low impact; everything else, unknown tags included, is high."""
    if intent in LOW_IMPACT_INTENTS:
        return IntentImpact.LOW
    return IntentImpact.HIGH


def tier_for_intent(
    intent: str,
    skills: Iterable[SkillSpec],
    chain: Optional[Iterable[str]] = None,
) -> EnforcementTier:
    """
    Tier of the skill(s) whose deny rules register ``intent``.

    Skills in the session chain are preferred over others; among the
    candidates the strongest tier applies. With no registering skill the
    tier is hard.
    """
    registering = [s for s in skills if intent in s.tool_policy.deny_until]
    if chain is not None:
        chain = set(chain)
        in_chain = [s for s in registering if s.name in chain]
        if in_chain:
            registering = in_chain

    if not registering:
        return EnforcementTier.HARD
    return max((s.effective_tier for s in registering), key=TIER_STRENGTH.__getitem__)


def should_block(tier: EnforcementTier, intent: str) -> bool:
    if tier == EnforcementTier.NONE:
        return False
    if tier == EnforcementTier.SOFT:
        return intent_impact(intent) == IntentImpact.HIGH
    return True
