"""
Prompt-driven profile auto-activation and skill-chain resolution.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..errors import ChainError
from ..schema import COST_ORDER, RISK_ORDER, ProfileSpec, SessionState, SkillSpec
from ..session import SessionStore


logger = logging.getLogger(__name__)

MAX_RESOLVE_DEPTH = 100


class ConflictError(ChainError):
    """Two selected skills declare a conflict"""
    pass


@dataclass
class ResolutionResult:
    chain: list[str] = field(default_factory=list)
    blocked_intents: dict[str, str] = field(default_factory=dict)
    explanations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _skill_sort_key(skill: SkillSpec):
    return (RISK_ORDER[skill.risk], COST_ORDER[skill.cost], skill.name)


def resolve_chain(profile: ProfileSpec, skills: list[SkillSpec], fail_fast: bool = False) -> ResolutionResult:
    """
    Order the skills needed to satisfy a profile.

    For each required capability in order: skip if already satisfied,
    otherwise pick among the providers whose own requirements can be met,
    preferring lower risk, then lower cost, then name. Providers that
    conflict with an already selected skill are skipped (or raise
    ConflictError when ``fail_fast``). Every deny rule of a selected skill
    becomes a blocked intent.
    """
    result = ResolutionResult()
    satisfied: set[str] = set()
    selected: dict[str, SkillSpec] = {}

    providers: dict[str, list[SkillSpec]] = {}
    for skill in skills:
        for cap in skill.provides:
            providers.setdefault(cap, []).append(skill)

    def conflicts_with_selected(skill: SkillSpec) -> Optional[str]:
        for name, chosen in selected.items():
            if skill.name in chosen.conflicts:
                return f"Skill '{name}' declares conflict with '{skill.name}'"
            if name in skill.conflicts:
                return f"Skill '{skill.name}' declares conflict with '{name}'"
        return None

    def select(skill: SkillSpec, reason: str) -> None:
        result.chain.append(skill.name)
        selected[skill.name] = skill
        for intent, rule in skill.tool_policy.deny_until.items():
            result.blocked_intents[intent] = rule.reason
        satisfied.update(skill.provides)
        result.explanations.append(f"{skill.name}: {reason}")

    def satisfy(cap: str, depth: int = 0) -> bool:
        if depth > MAX_RESOLVE_DEPTH:
            result.warnings.append(f"Max recursion depth reached while satisfying '{cap}'")
            return False
        if cap in satisfied:
            return True

        candidates = providers.get(cap)
        if not candidates:
            result.warnings.append(f"No skill provides capability '{cap}'")
            return False

        eligible = []
        for provider in candidates:
            if provider.name in selected:
                continue
            if not all(satisfy(req, depth + 1) for req in provider.requires):
                continue
            conflict = conflicts_with_selected(provider)
            if conflict:
                if fail_fast:
                    raise ConflictError(conflict)
                result.warnings.append(conflict)
                continue
            eligible.append(provider)

        if cap in satisfied:
            return True
        if not eligible:
            result.warnings.append(f"No eligible skill for capability '{cap}'")
            return False

        best = min(eligible, key=_skill_sort_key)
        select(best, f"provides '{cap}'")
        return True

    for cap in profile.capabilities_required:
        satisfy(cap)

    return result


def match_profile_to_prompt(prompt: str, profiles: Iterable[ProfileSpec]) -> Optional[ProfileSpec]:
    """
    First profile, by descending priority, with a trigger word in the prompt.

    Matching is a case-insensitive substring test. Ties keep file order.
    """
    text = prompt.lower()
    for profile in sorted(profiles, key=lambda p: -p.priority):
        if any(word and word.lower() in text for word in profile.match):
            return profile
    return None


def activate_profile(
    profile: ProfileSpec,
    skills: list[SkillSpec],
    store: SessionStore,
) -> SessionState:
    """Resolve the profile's chain and persist a new session for it."""
    resolution = resolve_chain(profile, skills)
    for warning in resolution.warnings:
        logger.warning("Resolving profile '%s': %s", profile.name, warning)

    state = store.create(
        profile.name,
        chain=resolution.chain,
        capabilities_required=list(profile.capabilities_required),
        strictness=profile.strictness,
        blocked_intents=resolution.blocked_intents,
    )
    logger.info("Auto-activated profile '%s' (session %s)", profile.name, state.session_id)
    return state
