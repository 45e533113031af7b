"""
Human-readable output for the hook: guidance lines and denial banners.
"""

from typing import Iterable, Optional

from ..evidence import EvidenceResult
from ..intents import BlockedIntent
from ..schema import CompletionRequirement, SessionState, SkillSpec


def find_provider(capability: str, skills: Iterable[SkillSpec], chain: Iterable[str] = ()) -> Optional[str]:
    """Name of a skill providing ``capability``, preferring ones in the chain."""
    skills = list(skills)
    chain = list(chain)
    for name in chain:
        for skill in skills:
            if skill.name == name and capability in skill.provides:
                return name
    for skill in skills:
        if capability in skill.provides:
            return skill.name
    return None


def _progress(state: SessionState) -> tuple[int, int, int]:
    total = len(state.capabilities_required)
    satisfied = total - len(state.unsatisfied_capabilities())
    percent = 100 if total == 0 else round(satisfied * 100 / total)
    return satisfied, total, percent


def skill_invocation(skill: str) -> str:
    return f'Skill(skill: "{skill}")'


def format_guidance(state: SessionState, skills: Iterable[SkillSpec] = ()) -> str:
    """One-line status plus the next skill to invoke."""
    satisfied, total, percent = _progress(state)
    header = f"[chain] {state.profile_id}: {satisfied}/{total} ({percent}%)"

    remaining = state.unsatisfied_capabilities()
    if not remaining:
        return f"{header} - COMPLETE"

    capability = remaining[0]
    skill = find_provider(capability, skills, state.chain)
    if skill is None:
        return f"{header} - NEED: {capability} (no provider configured)"
    return f"{header} - CURRENT: {skill} (need: {capability})\n→ {skill_invocation(skill)}"


def format_intent_denial(
    blocked: list[BlockedIntent],
    state: SessionState,
    skills: Iterable[SkillSpec] = (),
) -> str:
    skills = list(skills)
    lines = [
        "## CHAIN ENFORCEMENT: BLOCKED",
        "",
        f"**Reason:** {blocked[0].reason}",
        "",
        "### Blocked Intents:",
    ]
    for item in blocked:
        lines.append(f"- `{item.intent}`: {item.reason}")

    remaining = state.unsatisfied_capabilities()
    next_skill = None
    if remaining:
        lines.extend(["", "### Prerequisites Not Met:"])
        for capability in remaining:
            provider = find_provider(capability, skills, state.chain)
            if provider is None:
                lines.append(f"- [ ] {capability}: no skill provides this capability")
            else:
                next_skill = next_skill or provider
                lines.append(f"- [ ] {capability}: Activate skill '{provider}' to satisfy")

    lines.extend(["", "### How to Proceed:"])
    if next_skill:
        lines.append(f"1. Invoke {skill_invocation(next_skill)}")
        lines.append("2. Complete the skill's workflow to satisfy its capability")
        lines.append("3. Retry the blocked action")
        lines.extend(["", f"**NEXT STEP:** {skill_invocation(next_skill)}"])
    else:
        lines.append("1. Satisfy the outstanding requirements of the active profile")
        lines.append("2. Retry the blocked action")
    return "\n".join(lines)


def format_status_summary(state: SessionState, skills: Iterable[SkillSpec] = ()) -> str:
    skills = list(skills)
    satisfied, total, percent = _progress(state)
    lines = [
        f"Session: {state.session_id}",
        f"Profile: {state.profile_id} ({state.strictness.value})",
        f"Progress: {satisfied}/{total} ({percent}%)",
        f"Chain: {' -> '.join(state.chain) if state.chain else '(empty)'}",
        "",
        "Capabilities:",
    ]
    done = state.satisfied_capabilities()
    for capability in state.capabilities_required:
        mark = "x" if capability in done else " "
        provider = find_provider(capability, skills, state.chain) or "?"
        lines.append(f"  [{mark}] {capability} ({provider})")

    if state.blocked_intents:
        lines.extend(["", "Blocked intents:"])
        for intent, reason in state.blocked_intents.items():
            lines.append(f"  - {intent}: {reason}")
    return "\n".join(lines)


def format_activation(state: SessionState, skills: Iterable[SkillSpec] = ()) -> str:
    return f"[chain] auto-activated profile '{state.profile_id}'\n" + format_guidance(state, skills)


def format_progress_line(state: SessionState, action: str = "allowed") -> str:
    satisfied, total, percent = _progress(state)
    return f"[chain] {state.profile_id}: {satisfied}/{total} ({percent}%) - {action}"


def format_completion_denial(
    missing: list[tuple[CompletionRequirement, EvidenceResult]],
    state: SessionState,
) -> str:
    lines = [
        "## CHAIN ENFORCEMENT: STOP BLOCKED",
        "",
        f"**Profile:** {state.profile_id}",
        f"**Strictness:** {state.strictness.value}",
        "",
        "Cannot complete the workflow until all completion requirements are met.",
        "",
        "### Missing Requirements:",
    ]
    for requirement, result in missing:
        lines.append(f"- [ ] **{requirement.label}** ({requirement.type.value})")
        if requirement.description:
            lines.append(f"      {requirement.description}")
        if result.error:
            lines.append(f"      Error: {result.error}")

    lines.extend([
        "",
        "### How to Proceed:",
        "1. Complete all missing requirements above",
        "2. Stop again once every requirement is satisfied",
        "3. Or run `skillchain session clear` to abandon the workflow",
    ])
    return "\n".join(lines)
