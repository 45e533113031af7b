"""
Check that a model response invokes the skills it was required to.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional


SKILL_CALL_PATTERNS = [
    re.compile(r"""Skill\s*\(\s*skill\s*[=:]\s*["']([a-zA-Z0-9_-]+)["']""", re.IGNORECASE),
    re.compile(r"""Skill\s*\(\s*["']?([a-zA-Z0-9_-]+)["']?\s*[,)]""", re.IGNORECASE),
]


@dataclass
class ComplianceValidation:
    has_required_skill_calls: bool
    missing_skills: list[str] = field(default_factory=list)
    extraneous_calls: list[str] = field(default_factory=list)
    suggested_retry_prompt: Optional[str] = None


def detect_skill_calls(text: str) -> list[str]:
    """Skill names invoked in ``text``, in order of first appearance."""
    found = []
    for pattern in SKILL_CALL_PATTERNS:
        for match in pattern.finditer(text):
            found.append((match.start(), match.group(1)))
    seen, names = set(), []
    for _pos, name in sorted(found):
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


def generate_retry_prompt(missing_skills: Iterable[str], attempt: int, max_retries: int) -> str:
    missing = list(missing_skills)
    calls = ", ".join(f'Skill(skill: "{name}")' for name in missing)
    return (
        f"COMPLIANCE ERROR: You MUST call {calls} before proceeding.\n"
        f"Missing skills: {', '.join(missing)}\n"
        f"Attempt {attempt}/{max_retries}.\n"
        "\n"
        "Please invoke the required skills using the Skill tool."
    )


def validate_response(
    text: str,
    required_skills: Iterable[str],
    suggested_skills: Iterable[str] = (),
    attempt: Optional[int] = None,
    max_retries: Optional[int] = None,
) -> ComplianceValidation:
    """
    Compare invoked skills against required and suggested ones.

    When ``attempt`` and ``max_retries`` are given and skills are missing,
    the retry prompt is filled in as well.
    """
    required = list(required_skills)
    suggested = set(suggested_skills)
    invoked = detect_skill_calls(text)
    invoked_set = set(invoked)

    missing = [name for name in required if name not in invoked_set]
    expected = set(required) | suggested
    extraneous = [name for name in invoked if name not in expected]

    prompt = None
    if missing and attempt is not None and max_retries is not None:
        prompt = generate_retry_prompt(missing, attempt, max_retries)

    return ComplianceValidation(
        has_required_skill_calls=not missing,
        missing_skills=missing,
        extraneous_calls=extraneous,
        suggested_retry_prompt=prompt,
    )


def should_retry(validation: ComplianceValidation, attempt: int, max_retries: int) -> bool:
    return not validation.has_required_skill_calls and attempt < max_retries
