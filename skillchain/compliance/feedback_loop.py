"""
Bounded retry decision for non-compliant responses.

The loop never retries by itself. The caller sends the prompt back to the
model and calls again with ``attempt_number + 1``; once attempts run out
the result is terminal: non-compliant with no retry prompt.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .validator import generate_retry_prompt, should_retry, validate_response


logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3


@dataclass
class FeedbackLoopOptions:
    required_skills: list[str]
    suggested_skills: list[str] = field(default_factory=list)
    max_retries: int = DEFAULT_MAX_RETRIES


@dataclass
class FeedbackLoopResult:
    compliant: bool
    attempt_number: int
    missing_skills: list[str] = field(default_factory=list)
    retry_prompt: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return not self.compliant and self.retry_prompt is None


def run_feedback_loop(
    response: str,
    options: FeedbackLoopOptions,
    attempt_number: int = 1,
) -> FeedbackLoopResult:
    validation = validate_response(response, options.required_skills, options.suggested_skills)

    if validation.has_required_skill_calls:
        return FeedbackLoopResult(compliant=True, attempt_number=attempt_number)

    retry_prompt = None
    if should_retry(validation, attempt_number, options.max_retries):
        retry_prompt = generate_retry_prompt(
            validation.missing_skills, attempt_number, options.max_retries
        )
    else:
        logger.warning(
            "Compliance retries exhausted after %d/%d attempts, missing: %s",
            attempt_number, options.max_retries, ", ".join(validation.missing_skills),
        )

    return FeedbackLoopResult(
        compliant=False,
        attempt_number=attempt_number,
        missing_skills=validation.missing_skills,
        retry_prompt=retry_prompt,
    )


def format_exhausted(result: FeedbackLoopResult, max_retries: int) -> str:
    return (
        f"COMPLIANCE FAILED: retries exhausted ({result.attempt_number}/{max_retries}).\n"
        f"Missing skills: {', '.join(result.missing_skills)}"
    )
