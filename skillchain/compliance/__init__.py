"""Response compliance checking and the bounded retry loop."""

from .feedback_loop import (
    FeedbackLoopOptions,
    FeedbackLoopResult,
    format_exhausted,
    run_feedback_loop,
)
from .validator import (
    ComplianceValidation,
    detect_skill_calls,
    generate_retry_prompt,
    should_retry,
    validate_response,
)

__all__ = [
    "ComplianceValidation",
    "FeedbackLoopOptions",
    "FeedbackLoopResult",
    "detect_skill_calls",
    "format_exhausted",
    "generate_retry_prompt",
    "run_feedback_loop",
    "should_retry",
    "validate_response",
]
