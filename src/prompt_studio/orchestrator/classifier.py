"""Classification of upstream call outcomes."""

from enum import Enum

from prompt_studio.orchestrator.transport import CallOutcome

FALLBACK_STATUSES = frozenset({402, 429, 500, 502, 503, 504})
FALLBACK_ERROR_CODES = frozenset(
    {
        "insufficient_quota",
        "insufficient_provider_quota",
        "payment_required",
        "rate_limited",
    }
)


class Classification(str, Enum):
    """What the orchestrator should do with an outcome."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


def _has_body(body) -> bool:
    # Empty objects and arrays still count as a body; null, false, 0 and "" do not.
    if isinstance(body, (dict, list)):
        return True
    return body is not None and bool(body)


def classify(outcome: CallOutcome) -> Classification:
    """Map an outcome to success, retryable failure, or fatal failure.

    A successful status with an unparseable or empty scalar body is fatal:
    there is nothing to return and retrying the same request is not expected
    to help.
    """
    if outcome.success and _has_body(outcome.parsed_body):
        return Classification.SUCCESS
    if outcome.http_status in FALLBACK_STATUSES:
        return Classification.RETRYABLE
    if outcome.error_code in FALLBACK_ERROR_CODES:
        return Classification.RETRYABLE
    return Classification.FATAL
