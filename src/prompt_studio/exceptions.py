"""Custom exceptions for Prompt Studio."""

from typing import Any, Dict, List, Optional


class StudioException(Exception):
    """Base exception for Prompt Studio."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as a JSON-ready body."""
        body: Dict[str, Any] = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationException(StudioException):
    """Caller input is malformed; rejected before any upstream call."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="VALIDATION_ERROR", status_code=400, **kwargs)
        if field:
            self.details["field"] = field


class ConfigurationError(StudioException):
    """Required configuration is missing at call time."""

    def __init__(self, message: str, setting: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="CONFIGURATION_ERROR", status_code=500, **kwargs)
        if setting:
            self.details["setting"] = setting


class NoCandidatesError(StudioException):
    """No model passed the provider and health filters."""

    def __init__(self, provider_hint: str, message: str = "No healthy models available"):
        super().__init__(
            message,
            error_code="NO_CANDIDATES",
            status_code=503,
            details={"provider": provider_hint},
        )
        self.provider_hint = provider_hint


class ProviderError(StudioException):
    """An upstream attempt finished without a usable completion."""

    def __init__(
        self,
        message: str,
        model: str,
        attempt: int,
        http_status: Optional[int] = None,
        body: Any = None,
        error_code: str = "PROVIDER_ERROR",
        status_code: int = 502,
    ):
        super().__init__(message, error_code=error_code, status_code=status_code)
        self.model = model
        self.attempt = attempt
        self.http_status = http_status
        self.body = body


class RetryableProviderError(ProviderError):
    """Upstream is overloaded or out of quota; worth retrying or falling back."""

    def __init__(self, model: str, attempt: int, http_status: Optional[int], body: Any = None):
        super().__init__(
            f"Model {model} returned retryable status {http_status}",
            model=model,
            attempt=attempt,
            http_status=http_status,
            body=body,
            error_code="PROVIDER_RETRYABLE",
        )


class FatalProviderError(ProviderError):
    """Upstream rejected the request; aborts the whole orchestration."""

    def __init__(self, model: str, attempt: int, http_status: Optional[int], body: Any = None):
        # A fatal outcome without an error status (e.g. 200 with an unreadable body)
        # is reported to the caller as a bad gateway.
        status_code = http_status if http_status and http_status >= 400 else 502
        super().__init__(
            f"Model {model} failed with status {http_status}",
            model=model,
            attempt=attempt,
            http_status=http_status,
            body=body,
            error_code="PROVIDER_FATAL",
            status_code=status_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "error_code": self.error_code,
            "model_attempted": self.model,
            "status": self.http_status,
            "attempt": self.attempt,
            "details": self.body,
        }


class TransportError(ProviderError):
    """The request could not complete at all (network failure)."""

    def __init__(self, model: str, message: str, attempt: int = 0):
        super().__init__(
            message,
            model=model,
            attempt=attempt,
            error_code="TRANSPORT_ERROR",
        )


class TransportTimeoutError(TransportError):
    """No response arrived before the per-attempt timeout."""

    def __init__(self, model: str, timeout_ms: float, attempt: int = 0):
        super().__init__(model, f"Request to {model} timed out after {timeout_ms:.0f}ms", attempt)
        self.error_code = "TRANSPORT_TIMEOUT"
        self.timeout_ms = timeout_ms


class AggregateFailure(StudioException):
    """Every candidate model was exhausted without success."""

    FINAL_STATUS = 502

    def __init__(
        self,
        attempts: List[Dict[str, Any]],
        health_snapshot: Optional[Dict[str, Any]] = None,
        message: str = "All providers failed after retries",
        error_code: str = "ALL_PROVIDERS_FAILED",
    ):
        super().__init__(message, error_code=error_code, status_code=self.FINAL_STATUS)
        self.attempts = attempts
        self.health_snapshot = health_snapshot or {}

    @property
    def final_status(self) -> int:
        return self.status_code

    @property
    def last_error(self) -> Optional[Dict[str, Any]]:
        return self.attempts[-1] if self.attempts else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "last_error": self.last_error,
            "attempts": self.attempts,
            "health_status": self.health_snapshot,
        }


class DeadlineExceededError(AggregateFailure):
    """The overall orchestration deadline elapsed before any success."""

    def __init__(self, attempts: List[Dict[str, Any]], health_snapshot: Optional[Dict[str, Any]] = None):
        super().__init__(
            attempts,
            health_snapshot,
            message="Orchestration deadline exceeded",
            error_code="DEADLINE_EXCEEDED",
        )


__all__ = [
    "StudioException",
    "ValidationException",
    "ConfigurationError",
    "NoCandidatesError",
    "ProviderError",
    "RetryableProviderError",
    "FatalProviderError",
    "TransportError",
    "TransportTimeoutError",
    "AggregateFailure",
    "DeadlineExceededError",
]
