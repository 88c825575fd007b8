"""Multi-model request orchestration with retries, fallback and health filtering.

For one request the orchestrator walks the candidate models in ascending
priority. Each model gets up to ``max_attempts`` tries:

* a successful, parseable response is returned immediately;
* an overload/quota response (see ``classifier``) is retried after
  ``2 ** attempt`` seconds, and once the model's budget is spent the next
  model is tried;
* a network failure or timeout is retried after a fixed second;
* any other upstream status aborts the whole orchestration.

Timeouts apply per attempt, so the worst-case latency of one call is roughly
the sum over tried models of ``max_attempts * timeout`` plus backoff delays.
An optional overall deadline caps that. Cancelling the calling task cancels
the in-flight request or backoff sleep immediately.
"""

import asyncio
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type

from prompt_studio.exceptions import (
    AggregateFailure,
    DeadlineExceededError,
    FatalProviderError,
    NoCandidatesError,
    RetryableProviderError,
    TransportError,
)
from prompt_studio.orchestrator.classifier import Classification, classify
from prompt_studio.orchestrator.health import HealthTracker
from prompt_studio.orchestrator.payload import RequestPayload
from prompt_studio.orchestrator.registry import AUTO_HINT, ModelDescriptor, ModelRegistry
from prompt_studio.orchestrator.transport import OpenRouterTransport
from prompt_studio.telemetry.metrics import MetricsCollector, metrics_collector

logger = structlog.get_logger(__name__)

BACKOFF_BASE_SECONDS = 1.0
TRANSPORT_RETRY_SECONDS = 1.0
RETRYABLE_ERRORS = (RetryableProviderError, TransportError)


@dataclass(frozen=True)
class AttemptRecord:
    """One upstream attempt as seen by the caller."""

    model: str
    attempt: int
    status: Optional[int] = None
    error: Optional[str] = None
    details: Any = None
    elapsed_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class OrchestrationResult:
    """Successful orchestration."""

    model_used: str
    elapsed_ms: float
    attempt_number: int
    body: Any
    attempts: tuple = field(default_factory=tuple)


def backoff_delay(retry_state: RetryCallState) -> float:
    """Seconds to wait before the next attempt on the same model.

    ``attempt_number`` is 1-based here, so the first retry waits 1s, then 2s, 4s...
    """
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(exc, TransportError):
        return TRANSPORT_RETRY_SECONDS
    return BACKOFF_BASE_SECONDS * 2 ** (retry_state.attempt_number - 1)


class _Deadline:
    def __init__(self, deadline_ms: Optional[float], clock: Callable[[], float]):
        self._clock = clock
        self._expires_at = clock() + deadline_ms / 1000 if deadline_ms else None
        self.reached = False

    @property
    def enabled(self) -> bool:
        return self._expires_at is not None

    def remaining_ms(self) -> float:
        if self._expires_at is None:
            return float("inf")
        return max(0.0, (self._expires_at - self._clock()) * 1000)

    def expired(self) -> bool:
        if self.enabled and self.remaining_ms() <= 0:
            self.reached = True
        return self.reached

    def allows(self, delay_seconds: float) -> bool:
        """Whether a wait of `delay_seconds` still leaves time for another attempt."""
        if self.remaining_ms() <= delay_seconds * 1000:
            self.reached = True
        return not self.reached


class Orchestrator:
    """Selects models, issues attempts and classifies their outcomes."""

    def __init__(
        self,
        registry: ModelRegistry,
        health: HealthTracker,
        transport: OpenRouterTransport,
        default_timeout_ms: float = 30000,
        default_deadline_ms: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        metrics: MetricsCollector = metrics_collector,
    ):
        self.registry = registry
        self.health = health
        self.transport = transport
        self.default_timeout_ms = default_timeout_ms
        self.default_deadline_ms = default_deadline_ms
        self._sleep = sleep
        self._clock = clock
        self.metrics = metrics

    def candidates(self, provider_hint: str = AUTO_HINT) -> List[ModelDescriptor]:
        """Eligible models for a hint; only ``auto`` applies the health filter."""
        hint = (provider_hint or AUTO_HINT).strip().lower()
        models = self.registry.filter_by_provider_hint(hint)
        if hint == AUTO_HINT:
            models = [m for m in models if self.health.is_healthy(m.identifier)]
        return models

    async def complete(
        self,
        payload: RequestPayload,
        provider_hint: str = AUTO_HINT,
        timeout_ms: Optional[float] = None,
        deadline_ms: Optional[float] = None,
    ) -> OrchestrationResult:
        """Run one orchestration call.

        Raises:
            NoCandidatesError: if no model passes the provider/health filter
            FatalProviderError: on the first non-retryable upstream failure
            AggregateFailure: when every candidate is exhausted
            DeadlineExceededError: when the overall deadline elapses first
        """
        timeout_ms = timeout_ms or self.default_timeout_ms
        deadline = _Deadline(deadline_ms or self.default_deadline_ms, self._clock)

        models = self.candidates(provider_hint)
        if not models:
            logger.warning("No candidate models", provider=provider_hint)
            self.metrics.record_orchestration("no_candidates")
            raise NoCandidatesError(provider_hint)

        attempts: List[AttemptRecord] = []

        for descriptor in models:
            if deadline.expired():
                break
            try:
                result = await self._run_model(descriptor, payload, timeout_ms, deadline, attempts)
            except RETRYABLE_ERRORS as e:
                if deadline.reached:
                    break
                logger.warning(
                    "Model exhausted, falling back",
                    model=descriptor.identifier,
                    attempts=descriptor.max_attempts,
                    last_error=e.message,
                )
                self.metrics.record_fallback(descriptor.identifier)
                continue
            except FatalProviderError as e:
                logger.error(
                    "Fatal upstream failure",
                    model=e.model,
                    status=e.http_status,
                    attempt=e.attempt,
                )
                self.metrics.record_orchestration("fatal")
                raise

            self.metrics.record_orchestration("success")
            return result

        snapshot = self.health.snapshot_dict()
        history = [a.to_dict() for a in attempts]
        if deadline.expired():
            logger.error("Orchestration deadline exceeded", attempts=len(attempts))
            self.metrics.record_orchestration("deadline_exceeded")
            raise DeadlineExceededError(history, snapshot)

        logger.error("All providers failed", attempts=len(attempts))
        self.metrics.record_orchestration("exhausted")
        raise AggregateFailure(history, snapshot)

    async def _run_model(
        self,
        descriptor: ModelDescriptor,
        payload: RequestPayload,
        timeout_ms: float,
        deadline: _Deadline,
        attempts: List[AttemptRecord],
    ) -> OrchestrationResult:
        def stop(retry_state: RetryCallState) -> bool:
            if retry_state.attempt_number >= descriptor.max_attempts:
                return True
            return not deadline.allows(backoff_delay(retry_state))

        retrying = AsyncRetrying(
            stop=stop,
            wait=backoff_delay,
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._attempt(
                    descriptor,
                    payload,
                    attempt.retry_state.attempt_number,
                    min(timeout_ms, deadline.remaining_ms()),
                    attempts,
                )
        raise RuntimeError("Retry loop completed without returning")

    async def _attempt(
        self,
        descriptor: ModelDescriptor,
        payload: RequestPayload,
        attempt_number: int,
        timeout_ms: float,
        attempts: List[AttemptRecord],
    ) -> OrchestrationResult:
        model_id = descriptor.identifier
        logger.info("Routing request", model=model_id, attempt=attempt_number)

        try:
            outcome = await self.transport.call(model_id, payload, timeout_ms, attempt_number)
        except TransportError as e:
            attempts.append(AttemptRecord(model_id, attempt_number, error=e.message))
            self.metrics.record_attempt(model_id, "transport_error")
            raise

        classification = classify(outcome)
        self.metrics.record_attempt(model_id, classification.value, outcome.elapsed_ms)
        attempts.append(
            AttemptRecord(
                model_id,
                attempt_number,
                status=outcome.http_status,
                details=None if classification is Classification.SUCCESS else outcome.details,
                elapsed_ms=round(outcome.elapsed_ms, 2),
            )
        )

        if classification is Classification.SUCCESS:
            logger.info(
                "Upstream call succeeded",
                model=model_id,
                attempt=attempt_number,
                elapsed_ms=round(outcome.elapsed_ms, 2),
            )
            return OrchestrationResult(
                model_used=model_id,
                elapsed_ms=outcome.elapsed_ms,
                attempt_number=attempt_number,
                body=outcome.parsed_body,
                attempts=tuple(attempts),
            )
        if classification is Classification.RETRYABLE:
            raise RetryableProviderError(model_id, attempt_number, outcome.http_status, outcome.details)
        raise FatalProviderError(model_id, attempt_number, outcome.http_status, outcome.details)

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            "Retrying model",
            model=getattr(exc, "model", None),
            attempt=retry_state.attempt_number,
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(exc),
        )
