"""Per-model health tracking used to bias automatic model selection."""

import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

FAILURE_THRESHOLD = 3
STALE_SUCCESS_MS = 300_000  # 5 minutes


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class HealthRecord:
    """Rolling statistics for one model."""

    last_success_at: Optional[float] = None  # epoch milliseconds
    consecutive_failures: int = 0
    avg_response_time_ms: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def copy(self) -> "HealthRecord":
        with self._lock:
            return replace(self, _lock=threading.Lock())

    def to_dict(self) -> Dict[str, Any]:
        last_success = None
        if self.last_success_at is not None:
            last_success = datetime.fromtimestamp(
                self.last_success_at / 1000, tz=timezone.utc
            ).isoformat()
        return {
            "last_success_at": last_success,
            "consecutive_failures": self.consecutive_failures,
            "avg_response_time_ms": round(self.avg_response_time_ms, 2),
        }


class HealthTracker:
    """Process-wide health state, one independently locked record per model.

    A success decrements the failure streak instead of clearing it, so one
    lucky call does not hide a long run of failures.
    """

    def __init__(self, clock: Callable[[], float] = _now_ms):
        self._clock = clock
        self._records: Dict[str, HealthRecord] = {}

    def _record(self, model_id: str) -> HealthRecord:
        record = self._records.get(model_id)
        if record is None:
            # setdefault keeps the first record if two callers race here
            record = self._records.setdefault(model_id, HealthRecord())
        return record

    def record_outcome(self, model_id: str, success: bool, elapsed_ms: Optional[float] = None) -> None:
        """Fold one call outcome into the model's record."""
        record = self._record(model_id)
        with record._lock:
            if success:
                record.last_success_at = self._clock()
                record.consecutive_failures = max(0, record.consecutive_failures - 1)
                if elapsed_ms is not None:
                    record.avg_response_time_ms = (record.avg_response_time_ms + elapsed_ms) / 2
            else:
                record.consecutive_failures += 1
            failures = record.consecutive_failures

        logger.debug(
            "Model health updated",
            model=model_id,
            success=success,
            consecutive_failures=failures,
            elapsed_ms=elapsed_ms,
        )

    def is_healthy(self, model_id: str, now: Optional[float] = None) -> bool:
        """A model is unhealthy only with a long failure streak AND no recent success."""
        record = self._records.get(model_id)
        if record is None:
            return True

        now = self._clock() if now is None else now
        with record._lock:
            failing = record.consecutive_failures > FAILURE_THRESHOLD
            if record.last_success_at is None:
                stale = True
            else:
                stale = (now - record.last_success_at) > STALE_SUCCESS_MS
        return not (failing and stale)

    def get(self, model_id: str) -> Optional[HealthRecord]:
        record = self._records.get(model_id)
        return record.copy() if record is not None else None

    def snapshot(self) -> Dict[str, HealthRecord]:
        """Read-only copy of every record."""
        return {model_id: record.copy() for model_id, record in list(self._records.items())}

    def snapshot_dict(self) -> Dict[str, Dict[str, Any]]:
        return {model_id: record.to_dict() for model_id, record in self.snapshot().items()}
