"""Prometheus metrics for upstream attempts and orchestration results."""

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """Collects orchestration metrics with Prometheus integration."""

    def __init__(self, namespace: str = "prompt_studio", registry: CollectorRegistry = REGISTRY):
        self.namespace = namespace
        self.registry = registry

        self.attempts = Counter(
            f"{namespace}_llm_attempts_total",
            "Upstream completion attempts",
            ["model", "outcome"],
            registry=registry,
        )
        self.attempt_latency = Histogram(
            f"{namespace}_llm_attempt_latency_seconds",
            "Upstream completion attempt latency",
            ["model"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=registry,
        )
        self.fallbacks = Counter(
            f"{namespace}_llm_fallbacks_total",
            "Fallbacks from an exhausted model to the next candidate",
            ["from_model"],
            registry=registry,
        )
        self.orchestrations = Counter(
            f"{namespace}_orchestrations_total",
            "Completed orchestration calls by result",
            ["result"],
            registry=registry,
        )

    def record_attempt(self, model: str, outcome: str, elapsed_ms: float | None = None) -> None:
        """Record one upstream attempt."""
        try:
            self.attempts.labels(model=model, outcome=outcome).inc()
            if elapsed_ms is not None:
                self.attempt_latency.labels(model=model).observe(elapsed_ms / 1000)
        except Exception as e:
            logger.warning("Failed to record attempt metric", error=str(e))

    def record_fallback(self, from_model: str) -> None:
        try:
            self.fallbacks.labels(from_model=from_model).inc()
        except Exception as e:
            logger.warning("Failed to record fallback metric", error=str(e))

    def record_orchestration(self, result: str) -> None:
        try:
            self.orchestrations.labels(result=result).inc()
        except Exception as e:
            logger.warning("Failed to record orchestration metric", error=str(e))

    def export(self) -> bytes:
        """Export metrics in Prometheus text format."""
        return generate_latest(self.registry)


metrics_collector = MetricsCollector()
