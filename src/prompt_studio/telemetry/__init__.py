"""Telemetry module for structured logging and metrics."""

from prompt_studio.telemetry.logger import RequestContext, setup_logging
from prompt_studio.telemetry.metrics import MetricsCollector, metrics_collector

__all__ = ["setup_logging", "RequestContext", "MetricsCollector", "metrics_collector"]
