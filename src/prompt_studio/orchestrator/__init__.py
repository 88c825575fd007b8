"""Orchestrator module for model selection, retries and fallback."""

from prompt_studio.orchestrator.classifier import Classification, classify
from prompt_studio.orchestrator.health import HealthRecord, HealthTracker
from prompt_studio.orchestrator.orchestrator import AttemptRecord, OrchestrationResult, Orchestrator
from prompt_studio.orchestrator.payload import Message, RequestPayload, build_payload, clamp_max_tokens
from prompt_studio.orchestrator.registry import ModelDescriptor, ModelRegistry
from prompt_studio.orchestrator.transport import CallOutcome, OpenRouterTransport

__all__ = [
    "AttemptRecord",
    "CallOutcome",
    "Classification",
    "HealthRecord",
    "HealthTracker",
    "Message",
    "ModelDescriptor",
    "ModelRegistry",
    "OpenRouterTransport",
    "OrchestrationResult",
    "Orchestrator",
    "RequestPayload",
    "build_payload",
    "clamp_max_tokens",
    "classify",
]
