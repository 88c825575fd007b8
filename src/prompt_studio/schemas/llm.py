"""Schemas for the LLM orchestration and diagnostics endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LLMRequest(BaseModel):
    """Orchestration request body.

    Numeric knobs are accepted loosely and normalized downstream, so a bad
    ``max_tokens`` falls back to the default instead of failing the request.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "messages": [
                    {"role": "system", "content": "You rewrite prompts for image models."},
                    {"role": "user", "content": "A lighthouse at dusk, oil painting"},
                ],
                "max_tokens": 800,
                "temperature": 0.7,
                "provider": "auto",
            }
        }
    )

    messages: Any = Field(default_factory=list, description="Ordered role/content pairs")
    max_tokens: Any = Field(None, description="Requested token limit, clamped to the hard cap")
    temperature: Any = Field(None, description="Sampling temperature")
    top_p: Any = Field(None, description="Nucleus sampling")
    provider: str | None = Field("auto", description="'auto', 'all', or a provider tag; null means 'auto'")
    timeout: float | None = Field(None, gt=0, description="Per-attempt timeout in milliseconds")


class LLMDiagnostics(BaseModel):
    """Health snapshot plus the configured model list."""

    healthy: bool = Field(True, description="Service liveness")
    models: dict[str, dict[str, Any]] = Field(..., description="Per-model health records")
    configs: list[str] = Field(..., description="Configured model identifiers in priority order")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
