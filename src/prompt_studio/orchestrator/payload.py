"""Upstream request payload construction."""

import math
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from prompt_studio.exceptions import ValidationException


class Message(BaseModel):
    """A single chat message."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")


class RequestPayload(BaseModel):
    """Immutable completion request shared by every attempt of one orchestration."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = Field(..., min_length=1, description="Ordered conversation")
    max_tokens: int = Field(..., ge=1, description="Clamped token limit")
    temperature: Optional[float] = Field(default=None, description="Sampling temperature")
    top_p: Optional[float] = Field(default=None, description="Nucleus sampling")

    def for_model(self, model_id: str) -> Dict[str, Any]:
        """Body sent upstream for one model."""
        body: Dict[str, Any] = {
            "model": model_id,
            "messages": [m.model_dump() for m in self.messages],
            "max_tokens": self.max_tokens,
        }
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.top_p is not None:
            body["top_p"] = self.top_p
        return body


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clamp_max_tokens(requested: Any, default: int, hard_cap: int) -> int:
    """Normalize a requested token limit into [1, hard_cap].

    Non-numeric values fall back to ``default`` before clamping.
    """
    value = requested if _is_number(requested) and not math.isnan(requested) else default
    return int(min(max(1, value), hard_cap))


def build_payload(
    messages: Sequence[Any],
    max_tokens: Any = None,
    temperature: Any = None,
    top_p: Any = None,
    *,
    default_max_tokens: int,
    hard_cap: int,
) -> RequestPayload:
    """Validate caller input and build the payload.

    Raises:
        ValidationException: if the message list is empty or malformed
    """
    if not isinstance(messages, (list, tuple)) or not messages:
        raise ValidationException("messages[] is required and must not be empty", field="messages")

    parsed: List[Message] = []
    for index, raw in enumerate(messages):
        try:
            parsed.append(raw if isinstance(raw, Message) else Message.model_validate(raw))
        except ValueError as e:
            raise ValidationException(
                f"messages[{index}] must have a role of system/user/assistant and string content",
                field="messages",
                details={"reason": str(e)},
            ) from e

    return RequestPayload(
        messages=tuple(parsed),
        max_tokens=clamp_max_tokens(max_tokens, default_max_tokens, hard_cap),
        temperature=float(temperature) if _is_number(temperature) else None,
        top_p=float(top_p) if _is_number(top_p) else None,
    )
