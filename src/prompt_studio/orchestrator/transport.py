"""Single bounded-timeout call to the upstream chat-completion endpoint."""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import structlog

from prompt_studio.config import Settings
from prompt_studio.exceptions import ConfigurationError, TransportError, TransportTimeoutError
from prompt_studio.orchestrator.health import HealthTracker
from prompt_studio.orchestrator.payload import RequestPayload

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CallOutcome:
    """Normalized result of one upstream call."""

    success: bool
    http_status: Optional[int]
    parsed_body: Any
    raw_body: str
    elapsed_ms: float

    @property
    def error_code(self) -> Optional[str]:
        """``error.code`` from a JSON error envelope, if present."""
        if not isinstance(self.parsed_body, dict):
            return None
        error = self.parsed_body.get("error")
        if isinstance(error, dict):
            code = error.get("code")
            return str(code) if code is not None else None
        return None

    @property
    def details(self) -> Any:
        return self.parsed_body if self.parsed_body is not None else self.raw_body


def _parse_body(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return None


class OpenRouterTransport:
    """Issues completion calls over a shared httpx client and reports health.

    HTTP error statuses come back as unsuccessful outcomes. Only network
    failures and timeouts raise, as ``TransportError``.
    """

    def __init__(
        self,
        settings: Settings,
        health: HealthTracker,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self.health = health
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    def _headers(self) -> Dict[str, str]:
        if not self.settings.has_openrouter_key:
            raise ConfigurationError(
                "OPENROUTER_API_KEY is not configured", setting="OPENROUTER_API_KEY"
            )
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.openrouter_api_key.get_secret_value()}",
            "HTTP-Referer": self.settings.openrouter_site_url,
            "X-Title": self.settings.openrouter_site_name,
        }

    async def call(
        self,
        model_id: str,
        payload: RequestPayload,
        timeout_ms: float,
        attempt: int = 0,
    ) -> CallOutcome:
        """POST one completion request for ``model_id``.

        Raises:
            ConfigurationError: if no upstream credential is configured
            TransportTimeoutError: if no response arrives within ``timeout_ms``
            TransportError: if the request cannot complete at all
        """
        headers = self._headers()
        start = time.perf_counter()

        try:
            response = await asyncio.wait_for(
                self._client.post(
                    self.settings.openrouter_url,
                    headers=headers,
                    json=payload.for_model(model_id),
                    timeout=timeout_ms / 1000,
                ),
                timeout=timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.health.record_outcome(model_id, False)
            logger.warning("Upstream call timed out", model=model_id, timeout_ms=timeout_ms)
            raise TransportTimeoutError(model_id, timeout_ms, attempt) from None
        except httpx.HTTPError as e:
            self.health.record_outcome(model_id, False)
            logger.warning("Upstream call failed", model=model_id, error=str(e))
            raise TransportError(model_id, f"Request to {model_id} failed: {e}", attempt) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        raw = response.text
        outcome = CallOutcome(
            success=response.is_success,
            http_status=response.status_code,
            parsed_body=_parse_body(raw),
            raw_body=raw,
            elapsed_ms=elapsed_ms,
        )
        self.health.record_outcome(model_id, outcome.success, elapsed_ms)
        return outcome

    async def probe(self, timeout_ms: float) -> str:
        """Check upstream reachability via the models listing."""
        if not self.settings.has_openrouter_key:
            return "no_api_key"
        try:
            response = await self._client.get(
                self.settings.openrouter_models_url,
                headers={
                    "Authorization": f"Bearer {self.settings.openrouter_api_key.get_secret_value()}"
                },
                timeout=timeout_ms / 1000,
            )
        except httpx.HTTPError as e:
            logger.warning("Upstream probe failed", error=str(e))
            return "timeout"
        return "healthy" if response.is_success else "error"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
