"""Pytest configuration and fixtures."""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from prompt_studio.config import Settings
from prompt_studio.orchestrator import (
    HealthTracker,
    ModelDescriptor,
    ModelRegistry,
    OpenRouterTransport,
    Orchestrator,
    build_payload,
)

UPSTREAM_URL = "https://upstream.test/api/v1/chat/completions"
MODELS_URL = "https://upstream.test/api/v1/models"


def completion_body(model: str, content: str = "ok") -> Dict[str, Any]:
    return {
        "id": "gen-1",
        "model": model,
        "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep; records delays and advances an optional clock."""

    def __init__(self, clock: FakeClock | None = None):
        self.delays: List[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class ScriptedUpstream:
    """httpx handler answering per model from a script of responses.

    Each script entry is ``(status, body)``, an exception instance to raise,
    or a callable taking the request. The last entry repeats once the script
    runs out.
    """

    def __init__(self, scripts: Dict[str, List[Any]] | None = None):
        self.scripts = scripts or {}
        self.requests: List[Dict[str, Any]] = []

    def calls_for(self, model: str) -> int:
        return sum(1 for r in self.requests if r["model"] == model)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"data": []})
        body = json.loads(request.content)
        self.requests.append(body)
        model = body["model"]
        script = self.scripts.get(model, [(200, completion_body(model))])
        index = min(self.calls_for(model) - 1, len(script) - 1)
        entry = script[index]
        if isinstance(entry, Exception):
            raise entry
        if callable(entry):
            return entry(request)
        status, payload = entry
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openrouter_api_key="test-key",
        openrouter_url=UPSTREAM_URL,
        openrouter_models_url=MODELS_URL,
        llm_primary_model="x-ai/grok-test",
        llm_secondary_model="deepseek/deepseek-test",
        llm_tertiary_model="meta-llama/llama-test",
        max_tokens_default=1200,
        max_tokens_hard_cap=2000,
        environment="test",
        log_format="console",
    )


@pytest.fixture
def upstream() -> ScriptedUpstream:
    return ScriptedUpstream()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def health(clock) -> HealthTracker:
    # Health timestamps are in milliseconds
    return HealthTracker(clock=lambda: clock() * 1000)


@pytest.fixture
def sleeper(clock) -> SleepRecorder:
    return SleepRecorder(clock)


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry(
        [
            ModelDescriptor("deepseek/deepseek-test", 2, 3),
            ModelDescriptor("x-ai/grok-test", 1, 3),
            ModelDescriptor("meta-llama/llama-test", 3, 2),
        ]
    )


@pytest.fixture
def make_orchestrator(settings, health, http_client, sleeper, clock) -> Callable[..., Orchestrator]:
    def _make(registry: ModelRegistry, **kwargs) -> Orchestrator:
        transport = OpenRouterTransport(settings, health, client=http_client)
        return Orchestrator(
            registry=registry,
            health=health,
            transport=transport,
            sleep=sleeper,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture
def payload(settings):
    return build_payload(
        [{"role": "user", "content": "Write a haiku about lighthouses"}],
        max_tokens=500,
        default_max_tokens=settings.max_tokens_default,
        hard_cap=settings.max_tokens_hard_cap,
    )
