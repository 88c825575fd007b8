"""LLM orchestration and diagnostics endpoints."""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Dict, TypeVar

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from prompt_studio.config import Settings
from prompt_studio.orchestrator import Orchestrator, build_payload
from prompt_studio.schemas import LLMDiagnostics, LLMRequest

logger = structlog.get_logger(__name__)
router = APIRouter()

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.5
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    """The caller went away before the orchestration finished."""


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def run_until_disconnect(request: Request, work: Awaitable[T]) -> T:
    """Await ``work``, cancelling it if the client disconnects first."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling orchestration")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


@router.post("", status_code=status.HTTP_200_OK)
async def complete(
    body: LLMRequest,
    request: Request,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_app_settings),
):
    """Run one orchestration call and return the upstream completion."""
    payload = build_payload(
        body.messages,
        body.max_tokens,
        body.temperature,
        body.top_p,
        default_max_tokens=settings.max_tokens_default,
        hard_cap=settings.max_tokens_hard_cap,
    )

    try:
        result = await run_until_disconnect(
            request,
            orchestrator.complete(payload, provider_hint=body.provider, timeout_ms=body.timeout),
        )
    except ClientDisconnected:
        return JSONResponse(
            status_code=CLIENT_CLOSED_REQUEST,
            content={"error": True, "message": "Client closed request"},
        )

    content: Dict[str, Any] = {
        "model_used": result.model_used,
        "response_time": round(result.elapsed_ms, 2),
        "attempt": result.attempt_number,
        "health_status": "healthy",
    }
    if isinstance(result.body, dict):
        content.update(result.body)
    else:
        content["body"] = result.body
    return content


@router.get("", response_model=LLMDiagnostics)
async def diagnostics(orchestrator: Orchestrator = Depends(get_orchestrator)) -> LLMDiagnostics:
    """Current health snapshot plus the configured model identifiers."""
    return LLMDiagnostics(
        healthy=True,
        models=orchestrator.health.snapshot_dict(),
        configs=orchestrator.registry.identifiers(),
        timestamp=datetime.utcnow(),
    )
