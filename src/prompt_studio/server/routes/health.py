"""Health check endpoints."""

import time
from datetime import datetime
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)
router = APIRouter()

START_TIME = time.time()


@router.get("")
async def health(request: Request) -> JSONResponse:
    """Upstream connectivity and configuration check."""
    settings = request.app.state.settings
    transport = request.app.state.transport

    upstream_status = await transport.probe(settings.health_probe_timeout_ms)

    env_check = {
        "OPENROUTER_API_KEY": settings.has_openrouter_key,
        "OPENROUTER_SITE_URL": bool(settings.openrouter_site_url),
        "LLM_PRIMARY_MODEL": bool(settings.llm_primary_model),
        "LLM_SECONDARY_MODEL": bool(settings.llm_secondary_model),
    }

    overall = "healthy" if upstream_status == "healthy" else "degraded"
    if overall != "healthy":
        logger.warning("Health check degraded", upstream=upstream_status)

    body: Dict[str, Any] = {
        "status": overall,
        "timestamp": datetime.utcnow().isoformat(),
        "services": {
            "openrouter": upstream_status,
            "environment": env_check,
        },
        "uptime": time.time() - START_TIME,
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if overall == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "alive", "timestamp": datetime.utcnow().isoformat()}
