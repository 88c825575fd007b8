"""API route definitions."""

from .health import router as health_router
from .llm import router as llm_router

__all__ = ["health_router", "llm_router"]
