"""Request and response schemas for Prompt Studio."""

from prompt_studio.schemas.llm import LLMDiagnostics, LLMRequest

__all__ = ["LLMDiagnostics", "LLMRequest"]
