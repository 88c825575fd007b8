"""Prompt Studio: multi-provider LLM request orchestration."""

__version__ = "1.0.0"

__all__ = ["__version__"]
