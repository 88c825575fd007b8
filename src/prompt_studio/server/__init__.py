"""HTTP server for Prompt Studio."""

from prompt_studio.server.main import create_app

__all__ = ["create_app"]
