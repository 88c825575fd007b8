"""Tests for the command line interface."""

import json

from click.testing import CliRunner

from prompt_studio import __version__
from prompt_studio.cli import cli


def test_version_text():
    result = CliRunner().invoke(cli, ["version"])

    assert result.exit_code == 0
    assert result.output.strip() == f"v{__version__}"


def test_version_json():
    result = CliRunner().invoke(cli, ["version", "--format", "json"])

    assert json.loads(result.output) == {"version": __version__}


def test_models_lists_priority_order(monkeypatch):
    monkeypatch.setenv("LLM_PRIMARY_MODEL", "x-ai/grok-cli")
    from prompt_studio.config import get_settings

    get_settings.cache_clear()
    try:
        result = CliRunner().invoke(cli, ["models", "--format", "json"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0
    models = json.loads(result.output)
    assert [m["priority"] for m in models] == [1, 2, 3]
    assert models[0] == {"model": "x-ai/grok-cli", "priority": 1, "max_attempts": 2}


def test_serve_takes_reload_from_environment(monkeypatch):
    monkeypatch.setenv("RELOAD", "true")
    monkeypatch.setenv("WORKERS", "4")
    from prompt_studio.config import get_settings
    from prompt_studio.server import main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))

    get_settings.cache_clear()
    try:
        result = CliRunner().invoke(cli, ["serve", "--port", "9001"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0
    assert calls[0]["reload"] is True
    assert calls[0]["workers"] == 1
    assert calls[0]["port"] == 9001
    assert calls[0]["factory"] is True
