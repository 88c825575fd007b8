import json

import click

from . import __version__
from .config import get_settings
from .orchestrator import ModelRegistry


@click.group()
def cli():
    """Prompt Studio command line."""


@cli.command()
@click.option("--format", default="text", type=click.Choice(["text", "json"]))
def version(format):
    if format == "json":
        click.echo(json.dumps({"version": __version__}))
    else:
        click.echo(f"v{__version__}")


@cli.command()
@click.option("--host", default=None)
@click.option("--port", default=None, type=int)
@click.option("--reload", is_flag=True)
def serve(host, port, reload):
    from .server.main import start_server

    start_server(host, port, reload)


@cli.command()
@click.option("--format", default="text", type=click.Choice(["text", "json"]))
def models(format):
    """List configured models in priority order."""
    registry = ModelRegistry.from_settings(get_settings())
    if format == "json":
        click.echo(
            json.dumps(
                [
                    {"model": m.identifier, "priority": m.priority, "max_attempts": m.max_attempts}
                    for m in registry.list_models()
                ]
            )
        )
        return
    for m in registry.list_models():
        click.echo(f"{m.priority}. {m.identifier} (max attempts: {m.max_attempts})")


if __name__ == "__main__":
    cli()
