"""resthat CLI.

Commands:
    routes - List the routes a HatApp registers
    serve  - Run a HatApp under uvicorn

TARGET is ``module:attribute`` naming a ``HatApp`` instance, e.g.
``blog.app:app``.
"""

import importlib
import sys
from typing import Optional

import click

from . import __version__
from .app import HatApp, serve as _serve


def load_app(target: str) -> HatApp:
    """Import ``module:attribute`` and check it is a HatApp."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected 'module:attribute', got '{target}'", param_hint="TARGET")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import '{module_name}': {e}", param_hint="TARGET")
    app = getattr(module, attr, None)
    if not isinstance(app, HatApp):
        raise click.BadParameter(f"'{target}' is not a HatApp", param_hint="TARGET")
    return app


@click.group()
@click.version_option(version=__version__, prog_name="resthat")
def cli():
    """Declarative REST resources."""


@cli.command("routes")
@click.argument("target")
def routes(target: str):
    """
    List every route TARGET registers, in match order.

    Examples:
      resthat routes blog.app:app
    """
    app = load_app(target)
    bindings = app.generate()
    if not bindings:
        click.echo(click.style("No routes registered", dim=True))
        return

    width = max(len(b.verb) for b in bindings)
    path_width = max(len(b.path) for b in bindings)
    for binding in bindings:
        click.echo(
            f"{click.style(binding.verb.ljust(width), fg='green')}  "
            f"{binding.path.ljust(path_width)}  "
            f"{binding.maker.model.name}#{binding.action}"
        )


@cli.command("serve")
@click.argument("target")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind host")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error"]),
              help="Log level (default: from settings)")
def serve(target: str, host: str, port: int, log_level: Optional[str]):
    """
    Serve TARGET with uvicorn.

    Examples:
      resthat serve blog.app:app --port 9000
    """
    app = load_app(target)
    try:
        _serve(app, host=host, port=port, log_level=log_level)
    except KeyboardInterrupt:
        click.echo("\nServer stopped")
        sys.exit(0)


def main():
    """Main CLI entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
