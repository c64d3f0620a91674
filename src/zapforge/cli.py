# src/zapforge/cli.py
"""zapforge Command Line Interface.

Entry point for the zapforge CLI tool.

Usage:
    # Start the server and open the UI
    zapforge

    # Headless server on an ephemeral port, announcing its url on stdout
    zapforge --no-ui --show-url --http-port 0

    # One-shot workflows
    zapforge selfCheck
    zapforge generate --output ./gen --template ./my-templates
    zapforge sdkGen --output ./sdk
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from zapforge import __version__
from zapforge.app.application import Application
from zapforge.app.modes import KNOWN_TOKENS, unknown_tokens
from zapforge.contracts.errors import ZapForgeError
from zapforge.core.config import Arguments, ForgeSettings, load_settings
from zapforge.core.logging import configure_logging

__all__ = [
    "app",
]

app = typer.Typer(
    name="zapforge",
    help="zapforge: metadata store, code generation and UI server for cluster libraries.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"zapforge version {__version__}")
        raise typer.Exit()


def _fail(message: str) -> typer.Exit:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    return typer.Exit(1)


def _load_settings(settings_file: Path | None) -> ForgeSettings:
    try:
        return load_settings(settings_file.expanduser() if settings_file is not None else None)
    except FileNotFoundError as e:
        raise _fail(str(e)) from e
    except ValidationError as e:
        raise _fail(f"Configuration error:\n{e}") from e


def _run(application: Application) -> None:
    """Run the application on a fresh event loop; exit 1 on any reported failure."""
    try:
        asyncio.run(application.run())
    except ZapForgeError as e:
        raise _fail(str(e)) from e
    except OSError as e:
        raise _fail(f"Filesystem error: {e}") from e


@app.command()
def main(
    commands: Annotated[
        list[str] | None,
        typer.Argument(
            help=f"Command: {', '.join(sorted(KNOWN_TOKENS))}. Several may be given; the first by priority "
            "selfCheck > generate > sdkGen > normal wins. None starts the server.",
            show_default=False,
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Generation output directory."),
    ] = None,
    template: Annotated[
        Path | None,
        typer.Option("--template", "-t", help="Template directory holding gen-templates.json."),
    ] = None,
    zcl_properties: Annotated[
        Path | None,
        typer.Option("--zcl-properties", "-z", help="Metadata properties file (overrides the configured default)."),
    ] = None,
    http_port: Annotated[
        int | None,
        typer.Option("--http-port", help="Server port, 0 for an ephemeral port.", min=0, max=65535),
    ] = None,
    no_ui: Annotated[
        bool,
        typer.Option("--no-ui", help="Run the server without opening a window."),
    ] = False,
    show_url: Annotated[
        bool,
        typer.Option("--show-url", help="With --no-ui, print the server url on stdout."),
    ] = False,
    ui_mode: Annotated[
        str | None,
        typer.Option("--ui-mode", help="UI mode passed to the window."),
    ] = None,
    clear_db: Annotated[
        bool,
        typer.Option("--clear-db", help="Move the existing store aside (keeping one backup) before starting."),
    ] = False,
    settings_file: Annotated[
        Path | None,
        typer.Option("--settings", "-s", help="Path to settings YAML file."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose/debug logging."),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Output structured JSON logs (for machine processing)."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Start zapforge: load the store, metadata and templates, then run one workflow."""
    tokens = tuple(commands or ())
    unknown = unknown_tokens(tokens)
    if unknown:
        raise typer.BadParameter(f"Unknown command(s): {', '.join(unknown)}", param_hint="COMMANDS")

    settings = _load_settings(settings_file)

    # Configure logging before anything else runs so startup failures are recorded
    level = "DEBUG" if verbose or settings.is_development else "INFO"
    configure_logging(
        json_output=json_logs or settings.logging.json_output,
        level=level,
        log_file=settings.logging.file,
    )

    arguments = Arguments(
        commands=tokens,
        output=output,
        template=template,
        zcl_properties=zcl_properties,
        http_port=http_port,
        no_ui=no_ui,
        show_url=show_url,
        ui_mode=ui_mode,
        clear_db=clear_db,
    )
    _run(Application(settings, arguments, handle_signals=True))


if __name__ == "__main__":
    app()
