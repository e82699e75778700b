# src/restyle/cli.py
"""restyle Command Line Interface.

Runs a replacement against a document description file loaded into the
in-memory host, prints progress and a summary, and optionally writes the
mutated document back out:

    restyle replace-style doc.yaml --source S:old --target S:new -n 1:1 -n 1:2
    restyle replace-binding doc.yaml --source V:red --target V:blue -n 1:1 -o out.yaml
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from restyle import __version__
from restyle.cli_formatters import create_console_formatters, create_json_formatters
from restyle.contracts import (
    BindingReplacementRequest,
    CheckpointCreationError,
    MutationAbortedError,
    MutationRequest,
    ReplacementResult,
    RequestValidationError,
    RunCompletionStatus,
    StyleReplacementRequest,
)
from restyle.core.config import RestyleSettings, load_settings
from restyle.core.events import EventBus
from restyle.engine.controller import MutationStateController
from restyle.testing.memory_host import InMemoryDocument, load_document

__all__ = ["app"]

app = typer.Typer(
    name="restyle",
    help="restyle: Safe bulk replacement of shared styles and variable bindings.",
    no_args_is_help=True,
)

# Exit code for a run that finished with per-node failures
EXIT_PARTIAL = 2


class OutputFormat(StrEnum):
    CONSOLE = "console"
    JSON = "json"


@dataclass
class _CliState:
    settings: RestyleSettings


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"restyle version {__version__}")
        raise typer.Exit()


def _load_settings_or_exit(settings_path: Path | None) -> RestyleSettings:
    if settings_path is None:
        return RestyleSettings()
    try:
        return load_settings(settings_path)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings_path}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to a settings YAML file (RESTYLE_* environment variables override it).",
    ),
) -> None:
    """restyle: Safe bulk replacement of shared styles and variable bindings."""
    from restyle.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "WARNING"
    configure_logging(json_output=json_logs, level=log_level)

    ctx.obj = _CliState(settings=_load_settings_or_exit(settings))


def _load_document_or_exit(path: Path) -> InMemoryDocument:
    try:
        return load_document(path)
    except FileNotFoundError:
        typer.echo(f"Error: Document file not found: {path}", err=True)
        raise typer.Exit(1) from None
    except (yaml.YAMLError, ValueError) as e:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        typer.echo(f"Error: Invalid document file {path}: {e}", err=True)
        raise typer.Exit(1) from None


def _execute(
    ctx: typer.Context,
    document_path: Path,
    make_request: Callable[[], MutationRequest],
    output: Path | None,
    output_format: OutputFormat,
) -> None:
    state: _CliState = ctx.obj
    document = _load_document_or_exit(document_path)
    request = make_request()

    bus = EventBus()
    if output_format is OutputFormat.JSON:
        bus.subscribe_all(create_json_formatters())
    else:
        bus.subscribe_all(create_console_formatters(prefix=request.operation_name))

    controller = MutationStateController(document, state.settings, event_bus=bus)
    try:
        result = asyncio.run(controller.run(request))
    except RequestValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except CheckpointCreationError as e:
        typer.echo(f"Error: {e}. Nothing was changed.", err=True)
        raise typer.Exit(1) from None
    except MutationAbortedError as e:
        typer.echo(f"Error: {e}", err=True)
        _report_failures(e.result)
        if e.result.checkpoint_title:
            typer.echo(f"Restore from version history: '{e.result.checkpoint_title}'", err=True)
        raise typer.Exit(1) from None

    _report_failures(result)
    if output is not None:
        document.dump(output)
        if output_format is OutputFormat.CONSOLE:
            typer.echo(f"Wrote {output}")

    if result.status is RunCompletionStatus.PARTIAL:
        raise typer.Exit(EXIT_PARTIAL)


def _report_failures(result: ReplacementResult) -> None:
    for failure in result.failures:
        retries = f" after {failure.retry_count} retries" if failure.retry_count else ""
        typer.echo(f"  ✗ {failure.node_label} ({failure.node_id}) [{failure.error_kind.value}]{retries}: {failure.message}", err=True)


@app.command("replace-style")
def replace_style(
    ctx: typer.Context,
    document: Path = typer.Argument(..., help="Document description (JSON or YAML)."),
    source: str = typer.Option(..., "--source", help="Id of the style being replaced."),
    target: str = typer.Option(..., "--target", help="Id of the replacement style."),
    nodes: list[str] = typer.Option(..., "--node", "-n", help="Affected node id (repeatable)."),
    preserve_overrides: bool = typer.Option(
        True,
        "--preserve-overrides/--no-preserve-overrides",
        help="Keep variable bindings set directly on each node.",
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the mutated document here."),
    output_format: OutputFormat = typer.Option(OutputFormat.CONSOLE, "--format", "-f", help="Output format."),
) -> None:
    """Replace one shared style with another on the given nodes."""
    _execute(
        ctx,
        document,
        lambda: StyleReplacementRequest.create(source, target, nodes, preserve_overrides=preserve_overrides),
        output,
        output_format,
    )


@app.command("replace-binding")
def replace_binding(
    ctx: typer.Context,
    document: Path = typer.Argument(..., help="Document description (JSON or YAML)."),
    source: str = typer.Option(..., "--source", help="Id of the variable being replaced."),
    target: str = typer.Option(..., "--target", help="Id of the replacement variable."),
    nodes: list[str] = typer.Option(..., "--node", "-n", help="Affected node id (repeatable)."),
    properties: list[str] | None = typer.Option(
        None,
        "--property",
        "-p",
        help="Only migrate these properties (repeatable, default: all).",
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the mutated document here."),
    output_format: OutputFormat = typer.Option(OutputFormat.CONSOLE, "--format", "-f", help="Output format."),
) -> None:
    """Replace one variable binding with another, cloning shared styles once as needed."""
    _execute(
        ctx,
        document,
        lambda: BindingReplacementRequest.create(source, target, nodes, property_types=properties or None),
        output,
        output_format,
    )


if __name__ == "__main__":
    app()
