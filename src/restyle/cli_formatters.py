# src/restyle/cli_formatters.py
"""CLI event formatter factories for replacement runs.

Each factory returns a dict mapping event types to handler callables,
suitable for EventBus.subscribe_all().
"""

from __future__ import annotations

import json
from collections.abc import Callable

import typer

from restyle.contracts import BatchCompleted, PhaseChanged, ProgressUpdated, RunSummary


def create_console_formatters(prefix: str = "Run") -> dict[type, Callable[..., None]]:
    """Create console formatters for human-readable CLI output.

    Args:
        prefix: Label for the summary line (e.g. "Style Replacement").
    """

    def _format_phase_changed(event: PhaseChanged) -> None:
        typer.echo(f"[{event.new.value.upper()}]")

    def _format_progress(event: ProgressUpdated) -> None:
        checkpoint = f" | checkpoint: {event.checkpoint_title}" if event.checkpoint_title and event.batch_number == 0 else ""
        typer.echo(
            f"  {event.percentage:3d}% | batch {event.batch_number}/{event.total_batches} | "
            f"{event.items_processed:,} processed | ✗{event.items_failed:,}{checkpoint}"
        )

    def _format_batch_completed(event: BatchCompleted) -> None:
        if event.failed and event.next_batch_size < event.batch_size:
            typer.echo(f"  Batch {event.batch_number}: {event.failed} failed, next batch size {event.next_batch_size}", err=True)

    def _format_run_summary(event: RunSummary) -> None:
        status_symbols = {
            "completed": "✓",
            "partial": "⚠",
            "cancelled": "⊘",
            "failed": "✗",
        }
        symbol = status_symbols[event.status.value]
        checkpoint = f" | checkpoint: {event.checkpoint_title}" if event.checkpoint_title else ""
        typer.echo(
            f"\n{symbol} {prefix} {event.status.value.upper()}: "
            f"✓{event.items_updated:,} updated | "
            f"✗{event.items_failed:,} failed | "
            f"{event.resources_cloned:,} styles cloned | "
            f"{event.duration_ms / 1000:.2f}s total"
            f"{checkpoint}"
        )

    return {
        PhaseChanged: _format_phase_changed,
        ProgressUpdated: _format_progress,
        BatchCompleted: _format_batch_completed,
        RunSummary: _format_run_summary,
    }


def create_json_formatters() -> dict[type, Callable[..., None]]:
    """Create JSON formatters for structured CLI output (one object per line)."""

    def _format_phase_changed_json(event: PhaseChanged) -> None:
        typer.echo(json.dumps({"event": "phase_changed", "old": event.old.value, "new": event.new.value}))

    def _format_progress_json(event: ProgressUpdated) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "progress",
                    "phase": event.phase.value,
                    "percentage": event.percentage,
                    "batch_number": event.batch_number,
                    "total_batches": event.total_batches,
                    "batch_size": event.batch_size,
                    "items_processed": event.items_processed,
                    "items_failed": event.items_failed,
                    "checkpoint_title": event.checkpoint_title,
                }
            )
        )

    def _format_batch_completed_json(event: BatchCompleted) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "batch_completed",
                    "batch_number": event.batch_number,
                    "batch_size": event.batch_size,
                    "succeeded": event.succeeded,
                    "failed": event.failed,
                    "next_batch_size": event.next_batch_size,
                }
            )
        )

    def _format_run_summary_json(event: RunSummary) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "run_finished",
                    "status": event.status.value,
                    "items_updated": event.items_updated,
                    "items_failed": event.items_failed,
                    "resources_cloned": event.resources_cloned,
                    "duration_ms": event.duration_ms,
                    "checkpoint_title": event.checkpoint_title,
                }
            )
        )

    return {
        PhaseChanged: _format_phase_changed_json,
        ProgressUpdated: _format_progress_json,
        BatchCompleted: _format_batch_completed_json,
        RunSummary: _format_run_summary_json,
    }
