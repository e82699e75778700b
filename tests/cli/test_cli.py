# tests/cli/test_cli.py
"""Tests for the restyle CLI."""

import json
import logging
from pathlib import Path

import pytest
import structlog
import yaml
from typer.testing import CliRunner

from restyle import __version__
from restyle.cli import EXIT_PARTIAL, app

runner = CliRunner()

DOCUMENT = {
    "styles": [
        {"id": "S:old", "name": "Body/Old", "type": "TEXT"},
        {"id": "S:new", "name": "Body/New", "type": "TEXT"},
        {"id": "S:h1", "name": "Heading/H1", "type": "TEXT", "bound_variables": {"fills": "V:red"}},
    ],
    "variables": [
        {"id": "V:red", "name": "color/red"},
        {"id": "V:blue", "name": "color/blue"},
    ],
    "nodes": [
        {"id": "1:1", "name": "Title", "style_id": "S:old"},
        {"id": "1:2", "name": "Subtitle", "style_id": "S:old"},
        {"id": "2:1", "name": "Heading A", "style_id": "S:h1"},
        {"id": "2:2", "name": "Heading B", "style_id": "S:h1"},
    ],
}


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def _write_document(tmp_path: Path, **overrides) -> Path:
    path = tmp_path / "doc.yaml"
    path.write_text(yaml.safe_dump({**DOCUMENT, **overrides}))
    return path


class TestReplaceStyle:
    def test_replaces_and_writes_output(self, tmp_path: Path) -> None:
        document = _write_document(tmp_path)
        output = tmp_path / "out.yaml"

        result = runner.invoke(
            app,
            ["replace-style", str(document), "--source", "S:old", "--target", "S:new", "-n", "1:1", "-n", "1:2", "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        assert "Style Replacement COMPLETED" in result.output
        assert "✓2 updated" in result.output
        written = yaml.safe_load(output.read_text())
        assert {n["id"]: n.get("style_id") for n in written["nodes"]}["1:1"] == "S:new"

    def test_same_source_and_target_fails(self, tmp_path: Path) -> None:
        document = _write_document(tmp_path)

        result = runner.invoke(app, ["replace-style", str(document), "--source", "S:old", "--target", "S:old", "-n", "1:1"])

        assert result.exit_code == 1
        assert "cannot be the same" in result.output

    def test_partial_failure_exit_code(self, tmp_path: Path) -> None:
        document = _write_document(tmp_path, faults={"nodes": {"1:2": {"message": "Node is locked", "times": -1}}})

        result = runner.invoke(app, ["replace-style", str(document), "--source", "S:old", "--target", "S:new", "-n", "1:1", "-n", "1:2"])

        assert result.exit_code == EXIT_PARTIAL
        assert "PARTIAL" in result.output
        assert "Subtitle (1:2) [partial]: Node is locked" in result.output

    def test_checkpoint_failure_reports_nothing_changed(self, tmp_path: Path) -> None:
        document = _write_document(tmp_path, faults={"snapshot_error": "history disabled"})

        result = runner.invoke(app, ["replace-style", str(document), "--source", "S:old", "--target", "S:new", "-n", "1:1"])

        assert result.exit_code == 1
        assert "Nothing was changed" in result.output

    def test_missing_document(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["replace-style", str(tmp_path / "nope.yaml"), "--source", "S:old", "--target", "S:new", "-n", "1:1"])

        assert result.exit_code == 1
        assert "Document file not found" in result.output


class TestReplaceBinding:
    def test_json_output(self, tmp_path: Path) -> None:
        document = _write_document(tmp_path)

        result = runner.invoke(
            app,
            ["replace-binding", str(document), "--source", "V:red", "--target", "V:blue", "-n", "2:1", "-n", "2:2", "--format", "json"],
        )

        assert result.exit_code == 0, result.output
        events = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
        summary = [e for e in events if e["event"] == "run_finished"]
        assert len(summary) == 1
        assert summary[0]["status"] == "completed"
        assert summary[0]["items_updated"] == 2
        assert summary[0]["resources_cloned"] == 1
        assert summary[0]["checkpoint_title"].startswith("Binding Replacement - ")
        assert any(e["event"] == "phase_changed" and e["new"] == "processing" for e in events)


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_settings_file(self, tmp_path: Path) -> None:
        settings = tmp_path / "restyle.yaml"
        settings.write_text("batch:\n  min_size: 500\n")
        document = _write_document(tmp_path)

        result = runner.invoke(app, ["--settings", str(settings), "replace-style", str(document), "--source", "S:old", "--target", "S:new", "-n", "1:1"])

        assert result.exit_code == 1
        assert "Configuration errors" in result.output

    def test_settings_file_applies(self, tmp_path: Path) -> None:
        settings = tmp_path / "restyle.yaml"
        settings.write_text("batch:\n  initial_size: 1\n  min_size: 1\n  max_size: 1\n  inter_batch_delay_ms: 0\n")
        document = _write_document(tmp_path)

        result = runner.invoke(
            app,
            ["--settings", str(settings), "replace-style", str(document), "--source", "S:old", "--target", "S:new", "-n", "1:1", "-n", "1:2", "-f", "json"],
        )

        assert result.exit_code == 0, result.output
        events = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
        assert [e["batch_size"] for e in events if e["event"] == "batch_completed"] == [1, 1]
