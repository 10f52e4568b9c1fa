"""Smoke tests for the Typer application."""
from __future__ import annotations

from typer.testing import CliRunner

from callsift.cli import app
from callsift.cli.pipeline import render_run_stats
from callsift.core.errors import PipelineErrorCode, RecordError
from callsift.pipelines.call_processing import RunStats

runner = CliRunner()


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in (
        "init-db",
        "seed",
        "ingest",
        "process",
        "repair-team-members",
        "verify",
        "show-meeting",
        "health",
    ):
        assert command in result.output


def test_health_shows_configuration():
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 0
    assert "internal domain" in result.output


def test_ingest_requires_existing_file(tmp_path):
    result = runner.invoke(app, ["ingest", str(tmp_path / "missing.json")])
    assert result.exit_code != 0


def test_render_run_stats(capsys):
    stats = RunStats(total=2, extracted=1, extraction_errors=1)
    stats.categories["sales_call"] = 2
    stats.errors.append(RecordError(PipelineErrorCode.EXTRACTION_PARSE_ERROR, "m-1", "bad json"))
    render_run_stats(stats)
    out = capsys.readouterr().out
    assert "Processing Complete" in out
    assert "sales_call" in out
    assert "EXTRACTION_PARSE_ERROR" in out
