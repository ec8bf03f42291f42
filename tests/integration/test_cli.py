"""Integration tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from reportflow.cli import cli
from reportflow.core.config import get_settings


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("REPORTFLOW_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("REPORTFLOW_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("REPORTFLOW_ENVIRONMENT", "testing")
    monkeypatch.setenv("REPORTFLOW_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("REPORTFLOW_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield CliRunner()
    get_settings.cache_clear()


@pytest.fixture
def fields_file(tmp_path):
    path = tmp_path / "fields.json"
    path.write_text(
        json.dumps(
            [
                {"FieldName": "Title", "FieldType": "Text", "FieldRequired": "true", "FieldUnique": "false"},
                {"FieldName": "Year", "FieldType": "Number", "FieldRequired": "true", "FieldUnique": "false"},
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_schema_lifecycle(runner, fields_file):
    result = runner.invoke(cli, ["init-db", "--force"])
    assert result.exit_code == 0, result.output
    assert "Database initialized successfully" in result.output

    result = runner.invoke(cli, ["create-schema", "Research Papers", "--fields", str(fields_file)])
    assert result.exit_code == 0, result.output
    assert "Table 'research_papers' created." in result.output

    result = runner.invoke(cli, ["create-schema", "research papers", "--fields", str(fields_file)])
    assert result.exit_code == 1
    assert "already exists" in result.output

    result = runner.invoke(cli, ["list-schemas"])
    assert result.exit_code == 0, result.output
    assert "research_papers  [Title, Year]" in result.output
    schema_id = result.output.split()[0]

    result = runner.invoke(cli, ["show-schema", "Research Papers"])
    assert result.exit_code == 0, result.output
    assert f"Table:  research_papers ({schema_id})" in result.output
    assert "  Title: Text [required]" in result.output
    assert "System: status, submitted" in result.output

    result = runner.invoke(cli, ["delete-schema", schema_id, "--force"])
    assert result.exit_code == 0, result.output
    assert "Table 'research_papers' deleted (0 records)." in result.output

    result = runner.invoke(cli, ["list-schemas"])
    assert "No tables registered." in result.output


def test_timeline_commands(runner):
    result = runner.invoke(cli, ["show-timeline"])
    assert result.exit_code == 1
    assert "has not been set" in result.output

    result = runner.invoke(cli, ["set-timeline", "2024-01-01", "2023-12-01"])
    assert result.exit_code == 1

    result = runner.invoke(cli, ["set-timeline", "2024-01-01", "2024-12-31"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["show-timeline"])
    assert "Start: 2024-01-01" in result.output
    assert "End:   2024-12-31" in result.output


def test_import_file_keeps_source(runner, fields_file, tmp_path, monkeypatch):
    monkeypatch.setenv("REPORTFLOW_ENFORCE_SUBMISSION_WINDOW", "false")
    get_settings.cache_clear()

    runner.invoke(cli, ["create-schema", "papers", "--fields", str(fields_file)])
    source = tmp_path / "papers.csv"
    source.write_text("Title,Year\nOptics,2023\nLasers,2024\n", encoding="utf-8")

    result = runner.invoke(
        cli,
        ["import-file", "Papers", str(source), "--user", "user-1", "--college", "College A", "--department", "Physics"],
    )

    assert result.exit_code == 0, result.output
    assert "Imported 2 records into 'Papers'." in result.output
    assert source.exists()
    assert list((tmp_path / "uploads").iterdir()) == []


def test_info(runner):
    result = runner.invoke(cli, ["info"])
    assert result.exit_code == 0
    assert "ReportFlow v0.1.0" in result.output
