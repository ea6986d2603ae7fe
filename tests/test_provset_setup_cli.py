from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest
import typer.testing

from provset.cli.provset_setup import app


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("PROVSET_LOG_LEVEL", "WARNING")
    yield
    logger = logging.getLogger("provset")
    for handler in list(logger.handlers):
        if getattr(handler, "_provset_console", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def _wizard(tmp_path: Path) -> Path:
    path = tmp_path / "wizard.json"
    path.write_text(
        json.dumps(
            {
                "connection": {
                    "name": "wedding-db",
                    "host": "db.internal",
                    "port": 5432,
                    "database": "rsvp",
                    "username": "app",
                }
            }
        ),
        encoding="utf-8",
    )
    return path


def test_setup_command_writes_workflow_result(tmp_path: Path) -> None:
    runner = typer.testing.CliRunner()
    out_path = tmp_path / "setup.json"

    result = runner.invoke(
        app,
        [
            "setup",
            "--type",
            "postgresql",
            "--wizard",
            str(_wizard(tmp_path)),
            "--output",
            str(out_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "status=completed" in result.output
    assert "steps=7/7" in result.output
    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["setup"]["provider_name"] == "wedding-db"
    assert payload["validation"]["valid"] is True
    assert payload["final_validation"]["overall_result"] == "warning"


def test_setup_command_exits_nonzero_on_failure(tmp_path: Path) -> None:
    runner = typer.testing.CliRunner()
    out_path = tmp_path / "failed.json"

    result = runner.invoke(
        app,
        ["setup", "--type", "oracle", "--no-validate", "--output", str(out_path)],
    )

    assert result.exit_code == 1
    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["status"] == "failed"
    assert payload["errors"][0]["message"] == "No factory found for provider type: oracle"


def test_validate_setup_command_reports_missing_fields(tmp_path: Path) -> None:
    runner = typer.testing.CliRunner()
    wizard = tmp_path / "partial.json"
    wizard.write_text(json.dumps({"connection": {"host": "db.internal"}}), encoding="utf-8")
    out_path = tmp_path / "validation.json"

    result = runner.invoke(
        app,
        [
            "validate-setup",
            "--type",
            "postgresql",
            "--wizard",
            str(wizard),
            "--output",
            str(out_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "valid=False errors=2" in result.output
    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["errors"] == [
        "Connection: Database is required",
        "Connection: Username is required",
    ]


def test_estimate_and_rules_commands(tmp_path: Path) -> None:
    runner = typer.testing.CliRunner()

    estimate = runner.invoke(app, ["estimate", "--type", "postgresql"])
    assert estimate.exit_code == 0, estimate.output
    assert "type=postgresql estimated_seconds=180" in estimate.output

    rules_path = tmp_path / "rules.json"
    rules = runner.invoke(app, ["rules", "--output", str(rules_path)])
    assert rules.exit_code == 0, rules.output
    assert "rules=8" in rules.output
    payload = json.loads(rules_path.read_text(encoding="utf-8"))
    assert payload[0]["id"] == "security-config-validation"
    assert {rule["category"] for rule in payload} == {
        "security",
        "configuration",
        "performance",
        "integration",
        "compliance",
    }


def test_migrate_command_moves_seeded_records(tmp_path: Path) -> None:
    runner = typer.testing.CliRunner()
    out_path = tmp_path / "migration.json"

    result = runner.invoke(
        app,
        [
            "migrate",
            "--source-type",
            "postgresql",
            "--target-type",
            "supabase-db",
            "--records",
            "3",
            "--output",
            str(out_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "status=completed" in result.output
    assert "risk=low" in result.output
    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["plan"]["source_provider"] == {"name": "source", "type": "postgresql"}
    assert payload["migration"]["data_transferred"] > 0
    assert payload["migration"]["completed_steps"] == 8
