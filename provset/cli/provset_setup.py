from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from dotenv import load_dotenv

from provset.config import PipelineSettings
from provset.errors import WorkflowError
from provset.logging_config import setup_logging
from provset.migration.models import MigrationOptions
from provset.registry.probe import StaticConnectivityProbe
from provset.registry.sim import SimProviderRegistry, SimWorld
from provset.setup.manager import AutomatedSetupManager
from provset.setup.models import SetupOptions
from provset.system.api import ProviderSetupSystem
from provset.validation.rules import default_rules

app = typer.Typer(
    add_completion=False,
    help="Provider setup, validation and migration pipeline against a simulated registry.",
)


def _settings() -> PipelineSettings:
    load_dotenv()
    settings = PipelineSettings.from_env()
    setup_logging(settings.log_level)
    return settings


def _load_wizard(path: Optional[Path]) -> Dict[str, Dict[str, Any]]:
    if path is None:
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise typer.BadParameter("wizard data must be a JSON object keyed by step id")
    return data


def _write(payload: Any, output: Path) -> None:
    text = json.dumps(payload, indent=2, default=str)
    if output == Path("-"):
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")


@app.command("setup")
def setup_cmd(
    provider_type: str = typer.Option(..., "--type", help="Provider type, e.g. postgresql"),
    wizard: Optional[Path] = typer.Option(
        None, exists=True, readable=True, help="Wizard data JSON keyed by step id"
    ),
    backup: bool = typer.Option(False, help="Back up an existing provider of the same name"),
    skip_optional: bool = typer.Option(False, help="Drop optional setup steps"),
    continue_on_warnings: bool = typer.Option(
        False, help="Keep going when an optional step fails"
    ),
    rollback: bool = typer.Option(
        True, "--rollback/--no-rollback", help="Roll back a failed setup"
    ),
    validate_only: bool = typer.Option(False, help="Plan the setup without executing it"),
    validate: bool = typer.Option(
        True, "--validate/--no-validate", help="Run pre- and post-setup validation"
    ),
    output: Path = typer.Option(Path("-"), help="Destination path, or '-' for stdout"),
) -> None:
    settings = _settings()
    system = ProviderSetupSystem(
        SimProviderRegistry(), settings=settings, probe=StaticConnectivityProbe()
    )
    options = SetupOptions(
        backup=backup,
        skip_optional_steps=skip_optional,
        continue_on_warnings=continue_on_warnings,
        rollback_on_failure=rollback,
        validate_only=validate_only,
    )
    try:
        result = asyncio.run(
            system.setup_provider_complete(
                provider_type, _load_wizard(wizard), options, validate=validate
            )
        )
    except WorkflowError as exc:
        history = system.setup_manager.get_setup_history()
        if history:
            _write(history[0].model_dump(mode="json"), output)
        typer.echo(f"setup failed: {exc.message}", err=True)
        raise typer.Exit(code=1)

    _write(result.model_dump(mode="json"), output)
    setup = result.setup
    report = result.final_validation
    typer.echo(
        f"setup={setup.setup_id if setup else '-'} "
        f"status={setup.status if setup else '-'} "
        f"steps={setup.completed_steps if setup else 0}/{setup.total_steps if setup else 0} "
        f"validation={report.overall_result if report else 'skipped'}"
    )


@app.command("validate-setup")
def validate_setup_cmd(
    provider_type: str = typer.Option(..., "--type", help="Provider type, e.g. postgresql"),
    wizard: Optional[Path] = typer.Option(
        None, exists=True, readable=True, help="Wizard data JSON keyed by step id"
    ),
    output: Path = typer.Option(Path("-"), help="Destination path, or '-' for stdout"),
) -> None:
    settings = _settings()
    manager = AutomatedSetupManager(SimProviderRegistry(), settings=settings)
    result = asyncio.run(manager.validate_setup(provider_type, _load_wizard(wizard)))
    _write(result.model_dump(mode="json"), output)
    typer.echo(
        f"valid={result.valid} errors={len(result.errors)} warnings={len(result.warnings)}"
    )


@app.command("estimate")
def estimate_cmd(
    provider_type: str = typer.Option(..., "--type", help="Provider type, e.g. postgresql"),
) -> None:
    settings = _settings()
    manager = AutomatedSetupManager(SimProviderRegistry(), settings=settings)
    seconds = manager.get_estimated_setup_time(provider_type)
    typer.echo(f"type={provider_type} estimated_seconds={seconds:g}")


@app.command("rules")
def rules_cmd(
    output: Path = typer.Option(Path("-"), help="Destination path, or '-' for stdout"),
) -> None:
    payload = [
        {
            "id": rule.id,
            "name": rule.name,
            "category": rule.category,
            "severity": rule.severity,
            "required": rule.required,
        }
        for rule in default_rules()
    ]
    _write(payload, output)
    if output != Path("-"):
        typer.echo(f"rules={len(payload)} -> {output}")


@app.command("migrate")
def migrate_cmd(
    source_type: str = typer.Option(..., help="Type of the seeded source provider"),
    target_type: str = typer.Option(..., help="Type of the provider to migrate onto"),
    source_name: str = typer.Option("source", help="Name of the seeded source provider"),
    target_name: str = typer.Option("target", help="Name for the target provider"),
    records: int = typer.Option(25, min=0, help="Records seeded into the source provider"),
    preserve_source: bool = typer.Option(
        False, help="Skip source restore when the migration fails"
    ),
    continue_on_warnings: bool = typer.Option(
        False, help="Keep going when an optional step fails"
    ),
    output: Path = typer.Option(Path("-"), help="Destination path, or '-' for stdout"),
) -> None:
    settings = _settings()
    world = SimWorld()
    system = ProviderSetupSystem(world.registry, settings=settings)
    target_config = system.setup_manager.build_configuration(target_type, name=target_name)
    options = MigrationOptions(
        preserve_source=preserve_source, continue_on_warnings=continue_on_warnings
    )

    async def _run() -> Any:
        await world.seed_provider(source_name, source_type, records=records)
        return await system.migrate_provider_complete(
            source_name, target_name, target_config, options
        )

    try:
        result = asyncio.run(_run())
    except WorkflowError as exc:
        history = system.migration_manager.get_migration_history()
        if history:
            _write(history[0].model_dump(mode="json"), output)
        typer.echo(f"migration failed: {exc.message}", err=True)
        raise typer.Exit(code=1)

    _write(result.model_dump(mode="json"), output)
    migration = result.migration
    plan = result.plan
    typer.echo(
        f"migration={migration.migration_id if migration else '-'} "
        f"status={migration.status if migration else '-'} "
        f"risk={plan.risk_level if plan else '-'} "
        f"bytes={migration.data_transferred if migration else 0}"
    )


if __name__ == "__main__":
    app()
