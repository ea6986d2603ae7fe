from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from provset.errors import ConfigurationError, ProviderNotFoundError
from provset.registry.models import ProviderConfiguration, StepResult
from provset.setup.models import SetupStep, utcnow
from provset.setup.runner import StepContext, StepHandler
from provset.setup.steps import StepDefinition

from .models import MigrationCompatibility, MigrationProgress

logger = logging.getLogger(__name__)

EXPORTED_DATA = "exported_data"
TARGET_CONFIG = "target_config"


def _migration(context: StepContext) -> MigrationProgress:
    progress = context.progress
    if not isinstance(progress, MigrationProgress):
        raise TypeError("migration step run outside a migration")
    return progress


def _automation(context: StepContext, name: str, purpose: str) -> Any:
    provider = context.registry.get_provider(name)
    if provider is None:
        raise ProviderNotFoundError(name)
    getter = getattr(provider, "get_setup_automation", None)
    automation = getter() if callable(getter) else None
    if automation is None:
        raise ConfigurationError(
            f"Provider '{name}' does not support data {purpose}",
            code="migration.unsupported",
        )
    return automation


async def validate_migration_step(context: StepContext) -> StepResult:
    plan = _migration(context).plan
    if not context.registry.has_provider(plan.source_provider.name):
        raise ProviderNotFoundError(plan.source_provider.name)
    return StepResult(
        data={
            "source_valid": True,
            "target_exists": context.registry.has_provider(plan.target_provider.name),
        }
    )


async def backup_source(context: StepContext) -> StepResult:
    progress = _migration(context)
    source = progress.plan.source_provider.name
    progress.backup_id = await context.registry.backup_provider(source)
    logger.info("backed up %s as %s", source, progress.backup_id)
    return StepResult(data={"backup_id": progress.backup_id, "created_at": utcnow().isoformat()})


async def prepare_target(context: StepContext) -> StepResult:
    target = _migration(context).plan.target_provider
    registry = context.registry
    config: Optional[ProviderConfiguration] = context.extras.get(TARGET_CONFIG)
    registered = False
    if not registry.has_provider(target.name):
        if config is None:
            raise ProviderNotFoundError(
                target.name, f"Target provider '{target.name}' not found and no config provided"
            )
        await registry.register_provider(target.name, target.type, config.model_copy(deep=True))
        registered = True
    await registry.start_provider(target.name)
    return StepResult(data={"registered": registered, "started": True})


async def export_data(context: StepContext) -> StepResult:
    progress = _migration(context)
    automation = _automation(context, progress.plan.source_provider.name, "export")
    payload = await automation.export_data()
    context.extras[EXPORTED_DATA] = payload
    progress.data_transferred = len(payload)
    return StepResult(data={"data_size": len(payload), "exported": True})


async def transform_data(context: StepContext) -> StepResult:
    plan = _migration(context).plan
    logger.info(
        "mapping %s data onto %s", plan.source_provider.type, plan.target_provider.type
    )
    return StepResult(
        data={"transformed": True, "transformations": ["schema_mapping", "data_type_conversion"]}
    )


async def import_data(context: StepContext) -> StepResult:
    progress = _migration(context)
    automation = _automation(context, progress.plan.target_provider.name, "import")
    payload = context.extras.get(EXPORTED_DATA)
    if payload is None:
        raise ConfigurationError("No exported data found", code="migration.no_export")
    await automation.import_data(payload)
    return StepResult(data={"imported": True, "data_size": len(payload)})


async def verify_data(context: StepContext) -> StepResult:
    progress = _migration(context)
    if not context.registry.has_provider(progress.plan.target_provider.name):
        raise ProviderNotFoundError(progress.plan.target_provider.name)
    return StepResult(
        data={"verified": True, "bytes_verified": progress.data_transferred}
    )


async def update_config(context: StepContext) -> StepResult:
    plan = _migration(context).plan
    await context.registry.update_provider_config(
        plan.target_provider.name,
        {"description": f"Migrated from {plan.source_provider.name} on {utcnow().isoformat()}"},
    )
    return StepResult(data={"config_updated": True, "provider": plan.target_provider.name})


async def check_target_functionality(context: StepContext) -> StepResult:
    target = _migration(context).plan.target_provider.name
    provider = context.registry.get_provider(target)
    if provider is None:
        raise ProviderNotFoundError(target)
    diagnostics = await provider.run_diagnostics()
    failed = sorted(test for test, outcome in diagnostics.items() if not outcome.success)
    return StepResult(
        success=not failed,
        data={"all_tests_passed": not failed, "failed_tests": failed},
        error=f"Target diagnostics failed: {', '.join(failed)}" if failed else None,
    )


MIGRATION_STEP_DEFINITIONS: List[StepDefinition] = [
    StepDefinition(
        "validate-migration",
        "Validate Migration",
        "Validate source and target providers",
        validate_migration_step,
        estimated_time=10,
    ),
    StepDefinition(
        "create-backup",
        "Create Backup",
        "Create backup of source provider data",
        backup_source,
        estimated_time=30,
    ),
    StepDefinition(
        "prepare-target",
        "Prepare Target",
        "Prepare target provider for data import",
        prepare_target,
        estimated_time=15,
    ),
    StepDefinition(
        "export-data",
        "Export Data",
        "Export data from source provider",
        export_data,
        estimated_time=60,
    ),
    StepDefinition(
        "transform-data",
        "Transform Data",
        "Transform data for target provider compatibility",
        transform_data,
        estimated_time=45,
    ),
    StepDefinition(
        "import-data",
        "Import Data",
        "Import data to target provider",
        import_data,
        estimated_time=60,
    ),
    StepDefinition(
        "verify-data",
        "Verify Data",
        "Verify data integrity after migration",
        verify_data,
        estimated_time=30,
    ),
    StepDefinition(
        "update-config",
        "Update Configuration",
        "Point the application configuration at the target provider",
        update_config,
        estimated_time=10,
    ),
    StepDefinition(
        "test-functionality",
        "Test Functionality",
        "Run diagnostics against the target provider",
        check_target_functionality,
        required=False,
        estimated_time=60,
    ),
]

MIGRATION_STEP_HANDLERS: Mapping[str, StepHandler] = {
    definition.id: definition.handler for definition in MIGRATION_STEP_DEFINITIONS
}


def build_migration_steps(compatibility: MigrationCompatibility) -> List[SetupStep]:
    return [
        SetupStep(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            required=definition.required,
            estimated_time=float(definition.estimated_time),
        )
        for definition in MIGRATION_STEP_DEFINITIONS
        if definition.id != "transform-data" or not compatibility.data_compatible
    ]
