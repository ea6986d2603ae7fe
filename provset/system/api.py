from __future__ import annotations

import logging
from typing import Optional

from provset.config import PipelineSettings
from provset.errors import WorkflowError
from provset.events import EventBus, Listener, PipelineEvent
from provset.migration.manager import MigrationManager
from provset.migration.models import MigrationOptions
from provset.registry.api import ConnectivityProbe, ProviderRegistry
from provset.registry.models import ProviderConfiguration
from provset.setup.manager import AutomatedSetupManager, WizardData
from provset.setup.models import SetupOptions
from provset.validation.validator import ProviderValidator

from .models import MigrationWorkflowResult, SetupWorkflowResult, SystemStatus

logger = logging.getLogger(__name__)

STATUS_HISTORY_DEPTH = 10


class ProviderSetupSystem:
    """End-to-end setup and migration workflows over one provider registry.

    The three managers publish on a single shared ``EventBus``, so one
    subscription through ``on`` observes the whole pipeline.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        settings: Optional[PipelineSettings] = None,
        probe: Optional[ConnectivityProbe] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or PipelineSettings()
        self.events = events or EventBus()
        self.setup_manager = AutomatedSetupManager(
            registry, settings=self.settings, events=self.events, probe=probe
        )
        self.migration_manager = MigrationManager(
            registry, settings=self.settings, events=self.events
        )
        self.validator = ProviderValidator(
            registry, settings=self.settings, events=self.events
        )

    def on(self, event: PipelineEvent | str, listener: Listener) -> None:
        self.events.subscribe(event, listener)

    def off(self, event: PipelineEvent | str, listener: Listener) -> bool:
        return self.events.unsubscribe(event, listener)

    async def setup_provider_complete(
        self,
        provider_type: str,
        wizard_data: Optional[WizardData] = None,
        options: Optional[SetupOptions] = None,
        *,
        validate: bool = True,
    ) -> SetupWorkflowResult:
        options = options or SetupOptions()
        result = SetupWorkflowResult()

        if validate:
            result.validation = await self.setup_manager.validate_setup(
                provider_type, wizard_data
            )
            if not result.validation.valid and not options.continue_on_warnings:
                raise WorkflowError(
                    f"Pre-setup validation failed: {', '.join(result.validation.errors)}",
                    code="workflow.prevalidation_failed",
                    detail={"errors": list(result.validation.errors)},
                )

        setup = await self.setup_manager.setup_provider(provider_type, wizard_data, options)
        result.setup = setup
        if setup.status == "failed":
            raise WorkflowError(
                f"Setup failed: {setup.error_summary()}",
                code="workflow.setup_failed",
                detail={"setup_id": setup.setup_id},
            )

        if validate and setup.status == "completed" and not options.validate_only:
            report = await self.validator.validate_provider(setup.provider_name)
            result.final_validation = report
            if report.overall_result == "failed":
                logger.warning(
                    "post-setup validation failed for %s, provider remains set up",
                    setup.provider_name,
                )
        return result

    async def migrate_provider_complete(
        self,
        source_name: str,
        target_name: str,
        target_config: Optional[ProviderConfiguration] = None,
        options: Optional[MigrationOptions] = None,
        *,
        validate: bool = True,
    ) -> MigrationWorkflowResult:
        options = options or MigrationOptions()
        result = MigrationWorkflowResult()

        if validate:
            result.validation = await self.migration_manager.validate_migration(
                source_name, target_name, target_config
            )
            if not result.validation.valid and not options.continue_on_warnings:
                raise WorkflowError(
                    f"Pre-migration validation failed: {', '.join(result.validation.errors)}",
                    code="workflow.prevalidation_failed",
                    detail={"errors": list(result.validation.errors)},
                )

        plan = await self.migration_manager.plan_migration(
            source_name, target_name, target_config
        )
        result.plan = plan
        migration = await self.migration_manager.execute_migration(
            plan, target_config, options
        )
        result.migration = migration
        if migration.status == "failed":
            raise WorkflowError(
                f"Migration failed: {migration.error_summary()}",
                code="workflow.migration_failed",
                detail={"migration_id": migration.migration_id},
            )

        if validate and migration.status == "completed" and not options.validate_only:
            report = await self.validator.validate_provider(target_name)
            result.final_validation = report
            if report.overall_result == "failed":
                logger.warning(
                    "post-migration validation failed for %s, migration completed",
                    target_name,
                )
        return result

    def get_system_status(self) -> SystemStatus:
        return SystemStatus(
            active_setups=self.setup_manager.get_active_setups(),
            active_migrations=self.migration_manager.get_active_migrations(),
            setup_history=self.setup_manager.get_setup_history()[:STATUS_HISTORY_DEPTH],
            migration_history=self.migration_manager.get_migration_history()[
                :STATUS_HISTORY_DEPTH
            ],
            validation_history=self.validator.get_validation_history()[:STATUS_HISTORY_DEPTH],
            validation_rules=len(self.validator.get_validation_rules()),
        )


def create_system(
    registry: ProviderRegistry,
    *,
    settings: Optional[PipelineSettings] = None,
    probe: Optional[ConnectivityProbe] = None,
) -> ProviderSetupSystem:
    return ProviderSetupSystem(registry, settings=settings, probe=probe)
