from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Set

from provset.config import PipelineSettings
from provset.errors import ProviderNotFoundError, StepExecutionError, UnknownStepError
from provset.events import EventBus, PipelineEvent, safe_call
from provset.registry.api import ProviderRegistry
from provset.registry.models import ProviderConfiguration, ValidationResult
from provset.setup.models import RollbackAction
from provset.setup.runner import StepContext, attempt_rollback, run_steps, skipped_rollback
from provset.store import RunStore

from .models import MigrationOptions, MigrationPlan, MigrationProgress, ProviderRef
from .planner import assess_risk, check_compatibility
from .steps import MIGRATION_STEP_HANDLERS, TARGET_CONFIG, build_migration_steps

logger = logging.getLogger(__name__)


class MigrationManager:
    """Plans and executes moving one provider's data and role onto another."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        settings: Optional[PipelineSettings] = None,
        events: Optional[EventBus] = None,
        store: Optional[RunStore[MigrationProgress]] = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or PipelineSettings()
        self.events = events or EventBus()
        self.store: RunStore[MigrationProgress] = store or RunStore(
            self.settings.migration_history_limit
        )
        self._seq = 0
        self._running: Set[str] = set()

    async def plan_migration(
        self,
        source_name: str,
        target_name: str,
        target_config: Optional[ProviderConfiguration] = None,
    ) -> MigrationPlan:
        source_info = self.registry.get_provider_info(source_name)
        if self.registry.get_provider(source_name) is None or source_info is None:
            raise ProviderNotFoundError(
                source_name, f"Source provider '{source_name}' not found"
            )

        target_info = self.registry.get_provider_info(target_name)
        if target_info is None:
            if target_config is None:
                raise ProviderNotFoundError(
                    target_name,
                    f"Target provider '{target_name}' not found and no config provided",
                )
            target_info = target_config

        compatibility = check_compatibility(
            source_info.type,
            target_info.type,
            source_info.capabilities,
            target_info.capabilities,
        )
        data_size = await self._estimate_data_size(source_name)
        steps = build_migration_steps(compatibility)
        risk = assess_risk(compatibility, data_size)

        self._seq += 1
        stamp = int(time.time() * 1000)
        plan = MigrationPlan(
            migration_id=f"migration_{source_name}_to_{target_name}_{stamp}_{self._seq:04d}",
            source_provider=ProviderRef(name=source_name, type=source_info.type),
            target_provider=ProviderRef(name=target_name, type=target_info.type),
            steps=steps,
            estimated_total_time=sum(step.estimated_time for step in steps),
            data_size=data_size,
            compatibility=compatibility,
            backup_required=risk != "low",
            risk_level=risk,
        )
        logger.info(
            "planned %s: %d steps, risk %s", plan.migration_id, len(steps), risk
        )
        return plan

    async def execute_migration(
        self,
        plan: MigrationPlan,
        target_config: Optional[ProviderConfiguration] = None,
        options: Optional[MigrationOptions] = None,
    ) -> MigrationProgress:
        options = options or MigrationOptions()
        steps = [step.model_copy(deep=True) for step in plan.steps]
        if not options.create_backup and not plan.backup_required:
            steps = [step for step in steps if step.id != "create-backup"]
        progress = MigrationProgress(
            migration_id=plan.migration_id,
            plan=plan,
            steps=steps,
            total_steps=len(steps),
            estimated_total_time=sum(step.estimated_time for step in steps),
            status="in_progress",
        )

        self.store.start(plan.migration_id, progress)
        self.events.emit(PipelineEvent.MIGRATION_STARTED, progress)
        safe_call(options.notification_callback, progress, label="migration")
        logger.info("starting migration %s", plan.migration_id)

        unknown_step: Optional[UnknownStepError] = None
        try:
            if options.validate_only:
                progress.status = "completed"
            else:
                self._running.add(plan.migration_id)
                context = StepContext(
                    registry=self.registry,
                    progress=progress,
                    settings=self.settings,
                    extras={TARGET_CONFIG: target_config},
                )
                await run_steps(
                    progress,
                    MIGRATION_STEP_HANDLERS,
                    context,
                    continue_on_warnings=options.continue_on_warnings,
                    events=self.events,
                    notify=options.notification_callback,
                )
                if progress.status == "in_progress":
                    progress.status = "completed"
        except StepExecutionError:
            pass
        except UnknownStepError as exc:
            progress.status = "failed"
            progress.add_error(exc.message, exc.step_id)
            unknown_step = exc
        finally:
            self._running.discard(plan.migration_id)
            if progress.status == "failed":
                logger.error(
                    "migration %s failed: %s", plan.migration_id, progress.error_summary()
                )
                if progress.backup_id and not options.preserve_source:
                    progress.rollback = await self.rollback_migration(progress)
            elif progress.status == "cancelled":
                progress.rollback = await self.rollback_migration(progress)
            progress.mark_finished()
            if self.store.finalize(plan.migration_id):
                if progress.status == "cancelled":
                    self.events.emit(PipelineEvent.MIGRATION_CANCELLED, progress)
                else:
                    self.events.emit(PipelineEvent.MIGRATION_COMPLETED, progress)
                    safe_call(options.notification_callback, progress, label="migration")

        if unknown_step is not None:
            raise unknown_step
        return progress

    def get_migration_progress(self, migration_id: str) -> Optional[MigrationProgress]:
        return self.store.get_active(migration_id)

    def get_active_migrations(self) -> List[MigrationProgress]:
        return self.store.active()

    def get_migration_history(self) -> List[MigrationProgress]:
        return self.store.history()

    async def cancel_migration(self, migration_id: str) -> bool:
        progress = self.store.get_active(migration_id)
        if progress is None:
            return False
        progress.status = "cancelled"
        logger.info("cancelling migration %s", migration_id)
        if migration_id in self._running:
            # execute_migration rolls back once the running step returns
            return True
        progress.rollback = await self.rollback_migration(progress)
        progress.mark_finished()
        if self.store.finalize(migration_id):
            self.events.emit(PipelineEvent.MIGRATION_CANCELLED, progress)
        return True

    async def validate_migration(
        self,
        source_name: str,
        target_name: str,
        target_config: Optional[ProviderConfiguration] = None,
    ) -> ValidationResult:
        try:
            plan = await self.plan_migration(source_name, target_name, target_config)
        except Exception as exc:  # noqa: BLE001
            return ValidationResult(
                valid=False, errors=[f"Migration validation failed: {exc}"]
            )

        errors: List[str] = []
        warnings: List[str] = []
        if not plan.compatibility.schema_compatible:
            errors.append("Schema compatibility issues detected")
        if not plan.compatibility.data_compatible:
            errors.append("Data compatibility issues detected")
        if not plan.compatibility.feature_compatible:
            warnings.append("Some features may not be available in target provider")
        warnings.extend(plan.compatibility.warnings)
        if plan.risk_level == "high":
            warnings.append("High-risk migration - backup strongly recommended")
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    async def rollback_migration(self, progress: MigrationProgress) -> List[RollbackAction]:
        source = progress.plan.source_provider.name
        target = progress.plan.target_provider.name
        logger.info("rolling back migration %s", progress.migration_id)
        actions: List[RollbackAction] = []

        backup_id = progress.backup_id
        if backup_id:
            actions.append(
                await attempt_rollback(
                    "restore", source, lambda: self.registry.restore_provider(source, backup_id)
                )
            )
        else:
            actions.append(skipped_rollback("restore", source, "no backup taken"))

        prepare = progress.find_step("prepare-target")
        registered_here = bool(
            prepare is not None and prepare.result and prepare.result.data.get("registered")
        )
        if registered_here and self.registry.has_provider(target):
            actions.append(
                await attempt_rollback("stop", target, lambda: self.registry.stop_provider(target))
            )
            actions.append(
                await attempt_rollback(
                    "unregister", target, lambda: self.registry.unregister_provider(target)
                )
            )
        else:
            reason = "target not registered by this migration"
            actions.append(skipped_rollback("stop", target, reason))
            actions.append(skipped_rollback("unregister", target, reason))
        return actions

    async def _estimate_data_size(self, provider_name: str) -> int:
        provider = self.registry.get_provider(provider_name)
        getter = getattr(provider, "get_metrics", None)
        if not callable(getter):
            return 0
        try:
            metrics: Dict[str, Any] = await getter()
            return int(metrics.get("business", {}).get("total_records", 0) or 0)
        except Exception as exc:  # noqa: BLE001
            logger.warning("could not estimate data size for %s: %s", provider_name, exc)
            return 0
