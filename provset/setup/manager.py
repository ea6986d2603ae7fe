from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Set

from provset.config import PipelineSettings
from provset.errors import ConfigurationError, StepExecutionError, UnknownStepError
from provset.events import EventBus, PipelineEvent, safe_call
from provset.registry.api import ConnectivityProbe, ProviderRegistry, find_factory
from provset.registry.models import (
    ProviderConfiguration,
    ValidationResult,
    provider_category,
)
from provset.store import RunStore

from .models import RollbackAction, SetupOptions, SetupProgress, utcnow
from .runner import StepContext, attempt_rollback, run_steps, skipped_rollback
from .steps import SETUP_STEP_HANDLERS, backup_id_for, build_setup_steps

logger = logging.getLogger(__name__)

WizardData = Mapping[str, Mapping[str, Any]]

TYPE_DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "postgresql": {"port": 5432, "ssl": True, "max_connections": 20, "timeout": 30},
    "mysql": {"port": 3306, "ssl": True, "max_connections": 20, "timeout": 30},
    "supabase-db": {"ssl": True},
    "pocketbase-all-in-one": {"url": "http://127.0.0.1:8090"},
    "local-auth": {"password_min_length": 8, "max_login_attempts": 5},
    "smtp-email": {"port": 587, "secure": True},
    "local-storage": {"base_path": "./uploads"},
}

BASE_SETUP_TIMES: Dict[str, float] = {
    "postgresql": 120,
    "supabase-db": 180,
    "pocketbase-all-in-one": 300,
    "local-auth": 60,
}
DEFAULT_BASE_SETUP_TIME = 120.0
WIZARD_STEP_TIME = 30.0
FALLBACK_SETUP_TIME = 300.0


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class AutomatedSetupManager:
    """Drives one provider from wizard answers to a running, diagnosed registration."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        settings: Optional[PipelineSettings] = None,
        events: Optional[EventBus] = None,
        probe: Optional[ConnectivityProbe] = None,
        store: Optional[RunStore[SetupProgress]] = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or PipelineSettings()
        self.events = events or EventBus()
        self.probe = probe
        self.store: RunStore[SetupProgress] = store or RunStore(
            self.settings.setup_history_limit
        )
        self._seq = 0
        self._running: Set[str] = set()

    async def setup_provider(
        self,
        provider_type: str,
        wizard_data: Optional[WizardData] = None,
        options: Optional[SetupOptions] = None,
    ) -> SetupProgress:
        options = options or SetupOptions()
        wizard_data = wizard_data or {}
        progress = SetupProgress(
            setup_id=self._next_setup_id(provider_type),
            provider_type=provider_type,
            provider_name=self.provider_name(provider_type, wizard_data),
        )

        if self.settings.strict_provider_names and self._name_in_use(progress.provider_name):
            progress.status = "failed"
            progress.add_error(
                f"setup already in progress for provider '{progress.provider_name}'"
            )
            logger.warning(
                "rejecting setup %s: %s", progress.setup_id, progress.error_summary()
            )
            progress.mark_finished()
            self.store.record(progress)
            self._announce_finished(progress, options)
            return progress

        self.store.start(progress.setup_id, progress)
        self.events.emit(PipelineEvent.SETUP_STARTED, progress)
        logger.info(
            "starting setup %s for %s provider %s",
            progress.setup_id,
            provider_type,
            progress.provider_name,
        )

        unknown_step: Optional[UnknownStepError] = None
        try:
            config = self.build_configuration(
                provider_type, wizard_data, name=progress.provider_name
            )
            progress.steps = build_setup_steps(provider_type, options)
            progress.total_steps = len(progress.steps)
            progress.estimated_total_time = sum(step.estimated_time for step in progress.steps)
            self.events.emit(PipelineEvent.SETUP_CONFIGURED, progress, config)

            if options.validate_only:
                progress.status = "completed"
            else:
                progress.status = "in_progress"
                self._running.add(progress.setup_id)
                context = StepContext(
                    registry=self.registry,
                    progress=progress,
                    settings=self.settings,
                    config=config,
                    probe=self.probe,
                )
                await run_steps(
                    progress,
                    SETUP_STEP_HANDLERS,
                    context,
                    continue_on_warnings=options.continue_on_warnings,
                    events=self.events,
                    notify=options.notification_callback,
                )
                if progress.status == "in_progress":
                    await self._finalize_provider(progress, config)
                if progress.status == "in_progress":
                    progress.status = "completed"
        except StepExecutionError:
            # already recorded on the progress by the runner
            pass
        except UnknownStepError as exc:
            self._fail(progress, exc.message, exc.step_id)
            unknown_step = exc
        except Exception as exc:  # noqa: BLE001
            self._fail(progress, str(exc) or exc.__class__.__name__)
        finally:
            self._running.discard(progress.setup_id)
            if progress.status == "failed":
                logger.error(
                    "setup %s failed: %s", progress.setup_id, progress.error_summary()
                )
                if options.rollback_on_failure:
                    progress.rollback = await self.rollback_setup(progress)
            elif progress.status == "cancelled":
                progress.rollback = await self.rollback_setup(progress)
            progress.mark_finished()
            if self.store.finalize(progress.setup_id):
                if progress.status == "cancelled":
                    self.events.emit(PipelineEvent.SETUP_CANCELLED, progress)
                else:
                    self._announce_finished(progress, options)

        if unknown_step is not None:
            raise unknown_step
        return progress

    def get_setup_progress(self, setup_id: str) -> Optional[SetupProgress]:
        return self.store.get_active(setup_id)

    def get_active_setups(self) -> List[SetupProgress]:
        return self.store.active()

    def get_setup_history(self) -> List[SetupProgress]:
        return self.store.history()

    async def cancel_setup(self, setup_id: str) -> bool:
        progress = self.store.get_active(setup_id)
        if progress is None:
            return False
        progress.status = "cancelled"
        logger.info("cancelling setup %s", setup_id)
        if setup_id in self._running:
            # the running step finishes first; setup_provider rolls back after it
            return True
        progress.rollback = await self.rollback_setup(progress)
        progress.mark_finished()
        if self.store.finalize(setup_id):
            self.events.emit(PipelineEvent.SETUP_CANCELLED, progress)
        return True

    async def validate_setup(
        self, provider_type: str, wizard_data: Optional[WizardData] = None
    ) -> ValidationResult:
        """Check wizard answers without touching the registry's provider set."""
        wizard_data = wizard_data or {}
        errors: List[str] = []
        warnings: List[str] = []
        try:
            has_factory = find_factory(self.registry, provider_type) is not None
            if has_factory:
                self.build_configuration(provider_type, wizard_data)
            for step_id, step_data in wizard_data.items():
                result = await self.registry.validate_wizard_step(
                    provider_type, step_id, step_data
                )
                errors.extend(result.errors)
                warnings.extend(result.warnings)
            if not has_factory:
                errors.append(f"No factory found for provider type: {provider_type}")
        except Exception as exc:  # noqa: BLE001
            return ValidationResult(valid=False, errors=[f"Validation failed: {exc}"])
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def get_estimated_setup_time(self, provider_type: str) -> float:
        try:
            wizard_steps = self.registry.get_provider_wizard_steps(provider_type)
        except Exception:  # noqa: BLE001
            return FALLBACK_SETUP_TIME
        base = float(BASE_SETUP_TIMES.get(provider_type, DEFAULT_BASE_SETUP_TIME))
        return base + WIZARD_STEP_TIME * len(wizard_steps)

    def provider_name(self, provider_type: str, wizard_data: WizardData) -> str:
        connection = wizard_data.get("connection") or {}
        name = connection.get("name") if isinstance(connection, Mapping) else None
        if isinstance(name, str) and name.strip():
            return name.strip()
        return f"{provider_type}-provider-{_epoch_ms()}"

    def build_configuration(
        self,
        provider_type: str,
        wizard_data: Optional[WizardData] = None,
        *,
        name: Optional[str] = None,
    ) -> ProviderConfiguration:
        wizard_data = wizard_data or {}
        if find_factory(self.registry, provider_type) is None:
            raise ConfigurationError(
                f"No factory found for provider type: {provider_type}",
                code="config.no_factory",
            )
        merged: Dict[str, Any] = dict(TYPE_DEFAULT_CONFIGS.get(provider_type, {}))
        for step_data in wizard_data.values():
            if isinstance(step_data, Mapping):
                merged.update(step_data)
        return ProviderConfiguration(
            id=f"{provider_type}-{_epoch_ms()}",
            name=name or self.provider_name(provider_type, wizard_data),
            type=provider_type,
            description=f"Auto-configured {provider_type} provider",
            category=provider_category(provider_type),
            config=merged,
        )

    async def rollback_setup(self, progress: SetupProgress) -> List[RollbackAction]:
        """Undo what this run applied. Every action is attempted independently."""
        name = progress.provider_name
        logger.info("rolling back setup %s for %s", progress.setup_id, name)
        actions: List[RollbackAction] = []

        register = progress.find_step("register-provider")
        owned = register is not None and register.status in {"in_progress", "completed"}
        try:
            present = self.registry.has_provider(name)
        except Exception as exc:  # noqa: BLE001
            logger.warning("cannot check provider %s during rollback: %s", name, exc)
            present = True

        if owned and present:
            actions.append(
                await attempt_rollback("stop", name, lambda: self.registry.stop_provider(name))
            )
            actions.append(
                await attempt_rollback(
                    "unregister", name, lambda: self.registry.unregister_provider(name)
                )
            )
        else:
            reason = "not registered by this run" if not owned else "not in registry"
            actions.append(skipped_rollback("stop", name, reason))
            actions.append(skipped_rollback("unregister", name, reason))

        backup_id = backup_id_for(progress.steps)
        if backup_id:
            actions.append(
                await attempt_rollback(
                    "restore",
                    name,
                    lambda: self.registry.restore_provider(name, backup_id),
                )
            )
        else:
            actions.append(skipped_rollback("restore", name, "no backup taken"))
        return actions

    async def _finalize_provider(
        self, progress: SetupProgress, config: ProviderConfiguration
    ) -> None:
        stamp = utcnow().isoformat()
        await self.registry.update_provider_config(
            progress.provider_name,
            {"description": f"{config.description} (Auto-configured on {stamp})"},
        )

    def _fail(
        self, progress: SetupProgress, message: str, step_id: Optional[str] = None
    ) -> None:
        if progress.status != "cancelled":
            progress.status = "failed"
        progress.add_error(message, step_id)

    def _announce_finished(self, progress: SetupProgress, options: SetupOptions) -> None:
        logger.info(
            "setup %s finished with status %s", progress.setup_id, progress.status
        )
        self.events.emit(PipelineEvent.SETUP_COMPLETED, progress)
        safe_call(options.notification_callback, progress, label="setup")

    def _name_in_use(self, provider_name: str) -> bool:
        return any(run.provider_name == provider_name for run in self.store.active())

    def _next_setup_id(self, provider_type: str) -> str:
        self._seq += 1
        return f"setup_{provider_type}_{_epoch_ms()}_{self._seq:04d}"
