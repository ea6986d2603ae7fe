from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from provset.errors import ConfigurationError, ProvsetError

from .models import (
    DetailedHealth,
    HealthCheck,
    PerformanceSnapshot,
    ProviderConfiguration,
    ProviderSummary,
    StepResult,
    TestResult,
    ValidationResult,
    WizardField,
    WizardStep,
    provider_category,
)


def _field(field_id: str, kind: str = "text", *, required: bool = True) -> WizardField:
    return WizardField(
        id=field_id,
        name=field_id,
        type=kind,  # type: ignore[arg-type]
        label=field_id.replace("_", " ").title(),
        required=required,
    )


@dataclass(frozen=True)
class SimFactory:
    name: str
    provider_type: str
    capabilities: Tuple[str, ...] = ()
    automation_steps: Optional[Tuple[str, ...]] = None
    wizard_steps: Tuple[WizardStep, ...] = ()


def _connection_step(*fields: WizardField) -> WizardStep:
    return WizardStep(
        id="connection",
        name="Connection",
        description="Where the provider lives and how to reach it",
        fields=[_field("name", required=False), *fields],
    )


def default_factories() -> Dict[str, SimFactory]:
    sql_fields = (
        _field("host"),
        _field("port", "number", required=False),
        _field("database"),
        _field("username"),
        _field("password", "password", required=False),
    )
    sql_options = WizardStep(
        id="options",
        name="Options",
        required=False,
        fields=[
            _field("ssl", "boolean", required=False),
            _field("max_connections", "number", required=False),
        ],
    )
    factories = [
        SimFactory(
            name="postgresql-factory",
            provider_type="postgresql",
            capabilities=("database", "transactions", "setup-automation", "wizard-integration"),
            automation_steps=("create-schema", "validate-config", "run-migrations"),
            wizard_steps=(_connection_step(*sql_fields), sql_options),
        ),
        SimFactory(
            name="mysql-factory",
            provider_type="mysql",
            capabilities=("database", "transactions", "setup-automation"),
            automation_steps=("create-schema", "validate-config"),
            wizard_steps=(_connection_step(*sql_fields), sql_options),
        ),
        SimFactory(
            name="supabase-db-factory",
            provider_type="supabase-db",
            capabilities=("database", "realtime", "setup-automation"),
            automation_steps=("create-schema", "validate-config"),
            wizard_steps=(
                _connection_step(_field("supabase_url"), _field("supabase_key", "password")),
            ),
        ),
        SimFactory(
            name="pocketbase-all-in-one-factory",
            provider_type="pocketbase-all-in-one",
            capabilities=("database", "auth", "storage", "setup-automation"),
            automation_steps=("create-schema",),
            wizard_steps=(_connection_step(_field("url")),),
        ),
        SimFactory(
            name="local-auth-factory",
            provider_type="local-auth",
            capabilities=("auth", "password-reset"),
            wizard_steps=(
                _connection_step(),
                WizardStep(
                    id="policy",
                    name="Password policy",
                    fields=[
                        _field("password_min_length", "number"),
                        _field("max_login_attempts", "number"),
                    ],
                ),
            ),
        ),
        SimFactory(
            name="smtp-email-factory",
            provider_type="smtp-email",
            capabilities=("email",),
            wizard_steps=(
                _connection_step(
                    _field("host"),
                    _field("port", "number", required=False),
                    _field("username", required=False),
                    _field("password", "password", required=False),
                ),
            ),
        ),
        SimFactory(
            name="local-storage-factory",
            provider_type="local-storage",
            capabilities=("storage",),
            wizard_steps=(_connection_step(_field("base_path")),),
        ),
    ]
    return {factory.provider_type: factory for factory in factories}


class SimSetupAutomation:
    def __init__(self, provider: "SimProvider", steps: Tuple[str, ...]) -> None:
        self._provider = provider
        self._steps = list(steps)
        self.calls: List[str] = []

    def can_auto_setup(self) -> bool:
        return True

    def get_setup_steps(self) -> List[str]:
        return list(self._steps)

    async def create_schema(self) -> None:
        self.calls.append("create_schema")

    async def migrate_schema(self, from_version: str, to_version: str) -> None:
        self.calls.append(f"migrate_schema:{from_version}->{to_version}")

    async def validate_configuration(self, config: Mapping[str, Any]) -> bool:
        self.calls.append("validate_configuration")
        return not config.get("reject_config", False)

    async def export_data(self) -> bytes:
        return json.dumps(self._provider.records, sort_keys=True).encode("utf-8")

    async def import_data(self, data: bytes) -> None:
        self._provider.records.extend(json.loads(data.decode("utf-8")))


class SimWizardIntegration:
    def __init__(self, provider: "SimProvider", steps: Tuple[WizardStep, ...]) -> None:
        self._provider = provider
        self._steps = list(steps)

    def get_wizard_steps(self) -> List[WizardStep]:
        return list(self._steps)

    async def validate_step(self, step_id: str, data: Mapping[str, Any]) -> ValidationResult:
        return _validate_against_steps(self._steps, step_id, data)

    async def execute_step(self, step_id: str, data: Mapping[str, Any]) -> StepResult:
        return StepResult(success=True, data={"step": step_id})

    async def test_connection(self, config: Mapping[str, Any]) -> TestResult:
        return TestResult(success=True, message="simulated connection", latency=1.0)

    async def test_features(self, features: List[str]) -> Dict[str, TestResult]:
        broken = set(self._provider.broken_features)
        return {
            feature: TestResult(
                success=feature not in broken,
                message="ok" if feature not in broken else "feature probe failed",
            )
            for feature in features
        }


class SimProvider:
    """Deterministic in-memory provider instance."""

    def __init__(self, name: str, factory: SimFactory, config: ProviderConfiguration) -> None:
        self.name = name
        self.factory = factory
        self.config = config
        self.running = False
        self.response_time = 25.0
        self.error_rate = 0.0
        self.records: List[Dict[str, Any]] = []
        self.broken_features: List[str] = []
        self.diagnostic_failures: Dict[str, str] = {}
        self._automation = (
            SimSetupAutomation(self, factory.automation_steps)
            if factory.automation_steps is not None
            else None
        )
        self._wizard = (
            SimWizardIntegration(self, factory.wizard_steps)
            if "wizard-integration" in factory.capabilities
            else None
        )

    def get_capabilities(self) -> List[str]:
        return list(self.factory.capabilities)

    def get_setup_automation(self) -> Optional[SimSetupAutomation]:
        return self._automation

    def get_wizard_integration(self) -> Optional[SimWizardIntegration]:
        return self._wizard

    async def get_detailed_health(self) -> DetailedHealth:
        return DetailedHealth(
            status="running" if self.running else "stopped",
            performance=PerformanceSnapshot(
                response_time=self.response_time, error_rate=self.error_rate
            ),
        )

    async def run_diagnostics(self) -> Dict[str, TestResult]:
        results = {
            "connection": TestResult(
                success=self.running,
                message="connected" if self.running else "provider not running",
            ),
            "configuration": TestResult(success=True, message="configuration loaded"),
        }
        for test, message in self.diagnostic_failures.items():
            results[test] = TestResult(success=False, message=message)
        return results

    async def get_metrics(self) -> Dict[str, Any]:
        return {"business": {"total_records": len(self.records)}}


def _validate_against_steps(
    steps: List[WizardStep] | Tuple[WizardStep, ...],
    step_id: str,
    data: Mapping[str, Any],
) -> ValidationResult:
    step = next((item for item in steps if item.id == step_id), None)
    if step is None:
        return ValidationResult(valid=True, warnings=[f"Unknown wizard step: {step_id}"])
    errors = [
        f"{step.name}: {field_def.label} is required"
        for field_def in step.fields
        if field_def.required and data.get(field_def.id) in (None, "")
    ]
    return ValidationResult(valid=not errors, errors=errors)


class SimProviderRegistry:
    """In-process registry used by the CLI and tests.

    ``fail_on`` maps an operation name (``register_provider``,
    ``start_provider``, ...) to an error message raised when it is called.
    Every mutating call is appended to ``calls`` as ``(operation, name)``.
    """

    def __init__(
        self,
        factories: Optional[Dict[str, SimFactory]] = None,
        *,
        fail_on: Optional[Dict[str, str]] = None,
        diagnostic_failures: Optional[Dict[str, str]] = None,
    ) -> None:
        self.factories = factories if factories is not None else default_factories()
        self.fail_on = dict(fail_on or {})
        self.diagnostic_failures = dict(diagnostic_failures or {})
        self.calls: List[Tuple[str, str]] = []
        self._providers: Dict[str, SimProvider] = {}
        self._backups: Dict[str, ProviderConfiguration] = {}
        self._backup_seq = 0

    def list_factories(self) -> List[str]:
        return [factory.name for factory in self.factories.values()]

    def has_provider(self, name: str) -> bool:
        return name in self._providers

    def get_provider(self, name: str) -> Optional[SimProvider]:
        return self._providers.get(name)

    def get_provider_info(self, name: str) -> Optional[ProviderConfiguration]:
        provider = self._providers.get(name)
        return provider.config if provider else None

    def list_providers(self) -> List[ProviderSummary]:
        return [
            ProviderSummary(
                name=name,
                type=provider.config.type,
                status="running" if provider.running else "registered",
            )
            for name, provider in self._providers.items()
        ]

    def get_provider_wizard_steps(self, provider_type: str) -> List[WizardStep]:
        factory = self.factories.get(provider_type)
        if factory is None:
            raise ConfigurationError(
                f"No wizard steps for provider type: {provider_type}",
                code="config.no_factory",
            )
        return list(factory.wizard_steps)

    async def validate_wizard_step(
        self, provider_type: str, step_id: str, step_data: Mapping[str, Any]
    ) -> ValidationResult:
        factory = self.factories.get(provider_type)
        if factory is None:
            return ValidationResult(
                valid=False, errors=[f"Unknown provider type: {provider_type}"]
            )
        return _validate_against_steps(factory.wizard_steps, step_id, step_data)

    async def register_provider(
        self, name: str, provider_type: str, config: ProviderConfiguration
    ) -> None:
        self._record("register_provider", name)
        if name in self._providers:
            raise ConfigurationError(
                f"Provider '{name}' is already registered", code="registry.duplicate"
            )
        factory = self.factories.get(provider_type)
        if factory is None:
            raise ConfigurationError(
                f"No factory found for provider type: {provider_type}",
                code="config.no_factory",
            )
        stored = config.model_copy(deep=True)
        if not stored.capabilities:
            stored.capabilities = list(factory.capabilities)
        provider = SimProvider(name, factory, stored)
        provider.diagnostic_failures.update(self.diagnostic_failures)
        self._providers[name] = provider

    async def unregister_provider(self, name: str) -> None:
        self._record("unregister_provider", name)
        self._require(name)
        del self._providers[name]

    async def start_provider(self, name: str) -> None:
        self._record("start_provider", name)
        self._require(name).running = True

    async def stop_provider(self, name: str) -> None:
        self._record("stop_provider", name)
        self._require(name).running = False

    async def check_provider_health(self, name: str) -> HealthCheck:
        provider = self._require(name)
        return HealthCheck(
            health="healthy" if provider.running else "stopped",
            status="running" if provider.running else "stopped",
        )

    async def run_diagnostics(self, name: str) -> Dict[str, TestResult]:
        self._record("run_diagnostics", name)
        return await self._require(name).run_diagnostics()

    async def backup_provider(self, name: str) -> str:
        self._record("backup_provider", name)
        provider = self._require(name)
        self._backup_seq += 1
        backup_id = f"backup-{name}-{self._backup_seq:04d}"
        self._backups[backup_id] = provider.config.model_copy(deep=True)
        return backup_id

    async def restore_provider(self, name: str, backup_id: str) -> None:
        self._record("restore_provider", name)
        snapshot = self._backups.get(backup_id)
        if snapshot is None:
            raise ProvsetError(f"Unknown backup: {backup_id}", code="registry.unknown_backup")
        factory = self.factories[snapshot.type]
        self._providers[name] = SimProvider(name, factory, snapshot.model_copy(deep=True))

    async def update_provider_config(self, name: str, changes: Mapping[str, Any]) -> None:
        self._record("update_provider_config", name)
        provider = self._require(name)
        fields = set(ProviderConfiguration.model_fields)
        for key, value in changes.items():
            if key in fields:
                setattr(provider.config, key, value)
            else:
                provider.config.config[key] = value

    def _record(self, operation: str, name: str) -> None:
        self.calls.append((operation, name))
        message = self.fail_on.get(operation)
        if message:
            raise ProvsetError(message, code=f"sim.{operation}")

    def _require(self, name: str) -> SimProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise ProvsetError(f"Provider '{name}' not found", code="provider.not_found")
        return provider


@dataclass
class SimWorld:
    """Convenience bundle used by the CLI: a registry plus seeded providers."""

    registry: SimProviderRegistry = field(default_factory=SimProviderRegistry)

    async def seed_provider(
        self,
        name: str,
        provider_type: str,
        config: Optional[Dict[str, Any]] = None,
        *,
        records: int = 0,
        start: bool = True,
    ) -> SimProvider:
        configuration = ProviderConfiguration(
            id=f"{provider_type}-{name}",
            name=name,
            type=provider_type,
            category=provider_category(provider_type),
            config=dict(config or {}),
        )
        await self.registry.register_provider(name, provider_type, configuration)
        if start:
            await self.registry.start_provider(name)
        provider = self.registry._require(name)
        provider.records.extend({"id": idx} for idx in range(records))
        return provider
