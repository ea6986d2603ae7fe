from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

from .models import (
    DetailedHealth,
    HealthCheck,
    ProviderConfiguration,
    ProviderSummary,
    StepResult,
    TestResult,
    ValidationResult,
    WizardStep,
)


class SetupAutomation(Protocol):
    """Optional provider capability for schema and data bring-up."""

    def can_auto_setup(self) -> bool: ...

    def get_setup_steps(self) -> List[str]: ...

    async def create_schema(self) -> None: ...

    async def migrate_schema(self, from_version: str, to_version: str) -> None: ...

    async def validate_configuration(self, config: Mapping[str, Any]) -> bool: ...

    async def export_data(self) -> bytes: ...

    async def import_data(self, data: bytes) -> None: ...


class WizardIntegration(Protocol):
    """Optional provider capability backing the setup wizard UI."""

    def get_wizard_steps(self) -> List[WizardStep]: ...

    async def validate_step(
        self, step_id: str, data: Mapping[str, Any]
    ) -> ValidationResult: ...

    async def execute_step(self, step_id: str, data: Mapping[str, Any]) -> StepResult: ...

    async def test_connection(self, config: Mapping[str, Any]) -> TestResult: ...

    async def test_features(self, features: List[str]) -> Dict[str, TestResult]: ...


class ProviderHandle(Protocol):
    """Live provider instance as returned by ``ProviderRegistry.get_provider``.

    ``get_setup_automation``, ``get_wizard_integration`` and ``get_metrics``
    are optional; callers probe for them with ``getattr``.
    """

    def get_capabilities(self) -> List[str]: ...

    async def get_detailed_health(self) -> DetailedHealth: ...

    async def run_diagnostics(self) -> Dict[str, TestResult]: ...


class ProviderRegistry(Protocol):
    """Registry contract consumed by the setup, migration and validation managers."""

    def list_factories(self) -> List[str]: ...

    def has_provider(self, name: str) -> bool: ...

    def get_provider(self, name: str) -> Optional[ProviderHandle]: ...

    def get_provider_info(self, name: str) -> Optional[ProviderConfiguration]: ...

    def list_providers(self) -> List[ProviderSummary]: ...

    def get_provider_wizard_steps(self, provider_type: str) -> List[WizardStep]: ...

    async def validate_wizard_step(
        self, provider_type: str, step_id: str, step_data: Mapping[str, Any]
    ) -> ValidationResult: ...

    async def register_provider(
        self, name: str, provider_type: str, config: ProviderConfiguration
    ) -> None: ...

    async def unregister_provider(self, name: str) -> None: ...

    async def start_provider(self, name: str) -> None: ...

    async def stop_provider(self, name: str) -> None: ...

    async def check_provider_health(self, name: str) -> HealthCheck: ...

    async def run_diagnostics(self, name: str) -> Dict[str, TestResult]: ...

    async def backup_provider(self, name: str) -> str: ...

    async def restore_provider(self, name: str, backup_id: str) -> None: ...

    async def update_provider_config(self, name: str, changes: Mapping[str, Any]) -> None: ...


class ConnectivityProbe(Protocol):
    """Reachability check used by the test-connectivity setup step."""

    async def probe(self, endpoint: str, *, timeout: float) -> TestResult: ...


def find_factory(registry: ProviderRegistry, provider_type: str) -> Optional[str]:
    for factory in registry.list_factories():
        if provider_type in factory:
            return factory
    return None
