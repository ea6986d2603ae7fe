from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from provset.errors import ConfigurationError, ProviderNotFoundError, StepExecutionError
from provset.registry.api import ProviderHandle, find_factory
from provset.registry.models import ProviderConfiguration, StepResult
from provset.registry.probe import TcpConnectivityProbe, resolve_endpoint

from .models import SetupOptions, SetupStep
from .runner import StepContext, StepHandler

logger = logging.getLogger(__name__)

SETUP_AUTOMATION_TIMES: Dict[str, float] = {
    "postgresql": 60,
    "supabase-db": 90,
    "pocketbase-all-in-one": 120,
    "local-auth": 30,
}
DEFAULT_AUTOMATION_TIME = 60.0


@dataclass(frozen=True)
class StepDefinition:
    id: str
    name: str
    description: str
    handler: StepHandler
    required: bool = True
    estimated_time: float = 0.0


def _configuration(context: StepContext) -> ProviderConfiguration:
    if context.config is None:
        raise ConfigurationError("No provider configuration attached to this run")
    return context.config


def _provider(context: StepContext, name: str) -> ProviderHandle:
    provider = context.registry.get_provider(name)
    if provider is None:
        raise ProviderNotFoundError(name)
    return provider


def _optional_capability(provider: Any, getter_name: str) -> Any:
    getter = getattr(provider, getter_name, None)
    if not callable(getter):
        return None
    return getter()


def backup_id_for(steps: List[SetupStep]) -> Optional[str]:
    """Backup id produced by a completed create-backup step, if any."""
    for step in steps:
        if step.id == "create-backup" and step.status == "completed" and step.result:
            backup_id = step.result.data.get("backup_id")
            if backup_id:
                return str(backup_id)
    return None


async def validate_configuration(context: StepContext) -> StepResult:
    config = _configuration(context)
    factory = find_factory(context.registry, config.type)
    if factory is None:
        raise ConfigurationError(
            f"No factory found for provider type: {config.type}",
            code="config.no_factory",
        )
    return StepResult(data={"factory": factory})


async def check_connectivity(context: StepContext) -> StepResult:
    config = _configuration(context)
    endpoint = resolve_endpoint(config.config)
    if endpoint is None:
        return StepResult(data={"endpoint": None, "latency": None})
    probe = context.probe or TcpConnectivityProbe()
    outcome = await probe.probe(endpoint, timeout=context.settings.connect_timeout)
    if not outcome.success:
        return StepResult(
            success=False,
            data={"endpoint": endpoint},
            error=outcome.message or f"cannot reach {endpoint}",
        )
    return StepResult(data={"endpoint": endpoint, "latency": outcome.latency})


async def create_backup(context: StepContext) -> StepResult:
    name = _configuration(context).name
    if not context.registry.has_provider(name):
        return StepResult(data={"backup_id": None})
    backup_id = await context.registry.backup_provider(name)
    logger.info("backed up existing provider %s as %s", name, backup_id)
    return StepResult(data={"backup_id": backup_id})


async def register_provider(context: StepContext) -> StepResult:
    config = _configuration(context)
    registry = context.registry
    replaced = False
    if registry.has_provider(config.name):
        # Only a backed-up provider may be replaced in place.
        if backup_id_for(context.progress.steps) is None:
            raise ConfigurationError(
                f"Provider '{config.name}' is already registered",
                code="registry.duplicate",
            )
        await registry.stop_provider(config.name)
        await registry.unregister_provider(config.name)
        replaced = True
    await registry.register_provider(config.name, config.type, config.model_copy(deep=True))
    return StepResult(data={"registered": True, "replaced": replaced})


async def run_setup_automation(context: StepContext) -> StepResult:
    config = _configuration(context)
    provider = _provider(context, config.name)
    automation = _optional_capability(provider, "get_setup_automation")
    if automation is None:
        return StepResult(data={"steps": [], "executed": []})

    steps = list(automation.get_setup_steps())
    executed: List[str] = []
    for name in steps:
        if name == "create-schema":
            await automation.create_schema()
        elif name == "validate-config":
            if not await automation.validate_configuration(config.config):
                raise StepExecutionError(
                    "setup-automation", "Provider rejected its configuration"
                )
        elif name == "run-migrations":
            await automation.migrate_schema("0", config.version)
        else:
            logger.info("ignoring unknown automation step %s for %s", name, config.name)
            continue
        executed.append(name)
    return StepResult(data={"steps": steps, "executed": executed})


async def start_provider(context: StepContext) -> StepResult:
    name = _configuration(context).name
    await context.registry.start_provider(name)
    health = await context.registry.check_provider_health(name)
    return StepResult(data={"started": True, "health": health.model_dump()})


async def run_diagnostics(context: StepContext) -> StepResult:
    name = _configuration(context).name
    results = await context.registry.run_diagnostics(name)
    failed = sorted(test for test, outcome in results.items() if not outcome.success)
    return StepResult(
        success=not failed,
        data={"diagnostics": {test: outcome.model_dump() for test, outcome in results.items()}},
        error=f"Diagnostics failed: {', '.join(failed)}" if failed else None,
    )


async def verify_features(context: StepContext) -> StepResult:
    name = _configuration(context).name
    provider = _provider(context, name)
    capabilities = list(provider.get_capabilities())
    verified = {capability: True for capability in capabilities}

    wizard = _optional_capability(provider, "get_wizard_integration")
    if wizard is not None and capabilities:
        probes = await wizard.test_features(capabilities)
        for capability in capabilities:
            outcome = probes.get(capability)
            if outcome is not None:
                verified[capability] = outcome.success

    broken = [capability for capability, ok in verified.items() if not ok]
    return StepResult(
        success=not broken,
        data={"features": verified},
        error=f"Feature verification failed: {', '.join(broken)}" if broken else None,
    )


SETUP_STEP_DEFINITIONS: List[StepDefinition] = [
    StepDefinition(
        "validate-configuration",
        "Validate Configuration",
        "Check that a factory exists for the provider type",
        validate_configuration,
        estimated_time=10,
    ),
    StepDefinition(
        "test-connectivity",
        "Test Connectivity",
        "Reach the provider endpoint",
        check_connectivity,
        estimated_time=15,
    ),
    StepDefinition(
        "create-backup",
        "Create Backup",
        "Snapshot an existing provider with the same name",
        create_backup,
        required=False,
        estimated_time=30,
    ),
    StepDefinition(
        "register-provider",
        "Register Provider",
        "Register the provider with the registry",
        register_provider,
        estimated_time=5,
    ),
    StepDefinition(
        "setup-automation",
        "Setup Automation",
        "Run the provider's schema and configuration automation",
        run_setup_automation,
        estimated_time=DEFAULT_AUTOMATION_TIME,
    ),
    StepDefinition(
        "start-provider",
        "Start Provider",
        "Start the provider and read its health",
        start_provider,
        estimated_time=10,
    ),
    StepDefinition(
        "run-diagnostics",
        "Run Diagnostics",
        "Run the provider's diagnostic tests",
        run_diagnostics,
        estimated_time=20,
    ),
    StepDefinition(
        "verify-features",
        "Verify Features",
        "Probe each declared capability",
        verify_features,
        required=False,
        estimated_time=15,
    ),
]

SETUP_STEP_HANDLERS: Mapping[str, StepHandler] = {
    definition.id: definition.handler for definition in SETUP_STEP_DEFINITIONS
}


def automation_time(provider_type: str) -> float:
    return float(SETUP_AUTOMATION_TIMES.get(provider_type, DEFAULT_AUTOMATION_TIME))


def build_setup_steps(provider_type: str, options: SetupOptions) -> List[SetupStep]:
    """Ordered setup steps for ``provider_type``.

    Each step depends on the step before it, computed after optional steps
    are filtered out, so the list is always a valid topological order.
    """
    steps: List[SetupStep] = []
    for definition in SETUP_STEP_DEFINITIONS:
        if definition.id == "create-backup" and not options.backup:
            continue
        if options.skip_optional_steps and not definition.required:
            continue
        estimate = (
            automation_time(provider_type)
            if definition.id == "setup-automation"
            else float(definition.estimated_time)
        )
        steps.append(
            SetupStep(
                id=definition.id,
                name=definition.name,
                description=definition.description,
                required=definition.required,
                dependencies=[steps[-1].id] if steps else [],
                estimated_time=estimate,
            )
        )
    return steps
