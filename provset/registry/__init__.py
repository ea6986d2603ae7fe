from .api import (
    ConnectivityProbe,
    ProviderHandle,
    ProviderRegistry,
    SetupAutomation,
    WizardIntegration,
    find_factory,
)
from .models import (
    DetailedHealth,
    HealthCheck,
    PerformanceSnapshot,
    ProviderCompatibility,
    ProviderConfiguration,
    ProviderSummary,
    StepResult,
    TestResult,
    ValidationResult,
    WizardField,
    WizardStep,
    provider_category,
)
from .probe import StaticConnectivityProbe, TcpConnectivityProbe, resolve_endpoint

__all__ = [
    "ConnectivityProbe",
    "DetailedHealth",
    "HealthCheck",
    "PerformanceSnapshot",
    "ProviderCompatibility",
    "ProviderConfiguration",
    "ProviderHandle",
    "ProviderRegistry",
    "ProviderSummary",
    "SetupAutomation",
    "StaticConnectivityProbe",
    "StepResult",
    "TcpConnectivityProbe",
    "TestResult",
    "ValidationResult",
    "WizardField",
    "WizardIntegration",
    "WizardStep",
    "find_factory",
    "provider_category",
    "resolve_endpoint",
]
