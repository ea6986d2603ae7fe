from .errors import (
    ConfigurationError,
    ProviderNotFoundError,
    ProvsetError,
    StepExecutionError,
    UnknownStepError,
    WorkflowError,
)
from .system.api import ProviderSetupSystem, create_system

__all__ = [
    "ConfigurationError",
    "ProviderNotFoundError",
    "ProviderSetupSystem",
    "ProvsetError",
    "StepExecutionError",
    "UnknownStepError",
    "WorkflowError",
    "create_system",
]
