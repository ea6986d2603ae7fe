from .api import ProviderSetupSystem, create_system
from .models import MigrationWorkflowResult, SetupWorkflowResult, SystemStatus

__all__ = [
    "MigrationWorkflowResult",
    "ProviderSetupSystem",
    "SetupWorkflowResult",
    "SystemStatus",
    "create_system",
]
