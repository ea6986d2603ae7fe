from .api import MigrationManagerAPI, create_migration_manager
from .manager import MigrationManager
from .models import (
    MigrationCompatibility,
    MigrationOptions,
    MigrationPlan,
    MigrationProgress,
    ProviderRef,
)
from .planner import assess_risk, check_compatibility, provider_family
from .steps import MIGRATION_STEP_HANDLERS, build_migration_steps

__all__ = [
    "MIGRATION_STEP_HANDLERS",
    "MigrationCompatibility",
    "MigrationManager",
    "MigrationManagerAPI",
    "MigrationOptions",
    "MigrationPlan",
    "MigrationProgress",
    "ProviderRef",
    "assess_risk",
    "build_migration_steps",
    "check_compatibility",
    "create_migration_manager",
    "provider_family",
]
