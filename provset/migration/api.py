from __future__ import annotations

from typing import List, Optional, Protocol

from provset.config import PipelineSettings
from provset.events import EventBus
from provset.registry.api import ProviderRegistry
from provset.registry.models import ProviderConfiguration, ValidationResult

from .manager import MigrationManager
from .models import MigrationOptions, MigrationPlan, MigrationProgress


class MigrationManagerAPI(Protocol):
    async def plan_migration(
        self,
        source_name: str,
        target_name: str,
        target_config: Optional[ProviderConfiguration] = None,
    ) -> MigrationPlan: ...

    async def execute_migration(
        self,
        plan: MigrationPlan,
        target_config: Optional[ProviderConfiguration] = None,
        options: Optional[MigrationOptions] = None,
    ) -> MigrationProgress: ...

    async def validate_migration(
        self,
        source_name: str,
        target_name: str,
        target_config: Optional[ProviderConfiguration] = None,
    ) -> ValidationResult: ...

    async def cancel_migration(self, migration_id: str) -> bool: ...

    def get_migration_progress(self, migration_id: str) -> Optional[MigrationProgress]: ...

    def get_active_migrations(self) -> List[MigrationProgress]: ...

    def get_migration_history(self) -> List[MigrationProgress]: ...


def create_migration_manager(
    registry: ProviderRegistry,
    *,
    settings: Optional[PipelineSettings] = None,
    events: Optional[EventBus] = None,
) -> MigrationManagerAPI:
    return MigrationManager(registry, settings=settings, events=events)
