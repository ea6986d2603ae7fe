from __future__ import annotations

from typing import List, Optional, Protocol

from provset.config import PipelineSettings
from provset.events import EventBus
from provset.registry.api import ConnectivityProbe, ProviderRegistry
from provset.registry.models import ValidationResult

from .manager import AutomatedSetupManager, WizardData
from .models import SetupOptions, SetupProgress


class SetupManagerAPI(Protocol):
    async def setup_provider(
        self,
        provider_type: str,
        wizard_data: Optional[WizardData] = None,
        options: Optional[SetupOptions] = None,
    ) -> SetupProgress: ...

    def get_setup_progress(self, setup_id: str) -> Optional[SetupProgress]: ...

    def get_active_setups(self) -> List[SetupProgress]: ...

    def get_setup_history(self) -> List[SetupProgress]: ...

    async def cancel_setup(self, setup_id: str) -> bool: ...

    async def validate_setup(
        self, provider_type: str, wizard_data: Optional[WizardData] = None
    ) -> ValidationResult: ...

    def get_estimated_setup_time(self, provider_type: str) -> float: ...


def create_setup_manager(
    registry: ProviderRegistry,
    *,
    settings: Optional[PipelineSettings] = None,
    events: Optional[EventBus] = None,
    probe: Optional[ConnectivityProbe] = None,
) -> SetupManagerAPI:
    return AutomatedSetupManager(registry, settings=settings, events=events, probe=probe)
