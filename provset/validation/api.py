from __future__ import annotations

from typing import List, Optional, Protocol

from provset.config import PipelineSettings
from provset.events import EventBus
from provset.registry.api import ProviderRegistry

from .models import ValidationOptions, ValidationReport, ValidationRule
from .validator import ProviderValidator


class ValidatorAPI(Protocol):
    async def validate_provider(
        self, provider_name: str, options: Optional[ValidationOptions] = None
    ) -> ValidationReport: ...

    async def validate_all_providers(
        self, options: Optional[ValidationOptions] = None
    ) -> List[ValidationReport]: ...

    def get_validation_history(self) -> List[ValidationReport]: ...

    def get_validation_rules(self) -> List[ValidationRule]: ...

    def add_validation_rule(self, rule: ValidationRule) -> None: ...

    def remove_validation_rule(self, rule_id: str) -> bool: ...


def create_validator(
    registry: ProviderRegistry,
    *,
    settings: Optional[PipelineSettings] = None,
    events: Optional[EventBus] = None,
) -> ValidatorAPI:
    return ProviderValidator(registry, settings=settings, events=events)
