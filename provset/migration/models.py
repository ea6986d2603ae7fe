from __future__ import annotations

from typing import Any, Callable, ClassVar, List, Literal, Optional

from pydantic import BaseModel, Field

from provset.setup.models import RunProgress, SetupStep

RiskLevel = Literal["low", "medium", "high"]


class ProviderRef(BaseModel):
    name: str
    type: str


class MigrationCompatibility(BaseModel):
    schema_compatible: bool = True
    data_compatible: bool = True
    feature_compatible: bool = True
    warnings: List[str] = Field(default_factory=list)


class MigrationPlan(BaseModel):
    migration_id: str
    source_provider: ProviderRef
    target_provider: ProviderRef
    steps: List[SetupStep] = Field(default_factory=list)
    estimated_total_time: float = 0.0
    data_size: int = 0
    compatibility: MigrationCompatibility = Field(default_factory=MigrationCompatibility)
    backup_required: bool = False
    risk_level: RiskLevel = "low"


class MigrationProgress(RunProgress):
    id_field: ClassVar[str] = "migration_id"

    migration_id: str
    plan: MigrationPlan
    data_transferred: int = 0
    backup_id: Optional[str] = None


class MigrationOptions(BaseModel):
    validate_only: bool = False
    create_backup: bool = True
    preserve_source: bool = False
    continue_on_warnings: bool = False
    notification_callback: Optional[Callable[[Any], None]] = Field(
        default=None, exclude=True
    )
