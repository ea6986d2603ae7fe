from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from provset.migration.models import MigrationPlan, MigrationProgress
from provset.registry.models import ValidationResult
from provset.setup.models import SetupProgress
from provset.validation.models import ValidationReport


class SetupWorkflowResult(BaseModel):
    validation: Optional[ValidationResult] = None
    setup: Optional[SetupProgress] = None
    final_validation: Optional[ValidationReport] = None


class MigrationWorkflowResult(BaseModel):
    validation: Optional[ValidationResult] = None
    plan: Optional[MigrationPlan] = None
    migration: Optional[MigrationProgress] = None
    final_validation: Optional[ValidationReport] = None


class SystemStatus(BaseModel):
    active_setups: List[SetupProgress] = Field(default_factory=list)
    active_migrations: List[MigrationProgress] = Field(default_factory=list)
    setup_history: List[SetupProgress] = Field(default_factory=list)
    migration_history: List[MigrationProgress] = Field(default_factory=list)
    validation_history: List[ValidationReport] = Field(default_factory=list)
    validation_rules: int = 0
