from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, List, Literal, Optional

from pydantic import BaseModel, Field

from provset.registry.models import StepResult

StepStatus = Literal["pending", "in_progress", "completed", "failed", "skipped"]
RunStatus = Literal[
    "initializing", "planning", "in_progress", "completed", "failed", "cancelled"
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunError(BaseModel):
    message: str
    step_id: Optional[str] = None


class RollbackAction(BaseModel):
    action: Literal["stop", "unregister", "restore"]
    target: str
    outcome: Literal["succeeded", "failed", "skipped"]
    message: str = ""


class SetupStep(BaseModel):
    id: str
    name: str
    description: str = ""
    required: bool = True
    dependencies: List[str] = Field(default_factory=list)
    estimated_time: float = 0.0
    status: StepStatus = "pending"
    result: Optional[StepResult] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None


class RunProgress(BaseModel):
    """State shared by setup and migration runs, mutated step by step."""

    steps: List[SetupStep] = Field(default_factory=list)
    total_steps: int = 0
    completed_steps: int = 0
    current_step: Optional[str] = None
    status: RunStatus = "initializing"
    started_at: datetime = Field(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    estimated_total_time: float = 0.0
    actual_total_time: Optional[float] = None
    errors: List[RunError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    rollback: List[RollbackAction] = Field(default_factory=list)

    # name of the subclass field that identifies the run
    id_field: ClassVar[str]

    @property
    def run_id(self) -> str:
        return getattr(self, self.id_field)

    def find_step(self, step_id: str) -> Optional[SetupStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def add_error(self, message: str, step_id: Optional[str] = None) -> None:
        self.errors.append(RunError(message=message, step_id=step_id))

    def mark_finished(self) -> None:
        if self.ended_at is None:
            self.ended_at = utcnow()
        self.actual_total_time = (self.ended_at - self.started_at).total_seconds()

    def error_summary(self) -> str:
        return ", ".join(error.message for error in self.errors)


class SetupProgress(RunProgress):
    id_field: ClassVar[str] = "setup_id"

    setup_id: str
    provider_type: str
    provider_name: str


class SetupOptions(BaseModel):
    validate_only: bool = False
    skip_optional_steps: bool = False
    continue_on_warnings: bool = False
    backup: bool = False
    rollback_on_failure: bool = False
    notification_callback: Optional[Callable[[Any], None]] = Field(
        default=None, exclude=True
    )
