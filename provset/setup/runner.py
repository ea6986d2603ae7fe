from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Literal, Mapping, Optional

from provset.config import PipelineSettings
from provset.errors import StepExecutionError, UnknownStepError
from provset.events import EventBus, PipelineEvent, safe_call
from provset.registry.api import ConnectivityProbe, ProviderRegistry
from provset.registry.models import ProviderConfiguration, StepResult

from .models import RollbackAction, RunProgress, SetupStep, utcnow

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Everything a step handler may touch during one run."""

    registry: ProviderRegistry
    progress: RunProgress
    settings: PipelineSettings = field(default_factory=PipelineSettings)
    config: Optional[ProviderConfiguration] = None
    probe: Optional[ConnectivityProbe] = None
    extras: Dict[str, Any] = field(default_factory=dict)


StepHandler = Callable[[StepContext], Awaitable[StepResult]]


def unmet_dependencies(progress: RunProgress, step: SetupStep) -> list[str]:
    unmet = []
    for dep_id in step.dependencies:
        dep = progress.find_step(dep_id)
        if dep is None or dep.status != "completed":
            unmet.append(dep_id)
    return unmet


async def run_steps(
    progress: RunProgress,
    handlers: Mapping[str, StepHandler],
    context: StepContext,
    *,
    continue_on_warnings: bool = False,
    events: Optional[EventBus] = None,
    notify: Optional[Callable[[Any], None]] = None,
) -> None:
    """Execute ``progress.steps`` in list order.

    Steps whose dependencies did not complete are marked ``skipped`` without
    calling their handler. A failing required step (or optional step when
    ``continue_on_warnings`` is False) marks the run ``failed``, records the
    error once and raises ``StepExecutionError``.
    """
    for step in progress.steps:
        if progress.status == "cancelled":
            logger.info("run %s cancelled before step %s", progress.run_id, step.id)
            break

        unmet = unmet_dependencies(progress, step)
        if unmet:
            step.status = "skipped"
            logger.info("skipping step %s: unmet dependencies %s", step.id, ", ".join(unmet))
            continue

        handler = handlers.get(step.id)
        if handler is None:
            raise UnknownStepError(step.id)

        progress.current_step = step.id
        step.status = "in_progress"
        step.started_at = utcnow()
        _publish(events, PipelineEvent.STEP_STARTED, progress, step, notify)

        try:
            result = await handler(context)
            step.result = result
            if not result.success:
                raise StepExecutionError(
                    step.id, result.error or f"{step.name} reported failure"
                )
            step.status = "completed"
            progress.completed_steps += 1
            logger.info("step completed: %s", step.name)
        except Exception as exc:  # noqa: BLE001
            message = exc.message if isinstance(exc, StepExecutionError) else str(exc)
            message = message or exc.__class__.__name__
            step.status = "failed"
            step.error = message
            progress.add_error(message, step.id)
            logger.warning("step failed: %s: %s", step.name, message)

            if step.required or not continue_on_warnings:
                if progress.status != "cancelled":
                    progress.status = "failed"
                if isinstance(exc, StepExecutionError):
                    raise
                raise StepExecutionError(step.id, message) from exc
            progress.warnings.append(f"Optional step failed: {step.name}")
        finally:
            step.ended_at = utcnow()
            _publish(events, PipelineEvent.STEP_COMPLETED, progress, step, notify)


def _publish(
    events: Optional[EventBus],
    event: PipelineEvent,
    progress: RunProgress,
    step: SetupStep,
    notify: Optional[Callable[[Any], None]],
) -> None:
    if events is not None:
        events.emit(event, progress, step)
    safe_call(notify, progress, label=event.value)


async def attempt_rollback(
    action: Literal["stop", "unregister", "restore"],
    target: str,
    operation: Callable[[], Awaitable[Any]],
) -> RollbackAction:
    """Run one rollback action; failures are logged and reported, never raised."""
    try:
        await operation()
    except Exception as exc:  # noqa: BLE001
        logger.warning("rollback %s of %s failed: %s", action, target, exc)
        return RollbackAction(
            action=action, target=target, outcome="failed", message=str(exc)
        )
    logger.info("rollback %s of %s succeeded", action, target)
    return RollbackAction(action=action, target=target, outcome="succeeded")


def skipped_rollback(
    action: Literal["stop", "unregister", "restore"], target: str, reason: str
) -> RollbackAction:
    return RollbackAction(action=action, target=target, outcome="skipped", message=reason)
