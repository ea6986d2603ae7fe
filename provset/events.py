from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[..., None]


class PipelineEvent(str, Enum):
    SETUP_STARTED = "setup_started"
    SETUP_CONFIGURED = "setup_configured"
    SETUP_COMPLETED = "setup_completed"
    SETUP_CANCELLED = "setup_cancelled"
    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"
    MIGRATION_STARTED = "migration_started"
    MIGRATION_COMPLETED = "migration_completed"
    MIGRATION_CANCELLED = "migration_cancelled"
    VALIDATION_STARTED = "validation_started"
    VALIDATION_COMPLETED = "validation_completed"


class EventBus:
    """Synchronous publish/subscribe channel shared by the pipeline managers.

    Listeners are called in subscription order. A listener that raises is
    logged and skipped so observers cannot break a run in flight.
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[PipelineEvent, List[Listener]] = defaultdict(list)

    def subscribe(self, event: PipelineEvent | str, listener: Listener) -> None:
        self._listeners[PipelineEvent(event)].append(listener)

    def unsubscribe(self, event: PipelineEvent | str, listener: Listener) -> bool:
        listeners = self._listeners.get(PipelineEvent(event), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, event: PipelineEvent | str, *payload: Any) -> None:
        key = PipelineEvent(event)
        for listener in list(self._listeners.get(key, [])):
            safe_call(listener, *payload, label=key.value)

    def listener_count(self, event: PipelineEvent | str) -> int:
        return len(self._listeners.get(PipelineEvent(event), []))


def safe_call(listener: Optional[Listener], *payload: Any, label: str = "callback") -> None:
    if listener is None:
        return
    try:
        listener(*payload)
    except Exception:  # noqa: BLE001
        logger.exception("listener for %s raised", label)
