from __future__ import annotations

import logging
from typing import List

import pytest

from provset.events import EventBus, PipelineEvent
from provset.store import RunStore


def test_store_moves_runs_into_bounded_history() -> None:
    store: RunStore[str] = RunStore(history_limit=2)
    for run_id in ("a", "b", "c"):
        store.start(run_id, run_id.upper())

    assert store.active() == ["A", "B", "C"]
    assert store.is_active("b")
    assert store.finalize("a") is True
    assert store.finalize("a") is False
    assert store.finalize("b") is True
    assert store.finalize("c") is True

    assert store.history() == ["C", "B"]
    assert store.active() == []
    assert store.get_active("c") is None


def test_store_history_is_a_copy() -> None:
    store: RunStore[int] = RunStore()
    store.record(1)
    store.history().clear()
    assert store.history() == [1]


def test_store_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        RunStore(history_limit=0)


def test_event_bus_dispatch_in_subscription_order() -> None:
    bus = EventBus()
    seen: List[str] = []

    def first(payload: str) -> None:
        seen.append(f"first:{payload}")

    bus.subscribe(PipelineEvent.SETUP_STARTED, first)
    bus.subscribe("setup_started", lambda payload: seen.append(f"second:{payload}"))
    bus.emit("setup_started", "run-1")

    assert seen == ["first:run-1", "second:run-1"]
    assert bus.listener_count(PipelineEvent.SETUP_STARTED) == 2
    assert bus.unsubscribe("setup_started", first) is True
    assert bus.listener_count("setup_started") == 1
    bus.emit(PipelineEvent.SETUP_COMPLETED, "run-1")
    assert len(seen) == 2


def test_event_bus_contains_listener_errors(caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus()
    seen: List[str] = []

    def broken(payload: str) -> None:
        raise RuntimeError("observer bug")

    bus.subscribe("validation_completed", broken)
    bus.subscribe("validation_completed", seen.append)

    with caplog.at_level(logging.ERROR, logger="provset.events"):
        bus.emit("validation_completed", "report-1")

    assert seen == ["report-1"]
    assert "listener for validation_completed raised" in caplog.text


def test_unknown_event_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        EventBus().subscribe("setup_exploded", lambda: None)
