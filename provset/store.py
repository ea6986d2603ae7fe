from __future__ import annotations

from typing import Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class RunStore(Generic[T]):
    """In-flight runs keyed by run id plus a bounded, newest-first history."""

    def __init__(self, history_limit: int = 100) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be positive")
        self.history_limit = history_limit
        self._active: Dict[str, T] = {}
        self._history: List[T] = []

    def start(self, run_id: str, run: T) -> None:
        self._active[run_id] = run

    def get_active(self, run_id: str) -> Optional[T]:
        return self._active.get(run_id)

    def is_active(self, run_id: str) -> bool:
        return run_id in self._active

    def active(self) -> List[T]:
        return list(self._active.values())

    def history(self) -> List[T]:
        return list(self._history)

    def finalize(self, run_id: str) -> bool:
        """Move a run from the active map to history.

        Returns False when the run was already finalized, so each run lands
        in history at most once.
        """
        run = self._active.pop(run_id, None)
        if run is None:
            return False
        self.record(run)
        return True

    def record(self, run: T) -> None:
        self._history.insert(0, run)
        if len(self._history) > self.history_limit:
            del self._history[self.history_limit :]
