from __future__ import annotations

from dataclasses import dataclass

from tracker.api.models import CombatSession

DEFAULT_MAX_DEPTH = 50


@dataclass(frozen=True, slots=True)
class HistoryCounts:
    undo_count: int
    redo_count: int


class HistoryManager:
    """Linear undo/redo history of session snapshots.

    Contract:
      - the top of `past` is the snapshot the owning view currently shows;
        `push_state` is called with every session the view keeps.
      - `push_state` clears `future`: a new edit discards the undone branch.
      - `undo`/`redo` move exactly one snapshot between the stacks and return
        the snapshot that is current afterwards, or None when the stack they
        read from is empty (nothing moves in that case).

    Snapshots are immutable `CombatSession` values, so they are stored and
    handed back without copying.

    One instance belongs to one session view; never share it across sessions.
    """

    def __init__(self, *, max_depth: int | None = DEFAULT_MAX_DEPTH) -> None:
        if max_depth is not None and max_depth < 1:
            raise ValueError("max_depth must be >= 1 (or None for unbounded)")
        self._max_depth = max_depth
        self._past: list[CombatSession] = []
        self._future: list[CombatSession] = []

    @property
    def max_depth(self) -> int | None:
        return self._max_depth

    def push_state(self, session: CombatSession) -> None:
        self._past.append(session)
        if self._max_depth is not None and len(self._past) > self._max_depth:
            del self._past[: len(self._past) - self._max_depth]
        self._future.clear()

    def undo(self) -> CombatSession | None:
        if not self._past:
            return None
        popped = self._past.pop()
        self._future.append(popped)
        # With nothing older left, the oldest snapshot stays current.
        return self._past[-1] if self._past else popped

    def redo(self) -> CombatSession | None:
        if not self._future:
            return None
        restored = self._future.pop()
        self._past.append(restored)
        return restored

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def get_undo_count(self) -> int:
        return len(self._past)

    def get_redo_count(self) -> int:
        return len(self._future)

    def get_history(self) -> HistoryCounts:
        return HistoryCounts(undo_count=len(self._past), redo_count=len(self._future))
