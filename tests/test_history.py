from __future__ import annotations

import pytest

from tracker.api.models import CombatSession
from tracker.history import HistoryManager


def _s(round_number: int) -> CombatSession:
    return CombatSession(id="s1", current_round_number=round_number)


def test_undo_then_redo_round_trip_returns_same_objects() -> None:
    manager = HistoryManager()
    a, b = _s(1), _s(2)

    manager.push_state(a)
    manager.push_state(b)

    assert manager.undo() is a
    assert manager.get_undo_count() == 1
    assert manager.get_redo_count() == 1

    assert manager.redo() is b
    assert manager.get_undo_count() == 2
    assert manager.get_redo_count() == 0


def test_undo_on_empty_history_returns_none_and_keeps_future() -> None:
    manager = HistoryManager()
    assert manager.undo() is None
    assert manager.get_redo_count() == 0

    manager.push_state(_s(1))
    manager.push_state(_s(2))
    manager.undo()
    manager.undo()
    assert manager.get_undo_count() == 0
    assert manager.get_redo_count() == 2

    assert manager.undo() is None
    assert manager.get_redo_count() == 2


def test_redo_on_empty_future_returns_none() -> None:
    manager = HistoryManager()
    manager.push_state(_s(1))
    assert manager.redo() is None
    assert manager.get_undo_count() == 1


def test_single_snapshot_undo_keeps_it_current() -> None:
    manager = HistoryManager()
    only = _s(1)
    manager.push_state(only)

    assert manager.undo() is only
    assert manager.undo() is None
    assert manager.redo() is only
    assert manager.redo() is None


def test_push_clears_future() -> None:
    manager = HistoryManager()
    manager.push_state(_s(1))
    manager.push_state(_s(2))
    manager.undo()
    assert manager.get_redo_count() == 1

    manager.push_state(_s(5))
    assert manager.get_redo_count() == 0
    assert manager.redo() is None


def test_multiple_cycles_move_one_snapshot_per_call() -> None:
    manager = HistoryManager()
    s1, s2, s3 = _s(1), _s(2), _s(3)
    for s in (s1, s2, s3):
        manager.push_state(s)

    assert manager.undo() is s2
    assert manager.undo() is s1
    assert manager.get_undo_count() == 1

    assert manager.redo() is s2
    counts = manager.get_history()
    assert (counts.undo_count, counts.redo_count) == (2, 1)


def test_max_depth_discards_oldest() -> None:
    manager = HistoryManager(max_depth=50)
    snapshots = [_s(i + 1) for i in range(60)]
    for s in snapshots:
        manager.push_state(s)

    assert manager.get_undo_count() == 50

    # Drain: the oldest retained snapshot is the 11th pushed.
    last = None
    while (undone := manager.undo()) is not None:
        last = undone
    assert last is snapshots[10]


def test_unbounded_history_and_invalid_depth() -> None:
    manager = HistoryManager(max_depth=None)
    for i in range(120):
        manager.push_state(_s(i + 1))
    assert manager.get_undo_count() == 120

    with pytest.raises(ValueError):
        HistoryManager(max_depth=0)


def test_clear_empties_both_stacks() -> None:
    manager = HistoryManager()
    manager.push_state(_s(1))
    manager.push_state(_s(2))
    manager.undo()

    manager.clear()

    assert manager.get_undo_count() == 0
    assert manager.get_redo_count() == 0


def test_histories_are_independent_per_instance() -> None:
    first, second = HistoryManager(), HistoryManager()
    first.push_state(_s(1))
    assert second.get_undo_count() == 0
