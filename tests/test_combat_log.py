from __future__ import annotations

import fakeredis
import pytest

from tracker.api.models import CombatLogAction, CombatSession
from tracker.combat_log import CombatLogStream, append_log_entries, delete_log, make_entry, read_log


def _entries(session: CombatSession, n: int):  # type: ignore[no-untyped-def]
    return [
        make_entry(session=session, action_type=CombatLogAction.turn_advanced, actor=f"actor-{i}", description=f"turn {i}")
        for i in range(n)
    ]


def test_append_and_read_newest_first_with_paging() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    session = CombatSession(id="s1", current_round_number=3)

    ids = append_log_entries(r=r, session_id="s1", entries=_entries(session, 5))
    assert len(ids) == 5

    page, total = read_log(r=r, session_id="s1", limit=2)
    assert total == 5
    assert [e.actor for e in page] == ["actor-4", "actor-3"]
    assert page[0].round_number == 3

    page2, _ = read_log(r=r, session_id="s1", limit=2, offset=4)
    assert [e.actor for e in page2] == ["actor-0"]


def test_stream_fields_carry_type_and_json() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    append_log_entries(r=r, session_id="s1", entries=_entries(CombatSession(id="s1"), 1))

    [(_, fields)] = r.xrange(CombatLogStream(session_id="s1").key)
    assert fields["type"] == "turn_advanced"
    assert '"actionType":"turn_advanced"' in fields["entry"]


@pytest.mark.parametrize(("limit", "offset"), [(0, 0), (101, 0), (10, -1)])
def test_read_log_rejects_bad_paging(limit: int, offset: int) -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    with pytest.raises(ValueError):
        read_log(r=r, session_id="s1", limit=limit, offset=offset)


def test_empty_and_deleted_logs() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    assert read_log(r=r, session_id="none") == ([], 0)

    append_log_entries(r=r, session_id="s1", entries=_entries(CombatSession(id="s1"), 2))
    delete_log(r=r, session_id="s1")
    assert read_log(r=r, session_id="s1") == ([], 0)
