from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, cast
from uuid import uuid4

import redis

from tracker.api.models import CombatLogAction, CombatLogEntry, CombatSession

DEFAULT_LOG_LIMIT = 20
MAX_LOG_LIMIT = 100


@dataclass(frozen=True, slots=True)
class CombatLogStream:
    session_id: str

    @property
    def key(self) -> str:
        return f"combat:log:{self.session_id}"


def make_entry(
    *,
    session: CombatSession,
    action_type: CombatLogAction,
    description: str,
    actor: str | None = None,
    target: str | None = None,
    details: dict[str, Any] | None = None,
) -> CombatLogEntry:
    """Stamp an entry with the round/turn the session is at after the action."""

    return CombatLogEntry(
        id=str(uuid4()),
        timestamp=datetime.now(tz=UTC),
        round_number=session.current_round_number,
        turn_index=session.current_turn_index,
        action_type=action_type,
        actor=actor,
        target=target,
        details=details or {},
        description=description,
    )


def append_log_entries(*, r: redis.Redis, session_id: str, entries: list[CombatLogEntry]) -> list[str]:
    """Append entries to the session's log stream; returns stream ids."""

    key = CombatLogStream(session_id=session_id).key
    ids: list[str] = []
    for entry in entries:
        stream_id = r.xadd(key, {"type": entry.action_type.value, "entry": entry.model_dump_json(by_alias=True)})
        ids.append(cast(str, stream_id))
    return ids


def read_log(
    *,
    r: redis.Redis,
    session_id: str,
    limit: int = DEFAULT_LOG_LIMIT,
    offset: int = 0,
) -> tuple[list[CombatLogEntry], int]:
    """Return (newest-first page of entries, total entry count)."""

    if limit < 1 or limit > MAX_LOG_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_LOG_LIMIT}")
    if offset < 0:
        raise ValueError("offset must be >= 0")

    key = CombatLogStream(session_id=session_id).key
    total = int(r.xlen(key))
    raw = r.xrevrange(key, max="+", min="-", count=offset + limit)
    page = raw[offset : offset + limit]
    return [CombatLogEntry.model_validate_json(fields["entry"]) for _, fields in page], total


def delete_log(*, r: redis.Redis, session_id: str) -> None:
    r.delete(CombatLogStream(session_id=session_id).key)
