from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

import redis
from pydantic import ValidationError

from tracker.api.models import CombatSession, Participant, ParticipantCreate
from tracker.turn_processing.initiative import sort_participants_by_initiative

logger = logging.getLogger(__name__)

SESSIONS_SET_KEY = "combat:sessions"
SESSION_KEY_PREFIX = "combat:session:"  # + {session_id}


class SessionLoadError(Exception):
    """The session could not be loaded (store unavailable or invalid payload)."""


class SessionNotFoundError(SessionLoadError, LookupError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionSaveError(Exception):
    """The store rejected a save. The caller keeps its in-memory session and may retry."""


class SessionGateway(Protocol):
    """Load/save boundary used by the session view.

    Implementations do not retry; failures surface as the errors above.
    """

    async def load_session(self, session_id: str) -> CombatSession: ...

    async def save_session(self, session: CombatSession) -> CombatSession: ...


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def new_session(*, participants: Iterable[ParticipantCreate], encounter_id: str | None = None) -> CombatSession:
    """Build a fresh, unsaved session at round 1 / turn 0 in initiative order."""

    built = [
        Participant(
            id=p.id or str(uuid4()),
            name=p.name,
            type=p.type,
            initiative_value=p.initiative_value,
            current_hp=p.max_hp if p.current_hp is None else p.current_hp,
            max_hp=p.max_hp,
            temporary_hp=p.temporary_hp,
            ac_value=p.ac_value,
        )
        for p in participants
    ]

    ids = [p.id for p in built]
    if len(ids) != len(set(ids)):
        raise ValueError("Participant ids must be unique")

    now = _now()
    return CombatSession(
        encounter_id=encounter_id,
        participants=sort_participants_by_initiative(built),
        current_round_number=1,
        current_turn_index=0,
        created_at=now,
        updated_at=now,
    )


class RedisSessionGateway:
    """Stores each session as JSON under `combat:session:{id}`.

    redis-py is synchronous; the async methods exist to honour the gateway contract.
    """

    def __init__(self, *, r: redis.Redis) -> None:
        self._r = r

    async def load_session(self, session_id: str) -> CombatSession:
        try:
            raw = self._r.get(_session_key(session_id))
        except redis.RedisError as e:
            logger.warning("load failed for session %s: %s", session_id, e)
            raise SessionLoadError(f"Session store unavailable: {e}") from e

        if not raw:
            raise SessionNotFoundError(session_id)

        try:
            return CombatSession.model_validate_json(raw)
        except ValidationError as e:
            raise SessionLoadError(f"Failed to load session {session_id}: invalid data") from e

    async def save_session(self, session: CombatSession) -> CombatSession:
        sid = session.id
        if sid is None:
            sid = str(uuid4())
            session = session.model_copy(update={"id": sid})

        try:
            self._r.set(_session_key(sid), session.model_dump_json(by_alias=True))
            self._r.sadd(SESSIONS_SET_KEY, sid)
        except redis.RedisError as e:
            logger.warning("save failed for session %s: %s", sid, e)
            raise SessionSaveError(f"Failed to save session {sid}: {e}") from e

        return session

    async def delete_session(self, session_id: str) -> bool:
        try:
            removed = self._r.delete(_session_key(session_id))
            self._r.srem(SESSIONS_SET_KEY, session_id)
        except redis.RedisError as e:
            raise SessionSaveError(f"Failed to delete session {session_id}: {e}") from e
        return bool(removed)

    async def list_sessions(self) -> list[CombatSession]:
        try:
            ids = sorted(self._r.smembers(SESSIONS_SET_KEY))
        except redis.RedisError as e:
            raise SessionLoadError(f"Session store unavailable: {e}") from e

        out: list[CombatSession] = []
        for sid in ids:
            try:
                out.append(await self.load_session(sid))
            except SessionNotFoundError:
                continue
        out.sort(key=lambda s: s.created_at, reverse=True)
        return out
