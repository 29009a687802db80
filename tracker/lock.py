from __future__ import annotations

import os
from contextlib import contextmanager

import redis


class SessionBusyError(ValueError):
    """Another dispatch holds the lock for this session."""


def lock_ttl_ms_from_env() -> int:
    return int(os.environ.get("TRACKER_LOCK_TTL_MS", "5000"))


@contextmanager
def session_lock(*, r: redis.Redis, session_id: str, ttl_ms: int | None = None):
    """Best-effort per-session lock.

    Serialises dispatches for one session within a deployment. The TTL bounds
    how long a crashed holder can block the session. Release is a plain
    DELETE, so a holder that outlives its TTL can drop a successor's lock.
    """

    key = f"lock:session:{session_id}"
    acquired = r.set(key, "1", nx=True, px=ttl_ms or lock_ttl_ms_from_env())
    if not acquired:
        raise SessionBusyError("Session is busy")
    try:
        yield
    finally:
        r.delete(key)
