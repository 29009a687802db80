from __future__ import annotations

import os

import redis

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def get_redis_url() -> str:
    # TRACKER_REDIS_URL wins so the tracker can share a host with other REDIS_URL users.
    return os.environ.get("TRACKER_REDIS_URL") or os.environ.get("REDIS_URL", DEFAULT_REDIS_URL)


def get_socket_timeout() -> float | None:
    raw = os.environ.get("TRACKER_REDIS_TIMEOUT_S")
    return float(raw) if raw else None


def create_redis(*, url: str | None = None) -> redis.Redis:
    # decode_responses=True => str session JSON and stream fields instead of bytes
    return redis.Redis.from_url(
        url or get_redis_url(),
        decode_responses=True,
        socket_timeout=get_socket_timeout(),
    )
