from __future__ import annotations

import os

import pytest
import redis

from tracker.api.models import ParticipantCreate
from tracker.infra.redis_client import create_redis
from tracker.session_store import RedisSessionGateway, new_session
from tracker.session_view import CombatSessionView


def _redis_ready() -> redis.Redis | None:
    if os.environ.get("TRACKER_REDIS_INTEGRATION") != "1":
        return None
    client = create_redis()
    try:
        client.ping()
    except redis.RedisError:
        return None
    return client


@pytest.mark.asyncio
async def test_live_redis_round_trip_env_gated() -> None:
    """Integration test against a real Redis (REDIS_URL / TRACKER_REDIS_URL).

    Opt in with TRACKER_REDIS_INTEGRATION=1.
    """

    r = _redis_ready()
    if r is None:
        pytest.skip("Set TRACKER_REDIS_INTEGRATION=1 with a reachable Redis to run")

    gateway = RedisSessionGateway(r=r)
    saved = await gateway.save_session(
        new_session(
            participants=[
                ParticipantCreate(name="Goblin", initiative_value=14, max_hp=7),
                ParticipantCreate(name="Barbarian", initiative_value=10, max_hp=60),
            ]
        )
    )
    assert saved.id is not None

    try:
        view = CombatSessionView()
        await view.load(gateway=gateway, session_id=saved.id)
        await view.advance_turn(gateway=gateway)
        await view.advance_turn(gateway=gateway)

        reloaded = await gateway.load_session(saved.id)
        assert (reloaded.current_round_number, reloaded.current_turn_index) == (2, 0)
    finally:
        await gateway.delete_session(saved.id)
        r.close()
