from __future__ import annotations

import logging
from collections.abc import Generator

import redis
from fastapi import Request, WebSocket

from tracker.infra.redis_client import create_redis
from tracker.session_view import SessionViewRegistry
from tracker.websocket_hub import SessionWebSocketHub

logger = logging.getLogger(__name__)


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        try:
            client.close()
        except redis.RedisError as e:
            logger.debug("ignoring error while closing redis client: %s", e)


def get_views(request: Request) -> SessionViewRegistry:
    return request.app.state.session_views


def get_hub(request: Request) -> SessionWebSocketHub:
    return request.app.state.ws_hub


def get_ws_hub(websocket: WebSocket) -> SessionWebSocketHub:
    return websocket.app.state.ws_hub
