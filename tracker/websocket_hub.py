from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SessionWebSocketHub:
    """Per-session change notifications for connected clients.

    Messages carry only the session id and an event type
    (`session_updated` or `session_deleted`); clients re-fetch the session
    over REST. A socket that fails a send is unsubscribed.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._subscribers.setdefault(session_id, set()).add(websocket)
            count = len(self._subscribers[session_id])
        logger.info("session %s: websocket subscribed (%d open)", session_id, count)

    async def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            remaining = self._unsubscribe(session_id, [websocket])
        logger.info("session %s: websocket closed (%d open)", session_id, remaining)

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    async def session_updated(self, session_id: str) -> None:
        await self._notify(session_id, "session_updated")

    async def session_deleted(self, session_id: str) -> None:
        """Tell subscribers the session is gone, then stop tracking them."""

        await self._notify(session_id, "session_deleted")
        async with self._lock:
            self._subscribers.pop(session_id, None)

    async def _notify(self, session_id: str, event: str) -> None:
        async with self._lock:
            targets = list(self._subscribers.get(session_id, ()))
        if not targets:
            return

        message = {"type": event, "session_id": session_id}
        failed: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.debug("session %s: dropping websocket after failed %s: %s", session_id, event, e)
                failed.append(ws)

        if failed:
            async with self._lock:
                self._unsubscribe(session_id, failed)

    def _unsubscribe(self, session_id: str, sockets: list[WebSocket]) -> int:
        subs = self._subscribers.get(session_id)
        if subs is None:
            return 0
        subs.difference_update(sockets)
        if not subs:
            del self._subscribers[session_id]
        return len(subs)
