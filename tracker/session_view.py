from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime

from tracker.api.models import CombatSession
from tracker.history import DEFAULT_MAX_DEPTH, HistoryManager
from tracker.session_store import SessionGateway, SessionSaveError
from tracker.turn_processing.turns import advance_turn, rewind_turn

logger = logging.getLogger(__name__)

Transition = Callable[[CombatSession], CombatSession]


def history_max_depth_from_env() -> int | None:
    """`TRACKER_HISTORY_MAX_DEPTH`; 0 or a negative value means unbounded."""

    raw = os.environ.get("TRACKER_HISTORY_MAX_DEPTH")
    if not raw:
        return DEFAULT_MAX_DEPTH
    depth = int(raw)
    return depth if depth > 0 else None


class CombatSessionView:
    """Holds the session currently shown for one combat and its history.

    Every kept transition follows the same path: compute a new session with a
    pure function, make it current, push it onto the history, then persist it.
    A failed save is reported to the caller but nothing is rolled back;
    `pending_save` stays set until `retry_save` succeeds.
    """

    def __init__(self, *, history: HistoryManager | None = None) -> None:
        self.history = history or HistoryManager()
        self._session: CombatSession | None = None
        self.pending_save = False

    @property
    def session(self) -> CombatSession:
        if self._session is None:
            raise RuntimeError("No session loaded")
        return self._session

    @property
    def is_loaded(self) -> bool:
        return self._session is not None

    def reset(self, session: CombatSession) -> None:
        self.history.clear()
        self._session = session
        self.history.push_state(session)
        self.pending_save = False

    async def load(self, *, gateway: SessionGateway, session_id: str) -> CombatSession:
        # Load errors propagate before any state is touched.
        loaded = await gateway.load_session(session_id)
        self.reset(loaded)
        return loaded

    async def apply(self, *, gateway: SessionGateway, transition: Transition) -> CombatSession:
        before = self.session
        after = transition(before)
        if after is before:
            return before

        after = after.model_copy(update={"updated_at": datetime.now(tz=UTC)})
        self._session = after
        self.history.push_state(after)
        await self._persist(gateway=gateway, session=after)
        return after

    async def advance_turn(self, *, gateway: SessionGateway) -> CombatSession:
        return await self.apply(gateway=gateway, transition=advance_turn)

    async def rewind_turn(self, *, gateway: SessionGateway) -> CombatSession:
        return await self.apply(gateway=gateway, transition=rewind_turn)

    async def undo(self, *, gateway: SessionGateway) -> CombatSession | None:
        return await self._move(gateway=gateway, snapshot=self.history.undo())

    async def redo(self, *, gateway: SessionGateway) -> CombatSession | None:
        return await self._move(gateway=gateway, snapshot=self.history.redo())

    async def retry_save(self, *, gateway: SessionGateway) -> CombatSession:
        await self._persist(gateway=gateway, session=self.session)
        return self.session

    async def _move(self, *, gateway: SessionGateway, snapshot: CombatSession | None) -> CombatSession | None:
        if snapshot is None:
            return None
        changed = snapshot is not self._session
        self._session = snapshot
        if changed:
            await self._persist(gateway=gateway, session=snapshot)
        return snapshot

    async def _persist(self, *, gateway: SessionGateway, session: CombatSession) -> None:
        try:
            await gateway.save_session(session)
        except SessionSaveError:
            self.pending_save = True
            logger.warning("session %s kept in memory after failed save", session.id)
            raise
        self.pending_save = False


class SessionViewRegistry:
    """One `CombatSessionView` per session id.

    Owned by the application instance (see `tracker.main`), so histories
    never bleed between sessions or between app instances.
    """

    def __init__(self, *, max_depth: int | None = DEFAULT_MAX_DEPTH) -> None:
        self._max_depth = max_depth
        self._views: dict[str, CombatSessionView] = {}

    @property
    def max_depth(self) -> int | None:
        return self._max_depth

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._views

    def forget(self, session_id: str) -> None:
        self._views.pop(session_id, None)

    def track(self, session: CombatSession) -> CombatSessionView:
        """Start a fresh view for a session that was just created or reloaded."""

        if session.id is None:
            raise ValueError("Session must be saved before it can be tracked")
        view = CombatSessionView(history=HistoryManager(max_depth=self._max_depth))
        view.reset(session)
        self._views[session.id] = view
        return view

    async def view_for(self, *, gateway: SessionGateway, session_id: str) -> CombatSessionView:
        view = self._views.get(session_id)
        if view is not None and view.is_loaded:
            return view

        view = CombatSessionView(history=HistoryManager(max_depth=self._max_depth))
        await view.load(gateway=gateway, session_id=session_id)
        self._views[session_id] = view
        return view
