from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import redis
from fastapi import APIRouter, Body, Depends, HTTPException, Response, WebSocket, WebSocketDisconnect, status

from tracker.actions import create_session, delete_session, dispatch_action_async, retry_save
from tracker.api.deps import get_hub, get_redis, get_views, get_ws_hub
from tracker.api.models import (
    CombatLogResponse,
    CombatSession,
    HistoryResponse,
    SessionCreateRequest,
    SessionListResponse,
)
from tracker.combat_log import DEFAULT_LOG_LIMIT, read_log
from tracker.lock import SessionBusyError
from tracker.session_store import RedisSessionGateway, SessionLoadError, SessionNotFoundError, SessionSaveError
from tracker.session_view import SessionViewRegistry
from tracker.turn_processing.turns import can_advance_turn, can_rewind_turn
from tracker.websocket_hub import SessionWebSocketHub

router = APIRouter()


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except (SessionLoadError, SessionSaveError) as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    except SessionBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e


@router.websocket("/ws/session/{session_id}")
async def session_updates_ws(
    websocket: WebSocket,
    session_id: str,
    hub: SessionWebSocketHub = Depends(get_ws_hub),
) -> None:
    await hub.connect(session_id, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(session_id, websocket)
    except Exception:
        await hub.disconnect(session_id, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/sessions", response_model=CombatSession, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest,
    r: redis.Redis = Depends(get_redis),
    views: SessionViewRegistry = Depends(get_views),
) -> CombatSession:
    with _http_errors():
        return await create_session(
            r=r,
            views=views,
            participants=payload.participants,
            encounter_id=payload.encounter_id,
        )


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions_route(r: redis.Redis = Depends(get_redis)) -> SessionListResponse:
    with _http_errors():
        sessions = await RedisSessionGateway(r=r).list_sessions()
    return SessionListResponse(sessions=sessions)


@router.get("/sessions/{session_id}", response_model=CombatSession)
async def get_session_route(
    session_id: str,
    r: redis.Redis = Depends(get_redis),
    views: SessionViewRegistry = Depends(get_views),
) -> CombatSession:
    # Served from the view so an unsaved (failed-save) state is what the client sees.
    with _http_errors():
        view = await views.view_for(gateway=RedisSessionGateway(r=r), session_id=session_id)
    return view.session


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session_route(
    session_id: str,
    r: redis.Redis = Depends(get_redis),
    views: SessionViewRegistry = Depends(get_views),
    hub: SessionWebSocketHub = Depends(get_hub),
) -> Response:
    with _http_errors():
        removed = await delete_session(r=r, views=views, session_id=session_id)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session not found: {session_id}")
    await hub.session_deleted(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sessions/{session_id}/actions/{action}", response_model=CombatSession)
async def session_action_route(
    session_id: str,
    action: str,
    body: dict[str, Any] | None = Body(default=None),
    r: redis.Redis = Depends(get_redis),
    views: SessionViewRegistry = Depends(get_views),
    hub: SessionWebSocketHub = Depends(get_hub),
) -> CombatSession:
    with _http_errors():
        result = await dispatch_action_async(r=r, views=views, session_id=session_id, action=action, payload=body or {})

    if result.changed:
        await hub.session_updated(session_id)
    return result.session


@router.get("/sessions/{session_id}/history", response_model=HistoryResponse)
async def session_history_route(
    session_id: str,
    r: redis.Redis = Depends(get_redis),
    views: SessionViewRegistry = Depends(get_views),
) -> HistoryResponse:
    with _http_errors():
        view = await views.view_for(gateway=RedisSessionGateway(r=r), session_id=session_id)

    undo_count = view.history.get_undo_count()
    redo_count = view.history.get_redo_count()
    return HistoryResponse(
        undo_count=undo_count,
        redo_count=redo_count,
        can_undo=undo_count > 0,
        can_redo=redo_count > 0,
        can_advance_turn=can_advance_turn(view.session),
        can_rewind_turn=can_rewind_turn(view.session),
        pending_save=view.pending_save,
    )


@router.post("/sessions/{session_id}/save", response_model=CombatSession)
async def retry_save_route(
    session_id: str,
    r: redis.Redis = Depends(get_redis),
    views: SessionViewRegistry = Depends(get_views),
    hub: SessionWebSocketHub = Depends(get_hub),
) -> CombatSession:
    """Re-send the in-memory session after a failed save."""

    with _http_errors():
        saved = await retry_save(r=r, views=views, session_id=session_id)

    await hub.session_updated(session_id)
    return saved


@router.get("/sessions/{session_id}/log", response_model=CombatLogResponse)
async def session_log_route(
    session_id: str,
    limit: int = DEFAULT_LOG_LIMIT,
    offset: int = 0,
    r: redis.Redis = Depends(get_redis),
) -> CombatLogResponse:
    with _http_errors():
        entries, total = read_log(r=r, session_id=session_id, limit=limit, offset=offset)
    return CombatLogResponse(entries=entries, total=total, limit=limit, offset=offset)
