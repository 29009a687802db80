from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

import redis
from pydantic import BaseModel

from tracker.api.models import (
    AddEffectRequest,
    CombatLogAction,
    CombatLogEntry,
    CombatSession,
    HitPointsRequest,
    ParticipantCreate,
    RemoveEffectRequest,
    SetInitiativeRequest,
)
from tracker.combat_log import append_log_entries, delete_log, make_entry
from tracker.fsm import apply_status_event
from tracker.lock import session_lock
from tracker.session_store import RedisSessionGateway, SessionSaveError, new_session
from tracker.session_view import SessionViewRegistry, Transition
from tracker.turn_processing.effects import add_status_effect, remove_status_effect
from tracker.turn_processing.hit_points import damage_participant, heal_participant
from tracker.turn_processing.initiative import set_initiative
from tracker.turn_processing.turns import advance_turn, current_participant, is_round_boundary, rewind_turn
from tracker.turn_processing.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)


ActionName = Literal[
    "advance",
    "rewind",
    "undo",
    "redo",
    "damage",
    "heal",
    "add_effect",
    "remove_effect",
    "set_initiative",
    "pause",
    "resume",
    "end",
]

ACTION_NAMES: frozenset[str] = frozenset(
    {
        "advance",
        "rewind",
        "undo",
        "redo",
        "damage",
        "heal",
        "add_effect",
        "remove_effect",
        "set_initiative",
        "pause",
        "resume",
        "end",
    }
)

_PAYLOAD_MODELS: dict[str, type[BaseModel]] = {
    "damage": HitPointsRequest,
    "heal": HitPointsRequest,
    "add_effect": AddEffectRequest,
    "remove_effect": RemoveEffectRequest,
    "set_initiative": SetInitiativeRequest,
}


@dataclass(frozen=True, slots=True)
class ActionResult:
    session: CombatSession
    # True when the session or its undo/redo counts moved. False for boundary
    # no-ops (e.g. rewind at round 1 / turn 0, undo with nothing to undo).
    changed: bool
    log_entry_ids: list[str]


def _parse_payload(action: str, payload: dict[str, Any]) -> BaseModel | None:
    model = _PAYLOAD_MODELS.get(action)
    if model is None:
        return None
    # pydantic.ValidationError is a ValueError, so callers map it like any other input error.
    return model.model_validate(payload)


def _transition_for(action: str, body: BaseModel | None) -> Transition:
    if action == "advance":
        return advance_turn
    if action == "rewind":
        return rewind_turn
    if action in {"pause", "resume", "end"}:
        return lambda s: apply_status_event(s, action)

    if isinstance(body, HitPointsRequest):
        pid, amount = body.participant_id, body.amount
        if action == "damage":
            return lambda s: damage_participant(s, pid, amount)
        return lambda s: heal_participant(s, pid, amount)

    if isinstance(body, AddEffectRequest):
        add = body
        return lambda s: add_status_effect(
            s,
            add.participant_id,
            name=add.name,
            duration_in_rounds=add.duration_in_rounds,
            description=add.description,
        )

    if isinstance(body, RemoveEffectRequest):
        rm = body
        return lambda s: remove_status_effect(s, rm.participant_id, rm.effect_id)

    if isinstance(body, SetInitiativeRequest):
        init = body
        return lambda s: set_initiative(s, init.participant_id, init.initiative_value)

    raise ValueError(f"Unknown action: {action}")


def _name_of(session: CombatSession, participant_id: str | None) -> str | None:
    if participant_id is None:
        return None
    p = session.participant(participant_id)
    return p.name if p is not None else participant_id


def _log_entries_for(
    *,
    action: str,
    before: CombatSession,
    after: CombatSession,
    body: BaseModel | None,
) -> list[CombatLogEntry]:
    acting = current_participant(after)
    actor = acting.name if acting is not None else None

    if action == "advance":
        entries = []
        if is_round_boundary(before, after):
            entries.append(
                make_entry(
                    session=after,
                    action_type=CombatLogAction.round_started,
                    description=f"Round {after.current_round_number} started",
                )
            )
        entries.append(
            make_entry(
                session=after,
                action_type=CombatLogAction.turn_advanced,
                actor=actor,
                description=f"{actor}'s turn",
            )
        )
        return entries

    if action == "rewind":
        return [
            make_entry(
                session=after,
                action_type=CombatLogAction.turn_rewound,
                actor=actor,
                description=f"Turn rewound to {actor}",
            )
        ]

    if action in {"undo", "redo"}:
        return [
            make_entry(
                session=after,
                action_type=CombatLogAction(action),
                description=f"{action.capitalize()} to round {after.current_round_number}, turn {after.current_turn_index}",
            )
        ]

    if action in {"pause", "resume", "end"}:
        return [
            make_entry(
                session=after,
                action_type=CombatLogAction.status_changed,
                details={"from": before.status.value, "to": after.status.value},
                description=f"Session {after.status.value}",
            )
        ]

    pid = getattr(body, "participant_id", None)
    target = _name_of(after, pid)
    old = before.participant(pid) if pid else None
    new = after.participant(pid) if pid else None

    if isinstance(body, HitPointsRequest) and old is not None and new is not None:
        kind = CombatLogAction.damage if action == "damage" else CombatLogAction.heal
        verb = "took" if action == "damage" else "healed"
        return [
            make_entry(
                session=after,
                action_type=kind,
                target=pid,
                details={
                    "amount": body.amount,
                    "hpBefore": old.current_hp,
                    "hpAfter": new.current_hp,
                    "temporaryHPBefore": old.temporary_hp,
                    "temporaryHPAfter": new.temporary_hp,
                },
                description=f"{target} {verb} {body.amount}",
            )
        ]

    if isinstance(body, AddEffectRequest):
        return [
            make_entry(
                session=after,
                action_type=CombatLogAction.effect_applied,
                target=pid,
                details={"name": body.name, "durationInRounds": body.duration_in_rounds},
                description=f"{target} is {body.name}",
            )
        ]

    if isinstance(body, RemoveEffectRequest):
        return [
            make_entry(
                session=after,
                action_type=CombatLogAction.effect_removed,
                target=pid,
                details={"effectId": body.effect_id},
                description=f"Effect removed from {target}",
            )
        ]

    if isinstance(body, SetInitiativeRequest):
        return [
            make_entry(
                session=after,
                action_type=CombatLogAction.initiative_set,
                target=pid,
                details={"initiativeValue": body.initiative_value},
                description=f"{target} initiative set to {body.initiative_value}",
            )
        ]

    return []


def _append_action_log(
    *,
    r: redis.Redis,
    session_id: str,
    action: str,
    before: CombatSession,
    after: CombatSession,
    body: BaseModel | None,
) -> list[str]:
    entries = _log_entries_for(action=action, before=before, after=after, body=body)
    return append_log_entries(r=r, session_id=session_id, entries=entries)


async def dispatch_action_async(
    *,
    r: redis.Redis,
    views: SessionViewRegistry,
    session_id: str,
    action: str,
    payload: dict[str, Any],
) -> ActionResult:
    """Entry point for every session mutation coming from the API.

    Applies an action by:
    - acquiring the per-session lock
    - loading (or reusing) the session view and its history
    - validating the action against the current session
    - running the pure transition / undo / redo through the view, which persists it
    - appending combat log entries (Redis Streams)
    """

    if action not in ACTION_NAMES:
        raise ValueError(f"Unknown action: {action}")

    body = _parse_payload(action, payload)
    gateway = RedisSessionGateway(r=r)

    with session_lock(r=r, session_id=session_id):
        view = await views.view_for(gateway=gateway, session_id=session_id)
        before = view.session

        ctx = ValidationContext(
            session_id=session_id,
            action=action,
            participant_id=getattr(body, "participant_id", None),
        )
        pipeline_for_action(action).validate(ctx=ctx, session=before)
        counts_before = view.history.get_history()

        try:
            if action == "undo":
                after = await view.undo(gateway=gateway)
            elif action == "redo":
                after = await view.redo(gateway=gateway)
            else:
                after = await view.apply(gateway=gateway, transition=_transition_for(action, body))
        except SessionSaveError:
            # The view keeps the unsaved state current, so it is logged like a saved one.
            if view.session is not before:
                try:
                    _append_action_log(
                        r=r, session_id=session_id, action=action, before=before, after=view.session, body=body
                    )
                except redis.RedisError as e:
                    logger.warning("session %s: could not log unsaved %s: %s", session_id, action, e)
            raise

        if after is None or after is before:
            if view.history.get_history() != counts_before:
                logger.debug("session %s: %s moved history only", session_id, action)
                return ActionResult(session=before, changed=True, log_entry_ids=[])
            logger.debug("session %s: %s was a no-op", session_id, action)
            return ActionResult(session=before, changed=False, log_entry_ids=[])

        ids = _append_action_log(r=r, session_id=session_id, action=action, before=before, after=after, body=body)

        logger.info(
            "session %s: %s -> round %d turn %d",
            session_id,
            action,
            after.current_round_number,
            after.current_turn_index,
        )
        return ActionResult(session=after, changed=True, log_entry_ids=ids)


async def create_session(
    *,
    r: redis.Redis,
    views: SessionViewRegistry,
    participants: list[ParticipantCreate],
    encounter_id: str | None = None,
) -> CombatSession:
    gateway = RedisSessionGateway(r=r)
    saved = await gateway.save_session(new_session(participants=participants, encounter_id=encounter_id))
    views.track(saved)
    logger.info("session %s created with %d participants", saved.id, len(saved.participants))
    return saved


async def retry_save(*, r: redis.Redis, views: SessionViewRegistry, session_id: str) -> CombatSession:
    gateway = RedisSessionGateway(r=r)
    with session_lock(r=r, session_id=session_id):
        view = await views.view_for(gateway=gateway, session_id=session_id)
        return await view.retry_save(gateway=gateway)


async def delete_session(*, r: redis.Redis, views: SessionViewRegistry, session_id: str) -> bool:
    gateway = RedisSessionGateway(r=r)
    with session_lock(r=r, session_id=session_id):
        removed = await gateway.delete_session(session_id)
        views.forget(session_id)
        delete_log(r=r, session_id=session_id)
    return removed
