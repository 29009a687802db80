from __future__ import annotations

from collections.abc import Iterable
from uuid import uuid4

from tracker.api.models import CombatSession, Participant, StatusEffect


def _tick_effects(effects: Iterable[StatusEffect]) -> tuple[StatusEffect, ...]:
    kept: list[StatusEffect] = []
    for effect in effects:
        if effect.duration_in_rounds is None:
            kept.append(effect)
            continue
        remaining = effect.duration_in_rounds - 1
        if remaining > 0:
            kept.append(effect.model_copy(update={"duration_in_rounds": remaining}))
    return tuple(kept)


def tick_status_effects(participants: Iterable[Participant]) -> tuple[Participant, ...]:
    """Count every timed effect down by one round and drop the expired ones.

    Called once per round transition by `advance_turn`, never per turn.
    Permanent effects (no duration) are left as they are.
    """

    return tuple(p.model_copy(update={"status_effects": _tick_effects(p.status_effects)}) for p in participants)


def _replace_participant(session: CombatSession, updated: Participant) -> CombatSession:
    participants = tuple(updated if p.id == updated.id else p for p in session.participants)
    return session.model_copy(update={"participants": participants})


def _require_participant(session: CombatSession, participant_id: str) -> Participant:
    participant = session.participant(participant_id)
    if participant is None:
        raise ValueError(f"Participant not found: {participant_id}")
    return participant


def add_status_effect(
    session: CombatSession,
    participant_id: str,
    *,
    name: str,
    duration_in_rounds: int | None,
    description: str | None = None,
    effect_id: str | None = None,
) -> CombatSession:
    participant = _require_participant(session, participant_id)

    if duration_in_rounds is not None and duration_in_rounds <= 0:
        raise ValueError("duration_in_rounds must be positive or omitted for a permanent effect")

    eid = effect_id or str(uuid4())
    if any(e.id == eid for e in participant.status_effects):
        raise ValueError(f"Status effect already present: {eid}")

    effect = StatusEffect(
        id=eid,
        name=name,
        duration_in_rounds=duration_in_rounds,
        applied_at_round=session.current_round_number,
        description=description,
    )
    updated = participant.model_copy(update={"status_effects": (*participant.status_effects, effect)})
    return _replace_participant(session, updated)


def remove_status_effect(session: CombatSession, participant_id: str, effect_id: str) -> CombatSession:
    participant = _require_participant(session, participant_id)

    if not any(e.id == effect_id for e in participant.status_effects):
        raise ValueError(f"Status effect not found: {effect_id}")

    remaining = tuple(e for e in participant.status_effects if e.id != effect_id)
    return _replace_participant(session, participant.model_copy(update={"status_effects": remaining}))
