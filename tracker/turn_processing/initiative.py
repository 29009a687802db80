from __future__ import annotations

from collections.abc import Iterable

from tracker.api.models import CombatSession, Participant


def sort_participants_by_initiative(participants: Iterable[Participant]) -> tuple[Participant, ...]:
    """Return participants ordered by initiative, highest first.

    `sorted` is stable, so equal initiatives keep their input order and
    re-sorting an already ordered sequence is a no-op.
    """

    return tuple(sorted(participants, key=lambda p: p.initiative_value, reverse=True))


def set_initiative(session: CombatSession, participant_id: str, initiative_value: int) -> CombatSession:
    """Change one participant's initiative and re-sort the turn order.

    The turn pointer follows whoever was acting before the change.
    """

    target = session.participant(participant_id)
    if target is None:
        raise ValueError(f"Participant not found: {participant_id}")
    if target.initiative_value == initiative_value:
        return session

    acting_id = session.participants[session.current_turn_index].id if session.participants else None

    updated = [
        p.model_copy(update={"initiative_value": initiative_value}) if p.id == participant_id else p
        for p in session.participants
    ]
    ordered = sort_participants_by_initiative(updated)

    turn_index = next((i for i, p in enumerate(ordered) if p.id == acting_id), 0)
    return session.model_copy(update={"participants": ordered, "current_turn_index": turn_index})
