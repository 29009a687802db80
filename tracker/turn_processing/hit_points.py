from __future__ import annotations

from collections.abc import Callable

from tracker.api.models import CombatSession, Participant


def apply_damage(participant: Participant, damage: int) -> Participant:
    """Temporary HP soaks damage first; current HP may drop below zero."""

    if damage <= 0:
        return participant

    absorbed = min(participant.temporary_hp, damage)
    return participant.model_copy(
        update={
            "temporary_hp": participant.temporary_hp - absorbed,
            "current_hp": participant.current_hp - (damage - absorbed),
        }
    )


def apply_healing(participant: Participant, healing: int) -> Participant:
    """Heal up to max HP. Temporary HP is untouched."""

    if healing <= 0:
        return participant

    # A participant already above max (explicit edit) is not pulled down.
    healed = max(participant.current_hp, min(participant.max_hp, participant.current_hp + healing))
    return participant.model_copy(update={"current_hp": healed})


def damage_participant(session: CombatSession, participant_id: str, amount: int) -> CombatSession:
    return _update_participant(session, participant_id, lambda p: apply_damage(p, amount))


def heal_participant(session: CombatSession, participant_id: str, amount: int) -> CombatSession:
    return _update_participant(session, participant_id, lambda p: apply_healing(p, amount))


def _update_participant(
    session: CombatSession, participant_id: str, fn: Callable[[Participant], Participant]
) -> CombatSession:
    participant = session.participant(participant_id)
    if participant is None:
        raise ValueError(f"Participant not found: {participant_id}")

    updated = fn(participant)
    if updated is participant:
        return session

    participants = tuple(updated if p.id == participant_id else p for p in session.participants)
    return session.model_copy(update={"participants": participants})
