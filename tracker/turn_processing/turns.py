from __future__ import annotations

from tracker.api.models import CombatSession, Participant
from tracker.turn_processing.effects import tick_status_effects


def can_advance_turn(session: CombatSession) -> bool:
    return len(session.participants) > 0


def can_rewind_turn(session: CombatSession) -> bool:
    return session.current_round_number > 1 or session.current_turn_index > 0


def current_participant(session: CombatSession) -> Participant | None:
    """Return whoever holds the current turn.

    Unconscious participants (current HP <= 0) still hold their slot; the
    rotation never skips them.
    """

    if not session.participants:
        return None
    return session.participants[session.current_turn_index]


def is_round_boundary(before: CombatSession, after: CombatSession) -> bool:
    return after.current_round_number > before.current_round_number


def advance_turn(session: CombatSession) -> CombatSession:
    """Move the turn pointer to the next participant.

    Wrapping back to index 0 starts a new round, and the status-effect
    countdown (`tick_status_effects`) runs as part of that same transition.
    With no participants the input session is returned unchanged.
    """

    if not can_advance_turn(session):
        return session

    next_index = (session.current_turn_index + 1) % len(session.participants)
    if next_index != 0:
        return session.model_copy(update={"current_turn_index": next_index})

    return session.model_copy(
        update={
            "current_turn_index": 0,
            "current_round_number": session.current_round_number + 1,
            "participants": tick_status_effects(session.participants),
        }
    )


def rewind_turn(session: CombatSession) -> CombatSession:
    """Move the turn pointer back one slot.

    Round 1 / turn 0 is the floor: the input session is returned unchanged.
    Crossing back over a round boundary does not restore effect durations
    that the forward transition counted down.
    """

    if not can_rewind_turn(session):
        return session

    if session.current_turn_index > 0:
        return session.model_copy(update={"current_turn_index": session.current_turn_index - 1})

    return session.model_copy(
        update={
            "current_round_number": session.current_round_number - 1,
            "current_turn_index": max(len(session.participants) - 1, 0),
        }
    )
