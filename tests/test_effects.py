from __future__ import annotations

import pytest
from pydantic import ValidationError

from tracker.api.models import CombatSession, Participant, StatusEffect
from tracker.turn_processing.effects import add_status_effect, remove_status_effect, tick_status_effects


def _fighter(*effects: StatusEffect) -> Participant:
    return Participant(id="p1", name="Fighter", initiative_value=12, current_hp=30, max_hp=30, status_effects=effects)


def test_tick_decrements_removes_and_keeps_permanent_in_order() -> None:
    fighter = _fighter(
        StatusEffect(id="e1", name="Blessed", duration_in_rounds=3),
        StatusEffect(id="e2", name="Cursed"),
        StatusEffect(id="e3", name="Stunned", duration_in_rounds=1),
        StatusEffect(id="e4", name="Hasted", duration_in_rounds=2),
    )

    (ticked,) = tick_status_effects([fighter])

    assert [(e.id, e.duration_in_rounds) for e in ticked.status_effects] == [("e1", 2), ("e2", None), ("e4", 1)]
    # Input untouched.
    assert len(fighter.status_effects) == 4
    assert fighter.status_effects[0].duration_in_rounds == 3


def test_tick_on_empty_and_effectless_participants() -> None:
    assert tick_status_effects([]) == ()
    (ticked,) = tick_status_effects([_fighter()])
    assert ticked.status_effects == ()


def test_expired_effects_are_dropped_on_construction() -> None:
    fighter = _fighter(
        StatusEffect(id="e1", name="Gone", duration_in_rounds=0),
        StatusEffect(id="e2", name="Also gone", duration_in_rounds=-2),
        StatusEffect(id="e3", name="Kept", duration_in_rounds=1),
    )
    assert [e.id for e in fighter.status_effects] == ["e3"]


def test_duplicate_effect_ids_are_rejected() -> None:
    with pytest.raises(ValidationError):
        _fighter(StatusEffect(id="e1", name="A"), StatusEffect(id="e1", name="B"))


def test_add_and_remove_status_effect() -> None:
    session = CombatSession(id="s1", participants=(_fighter(),), current_round_number=3)

    with_effect = add_status_effect(session, "p1", name="Poisoned", duration_in_rounds=2, effect_id="poison")
    effect = with_effect.participants[0].status_effects[0]
    assert (effect.id, effect.name, effect.duration_in_rounds, effect.applied_at_round) == ("poison", "Poisoned", 2, 3)
    assert session.participants[0].status_effects == ()

    without = remove_status_effect(with_effect, "p1", "poison")
    assert without.participants[0].status_effects == ()


def test_add_status_effect_generates_ids_and_allows_permanent() -> None:
    session = CombatSession(id="s1", participants=(_fighter(),))
    session = add_status_effect(session, "p1", name="Cursed", duration_in_rounds=None)
    session = add_status_effect(session, "p1", name="Cursed", duration_in_rounds=None)

    ids = [e.id for e in session.participants[0].status_effects]
    assert len(set(ids)) == 2
    assert all(e.is_permanent for e in session.participants[0].status_effects)


@pytest.mark.parametrize("duration", [0, -1])
def test_add_status_effect_rejects_non_positive_duration(duration: int) -> None:
    session = CombatSession(id="s1", participants=(_fighter(),))
    with pytest.raises(ValueError):
        add_status_effect(session, "p1", name="Nope", duration_in_rounds=duration)


def test_unknown_participant_or_effect_raises() -> None:
    session = CombatSession(id="s1", participants=(_fighter(StatusEffect(id="e1", name="A")),))

    with pytest.raises(ValueError, match="Participant not found"):
        add_status_effect(session, "ghost", name="A", duration_in_rounds=1)
    with pytest.raises(ValueError, match="Status effect not found"):
        remove_status_effect(session, "p1", "missing")
    with pytest.raises(ValueError, match="already present"):
        add_status_effect(session, "p1", name="A", duration_in_rounds=1, effect_id="e1")
