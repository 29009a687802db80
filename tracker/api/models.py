from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


def _now() -> datetime:
    return datetime.now(tz=UTC)


class _CamelModel(BaseModel):
    """Frozen value type serialized with the camelCase JSON shape."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class StatusEffect(_CamelModel):
    id: str
    name: str = Field(..., min_length=1, max_length=100)

    # None => permanent.
    duration_in_rounds: int | None = None

    applied_at_round: int = Field(default=1, ge=1)
    description: str | None = None

    @property
    def is_permanent(self) -> bool:
        return self.duration_in_rounds is None

    @property
    def is_expired(self) -> bool:
        return self.duration_in_rounds is not None and self.duration_in_rounds <= 0


class ParticipantType(StrEnum):
    monster = "monster"
    character = "character"
    npc = "npc"


class Participant(_CamelModel):
    id: str
    name: str = Field(..., min_length=1, max_length=200)

    # Display-only label; usually a ParticipantType value.
    type: str = ParticipantType.monster.value

    initiative_value: int

    # Not clamped: <= 0 means unconscious, > max_hp only via explicit edits.
    current_hp: int = Field(..., alias="currentHP")
    max_hp: int = Field(..., gt=0, alias="maxHP")
    temporary_hp: int = Field(default=0, ge=0, alias="temporaryHP")
    ac_value: int = Field(default=10, ge=0)

    status_effects: tuple[StatusEffect, ...] = ()

    @field_validator("status_effects")
    @classmethod
    def _drop_expired_and_check_ids(cls, effects: tuple[StatusEffect, ...]) -> tuple[StatusEffect, ...]:
        seen: set[str] = set()
        for effect in effects:
            if effect.id in seen:
                raise ValueError(f"duplicate status effect id: {effect.id}")
            seen.add(effect.id)
        return tuple(e for e in effects if not e.is_expired)

    @property
    def is_unconscious(self) -> bool:
        return self.current_hp <= 0


class SessionStatus(StrEnum):
    active = "active"
    paused = "paused"
    ended = "ended"


class CombatSession(_CamelModel):
    # Assigned by the session store on first save.
    id: str | None = None
    encounter_id: str | None = None

    # Already in turn order (see turn_processing.initiative).
    participants: tuple[Participant, ...] = ()

    current_round_number: int = Field(default=1, ge=1)
    current_turn_index: int = 0

    status: SessionStatus = SessionStatus.active

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @field_validator("current_turn_index")
    @classmethod
    def _clamp_turn_index(cls, value: int, info: ValidationInfo) -> int:
        participants = info.data.get("participants") or ()
        if not participants:
            return 0
        return min(max(value, 0), len(participants) - 1)

    def participant(self, participant_id: str) -> Participant | None:
        return next((p for p in self.participants if p.id == participant_id), None)


class CombatLogAction(StrEnum):
    damage = "damage"
    heal = "heal"
    effect_applied = "effect_applied"
    effect_removed = "effect_removed"
    initiative_set = "initiative_set"
    turn_advanced = "turn_advanced"
    turn_rewound = "turn_rewound"
    round_started = "round_started"
    undo = "undo"
    redo = "redo"
    status_changed = "status_changed"


class CombatLogEntry(_CamelModel):
    id: str
    timestamp: datetime
    round_number: int = Field(..., ge=1)
    turn_index: int = Field(..., ge=0)
    action_type: CombatLogAction
    actor: str | None = None
    target: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    description: str


# Request / response bodies.


class ParticipantCreate(_CamelModel):
    # Generated when omitted.
    id: str | None = None
    name: str = Field(..., min_length=1, max_length=200)
    type: str = ParticipantType.monster.value
    initiative_value: int
    max_hp: int = Field(..., gt=0, alias="maxHP")
    current_hp: int | None = Field(default=None, alias="currentHP")
    temporary_hp: int = Field(default=0, ge=0, alias="temporaryHP")
    ac_value: int = Field(default=10, ge=0)


class SessionCreateRequest(_CamelModel):
    participants: list[ParticipantCreate] = Field(default_factory=list)
    encounter_id: str | None = None


class SessionListResponse(_CamelModel):
    sessions: list[CombatSession]


class HistoryResponse(_CamelModel):
    undo_count: int
    redo_count: int
    can_undo: bool
    can_redo: bool
    can_advance_turn: bool
    can_rewind_turn: bool
    pending_save: bool = False


class CombatLogResponse(_CamelModel):
    entries: list[CombatLogEntry]
    total: int
    limit: int
    offset: int


class HitPointsRequest(_CamelModel):
    participant_id: str
    amount: int = Field(..., gt=0)


class AddEffectRequest(_CamelModel):
    participant_id: str
    name: str = Field(..., min_length=1, max_length=100)
    duration_in_rounds: int | None = Field(default=None, gt=0)
    description: str | None = None


class RemoveEffectRequest(_CamelModel):
    participant_id: str
    effect_id: str


class SetInitiativeRequest(_CamelModel):
    participant_id: str
    initiative_value: int
