from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from tracker.api.models import CombatSession, SessionStatus


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    session_id: str
    action: str
    participant_id: str | None = None


class ActionValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, session: CombatSession) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class StatusValidator(ActionValidator):
    """Validates the session status for a given action."""

    allowed_statuses: frozenset[SessionStatus]

    def validate(self, *, ctx: ValidationContext, session: CombatSession) -> None:
        if session.status not in self.allowed_statuses:
            allowed = ",".join(sorted(s.value for s in self.allowed_statuses))
            raise ValueError(
                f"Action '{ctx.action}' not allowed while session is '{session.status.value}' (allowed: {allowed})"
            )


@dataclass(frozen=True, slots=True)
class ParticipantValidator(ActionValidator):
    """The action names a participant that must exist in the session."""

    def validate(self, *, ctx: ValidationContext, session: CombatSession) -> None:
        if not ctx.participant_id:
            raise ValueError("participant_id is required")
        if session.participant(ctx.participant_id) is None:
            raise ValueError(f"Participant not found: {ctx.participant_id}")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[ActionValidator, ...]

    def validate(self, *, ctx: ValidationContext, session: CombatSession) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, session=session)


_ACTIVE_ONLY = StatusValidator(allowed_statuses=frozenset({SessionStatus.active}))

_TURN = ValidatorPipeline(validators=(_ACTIVE_ONLY,))
_PARTICIPANT_EDIT = ValidatorPipeline(validators=(_ACTIVE_ONLY, ParticipantValidator()))

# Status moves (pause/resume/end) are guarded by SessionStatusMachine instead.
# Undo/redo run in every status so a recorded `end` can be reversed.
DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "advance": _TURN,
    "rewind": _TURN,
    "undo": ValidatorPipeline(validators=()),
    "redo": ValidatorPipeline(validators=()),
    "damage": _PARTICIPANT_EDIT,
    "heal": _PARTICIPANT_EDIT,
    "add_effect": _PARTICIPANT_EDIT,
    "remove_effect": _PARTICIPANT_EDIT,
    "set_initiative": _PARTICIPANT_EDIT,
    "pause": ValidatorPipeline(validators=()),
    "resume": ValidatorPipeline(validators=()),
    "end": ValidatorPipeline(validators=()),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
