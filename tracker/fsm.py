from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from tracker.api.models import CombatSession, SessionStatus


class SessionStatusMachine(StateMachine):
    """Guards the session status lifecycle.

    active <-> paused, and either of them -> ended (final). The machine only
    validates the move; `apply_status_event` produces the new session value.
    """

    active = State(SessionStatus.active.value, value=SessionStatus.active.value, initial=True)
    paused = State(SessionStatus.paused.value, value=SessionStatus.paused.value)
    ended = State(SessionStatus.ended.value, value=SessionStatus.ended.value, final=True)

    pause = active.to(paused)
    resume = paused.to(active)
    end = active.to(ended) | paused.to(ended)

    def __init__(self, session: CombatSession):
        self.session = session
        super().__init__(start_value=session.status.value)

    @property
    def status(self) -> SessionStatus:
        return SessionStatus(str(self.current_state_value))


STATUS_EVENTS = frozenset({"pause", "resume", "end"})


def apply_status_event(session: CombatSession, event: str) -> CombatSession:
    if event not in STATUS_EVENTS:
        raise ValueError(f"Unknown status event: {event}")

    fsm = SessionStatusMachine(session)
    try:
        fsm.send(event)
    except TransitionNotAllowed as e:
        raise ValueError(f"Cannot {event} a session that is {session.status.value}") from e

    return session.model_copy(update={"status": fsm.status})
