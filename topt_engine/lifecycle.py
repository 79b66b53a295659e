"""Per-user session lifecycle state machine."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from topt_common.errors import AlreadyActive, NoActiveSession
from topt_engine.store import SnapshotStore


class SessionState(str, Enum):
    """Idle: nothing captured. Active: a snapshot is waiting to be restored."""

    IDLE = "idle"
    ACTIVE = "active"


_ALLOWED_TRANSITIONS = {
    SessionState.IDLE: {SessionState.ACTIVE},
    SessionState.ACTIVE: {SessionState.IDLE},
}


class SessionLifecycle:
    """Tracks ``Idle --start--> Active --stop--> Idle`` for one user."""

    def __init__(self, user_id: int, state: SessionState = SessionState.IDLE) -> None:
        self.user_id = user_id
        self._state = state

    @classmethod
    def from_store(cls, store: SnapshotStore) -> "SessionLifecycle":
        """Hydrate the state persisted by an earlier invocation."""
        state = SessionState.ACTIVE if store.exists() else SessionState.IDLE
        return cls(store.user_id, state)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is SessionState.ACTIVE

    def transition(self, new_state: SessionState) -> SessionState:
        """Attempt a state transition; raise ValueError if invalid."""
        if new_state not in _ALLOWED_TRANSITIONS[self._state]:
            raise ValueError(f"Invalid transition {self._state.value} -> {new_state.value}")
        self._state = new_state
        return self._state

    def begin(self, task_label: Optional[str] = None) -> None:
        if self.active:
            raise AlreadyActive(
                "A task optimization session is already active",
                context={"user_id": self.user_id, "task_label": task_label},
            )
        self.transition(SessionState.ACTIVE)

    def end(self) -> None:
        if not self.active:
            raise NoActiveSession(
                "No optimization state found. Nothing to restore.",
                context={"user_id": self.user_id},
            )
        self.transition(SessionState.IDLE)
