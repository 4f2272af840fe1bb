from __future__ import annotations
"""Per-session dashboard state with stale-response discard.

A session is one signed-in client view. Results of a generation attempt are
applied to the dashboard only while the session is open and the attempt is
still the session's active request; anything else is dropped.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Literal

from threadflow.schemas.script import Scene

logger = logging.getLogger(__name__)

View = Literal["input", "script"]


@dataclass(frozen=True)
class SessionContext:
    """Identity of the caller, passed explicitly into every workflow call."""

    user_id: str
    session_id: str
    email: str | None = None
    access_token: str | None = None


@dataclass
class DashboardState:
    session_id: str
    view: View = "input"
    generating: bool = False
    active_request_id: str | None = None
    scenes: list[Scene] = field(default_factory=list)
    active_scene: int = 0
    credits: int | None = None
    last_error: str | None = None


class SessionRegistry:
    """In-process registry of open sessions and their dashboard state."""

    def __init__(self):
        self._states: dict[str, DashboardState] = {}
        self._lock = threading.Lock()

    def open(self, session_id: str) -> DashboardState:
        """Return the session's state, creating it if the session is new."""
        with self._lock:
            state = self._states.get(session_id)
            if state is None:
                state = DashboardState(session_id=session_id)
                self._states[session_id] = state
            return state

    def get(self, session_id: str) -> DashboardState | None:
        with self._lock:
            return self._states.get(session_id)

    def is_open(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._states

    def close(self, session_id: str) -> bool:
        """Tear a session down. In-flight results for it will be discarded."""
        with self._lock:
            state = self._states.pop(session_id, None)
        if state is not None:
            logger.info("Session %s closed (generating=%s)", session_id, state.generating)
        return state is not None

    def begin(self, session_id: str, request_id: str) -> DashboardState:
        state = self.open(session_id)
        with self._lock:
            state.generating = True
            state.active_request_id = request_id
            state.last_error = None
        return state

    def apply(
        self,
        session_id: str,
        request_id: str,
        mutate: Callable[[DashboardState], None],
    ) -> bool:
        """Apply ``mutate`` if ``request_id`` is still current for an open session.

        Returns False when the result was discarded as stale.
        """
        with self._lock:
            state = self._states.get(session_id)
            if state is None or state.active_request_id != request_id:
                logger.info(
                    "Discarding stale result for session=%s request=%s",
                    session_id, request_id,
                )
                return False
            mutate(state)
            state.generating = False
            return True

    def back(self, session_id: str) -> DashboardState:
        """Return from the script view to the input form."""
        state = self.open(session_id)
        with self._lock:
            state.view = "input"
            state.active_scene = 0
        return state

    def select_scene(self, session_id: str, index: int) -> DashboardState:
        state = self.open(session_id)
        with self._lock:
            if state.view != "script" or not 0 <= index < len(state.scenes):
                raise IndexError(f"No scene at index {index}")
            state.active_scene = index
        return state


_registry = SessionRegistry()


def get_session_registry() -> SessionRegistry:
    """Process-wide registry (FastAPI dependency)."""
    return _registry
