import logging
from typing import Any, Dict, Hashable, Optional, Tuple, Union

from ..infrastructure.kv_store import KeyValueStore
from ..state.models import SessionState

logger = logging.getLogger(__name__)

SessionId = Union[int, str]
Patch = Union[SessionState, Dict[str, Any], None]


def _merge(current: Optional[SessionState], patch: Patch) -> SessionState:
    """Merges a partial patch into current (or default) state, re-validating it."""
    base = current.model_dump() if current else {}
    if isinstance(patch, SessionState):
        patch = patch.model_dump()
    return SessionState.model_validate({**base, **(patch or {})})


class MessageStateRepository:
    """
    Recovery cache: the session state as it was when a specific message was
    last rendered. Lets buttons on older messages keep working after the
    chat-level session has moved on or been cleared. Not authoritative: there
    is no clear or pop.
    """

    def __init__(self, store: KeyValueStore[SessionState]):
        self._store = store

    @staticmethod
    def _key(session_id: SessionId, message_id: int) -> Tuple[str, int]:
        return str(session_id), int(message_id)

    def get(self, session_id: SessionId, message_id: Optional[int]) -> Optional[SessionState]:
        if message_id is None:
            return None
        state = self._store.get(self._key(session_id, message_id))
        return state.model_copy(deep=True) if state else None

    def set(self, session_id: SessionId, message_id: int, patch: Patch) -> SessionState:
        key = self._key(session_id, message_id)
        state = _merge(self._store.get(key), patch)
        self._store.set(key, state)
        return state.model_copy(deep=True)


class SessionRepository:
    """
    Authoritative per-chat decision-tree state with its history stack.

    State is copied in and out, so callers never hold a reference into the
    store and snapshots mirrored onto messages cannot drift.
    """

    def __init__(
        self,
        store: KeyValueStore[SessionState],
        message_states: MessageStateRepository,
    ):
        self._store = store
        self.message_states = message_states

    @staticmethod
    def _key(session_id: SessionId) -> Hashable:
        return str(session_id)

    def get(self, session_id: SessionId) -> Optional[SessionState]:
        state = self._store.get(self._key(session_id))
        return state.model_copy(deep=True) if state else None

    def set(self, session_id: SessionId, patch: Patch = None) -> SessionState:
        """Merges patch into the existing or default state."""
        state = _merge(self._store.get(self._key(session_id)), patch)
        self._store.set(self._key(session_id), state)
        return state.model_copy(deep=True)

    def clear(self, session_id: SessionId) -> bool:
        """Removes the session-level state entirely."""
        return self._store.delete(self._key(session_id))

    def push_history(self, session_id: SessionId, node_id: str) -> SessionState:
        """Appends node_id unless it is already on top."""
        state = self.get(session_id) or SessionState()
        node_id = str(node_id)
        if state.top == node_id:
            return state
        return self.set(session_id, {"history": [*state.history, node_id]})

    def pop_history(self, session_id: SessionId) -> Optional[str]:
        """
        Removes the top entry and returns the new top.

        Returns None, leaving the stack untouched, when there is no previous
        node to go back to; the caller shows the fault card instead.
        """
        state = self.get(session_id)
        if not state or len(state.history) <= 1:
            return None

        history = state.history[:-1]
        self.set(session_id, {"history": history})
        return history[-1]

    def get_active(
        self, session_id: SessionId, message_id: Optional[int] = None
    ) -> Optional[SessionState]:
        """
        Resolves the state a button press should act on.

        Session-level state wins. Only when it is absent is the state bound
        to the originating message consulted, and if found it is promoted
        back into the session so later presses continue from it.
        """
        state = self.get(session_id)
        if state and state.has_active_fault:
            return state

        bound = self.message_states.get(session_id, message_id)
        if not bound or not bound.has_active_fault:
            return None

        logger.info(
            f"Recovered session {session_id} from message {message_id} "
            f"({bound.pack.value}/{bound.fault_id})"
        )
        return self.set(session_id, bound)
