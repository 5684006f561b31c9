import threading
from typing import Callable, Dict, Optional


class ConnectionRegistry:
    """Live connections and the (at most one) session each belongs to.

    ``on_unregister(connection_id, session_id)`` runs after a connection
    that was in a session is unregistered.
    """

    def __init__(self, on_unregister: Optional[Callable[[str, str], None]] = None):
        self._sessions: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()
        self.on_unregister = on_unregister

    def __contains__(self, connection_id):
        with self._lock:
            return connection_id in self._sessions

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def register(self, connection_id: str) -> None:
        with self._lock:
            self._sessions.setdefault(connection_id, None)

    def unregister(self, connection_id: str) -> Optional[str]:
        with self._lock:
            session_id = self._sessions.pop(connection_id, None)
        if session_id is not None and self.on_unregister is not None:
            self.on_unregister(connection_id, session_id)
        return session_id

    def session_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._sessions.get(connection_id)

    def bind(self, connection_id: str, session_id: str) -> bool:
        """Record membership; returns False if the connection is no longer registered."""
        with self._lock:
            if connection_id not in self._sessions:
                return False
            self._sessions[connection_id] = session_id
            return True

    def unbind(self, connection_id: str, session_id: Optional[str] = None) -> None:
        """Clear membership, optionally only if it still points at ``session_id``."""
        with self._lock:
            if connection_id not in self._sessions:
                return
            if session_id is None or self._sessions[connection_id] == session_id:
                self._sessions[connection_id] = None
