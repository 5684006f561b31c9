import logging
import threading
from typing import Dict, Optional

from towerroom.models import generate_session_id
from .errors import SessionNotFound
from .session import Session

logger = logging.getLogger(__name__)


class SessionDirectory:
    """Owns the id -> Session mapping.

    The directory lock only covers insert, lookup and removal. Gameplay
    serialises on each session's own lock.
    """

    def __init__(self, id_length: int = 6):
        self.id_length = id_length
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id):
        with self._lock:
            return session_id in self._sessions

    def create(self, creator_id: str, display_data=None) -> str:
        with self._lock:
            session_id = generate_session_id(self.id_length, taken=self._sessions)
            self._sessions[session_id] = Session(session_id, creator_id, display_data)
        logger.info(f"[create] session={session_id} conn={creator_id}")
        return session_id

    def get(self, session_id) -> Optional[Session]:
        if not isinstance(session_id, str):
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info(f"[destroy] session={session_id}")

    def join(self, session_id: str, connection_id: str, display_data=None):
        """Add a participant and return a snapshot of the session.

        Raises SessionNotFound or SessionFull; a full session is left
        untouched.
        """
        session = self.get(session_id)
        if session is None:
            raise SessionNotFound(session_id=session_id)
        with session.lock:
            # Lost a race with the last participant leaving
            if session.closed:
                raise SessionNotFound(session_id=session_id)
            session.add_participant(connection_id, display_data)
            logger.info(f"[join] session={session_id} conn={connection_id} participants={len(session.participants)}")
            return session.snapshot()
