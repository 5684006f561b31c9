import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from towerroom.models import (
    Participant,
    Quaternion,
    SessionState,
    TrackedObject,
    Vec3,
    authoritative_display_data,
)
from .errors import FrameNotCalibrated, NotAParticipant, SessionFull

logger = logging.getLogger(__name__)

MAX_PARTICIPANTS = 2


@dataclass(frozen=True)
class CollapseResult:
    loser: str
    winners: Tuple[str, ...]


class Session:
    """Authoritative state for one two-party game.

    Methods here do not lock. Callers hold ``lock`` across each
    read-modify-write and the broadcast it produces.
    """

    def __init__(self, session_id: str, creator_id: str, display_data=None):
        self.id = session_id
        self.lock = threading.RLock()
        self.participants: List[Participant] = []
        self.tracked_objects: Dict[str, TrackedObject] = {}
        self.turn_index: Optional[int] = None
        self.resolved = False
        # Set once the last participant leaves; the directory drops it next
        self.closed = False
        self.add_participant(creator_id, display_data)

    # ---- membership ----

    def index_of(self, connection_id: str) -> int:
        for idx, participant in enumerate(self.participants):
            if participant.connection_id == connection_id:
                return idx
        return -1

    def participant(self, connection_id: str) -> Optional[Participant]:
        idx = self.index_of(connection_id)
        return self.participants[idx] if idx != -1 else None

    def is_full(self) -> bool:
        return len(self.participants) >= MAX_PARTICIPANTS

    def add_participant(self, connection_id: str, display_data=None) -> Participant:
        if self.is_full():
            raise SessionFull(session_id=self.id)
        participant = Participant(
            connection_id=connection_id,
            display_data=authoritative_display_data(connection_id, display_data),
        )
        self.participants.append(participant)
        return participant

    def depart(self, connection_id: str) -> Optional[Participant]:
        """Remove a participant.

        Returns the removed participant, or None if it was not a member.
        Marks the session closed when nobody is left. When one participant
        remains after the game started, the turn passes to them.
        """
        idx = self.index_of(connection_id)
        if idx == -1:
            return None
        removed = self.participants.pop(idx)
        if not self.participants:
            self.closed = True
            self.turn_index = None
        elif self.turn_index is not None:
            self.turn_index = 0
        return removed

    # ---- derived state ----

    @property
    def all_ready(self) -> bool:
        return len(self.participants) == MAX_PARTICIPANTS and all(p.ready for p in self.participants)

    @property
    def state(self) -> SessionState:
        if self.resolved:
            return SessionState.RESOLVED
        if len(self.participants) < MAX_PARTICIPANTS:
            return SessionState.FORMING
        if not self.all_ready:
            return SessionState.AWAITING_READY
        return SessionState.IN_PLAY

    @property
    def current_turn(self) -> Optional[str]:
        if self.turn_index is None or not self.participants:
            return None
        return self.participants[self.turn_index].connection_id

    def connection_ids(self) -> List[str]:
        return [p.connection_id for p in self.participants]

    # ---- gameplay ----

    def set_base_frame(self, connection_id: str, offset: Vec3) -> bool:
        participant = self.participant(connection_id)
        if participant is None:
            logger.warning(f"[frame] session={self.id} conn={connection_id} not a participant")
            return False
        participant.base_frame_offset = offset
        logger.info(f"[frame] session={self.id} conn={connection_id} offset={offset.to_dict()}")
        return True

    def set_ready(self, connection_id: str) -> bool:
        """Mark a participant ready.

        Returns True only when this call completes readiness for a full
        session; the turn pointer is then reset to ``participants[0]``.
        """
        participant = self.participant(connection_id)
        if participant is None:
            logger.warning(f"[ready] session={self.id} conn={connection_id} not a participant")
            return False
        was_ready = self.all_ready
        participant.ready = True
        logger.info(f"[ready] session={self.id} conn={connection_id}")
        if self.all_ready and not was_ready:
            self.turn_index = 0
            return True
        return False

    def update_object(self, connection_id: str, object_id: str, position: Vec3,
                      orientation: Quaternion) -> Tuple[TrackedObject, Optional[str]]:
        """Store an object pose sent in the caller's local frame.

        The position is translated into the shared frame by subtracting
        the caller's base frame offset. Returns the stored object and the
        connection id whose turn it now is (None before the game starts).
        """
        idx = self.index_of(connection_id)
        if idx == -1:
            raise NotAParticipant(session_id=self.id)
        participant = self.participants[idx]
        if not participant.calibrated:
            raise FrameNotCalibrated(session_id=self.id)

        tracked = TrackedObject(
            id=object_id,
            relative_position=position - participant.base_frame_offset,
            orientation=orientation,
        )
        self.tracked_objects[object_id] = tracked
        # Turns only rotate once readiness has started the game
        if self.turn_index is not None:
            self.turn_index = (idx + 1) % len(self.participants)
        return tracked, self.current_turn

    def resolve_collapse(self, causing_connection_id: str) -> CollapseResult:
        winners = tuple(cid for cid in self.connection_ids() if cid != causing_connection_id)
        return CollapseResult(loser=causing_connection_id, winners=winners)

    def mark_resolved(self) -> None:
        self.resolved = True

    # ---- serialisation ----

    def tracked_objects_dict(self):
        return {oid: obj.to_dict() for oid, obj in self.tracked_objects.items()}

    def snapshot(self):
        return {
            'sessionId': self.id,
            'state': self.state.value,
            'participants': [p.to_dict() for p in self.participants],
            'trackedObjects': self.tracked_objects_dict(),
            'currentTurn': self.current_turn,
        }
