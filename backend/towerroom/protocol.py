"""Wire protocol: event names and parsed inbound requests.

Every inbound payload goes through ``from_payload`` before any session
state is touched. A parser returns None when the payload does not have
the expected shape.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from towerroom.models import Quaternion, Vec3

# Inbound
CONNECT = 'connect'
DISCONNECT = 'disconnect'
CREATE_SESSION = 'create-session'
JOIN_SESSION = 'join-session'
LEAVE_SESSION = 'leave-session'
SET_FRAME_OFFSET = 'set-frame-offset'
SET_READY = 'set-ready'
UPDATE_OBJECT = 'update-object'
COLLAPSE = 'collapse'
PING = 'ping'

# Outbound
CONNECTED = 'connected'
SESSION_CREATED = 'session-created'
JOINED = 'joined'
LEFT = 'left'
ERROR = 'error'
PARTICIPANT_JOINED = 'participant-joined'
PARTICIPANT_LEFT = 'participant-left'
GAME_STARTED = 'game-started'
TURN_UPDATE = 'turn-update'
OBJECT_UPDATED = 'object-updated'
RESULT = 'result'
PONG = 'pong'

RESULT_LOST = 'lost'
RESULT_WON = 'won'


def _as_mapping(data) -> Mapping:
    return data if isinstance(data, Mapping) else {}


def _text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    # Object ids from clients are often numeric
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _session_id(data: Mapping) -> Optional[str]:
    # roomId is what older clients send
    return _text(data.get('sessionId', data.get('roomId')))


@dataclass(frozen=True)
class CreateSession:
    display_data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data):
        data = _as_mapping(data)
        display = data.get('displayData', data.get('playerData'))
        return cls(display_data=dict(display) if isinstance(display, Mapping) else {})


@dataclass(frozen=True)
class JoinSession:
    session_id: str
    display_data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data):
        data = _as_mapping(data)
        session_id = _session_id(data)
        if session_id is None:
            return None
        display = data.get('displayData', data.get('playerData'))
        return cls(session_id=session_id, display_data=dict(display) if isinstance(display, Mapping) else {})


@dataclass(frozen=True)
class SessionRequest:
    """Any request that only names a session (set-ready, leave-session)."""

    session_id: str

    @classmethod
    def from_payload(cls, data):
        session_id = _session_id(_as_mapping(data))
        return cls(session_id=session_id) if session_id else None


@dataclass(frozen=True)
class SetFrameOffset:
    session_id: str
    offset: Vec3

    @classmethod
    def from_payload(cls, data):
        data = _as_mapping(data)
        session_id = _session_id(data)
        offset = Vec3.from_payload(data.get('offset', data.get('position')))
        if session_id is None or offset is None:
            return None
        return cls(session_id=session_id, offset=offset)


@dataclass(frozen=True)
class UpdateObject:
    session_id: str
    object_id: str
    position: Vec3
    orientation: Quaternion

    @classmethod
    def from_payload(cls, data):
        data = _as_mapping(data)
        session_id = _session_id(data)
        object_id = _text(data.get('objectId'))
        position = Vec3.from_payload(data.get('position'))
        orientation = Quaternion.from_payload(data.get('orientation', data.get('quaternion')))
        if any(v is None for v in (session_id, object_id, position, orientation)):
            return None
        return cls(session_id=session_id, object_id=object_id, position=position, orientation=orientation)


@dataclass(frozen=True)
class Collapse:
    session_id: str
    causing_connection_id: str

    @classmethod
    def from_payload(cls, data):
        data = _as_mapping(data)
        session_id = _session_id(data)
        causing = _text(data.get('causingConnectionId', data.get('playerId')))
        if session_id is None or causing is None:
            return None
        return cls(session_id=session_id, causing_connection_id=causing)
