import enum
import math
import random
import string
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

SESSION_ID_ALPHABET = string.ascii_lowercase + string.digits


def _coerce_number(value) -> Optional[float]:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class Vec3:
    x: float
    y: float
    z: float

    @classmethod
    def from_payload(cls, raw: Any) -> Optional['Vec3']:
        """Parse ``{x, y, z}``; returns None when the shape is wrong."""
        if not isinstance(raw, Mapping):
            return None
        parts = [_coerce_number(raw.get(axis)) for axis in ('x', 'y', 'z')]
        if any(p is None for p in parts):
            return None
        return cls(*parts)

    def __sub__(self, other: 'Vec3') -> 'Vec3':
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'z': self.z}


@dataclass(frozen=True)
class Quaternion:
    x: float
    y: float
    z: float
    w: float

    @classmethod
    def from_payload(cls, raw: Any) -> Optional['Quaternion']:
        """Parse ``{x, y, z, w}`` or three.js' serialised ``{_x, _y, _z, _w}``."""
        if not isinstance(raw, Mapping):
            return None
        parts = []
        for axis in ('x', 'y', 'z', 'w'):
            value = raw.get(axis, raw.get(f'_{axis}'))
            parts.append(_coerce_number(value))
        if any(p is None for p in parts):
            return None
        return cls(*parts)

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'z': self.z, 'w': self.w}


@dataclass
class Participant:
    connection_id: str
    display_data: Dict[str, Any] = field(default_factory=dict)
    base_frame_offset: Optional[Vec3] = None
    ready: bool = False

    @property
    def calibrated(self) -> bool:
        return self.base_frame_offset is not None

    def to_dict(self):
        return {
            'connectionId': self.connection_id,
            'displayData': dict(self.display_data),
            'baseFrameOffset': self.base_frame_offset.to_dict() if self.base_frame_offset else None,
            'ready': self.ready,
        }


@dataclass
class TrackedObject:
    id: str
    relative_position: Vec3
    orientation: Quaternion

    def to_dict(self):
        return {
            'id': self.id,
            'relativePosition': self.relative_position.to_dict(),
            'orientation': self.orientation.to_dict(),
        }


class SessionState(str, enum.Enum):
    FORMING = 'forming'
    AWAITING_READY = 'awaiting-ready'
    IN_PLAY = 'in-play'
    RESOLVED = 'resolved'


def authoritative_display_data(connection_id: str, raw: Any) -> Dict[str, Any]:
    """Copy client display data, forcing ``name`` to the connection id."""
    data = dict(raw) if isinstance(raw, Mapping) else {}
    data['name'] = connection_id
    return data


def generate_session_id(length=6, taken=()):
    """Generate a short session id that is not in ``taken``."""
    while True:
        code = ''.join(random.choices(SESSION_ID_ALPHABET, k=length))
        if code not in taken:
            return code
