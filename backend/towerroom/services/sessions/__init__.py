"""Session domain services: rooms, membership and turn arbitration.

This package holds the transport-free core. Socket handlers translate
Socket.IO events into Dispatcher calls and hand it a ``send`` callable;
nothing here imports Flask.
"""

from .directory import SessionDirectory
from .dispatcher import Dispatcher
from .errors import FrameNotCalibrated, NotAParticipant, SessionError, SessionFull, SessionNotFound
from .registry import ConnectionRegistry
from .session import MAX_PARTICIPANTS, CollapseResult, Session

__all__ = [
    'CollapseResult',
    'ConnectionRegistry',
    'Dispatcher',
    'FrameNotCalibrated',
    'MAX_PARTICIPANTS',
    'NotAParticipant',
    'Session',
    'SessionDirectory',
    'SessionError',
    'SessionFull',
    'SessionNotFound',
]
