import logging
from typing import Callable, Optional

from towerroom import protocol
from towerroom.protocol import (
    Collapse,
    CreateSession,
    JoinSession,
    SessionRequest,
    SetFrameOffset,
    UpdateObject,
)
from .directory import SessionDirectory
from .errors import NotAParticipant, SessionError, SessionNotFound
from .registry import ConnectionRegistry
from .session import Session

logger = logging.getLogger(__name__)

# send(event, payload, connection_id)
Send = Callable[[str, dict, str], None]


class Dispatcher:
    """Apply inbound events to sessions and emit the resulting messages.

    Each operation runs under the target session's lock, including the
    sends it produces, so one session's broadcasts leave in operation
    order. Failures raise SessionError before anything is broadcast and
    are turned into a single ``error`` message for the sender.
    """

    def __init__(self, send: Send, directory: Optional[SessionDirectory] = None,
                 registry: Optional[ConnectionRegistry] = None):
        self.send = send
        self.directory = directory if directory is not None else SessionDirectory()
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.registry.on_unregister = self._depart
        self._handlers = {
            protocol.CREATE_SESSION: self.create_session,
            protocol.JOIN_SESSION: self.join_session,
            protocol.LEAVE_SESSION: self.leave_session,
            protocol.SET_FRAME_OFFSET: self.set_frame_offset,
            protocol.SET_READY: self.set_ready,
            protocol.UPDATE_OBJECT: self.update_object,
            protocol.COLLAPSE: self.collapse,
            protocol.PING: self.ping,
        }

    @property
    def events(self):
        return tuple(self._handlers)

    def handle(self, event: str, connection_id: str, data=None) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"[dispatch] unknown event={event} conn={connection_id}")
            return
        try:
            handler(connection_id, data)
        except SessionError as exc:
            logger.info(f"[{event}] conn={connection_id} failed reason={exc.reason}")
            self.send(protocol.ERROR, exc.to_dict(), connection_id)

    # ---- connection lifecycle ----

    def connect(self, connection_id: str) -> None:
        self.registry.register(connection_id)
        self.send(protocol.CONNECTED, {'connectionId': connection_id}, connection_id)

    def disconnect(self, connection_id: str) -> None:
        # Departure runs through the registry's on_unregister hook
        self.registry.unregister(connection_id)

    # ---- helpers ----

    def _broadcast(self, session: Session, event: str, payload: dict, exclude: Optional[str] = None) -> None:
        for connection_id in session.connection_ids():
            if connection_id != exclude:
                self.send(event, payload, connection_id)

    def _turn_payload(self, session: Session) -> dict:
        return {'currentTurn': session.current_turn, 'sessionId': session.id}

    def _resolve(self, connection_id: str, session_id: str) -> Session:
        """Look up a session the connection is a member of."""
        session = self.directory.get(session_id)
        if session is None:
            raise SessionNotFound(session_id=session_id)
        if self.registry.session_of(connection_id) != session_id:
            raise NotAParticipant(session_id=session_id)
        return session

    def _depart(self, connection_id: str, session_id: str) -> bool:
        session = self.directory.get(session_id)
        if session is None:
            return False
        with session.lock:
            if session.depart(connection_id) is None:
                return False
            logger.info(f"[depart] session={session_id} conn={connection_id} remaining={len(session.participants)}")
            if session.closed:
                self.directory.remove(session_id)
                return True
            self._broadcast(session, protocol.PARTICIPANT_LEFT, {'connectionId': connection_id})
            if session.current_turn is not None:
                self._broadcast(session, protocol.TURN_UPDATE, self._turn_payload(session))
                logger.info(f"[turn] session={session_id} current={session.current_turn} after departure")
        return True

    def _leave_previous(self, connection_id: str, previous: Optional[str], current: str) -> None:
        if previous is not None and previous != current:
            self._depart(connection_id, previous)

    # ---- events ----

    def create_session(self, connection_id: str, data=None) -> None:
        request = CreateSession.from_payload(data)
        previous = self.registry.session_of(connection_id)
        session_id = self.directory.create(connection_id, request.display_data)
        if not self.registry.bind(connection_id, session_id):
            # Disconnected while creating
            logger.info(f"[create] session={session_id} conn={connection_id} gone, dropping session")
            self.directory.remove(session_id)
            return
        self._leave_previous(connection_id, previous, session_id)
        self.send(protocol.SESSION_CREATED, {'sessionId': session_id}, connection_id)

    def join_session(self, connection_id: str, data=None) -> None:
        request = JoinSession.from_payload(data)
        if request is None:
            raise SessionNotFound()
        session = self.directory.get(request.session_id)
        if session is None:
            raise SessionNotFound(session_id=request.session_id)
        previous = self.registry.session_of(connection_id)
        with session.lock:
            if session.participant(connection_id) is not None:
                # Already a member: resend state, nothing changes
                self.send(protocol.JOINED, {'sessionId': session.id, 'state': session.snapshot()}, connection_id)
                return
            snapshot = self.directory.join(request.session_id, connection_id, request.display_data)
            if not self.registry.bind(connection_id, session.id):
                # Disconnected while joining
                session.depart(connection_id)
                if session.closed:
                    self.directory.remove(session.id)
                logger.info(f"[join] session={session.id} conn={connection_id} gone, membership rolled back")
                return
            self.send(protocol.JOINED, {'sessionId': session.id, 'state': snapshot}, connection_id)
            joined = session.participant(connection_id)
            self._broadcast(
                session,
                protocol.PARTICIPANT_JOINED,
                {'connectionId': connection_id, 'displayData': dict(joined.display_data)},
                exclude=connection_id,
            )
        self._leave_previous(connection_id, previous, session.id)

    def leave_session(self, connection_id: str, data=None) -> None:
        request = SessionRequest.from_payload(data)
        if request is None:
            raise SessionNotFound()
        self._resolve(connection_id, request.session_id)
        self._depart(connection_id, request.session_id)
        self.registry.unbind(connection_id, request.session_id)
        self.send(protocol.LEFT, {'sessionId': request.session_id}, connection_id)

    def set_frame_offset(self, connection_id: str, data=None) -> None:
        request = SetFrameOffset.from_payload(data)
        if request is None:
            logger.warning(f"[frame] conn={connection_id} malformed payload ignored")
            return
        session = self.directory.get(request.session_id)
        if session is None:
            logger.warning(f"[frame] session={request.session_id} conn={connection_id} session not found")
            return
        with session.lock:
            session.set_base_frame(connection_id, request.offset)

    def set_ready(self, connection_id: str, data=None) -> None:
        request = SessionRequest.from_payload(data)
        if request is None:
            raise SessionNotFound()
        session = self._resolve(connection_id, request.session_id)
        with session.lock:
            if session.participant(connection_id) is None:
                raise NotAParticipant(session_id=session.id)
            if session.resolved:
                logger.info(f"[ready] session={session.id} conn={connection_id} ignored, session resolved")
                return
            if not session.set_ready(connection_id):
                return
            logger.info(f"[start] session={session.id} all participants ready, first turn={session.current_turn}")
            self._broadcast(session, protocol.GAME_STARTED, {'trackedObjects': session.tracked_objects_dict()})
            self._broadcast(session, protocol.TURN_UPDATE, self._turn_payload(session))

    def update_object(self, connection_id: str, data=None) -> None:
        request = UpdateObject.from_payload(data)
        if request is None:
            raise SessionNotFound()
        session = self._resolve(connection_id, request.session_id)
        with session.lock:
            if session.resolved:
                logger.info(f"[object] session={session.id} conn={connection_id} ignored, session resolved")
                return
            tracked, current_turn = session.update_object(
                connection_id, request.object_id, request.position, request.orientation)
            logger.info(
                f"[object] session={session.id} conn={connection_id} object={tracked.id} next_turn={current_turn}"
            )
            self._broadcast(session, protocol.OBJECT_UPDATED, {
                'sessionId': session.id,
                'objectId': tracked.id,
                'relativePosition': tracked.relative_position.to_dict(),
                'orientation': tracked.orientation.to_dict(),
            })
            # No turn to announce before the game starts
            if current_turn is not None:
                self._broadcast(session, protocol.TURN_UPDATE, self._turn_payload(session))

    def collapse(self, connection_id: str, data=None) -> None:
        request = Collapse.from_payload(data)
        if request is None:
            raise SessionNotFound()
        session = self._resolve(connection_id, request.session_id)
        with session.lock:
            if session.participant(connection_id) is None:
                raise NotAParticipant(session_id=session.id)
            if session.participant(request.causing_connection_id) is None:
                raise NotAParticipant('Causing connection is not in this session', session_id=session.id)
            result = session.resolve_collapse(request.causing_connection_id)
            session.mark_resolved()
            logger.info(f"[collapse] session={session.id} loser={result.loser} winners={list(result.winners)}")
            self.send(protocol.RESULT, {
                'message': protocol.RESULT_LOST,
                'sessionId': session.id,
                'connectionId': result.loser,
            }, result.loser)
            for winner in result.winners:
                self.send(protocol.RESULT, {'message': protocol.RESULT_WON, 'sessionId': session.id}, winner)

    def ping(self, connection_id: str, data=None) -> None:
        self.send(protocol.PONG, data if isinstance(data, dict) else {}, connection_id)
