class SessionError(Exception):
    """Base class for recoverable session failures reported to the caller."""

    reason = 'error'
    default_message = 'Session error'

    def __init__(self, message=None, session_id=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.session_id = session_id

    def to_dict(self):
        payload = {'reason': self.reason, 'message': self.message}
        if self.session_id:
            payload['sessionId'] = self.session_id
        return payload


class SessionNotFound(SessionError):
    reason = 'not-found'
    default_message = 'Session not found'


class SessionFull(SessionError):
    reason = 'full'
    default_message = 'Session is full'


class NotAParticipant(SessionError):
    reason = 'not-a-participant'
    default_message = 'You are not a participant in this session'


class FrameNotCalibrated(SessionError):
    reason = 'frame-not-calibrated'
    default_message = 'Set your base frame offset before moving objects'
