from flask import current_app, request
from towerroom import protocol, socketio


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def make_sender(namespace: str):
    """Build the Dispatcher's send callable on top of the Socket.IO server."""
    def send(event, payload, connection_id):
        socketio.emit(event, payload, to=connection_id, namespace=namespace)
    return send


@socketio.on_error_default
def handle_error(exc):
    current_app.logger.exception(f"[socketio] unhandled error sid={_get_sid()}: {exc}")


def register_socketio_handlers(dispatcher, namespace: str = '/') -> None:
    """Register Socket.IO event handlers for every protocol event on ``namespace``."""

    def handle_connect(auth=None):
        sid = _get_sid()
        origin = request.headers.get('Origin') or 'none'
        current_app.logger.info(f"[connect] sid={sid} origin={origin}")
        dispatcher.connect(sid)

    def handle_disconnect(reason=None):
        sid = _get_sid()
        current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
        dispatcher.disconnect(sid)

    socketio.on_event(protocol.CONNECT, handle_connect, namespace=namespace)
    socketio.on_event(protocol.DISCONNECT, handle_disconnect, namespace=namespace)
    for event in dispatcher.events:
        socketio.on_event(event, _bind_event(dispatcher, event), namespace=namespace)


def _bind_event(dispatcher, event):
    def handler(data=None):
        dispatcher.handle(event, _get_sid(), data)
    handler.__name__ = f"handle_{event.replace('-', '_')}"
    return handler
