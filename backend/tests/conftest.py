import os
import sys
import pytest

# Ensure the backend root (containing the `towerroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from towerroom import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ALLOWED_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = '/'
    SESSION_ID_LENGTH = 6
    LOG_LEVEL = 'DEBUG'


class Recorder:
    """Stands in for the Socket.IO sender; keeps (event, payload, to) in order."""

    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, connection_id):
        self.sent.append((event, payload, connection_id))

    def to(self, connection_id):
        return [(event, payload) for event, payload, cid in self.sent if cid == connection_id]

    def named(self, event):
        return [(payload, cid) for name, payload, cid in self.sent if name == event]

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    """Factory returning (socket test client, connection id) pairs."""
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        received = test_client.get_received()
        connection_id = next(
            pkt['args'][0]['connectionId'] for pkt in received if pkt['name'] == 'connected'
        )
        clients.append(test_client)
        return test_client, connection_id

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
