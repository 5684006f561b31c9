from flask import Flask, request
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def get_dispatcher(flask_app):
    return flask_app.extensions['towerroom']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    # app.logger is the 'towerroom' logger; service module loggers are its children
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ALLOWED_ORIGINS', [])
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    @flask_app.before_request
    def log_request():
        origin = request.headers.get('Origin') or 'none'
        flask_app.logger.info(f"[http] {request.method} {request.path} origin={origin}")

    from towerroom.routes import main
    flask_app.register_blueprint(main)

    # One dispatcher (and session directory) per application
    from towerroom.services.sessions import Dispatcher, SessionDirectory
    from towerroom.socketio_events import make_sender, register_socketio_handlers

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    dispatcher = Dispatcher(
        send=make_sender(namespace),
        directory=SessionDirectory(id_length=flask_app.config.get('SESSION_ID_LENGTH', 6)),
    )
    flask_app.extensions['towerroom'] = dispatcher
    register_socketio_handlers(dispatcher, namespace=namespace)

    return flask_app
