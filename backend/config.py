import os

_DEFAULT_ORIGINS = ",".join([
    "https://ar-jenga-1.onrender.com",
    "https://ar-jenga-five.vercel.app",
    "http://localhost:5173",
    "http://localhost:3000",
])


def _split_origins(raw):
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Origins allowed for both HTTP (CORS) and Socket.IO handshakes
    CORS_ALLOWED_ORIGINS = _split_origins(os.environ.get('CORS_ALLOWED_ORIGINS', _DEFAULT_ORIGINS))
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Length of generated session ids (lowercase letters + digits)
    SESSION_ID_LENGTH = int(os.environ.get('SESSION_ID_LENGTH', '6'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
