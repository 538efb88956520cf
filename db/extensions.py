from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_socketio import SocketIO

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO()

def configure_socketio(app):
    """
    Configures SocketIO with the Flask app.
    The message queue is only attached when Redis is configured.
    """
    socketio.init_app(
        app,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE"),
        message_queue=app.config.get("REDIS_URL"),
        cors_allowed_origins="*",
    )
    return socketio
