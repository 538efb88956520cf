from flask import Flask
from flask_cors import CORS
from db.extensions import db, migrate, configure_socketio
from controllers.experience_controller import experience_blueprint
from controllers.wallet_controller import wallet_blueprint
from controllers.error_handlers import register_error_handlers
from .config import Config
from events.socketio_events import register_socketio_events
from redis import Redis
from rq import Queue
from rq_scheduler import Scheduler

import logging
import os


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    CORS(app)

    # Blueprints
    app.register_blueprint(experience_blueprint, url_prefix="/api")
    app.register_blueprint(wallet_blueprint, url_prefix="/api")
    register_error_handlers(app)

    # Configure logging
    debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"
    log_level = logging.DEBUG if debug_mode else logging.WARNING
    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Redis + RQ
    redis_url = app.config.get("REDIS_URL")
    if redis_url:
        redis_conn = Redis.from_url(redis_url)
        queue = Queue("wallet_tasks", connection=redis_conn)
        scheduler = Scheduler(queue=queue, connection=redis_conn)
        app.extensions["scheduler"] = scheduler

    # SocketIO
    socketio = configure_socketio(app)
    register_socketio_events(socketio)

    return app, socketio
