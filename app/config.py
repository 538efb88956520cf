import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")
    DEBUG = os.getenv("DEBUG_MODE", "false").lower() == "true"

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URI",
        "postgresql://postgres:postgres@db:5432/wallet_db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 5,
        "max_overflow": 10,
    }

    # unset leaves RQ scheduling and the Socket.IO message queue unwired
    REDIS_URL = os.getenv("REDIS_URL")
    SOCKETIO_ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE", "eventlet")

    # Ledger
    SIGNUP_BONUS_COINS = int(os.getenv("SIGNUP_BONUS_COINS", 500))
    RELEASE_MIN_STARTED_RATIO = float(os.getenv("RELEASE_MIN_STARTED_RATIO", 1.0))
    RELEASE_RETRY_DELAY_SECONDS = int(os.getenv("RELEASE_RETRY_DELAY_SECONDS", 30))

    # Conflict retries around every atomic unit
    ATOMIC_MAX_ATTEMPTS = int(os.getenv("ATOMIC_MAX_ATTEMPTS", 3))
    ATOMIC_RETRY_BACKOFF = float(os.getenv("ATOMIC_RETRY_BACKOFF", 0.05))
