# tests/conftest.py
"""
Pytest configuration and fixtures.
Builds the app against in-memory SQLite with Redis wiring turned off.
"""

import pytest

from app import create_app
from app.config import Config
from db.extensions import db
from models.user import User
from services.experience_service import ExperienceService
from services.user_service import UserService


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REDIS_URL = None
    SOCKETIO_ASYNC_MODE = "threading"
    SIGNUP_BONUS_COINS = 500
    ATOMIC_MAX_ATTEMPTS = 3
    ATOMIC_RETRY_BACKOFF = 0


@pytest.fixture
def app():
    app, _ = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(uid, balance=0):
        user, _ = UserService.register_user(uid, signup_bonus=balance)
        return user
    return _make_user


@pytest.fixture
def make_experience(app, make_user):
    def _make_experience(host_id="host", max_participants=2, coin_price=100, publish=True):
        if db.session.get(User, host_id) is None:
            make_user(host_id, 0)
        experience = ExperienceService.create_experience(host_id, "Sunset picnic", max_participants, coin_price)
        if publish:
            experience = ExperienceService.publish_experience(experience.id)
        return experience
    return _make_experience
