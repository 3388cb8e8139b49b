import os

# Cheap bcrypt and a throwaway database for anything that reads global settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from connect_db import build_engine, build_session_factory, init_db
from core import dependencies
from models.models import FriendRequest, Friendship, Notification, User
from services.friend_service import FriendService
from services.notification_service import NotificationService
from services.recommendation_service import RecommendationService
from services.user_service import UserService


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'friendgraph.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


class FlakySessionFactory:
    """Session factory whose first ``failures`` checkouts hit a locked database."""

    def __init__(self, factory, failures):
        self.factory = factory
        self.failures = failures
        self.calls = 0

    def _checkout(self):
        self.calls += 1
        if self.failures is None or self.calls <= self.failures:
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    def __call__(self):
        self._checkout()
        return self.factory()

    def begin(self):
        self._checkout()
        return self.factory.begin()


@pytest.fixture
def flaky_factory(session_factory):
    """Build a FlakySessionFactory; ``failures=None`` fails every checkout."""

    def _flaky(failures):
        return FlakySessionFactory(session_factory, failures)

    return _flaky


@pytest.fixture
def user_service(session_factory):
    return UserService(session_factory)


@pytest.fixture
def friend_service(session_factory):
    return FriendService(session_factory)


@pytest.fixture
def notification_service(session_factory):
    return NotificationService(session_factory)


@pytest.fixture
def recommendation_service(session_factory):
    return RecommendationService(session_factory)


@pytest.fixture
def make_user(user_service):
    """Create a user directly in the directory and return its id."""

    def _make(username, interests=()):
        return user_service.create_user(username, "unused-hash", interests).id

    return _make


@pytest.fixture
def befriend(friend_service):
    """Drive two users through request + accept."""

    def _befriend(first_id, second_id):
        friend_service.send_request(first_id, second_id)
        friend_service.accept_request(second_id, first_id)

    return _befriend


@pytest.fixture
def graph(session_factory):
    """Snapshot of the relationship tables as plain sets."""

    def _snapshot():
        with session_factory() as session:
            return {
                "users": {row.id for row in session.query(User.id)},
                "friendships": {(row.user_id, row.friend_id) for row in session.query(Friendship)},
                "requests": {(row.requester_id, row.target_id) for row in session.query(FriendRequest)},
                "notifications": [(row.user_id, row.message) for row in session.query(Notification).order_by(Notification.id)],
            }

    return _snapshot


@pytest.fixture
def client(session_factory):
    services = dependencies.build_services(session_factory, bcrypt_rounds=4)
    dependencies.set_services(
        services["users"],
        services["auth"],
        services["friends"],
        services["notifications"],
        services["recommendations"],
    )

    from main import app

    yield TestClient(app)
    dependencies.set_services(None, None, None, None, None)

