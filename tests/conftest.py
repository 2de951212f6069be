import os

# Must be set before learnhub reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from learnhub.clients import (
    InMemoryEmailSender,
    InMemoryPaymentSessionCreator,
    InMemoryPlaybackProvider,
    ServiceClients,
)
from learnhub.core.cache import CatalogCache
from learnhub.core.config import Settings
from learnhub.core.database import Base, create_session_factory
from learnhub.core.hasher import PasswordHelper
from learnhub.models import Course, User
from main import create_app

PAID_COURSE_ID = "course-1"
FREE_COURSE_ID = "free-1"
PLAYBACK_ID = "a4nOgmxGWg6gULfcBbAa00gXyfcwPnAFldF8RdsNyk8M"


@pytest.fixture
def test_settings():
    return Settings(
        database_url="sqlite://",
        cache_enabled=False,
        rate_limit_enabled=False,
        password_hash_rounds=4,
        jwt_secret="test-secret",
        frontend_url="http://localhost:3000",
        verify_checkout_sessions=True,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(engine):
    session = create_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def clients():
    return ServiceClients(
        payments=InMemoryPaymentSessionCreator(),
        email=InMemoryEmailSender(),
        video=InMemoryPlaybackProvider(),
    )


@pytest.fixture
def app(test_settings, engine, clients):
    return create_app(
        app_settings=test_settings,
        engine=engine,
        clients=clients,
        catalog_cache=CatalogCache(None),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _create_user(db_session, email, is_admin=False, full_name="Test User"):
    user = User(
        email=email,
        full_name=full_name,
        hashed_password=PasswordHelper.hash_password("secret123", rounds=4),
        is_admin=is_admin,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def user(db_session):
    return _create_user(db_session, "learner@example.com")


@pytest.fixture
def other_user(db_session):
    return _create_user(db_session, "other@example.com", full_name="Other Learner")


@pytest.fixture
def admin(db_session):
    return _create_user(db_session, "admin@example.com", is_admin=True, full_name="Admin")


def _headers(app, user):
    token = app.state.jwt_manager.create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(app, user):
    return _headers(app, user)


@pytest.fixture
def other_headers(app, other_user):
    return _headers(app, other_user)


@pytest.fixture
def admin_headers(app, admin):
    return _headers(app, admin)


@pytest.fixture
def courses(db_session):
    paid = Course(
        id=PAID_COURSE_ID,
        title="Python Fundamentals",
        description="Variables, control flow and functions.",
        price=1999,
        video_playback_id=PLAYBACK_ID,
        video_duration=5400,
    )
    free = Course(
        id=FREE_COURSE_ID,
        title="Intro to Git",
        description="Commits and branches.",
        price=0,
        video_playback_id=PLAYBACK_ID,
    )
    db_session.add_all([paid, free])
    db_session.commit()
    return {"paid": paid, "free": free}
