"""Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database. The FastAPI app's
``get_db`` dependency is overridden to hand out the same session the test
uses, so records created through factories are visible to requests and
vice versa.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import workhub.db.models  # noqa: F401  (registers tables on the metadata)
from workhub.api.deps import get_db
from workhub.api.main import app
from workhub.db.base import Base

from tests.factories import auth_headers, create_user


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
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """A session bound to the per-test database."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    """TestClient wired to the per-test session."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user_factory(db_session):
    """Create users with unique emails: ``user_factory(name="Ann")``."""
    def _create(**kwargs):
        return create_user(db_session, **kwargs)
    return _create


@pytest.fixture
def owner(user_factory):
    return user_factory(name="Owner")


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)
