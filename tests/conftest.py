"""Pytest configuration and shared fixtures for the Inkwell test-suite."""

import os

# settings are read at import time, so configure them before importing inkwell
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inkwell.auth.service import issue_token
from inkwell.db.session import get_db, init_db, make_engine
from inkwell.main import create_app
from inkwell.middleware.ratelimit import FixedWindowRateLimiter, set_rate_limiter
from inkwell.models.category import Category
from inkwell.models.user import User
from inkwell.utils.security import hash_password


@pytest.fixture
def engine():
    """Fresh in-memory database; StaticPool keeps every session on one connection."""
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def limiter():
    limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=1000)
    set_rate_limiter(limiter)
    yield limiter
    set_rate_limiter(None)


@pytest.fixture
def client(session_factory, limiter):
    app = create_app(run_startup=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def call(client):
    """POST a single RPC call and return the decoded response.

    Returns ``(status_code, body)``.
    """
    def _call(path, input=None, token=None, **headers):
        if token:
            headers["Authorization"] = f"Bearer {token}"
        response = client.post("/api/rpc", json={"path": path, "input": input}, headers=headers)
        return response.status_code, response.json()
    return _call


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly and return ``(user_id, token)``."""
    def _make(name="Ann", email="ann@x.com", role="author", password=None, is_active=True):
        with session_factory() as session:
            user = User(
                name=name,
                email=email,
                role=role,
                is_active=is_active,
                password_hash=hash_password(password) if password else None,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user.id, issue_token(user)
    return _make


@pytest.fixture
def make_category(session_factory):
    def _make(name, slug):
        with session_factory() as session:
            category = Category(name=name, slug=slug)
            session.add(category)
            session.commit()
            return category.id
    return _make


@pytest.fixture
def categories(make_category):
    """Three categories with ids 1, 2 and 3."""
    return [
        make_category("Destination", "destination"),
        make_category("Culinary", "culinary"),
        make_category("Lifestyle", "lifestyle"),
    ]


@pytest.fixture
def post_data():
    """Valid posts.create input, with keyword overrides."""
    def _data(**overrides):
        data = {
            "title": "Weekend in Lisbon",
            "content": "Tram 28, pasteis de nata and a lot of hills.",
            "excerpt": "Three days in Lisbon",
            "categoryIds": [1],
        }
        data.update(overrides)
        return data
    return _data
