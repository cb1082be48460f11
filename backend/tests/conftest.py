"""Pytest configuration and shared fixtures."""

import os

# Keep the app module from creating ./data/kakeibo.db on import
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, get_db, set_sqlite_pragma
from app.main import app
from app.models.user import User
from app.services.price_service import PriceService


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", set_sqlite_pragma)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """A session for service-level tests."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def user(db):
    """A registered user with the default base currency."""
    db_user = User(id="user-1", email="user-1@example.com", base_currency="JPY")
    db.add(db_user)
    db.commit()
    return db_user


@pytest.fixture(scope="function")
def other_user(db):
    db_user = User(id="user-2", email="user-2@example.com", base_currency="JPY")
    db.add(db_user)
    db.commit()
    return db_user


@pytest.fixture(scope="function")
def client(session_factory):
    """TestClient bound to the test database (lifespan is not run)."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "alice", "X-User-Email": "alice@example.com"}


@pytest.fixture
def other_headers():
    return {"X-User-Id": "bob", "X-User-Email": "bob@example.com"}


@pytest.fixture(autouse=True)
def clear_price_cache():
    PriceService.clear_cache()
    yield
    PriceService.clear_cache()


@pytest.fixture
def create_account(client, auth_headers):
    """Create an account through the API and return its JSON."""

    def _create(name="Main", account_type="checking", balance="0", currency="JPY", headers=None):
        response = client.post(
            "/api/v1/accounts/",
            json={
                "name": name,
                "account_type": account_type,
                "balance": balance,
                "currency": currency,
            },
            headers=headers or auth_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create
