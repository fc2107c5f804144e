"""
Shared fixtures: every test runs against a fresh in-memory SQLite database.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from evenly.api.dependencies import balance_cache
from evenly.db.session import SessionLocal, drop_db, init_db
from evenly.main import app


@pytest.fixture(autouse=True)
def fresh_database():
    """Create all tables before each test and drop them afterwards."""
    init_db()
    balance_cache.clear()
    yield
    balance_cache.clear()
    drop_db()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(client):
    """Factory creating users through the API; returns the new user id."""
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        response = client.post("/api/users", json={"name": name, "email": f"{name}@example.com"})
        assert response.status_code == 201
        return response.json()["id"]

    return _make


@pytest.fixture
def make_group(client):
    """Factory creating a group through the API; returns the new group id."""
    def _make(created_by, member_ids=(), currency="INR", name="Trip"):
        response = client.post(
            "/api/groups",
            json={
                "name": name,
                "currency": currency,
                "created_by": created_by,
                "member_ids": list(member_ids)
            }
        )
        assert response.status_code == 201
        return response.json()["id"]

    return _make
