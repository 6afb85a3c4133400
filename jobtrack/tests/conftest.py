"""
Pytest fixtures for JobTrack tests.
"""

import os

# Set before any jobtrack import so Settings picks them up.
# Low PBKDF2 iterations keep registration fast in tests.
os.environ["AUTH_SECRET_KEY"] = "test-secret-key-1234"
os.environ["AUTH_PASSWORD_ITERATIONS"] = "1000"
os.environ["DB_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from jobtrack.core.database import Database, User, set_database
from jobtrack.core.schemas import JobRecord


@pytest.fixture
def database():
    """Fresh in-memory database, installed as the process-wide one."""
    db = Database("sqlite://")
    db.create_all()
    set_database(db)
    yield db
    set_database(None)
    db.engine.dispose()


@pytest.fixture
def session(database):
    s = database.session()
    yield s
    s.close()


@pytest.fixture
def owners(session):
    """Two user rows: alice and bob."""
    alice = User(email="alice@example.com", name="Alice", password_hash="x$y")
    bob = User(email="bob@example.com", name="Bob", password_hash="x$y")
    session.add_all([alice, bob])
    session.commit()
    return alice.id, bob.id


@pytest.fixture
def client(database):
    """FastAPI test client bound to the fresh database."""
    from jobtrack.api.routes import app
    with TestClient(app) as c:
        yield c


def _register(client: TestClient, email: str, password: str = "hunter22", name: str = "") -> dict:
    """Register a user and return bearer headers for it."""
    response = client.post(
        "/users/register",
        json={"email": email, "password": password, "name": name}
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return _register(client, "alice@example.com", name="Alice")


@pytest.fixture
def other_headers(client):
    return _register(client, "bob@example.com", name="Bob")


def _make_job(**overrides) -> JobRecord:
    """Build a JobRecord with sensible defaults."""
    fields = {
        "id": "job-1",
        "owner_id": "owner-1",
        "position": "Software Engineer",
        "company": "Acme",
        "phase": "Applied",
        "cl": False,
        "status": True,
        "note": "",
        "applied_date": "2024-01-01",
    }
    fields.update(overrides)
    return JobRecord(**fields)


@pytest.fixture
def register_user(client):
    """Factory: register(email, password=..., name=...) -> bearer headers."""
    def register(email, password="hunter22", name=""):
        return _register(client, email, password, name)
    return register


@pytest.fixture
def make_job():
    """Factory for JobRecord instances."""
    return _make_job
