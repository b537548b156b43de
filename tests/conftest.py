"""
Test configuration and fixtures.

The database is a throwaway SQLite file; the environment is set before the
application is imported so that `settings` and the engine pick it up.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="medcards-tests-")
os.environ["DB_DRIVER_NAME"] = "sqlite"
os.environ["DB_DATABASE_NAME"] = os.path.join(_TEST_DIR, "test.db")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["LLM_API_KEY"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from medcards.database.config.connection_engine import connection_engine, init_db, metadata  # noqa: E402
from medcards.main import app  # noqa: E402


@pytest.fixture
def database():
    """Fresh tables for every test that touches the database."""
    init_db()
    yield
    metadata.drop_all(bind=connection_engine)


@pytest.fixture
def client(database):
    """Test client fixture."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return (user, headers)."""

    def _register(email="alice@example.com", password="s3cret-pass", name=None):
        body = {"email": email, "password": password}
        if name:
            body["name"] = name
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 200, response.text
        data = response.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def auth_headers(register):
    """Headers of a freshly registered default user."""
    _, headers = register()
    return headers
