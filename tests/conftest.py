"""
Pytest configuration and shared fixtures.

Every test gets its own sqlite file under pytest's tmp_path.
"""

import pytest
from fastapi.testclient import TestClient

from contact_store import ContactStore
from db_setup import get_db_connection, init_db
from main import app, get_resolver
from resolver import IdentityResolver


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "contacts.db")
    init_db(path)
    return path


@pytest.fixture
def store(db_path):
    return ContactStore(db_path)


@pytest.fixture
def resolver(store):
    return IdentityResolver(store)


@pytest.fixture
def client(resolver):
    app.dependency_overrides[get_resolver] = lambda: resolver
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fetch_rows(db_path):
    """Read the Contact table back as plain dicts keyed by id."""

    def _fetch():
        conn = get_db_connection(db_path)
        try:
            rows = conn.execute("SELECT * FROM Contact ORDER BY id").fetchall()
        finally:
            conn.close()
        return {row["id"]: dict(row) for row in rows}

    return _fetch
