"""Pytest fixtures shared across the test suite."""

import pytest
from fastapi.testclient import TestClient

from database import JsonFileStore
from main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "db.json")


@pytest.fixture
def store(db_path):
    """Return an open JSON store backed by a temporary file."""

    store = JsonFileStore(db_path).open()
    yield store
    store.close()


@pytest.fixture
def client(db_path):
    """Return a TestClient whose app runs on a temporary JSON store."""

    app.state.store = JsonFileStore(db_path)
    with TestClient(app) as test_client:
        yield test_client
    del app.state.store
