"""Test fixtures for Pastebin Lite."""

import os

# Must be set before the app modules read their settings
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["TEST_MODE"] = "1"
os.environ["APP_DOMAIN"] = ""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from app.database import InMemoryBackend
from app.exceptions import BackendUnavailable
from app.main import app
from app.store import PasteStore, get_store


@pytest.fixture
def backend() -> InMemoryBackend:
    """Fresh in-memory backend."""
    return InMemoryBackend()


class FailingBackend(InMemoryBackend):
    """Backend whose ping always fails."""

    def ping(self):
        raise BackendUnavailable("connection refused")


@pytest.fixture
def failing_backend() -> FailingBackend:
    return FailingBackend()


@pytest.fixture
def store(backend) -> PasteStore:
    """Paste store over the fresh backend."""
    return PasteStore(backend)


@pytest.fixture
def client(store) -> Generator[TestClient, None, None]:
    """Return FastAPI TestClient bound to the test store."""
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def create_paste(client):
    """Create a paste through the API and return its id."""
    def _create(content="hello", **fields):
        response = client.post("/api/pastes", json={"content": content, **fields})
        assert response.status_code == 201, response.text
        return response.json()["id"]

    return _create
