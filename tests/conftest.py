"""Pytest configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient

# Default to the memory backend so importing the app never touches the filesystem
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from records_api.db import DatabaseRepository  # noqa: E402
from records_api.main import create_app  # noqa: E402
from records_api.repositories import InMemoryRepository  # noqa: E402
from records_api.schemas import RecordCreate  # noqa: E402
from records_api.settings import Settings  # noqa: E402


@pytest.fixture
def database_url(tmp_path):
    """SQLite file database private to one test."""
    return f"sqlite:///{tmp_path / 'records.db'}"


@pytest.fixture
def db_repo(database_url):
    repo = DatabaseRepository(database_url, pool_size=5, pool_timeout=5.0)
    yield repo
    repo.close()


@pytest.fixture(params=["memory", "database"])
def repo(request, database_url):
    """Each storage backend in turn, so the contract tests cover both."""
    if request.param == "memory":
        yield InMemoryRepository()
        return
    repository = DatabaseRepository(database_url, pool_size=5, pool_timeout=5.0)
    yield repository
    repository.close()


@pytest.fixture
def client():
    app = create_app(Settings(), repository=InMemoryRepository())
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_record():
    def _make(title="Buy milk", description="Two litres", status="todo", priority="medium"):
        return RecordCreate(title=title, description=description, status=status, priority=priority)

    return _make
