from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tasks_api.db import SQLiteRepository
from tasks_api.main import create_app
from tasks_api.repositories import InMemoryRepository, Repository
from tasks_api.settings import Settings


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        port=5000,
        host="127.0.0.1",
        persistence_backend="memory",
        database_url=str(tmp_path / "tasks.db"),
        cors_allow_origins=["*"],
        log_level="DEBUG",
    )


@pytest.fixture()
def memory_repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path: Path) -> Repository:
    """Every repository backend; contract tests run against each."""
    if request.param == "sqlite":
        return SQLiteRepository(str(tmp_path / "contract.db"))
    return InMemoryRepository()


@pytest.fixture()
def client(settings: Settings, memory_repo: InMemoryRepository) -> TestClient:
    """Client bound to a fresh app with an empty in-memory store."""
    return TestClient(create_app(settings=settings, repository=memory_repo))
