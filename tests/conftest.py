"""Test fixtures for the Task Management API.

The app reads its settings at import time, so the environment is pointed at a
throwaway SQLite database (and away from Redis) before anything under ``app``
is imported. Each test gets a fresh schema and a TestClient that runs the
real lifespan: table creation, change stream and in-process broadcast.
"""

import os
import tempfile
from pathlib import Path

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="task-board-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'tasks.db'}"
os.environ["REDIS_DSN"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.database import engine  # noqa: E402
from app.main import app  # noqa: E402
from app.realtime.broadcaster import broadcaster  # noqa: E402


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)


@pytest.fixture
def client():
    with TestClient(app) as client:
        client.portal.call(_reset_schema)
        yield client
        # Pooled connections belong to this client's event loop
        client.portal.call(engine.dispose)


@pytest.fixture
def published(client):
    """Number of events broadcast so far, read lazily."""
    return lambda: broadcaster.stats["published"]


@pytest.fixture
def make_task(client):
    def _make(title="Write report", category="To-Do", **extra):
        body = {"title": title, "category": category, **extra}
        response = client.post("/tasks", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
