"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator

import pytest

from taskboard.core import db_client
from taskboard.core.config import settings


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """A fresh SQLite store with the schema applied, closed after the test."""
    db_path = str(tmp_path / "taskboard_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)
    await db_client.init_db()
    yield db_path
    await db_client.close_connection()
