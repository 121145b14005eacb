"""Pytest configuration and fixtures for unit tests."""

import pytest

from tests.unit.mocks import InMemoryDBClient, make_task_record


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches taskboard.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("taskboard.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("taskboard.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("taskboard.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("taskboard.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("taskboard.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("taskboard.core.db_client.get_first_record", in_memory_db.get_first_record)
    return in_memory_db


@pytest.fixture
def seeded_board(patched_db):
    """Three stored tasks A, B, C at positions 0, 1, 2. Returns their ids in order."""
    return [
        patched_db.seed("tasks", make_task_record("A", 0))["id"],
        patched_db.seed("tasks", make_task_record("B", 1, status="completed"))["id"],
        patched_db.seed("tasks", make_task_record("C", 2))["id"],
    ]


@pytest.fixture
def sample_project_data():
    """Returns valid fields for creating a project."""
    return {
        "name": "Website Redesign",
        "description": "Refresh the marketing site",
        "status": "active",
        "priority": "high",
        "progress": 40,
        "start_date": "2024-01-01",
        "end_date": "2024-06-30",
        "budget": 50000,
        "spent": 20000,
        "category": "design",
    }
