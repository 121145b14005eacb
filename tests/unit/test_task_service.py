"""Unit tests for task_service module."""

import pytest

from taskboard.core.db_client import DatabaseError, RecordNotFoundError
from taskboard.core.errors import ErrorCode, MalformedInputError, PersistenceError, TaskValidationError
from taskboard.domain.task import TaskStatus
from taskboard.domain.update_models import PositionUpdate
from taskboard.services import task_service
from tests.unit.mocks import make_task_record


def _stored_positions(db, ids: list[str]) -> list[int]:
    by_id = {record["id"]: record["position"] for record in db.records("tasks")}
    return [by_id[task_id] for task_id in ids]


@pytest.mark.unit
class TestLoadTasks:
    """Tests for load_tasks and list_visible_tasks."""

    async def test_tasks_come_back_in_position_order_with_comments(self, patched_db, seeded_board):
        """A full refresh sorts by position and attaches comment forests and attachments."""
        a, b, _ = seeded_board
        await patched_db.update_record(collection="tasks", record_id=a, data={"position": 5})
        patched_db.seed(
            "comments",
            {"uid": "c1", "task": b, "parent_comment": None, "text": "hi", "author": "Alex", "created_at": "2024-01-01"},
        )
        patched_db.seed(
            "attachments",
            {"task": b, "name": "brief.pdf", "size": 10, "type": "application/pdf", "uploaded_at": "2024-01-01"},
        )

        result = await task_service.load_tasks()

        assert result.error is None
        assert [task.title for task in result.tasks] == ["B", "C", "A"]
        assert result.tasks[0].comments.roots == ["c1"]
        assert result.tasks[0].attachments[0].name == "brief.pdf"

    async def test_store_failure_is_reported_not_raised(self, patched_db, monkeypatch):
        """An unavailable store yields no tasks and an error message."""

        async def broken(**kwargs):
            raise DatabaseError("database is locked")

        monkeypatch.setattr("taskboard.core.db_client.list_records", broken)

        result = await task_service.load_tasks()

        assert result.tasks == []
        assert result.error == "Tasks unavailable"

    async def test_corrupt_comments_are_reported_not_raised(self, patched_db, seeded_board):
        """Comments that are each other's parent make the board unavailable instead of failing."""
        task_id = seeded_board[0]
        for uid, parent in (("x", "y"), ("y", "x")):
            patched_db.seed(
                "comments",
                {"uid": uid, "task": task_id, "parent_comment": parent, "text": uid, "author": "Sam", "created_at": ""},
            )

        result = await task_service.load_tasks()

        assert result.tasks == []
        assert result.error == "Tasks unavailable"

    async def test_visible_tasks_are_filtered(self, patched_db, seeded_board):
        """Views only see tasks matching the filter."""
        result = await task_service.list_visible_tasks(status_filter="completed")

        assert [task.title for task in result.tasks] == ["B"]


@pytest.mark.unit
class TestCreateUpdateDelete:
    """Tests for task CRUD."""

    async def test_create_appends_to_end(self, patched_db, seeded_board):
        """A new task takes the next free position."""
        task = await task_service.create_task(title="D", priority="high", due_date="2024-04-01")

        assert task.position == 3
        assert task.priority == "high"
        assert len(patched_db.records("tasks")) == 4

    async def test_create_on_empty_board(self, patched_db):
        """The first task sits at position 0."""
        task = await task_service.create_task(title="First")

        assert task.position == 0
        assert task.created_at is not None

    async def test_blank_title_stores_nothing(self, patched_db):
        """Validation happens before any write."""
        with pytest.raises(TaskValidationError, match="Task title is required"):
            await task_service.create_task(title="  ")

        assert patched_db.records("tasks") == []

    async def test_create_store_failure(self, patched_db, monkeypatch):
        """A rejected insert surfaces as a persistence error."""

        async def broken(**kwargs):
            raise DatabaseError("disk full")

        monkeypatch.setattr("taskboard.core.db_client.create_record", broken)

        with pytest.raises(PersistenceError):
            await task_service.create_task(title="D")

    async def test_update_status(self, patched_db, seeded_board):
        """Only the given fields change, and updated_at is refreshed."""
        task = await task_service.update_task_status(seeded_board[0], TaskStatus.IN_PROGRESS)

        assert task.status == TaskStatus.IN_PROGRESS
        assert task.title == "A"
        assert task.updated_at != "2024-01-15T10:00:00Z"

    async def test_update_with_nothing_to_change(self, patched_db, seeded_board):
        """An empty update is a validation error."""
        with pytest.raises(TaskValidationError, match="Nothing to update"):
            await task_service.update_task(seeded_board[0])

    async def test_update_missing_task(self, patched_db):
        """Updating an unknown task raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            await task_service.update_task("9999", title="New")

    async def test_delete_closes_gap_and_removes_children(self, patched_db, seeded_board):
        """Deleting the middle task renumbers the rest and removes its comments and attachments."""
        a, b, c = seeded_board
        patched_db.seed(
            "comments",
            {"uid": "c1", "task": b, "parent_comment": None, "text": "hi", "author": "Alex", "created_at": "2024-01-01"},
        )
        patched_db.seed(
            "attachments",
            {"task": b, "name": "brief.pdf", "size": 10, "type": "application/pdf", "uploaded_at": "2024-01-01"},
        )

        remaining = await task_service.delete_task(b)

        assert [(task.title, task.position) for task in remaining] == [("A", 0), ("C", 1)]
        assert _stored_positions(patched_db, [a, c]) == [0, 1]
        assert patched_db.records("comments") == []
        assert patched_db.records("attachments") == []

    async def test_failed_cascade_keeps_task_and_dense_positions(self, patched_db, monkeypatch):
        """If removing attachments fails, the task stays and positions are still renumbered."""
        a = patched_db.seed("tasks", make_task_record("A", 0))["id"]
        b = patched_db.seed("tasks", make_task_record("B", 2))["id"]
        c = patched_db.seed("tasks", make_task_record("C", 5))["id"]
        patched_db.seed(
            "attachments",
            {"task": b, "name": "brief.pdf", "size": 10, "type": "application/pdf", "uploaded_at": "2024-01-01"},
        )
        original = patched_db.delete_record

        async def flaky(*, collection, record_id):
            if collection == "attachments":
                raise DatabaseError("database is locked")
            await original(collection=collection, record_id=record_id)

        monkeypatch.setattr("taskboard.core.db_client.delete_record", flaky)

        with pytest.raises(PersistenceError):
            await task_service.delete_task(b)

        assert _stored_positions(patched_db, [a, b, c]) == [0, 1, 2]
        assert len(patched_db.records("attachments")) == 1

    async def test_delete_missing_task(self, patched_db):
        """Deleting an unknown task raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            await task_service.delete_task("9999")


@pytest.mark.unit
class TestReorderTasks:
    """Tests for reorder_tasks."""

    async def test_move_to_front_persists_positions(self, patched_db, seeded_board):
        """Every changed position is written to the store."""
        a, b, c = seeded_board

        result = await task_service.reorder_tasks(task_id=c, from_index=2, to_index=0)

        assert [task.title for task in result.tasks] == ["C", "A", "B"]
        assert result.failed == []
        assert result.error is None
        assert len(result.persisted) == 3
        assert _stored_positions(patched_db, [a, b, c]) == [1, 2, 0]

    async def test_reorder_inside_filtered_view(self, patched_db, seeded_board):
        """The hidden completed task keeps its slot."""
        a, b, c = seeded_board

        result = await task_service.reorder_tasks(task_id=c, from_index=1, to_index=0, status_filter="pending")

        assert [task.title for task in result.tasks] == ["C", "B", "A"]
        assert _stored_positions(patched_db, [a, b, c]) == [2, 1, 0]

    async def test_same_index_writes_nothing(self, patched_db, seeded_board):
        """Dropping a task where it was is a no-op."""
        result = await task_service.reorder_tasks(task_id=seeded_board[1], from_index=1, to_index=1)

        assert result.persisted == []
        assert [task.position for task in result.tasks] == [0, 1, 2]

    async def test_partial_write_failure_is_reported(self, patched_db, seeded_board, monkeypatch):
        """A failed position write is listed; the other writes still land."""
        a, b, c = seeded_board
        original = patched_db.update_record

        async def flaky(*, collection, record_id, data):
            if record_id == a:
                raise DatabaseError("disk I/O error")
            return await original(collection=collection, record_id=record_id, data=data)

        monkeypatch.setattr("taskboard.core.db_client.update_record", flaky)

        result = await task_service.reorder_tasks(task_id=c, from_index=2, to_index=0)

        assert [task.title for task in result.tasks] == ["C", "A", "B"]
        assert result.failed == [PositionUpdate(task_id=a, position=1)]
        assert {op.task_id for op in result.persisted} == {b, c}
        assert result.error is not None
        assert result.error.code == ErrorCode.ERR_PERSISTENCE_FAILED
        assert _stored_positions(patched_db, [a, b, c]) == [0, 2, 0]

    async def test_stale_drag_is_rejected(self, patched_db, seeded_board):
        """The dragged task must be at from_index in the current view."""
        with pytest.raises(MalformedInputError):
            await task_service.reorder_tasks(task_id=seeded_board[0], from_index=2, to_index=0)

    async def test_unavailable_board_raises(self, patched_db, monkeypatch):
        """Without a board there is nothing to reorder."""

        async def broken(**kwargs):
            raise DatabaseError("database is locked")

        monkeypatch.setattr("taskboard.core.db_client.list_records", broken)

        with pytest.raises(PersistenceError, match="Tasks unavailable"):
            await task_service.reorder_tasks(task_id="1", from_index=0, to_index=1)
