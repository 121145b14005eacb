"""Task service: store-backed CRUD, filtered views and drag reordering.

Every read is a full refresh from the store. Create, update and delete return
only after the store confirmed the change. A reorder computes the new dense
ordering first, then writes every changed position concurrently; failed
writes are reported but the computed ordering is still returned, and the next
full refresh reconciles it with the store.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import date
from typing import Any

from taskboard.core import db_client, ordering
from taskboard.core.errors import MalformedInputError, PersistenceError, TaskValidationError, classify_error_with_response
from taskboard.core.logging import log_with_context, log_with_task_context, span
from taskboard.core.projection import project_tasks
from taskboard.domain.attachment import Attachment
from taskboard.domain.comment import CommentForest
from taskboard.domain.create_models import TaskCreate, build_validated, utc_now_iso
from taskboard.domain.task import StatusFilter, Task, TaskStatus
from taskboard.domain.update_models import PositionUpdate, TaskUpdate
from taskboard.models.service_models import ReorderResult, TaskLoadResult
from taskboard.services import attachment_service, comment_service


logger = logging.getLogger(__name__)

COLLECTION = "tasks"

_TASK_FIELDS = set(Task.model_fields) - {"id", "comments", "attachments"}


def to_task(
    record: dict[str, Any],
    *,
    comments: CommentForest | None = None,
    attachments: list[Attachment] | None = None,
) -> Task:
    """Convert a stored record into a Task."""
    fields = {key: value for key, value in record.items() if key in _TASK_FIELDS and value is not None}
    return Task(
        id=str(record["id"]),
        **fields,
        comments=comments or CommentForest(),
        attachments=attachments or [],
    )


async def load_tasks() -> TaskLoadResult:
    """Full refresh of the board, in position order, with comments and attachments attached.

    A store failure or corrupt stored comments yield an empty task list and an
    error message instead of raising.
    """
    with span("task_service.load_tasks"):
        try:
            records = await db_client.list_all_records(collection=COLLECTION, sort="+position")
            comment_records = await db_client.list_all_records(collection="comments", sort="+created_at")
            attachment_records = await db_client.list_all_records(collection="attachments", sort="+uploaded_at")
            forests = comment_service.forests_by_task(comment_records)
        except (db_client.DatabaseError, MalformedInputError) as e:
            logger.error("Tasks unavailable: %s", e)
            return TaskLoadResult(tasks=[], error="Tasks unavailable")

        attachments: dict[str, list[Attachment]] = defaultdict(list)
        for record in attachment_records:
            attachments[str(record["task"])].append(attachment_service.to_attachment(record))

        tasks = [
            to_task(record, comments=forests.get(str(record["id"])), attachments=attachments.get(str(record["id"])))
            for record in records
        ]
        logger.debug("Loaded %d tasks", len(tasks))
        return TaskLoadResult(tasks=ordering.sort_by_position(tasks))


async def get_task(task_id: str) -> Task:
    """Fetch one task with its comments and attachments.

    Raises:
        RecordNotFoundError: If the task does not exist
    """
    with span("task_service.get_task", task_id=task_id):
        record = await db_client.get_record(collection=COLLECTION, record_id=task_id)
        return to_task(
            record,
            comments=await comment_service.get_forest(task_id),
            attachments=await attachment_service.list_attachments(task_id),
        )


async def create_task(
    *,
    title: str,
    description: str = "",
    due_date: str | None = None,
    priority: str = "medium",
    status: str = "pending",
    category: str = "",
    project: str = "",
    estimated_hours: float = 1.0,
) -> Task:
    """Create a task at the end of the board.

    Raises:
        TaskValidationError: If the title is blank or the due date is not an ISO date
        PersistenceError: If the store rejects the record
    """
    with span("task_service.create_task"):
        payload = build_validated(
            TaskCreate,
            {
                "title": title,
                "description": description,
                "due_date": due_date,
                "priority": priority,
                "status": status,
                "category": category,
                "project": project,
                "estimated_hours": estimated_hours,
            },
        )
        try:
            existing = await db_client.list_all_records(collection=COLLECTION)
            position = max((int(record["position"]) for record in existing), default=-1) + 1
            record = await db_client.create_record(
                collection=COLLECTION,
                data={**payload.model_dump(mode="json"), "position": position},
            )
        except db_client.DatabaseError as e:
            msg = f"Failed to create task {title!r}"
            raise PersistenceError(msg) from e

        logger.info("Created task: %s (position %d)", payload.title, position)
        return to_task(record)


async def update_task(task_id: str, **changes: Any) -> Task:
    """Apply a partial update to a task.

    Raises:
        TaskValidationError: If a field is invalid or nothing was given to change
        RecordNotFoundError: If the task does not exist
        PersistenceError: If the store rejects the update
    """
    with span("task_service.update_task", task_id=task_id):
        payload = build_validated(TaskUpdate, changes)
        data = payload.model_dump(mode="json", exclude_unset=True)
        if not data:
            msg = "Nothing to update"
            raise TaskValidationError(msg)
        data["updated_at"] = utc_now_iso()

        try:
            record = await db_client.update_record(collection=COLLECTION, record_id=task_id, data=data)
        except db_client.DatabaseError as e:
            msg = f"Failed to update task {task_id}"
            raise PersistenceError(msg) from e

        log_with_task_context(logger, "info", "Task updated", task_id=task_id, fields=sorted(data))
        return to_task(record)


async def update_task_status(task_id: str, status: TaskStatus | str) -> Task:
    """Move a task to another status."""
    return await update_task(task_id, status=status)


async def _write_position(op: PositionUpdate) -> PositionUpdate:
    await db_client.update_record(collection=COLLECTION, record_id=op.task_id, data={"position": op.position})
    return op


async def _renumber_board() -> list[Task]:
    """Close gaps in the stored positions, writing only the tasks that moved."""
    records = await db_client.list_all_records(collection=COLLECTION, sort="+position")
    current = [to_task(record) for record in records]
    renumbered = ordering.renumber(current)
    for before, after in zip(current, renumbered, strict=True):
        if before.position != after.position:
            await _write_position(PositionUpdate(task_id=after.id, position=after.position))
    return ordering.sort_by_position(renumbered)


async def delete_task(task_id: str) -> list[Task]:
    """Delete a task with its comments and attachments, then close the gap in positions.

    Returns:
        The remaining tasks in position order

    Raises:
        RecordNotFoundError: If the task does not exist
        PersistenceError: If the store rejects a deletion
    """
    with span("task_service.delete_task", task_id=task_id):
        await db_client.get_record(collection=COLLECTION, record_id=task_id)
        try:
            try:
                # Children first; the task record goes last.
                removed_comments = await comment_service.delete_task_comments(task_id)
                removed_attachments = await attachment_service.delete_task_attachments(task_id)
                await db_client.delete_record(collection=COLLECTION, record_id=task_id)
            finally:
                remaining = await _renumber_board()
        except db_client.DatabaseError as e:
            msg = f"Failed to delete task {task_id}"
            raise PersistenceError(msg) from e

        log_with_task_context(
            logger,
            "info",
            "Task deleted",
            task_id=task_id,
            comments=removed_comments,
            attachments=removed_attachments,
        )
        return remaining


async def list_visible_tasks(
    *,
    status_filter: StatusFilter | str = StatusFilter.ALL,
    search_term: str = "",
    today: date | None = None,
) -> TaskLoadResult:
    """The board as a view shows it: filtered, searched, in position order."""
    loaded = await load_tasks()
    return TaskLoadResult(
        tasks=project_tasks(loaded.tasks, status_filter, search_term, today=today),
        error=loaded.error,
    )


async def reorder_tasks(
    *,
    task_id: str,
    from_index: int,
    to_index: int,
    status_filter: StatusFilter | str = StatusFilter.ALL,
    search_term: str = "",
    today: date | None = None,
) -> ReorderResult:
    """Drag a task from one index of the current view to another.

    Indices refer to the view described by ``status_filter``/``search_term``.
    Every changed position is written concurrently; a failed write does not
    undo the others and is reported in ``ReorderResult.failed``.

    Raises:
        MalformedInputError: If the indices or task do not match the current view
        PersistenceError: If the board could not be loaded
    """
    with span("task_service.reorder_tasks", task_id=task_id, from_index=from_index, to_index=to_index):
        loaded = await load_tasks()
        if loaded.error:
            raise PersistenceError(loaded.error)

        visible = project_tasks(loaded.tasks, status_filter, search_term, today=today)
        plan = ordering.reorder(loaded.tasks, visible, task_id, from_index, to_index)
        if not plan.ops:
            return ReorderResult(tasks=ordering.sort_by_position(plan.tasks))

        outcomes = await asyncio.gather(*(_write_position(op) for op in plan.ops), return_exceptions=True)

        persisted: list[PositionUpdate] = []
        failed: list[PositionUpdate] = []
        first_error: BaseException | None = None
        for op, outcome in zip(plan.ops, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                failed.append(op)
                first_error = first_error or outcome
            else:
                persisted.append(op)

        error = None
        if failed:
            log_with_context(
                logger,
                "warning",
                "Some task positions were not saved",
                task_id=task_id,
                failed=[op.task_id for op in failed],
                error=str(first_error),
            )
            error = classify_error_with_response(PersistenceError(str(first_error)))
        else:
            log_with_task_context(
                logger, "info", "Tasks reordered", task_id=task_id, from_index=from_index, to_index=to_index
            )

        return ReorderResult(
            tasks=ordering.sort_by_position(plan.tasks),
            persisted=persisted,
            failed=failed,
            error=error,
        )
