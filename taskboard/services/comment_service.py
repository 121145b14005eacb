"""Comment service: nested comments on a task, persisted as flat records."""

import logging
from collections import defaultdict
from typing import Any

from taskboard.core import comment_tree, db_client
from taskboard.core.config import settings
from taskboard.core.db_client import sanitize_param
from taskboard.core.errors import PersistenceError
from taskboard.core.logging import log_with_task_context, span
from taskboard.domain.comment import CommentForest
from taskboard.domain.create_models import CommentCreate, build_validated
from taskboard.models.service_models import CommentMutationResult


logger = logging.getLogger(__name__)

COLLECTION = "comments"


def forests_by_task(records: list[dict[str, Any]]) -> dict[str, CommentForest]:
    """Group flat comment records by task and build one forest per task."""
    grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for record in records:
        grouped[str(record["task"])].append(record)
    return {task_id: comment_tree.from_records(task_records) for task_id, task_records in grouped.items()}


async def _comment_records(task_id: str) -> list[dict[str, Any]]:
    return await db_client.list_all_records(
        collection=COLLECTION,
        filter_query=f'task = "{sanitize_param(task_id)}"',
        sort="+created_at",
    )


async def get_forest(task_id: str) -> CommentForest:
    """Load the comment forest of a task.

    Raises:
        RecordNotFoundError: If the task does not exist
    """
    with span("comment_service.get_forest", task_id=task_id):
        await db_client.get_record(collection="tasks", record_id=task_id)
        return comment_tree.from_records(await _comment_records(task_id))


async def count_comments(task_id: str) -> int:
    """Total comments on a task, replies included."""
    return comment_tree.count_all(await get_forest(task_id))


def _result(forest: CommentForest, *, found: bool, comment_ids: tuple[str, ...] = ()) -> CommentMutationResult:
    return CommentMutationResult(
        found=found,
        forest=comment_tree.to_nested(forest),
        total=comment_tree.count_all(forest),
        comment_ids=list(comment_ids),
    )


def snapshot(forest: CommentForest) -> CommentMutationResult:
    """Current forest of a task in nested form."""
    return _result(forest, found=True)


async def add_comment(
    *,
    task_id: str,
    text: str,
    author: str,
    avatar: str | None = None,
    parent_id: str | None = None,
) -> CommentMutationResult:
    """Add a root comment, or a reply when ``parent_id`` is given.

    The comment is stored before the new forest is returned. A reply to a
    parent that does not exist stores nothing and returns ``found=False``.

    Raises:
        TaskValidationError: If the text is empty or too long, or the author is blank
        RecordNotFoundError: If the task does not exist
        PersistenceError: If the store rejects the comment
    """
    with span("comment_service.add_comment", task_id=task_id, parent_id=parent_id):
        payload = build_validated(
            CommentCreate,
            {"text": text, "author": author, "avatar": avatar, "parent_id": parent_id},
        )
        forest = await get_forest(task_id)
        node = comment_tree.new_comment(
            text=payload.text,
            author=payload.author,
            avatar=payload.avatar or settings.default_avatar_url,
        )
        mutation = comment_tree.insert_reply(forest, payload.parent_id, node)

        if not mutation.found:
            log_with_task_context(
                logger, "warning", "Reply parent not found", task_id=task_id, parent_id=payload.parent_id
            )
            return _result(forest, found=False)

        try:
            await db_client.create_record(
                collection=COLLECTION,
                data={
                    "uid": node.id,
                    "task": task_id,
                    "parent_comment": payload.parent_id,
                    "text": node.text,
                    "author": node.author,
                    "avatar": node.avatar,
                    "created_at": node.created_at,
                },
            )
        except db_client.DatabaseError as e:
            msg = f"Failed to save comment on task {task_id}"
            raise PersistenceError(msg) from e

        log_with_task_context(logger, "info", "Comment added", task_id=task_id, comment_id=node.id)
        return _result(mutation.forest, found=True, comment_ids=mutation.affected_ids)


async def delete_comment(*, task_id: str, comment_id: str) -> CommentMutationResult:
    """Delete a comment together with all of its replies.

    Raises:
        RecordNotFoundError: If the task does not exist
        PersistenceError: If a stored record could not be removed
    """
    with span("comment_service.delete_comment", task_id=task_id, comment_id=comment_id):
        await db_client.get_record(collection="tasks", record_id=task_id)
        records = await _comment_records(task_id)
        mutation = comment_tree.delete_node(comment_tree.from_records(records), comment_id)

        if not mutation.found:
            log_with_task_context(logger, "warning", "Comment to delete not found", task_id=task_id, comment_id=comment_id)
            return _result(mutation.forest, found=False)

        record_ids = {record["uid"]: record["id"] for record in records}
        try:
            # Leaves first, so a failed delete never orphans a reply.
            for uid in reversed(mutation.affected_ids):
                await db_client.delete_record(collection=COLLECTION, record_id=record_ids[uid])
        except db_client.DatabaseError as e:
            msg = f"Failed to delete comment {comment_id} on task {task_id}"
            raise PersistenceError(msg) from e

        log_with_task_context(
            logger, "info", "Comment deleted", task_id=task_id, comment_id=comment_id, removed=len(mutation.affected_ids)
        )
        return _result(mutation.forest, found=True, comment_ids=mutation.affected_ids)


async def delete_task_comments(task_id: str) -> int:
    """Remove every stored comment of a task. Returns how many were removed."""
    records = await _comment_records(task_id)
    for record in records:
        await db_client.delete_record(collection=COLLECTION, record_id=record["id"])
    return len(records)
