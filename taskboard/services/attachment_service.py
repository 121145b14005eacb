"""Attachment metadata for tasks. File bytes are stored elsewhere; only metadata lives here."""

import logging
from typing import Any

from taskboard.core import db_client
from taskboard.core.db_client import RecordNotFoundError, sanitize_param
from taskboard.core.errors import PersistenceError
from taskboard.core.logging import log_with_task_context, span
from taskboard.domain.attachment import Attachment
from taskboard.domain.create_models import AttachmentCreate, build_validated


logger = logging.getLogger(__name__)

COLLECTION = "attachments"

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """Human readable size: ``1536`` -> ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def to_attachment(record: dict[str, Any]) -> Attachment:
    """Convert a stored record into an Attachment."""
    return Attachment(
        id=str(record["id"]),
        task=str(record["task"]),
        name=record["name"],
        size=int(record["size"]),
        type=record["type"],
        url=record.get("url") or "",
        uploaded_at=record["uploaded_at"],
    )


async def list_attachments(task_id: str) -> list[Attachment]:
    """Attachments of one task in upload order."""
    records = await db_client.list_all_records(
        collection=COLLECTION,
        filter_query=f'task = "{sanitize_param(task_id)}"',
        sort="+uploaded_at",
    )
    return [to_attachment(record) for record in records]


async def add_attachment(*, task_id: str, name: str, size: int, type: str, url: str = "") -> Attachment:  # noqa: A002
    """Record a new attachment on a task.

    Raises:
        TaskValidationError: If the file is larger than the limit or of an unsupported type
        RecordNotFoundError: If the task does not exist
        PersistenceError: If the store rejects the record
    """
    with span("attachment_service.add_attachment", task_id=task_id, type=type):
        payload = build_validated(AttachmentCreate, {"name": name, "size": size, "type": type, "url": url})
        await db_client.get_record(collection="tasks", record_id=task_id)
        try:
            record = await db_client.create_record(
                collection=COLLECTION, data={"task": task_id, **payload.model_dump()}
            )
        except db_client.DatabaseError as e:
            msg = f"Failed to attach {name} to task {task_id}"
            raise PersistenceError(msg) from e

        log_with_task_context(logger, "info", "Attachment added", task_id=task_id, size=format_file_size(size))
        return to_attachment(record)


async def remove_attachment(*, task_id: str, attachment_id: str) -> None:
    """Remove an attachment from a task.

    Raises:
        RecordNotFoundError: If the attachment does not exist or belongs to another task
    """
    with span("attachment_service.remove_attachment", task_id=task_id, attachment_id=attachment_id):
        record = await db_client.get_record(collection=COLLECTION, record_id=attachment_id)
        if str(record["task"]) != task_id:
            msg = f"Record not found in {COLLECTION}: {attachment_id}"
            raise RecordNotFoundError(msg)
        await db_client.delete_record(collection=COLLECTION, record_id=attachment_id)
        log_with_task_context(logger, "info", "Attachment removed", task_id=task_id, attachment_id=attachment_id)


async def delete_task_attachments(task_id: str) -> int:
    """Remove every attachment record of a task. Returns how many were removed."""
    attachments = await list_attachments(task_id)
    for attachment in attachments:
        await db_client.delete_record(collection=COLLECTION, record_id=attachment.id)
    return len(attachments)
