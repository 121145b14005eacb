"""JSON API for the board, comments, attachments, projects and analytics."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from taskboard.core.config import constants
from taskboard.core.db_client import DatabaseError, RecordNotFoundError
from taskboard.core.errors import ErrorCategory, TaskboardError, classify_error, classify_error_with_response
from taskboard.domain.attachment import Attachment
from taskboard.domain.project import Project
from taskboard.domain.task import StatusFilter, Task
from taskboard.models.service_models import (
    AnalyticsReport,
    CommentMutationResult,
    ProjectLoadResult,
    ReorderResult,
    TaskLoadResult,
)
from taskboard.services import (
    analytics_service,
    attachment_service,
    comment_service,
    project_service,
    task_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

_HANDLED_ERRORS = (TaskboardError, DatabaseError, RecordNotFoundError)

_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: constants.HTTP_UNPROCESSABLE,
    ErrorCategory.MALFORMED_INPUT: constants.HTTP_CONFLICT,
    ErrorCategory.NOT_FOUND: constants.HTTP_NOT_FOUND,
    ErrorCategory.PERSISTENCE: constants.HTTP_BAD_GATEWAY,
    ErrorCategory.NETWORK_ERROR: constants.HTTP_BAD_GATEWAY,
}


def _http_error(exc: Exception) -> HTTPException:
    """Turn a service error into an HTTP error carrying one ErrorResponse."""
    category = classify_error(exc)
    response = classify_error_with_response(exc)
    status_code = _STATUS_BY_CATEGORY.get(category, constants.HTTP_INTERNAL_ERROR)
    logger.warning("api_error", extra={"code": response.code, "status": status_code, "error": str(exc)})
    return HTTPException(status_code=status_code, detail=response.model_dump(mode="json"))


def _comment_response(result: CommentMutationResult) -> JSONResponse:
    status_code = constants.HTTP_OK if result.found else constants.HTTP_NOT_FOUND
    return JSONResponse(content=result.model_dump(mode="json"), status_code=status_code)


class TaskBody(BaseModel):
    """Fields accepted when creating a task."""

    title: str
    description: str = ""
    due_date: str | None = None
    priority: str = "medium"
    status: str = "pending"
    category: str = ""
    project: str = ""
    estimated_hours: float = 1.0


class TaskPatchBody(BaseModel):
    """Fields accepted when updating a task. Omitted fields are left alone."""

    title: str | None = None
    description: str | None = None
    due_date: str | None = None
    priority: str | None = None
    status: str | None = None
    category: str | None = None
    project: str | None = None
    estimated_hours: float | None = None


class ReorderBody(BaseModel):
    """A drag from one index of a view to another."""

    task_id: str
    from_index: int
    to_index: int
    status_filter: StatusFilter = StatusFilter.ALL
    search_term: str = ""


class CommentBody(BaseModel):
    """A new comment, or a reply when ``parent_id`` is set."""

    text: str
    author: str
    avatar: str | None = None
    parent_id: str | None = None


class AttachmentBody(BaseModel):
    """Metadata of an uploaded file."""

    name: str
    size: int
    type: str
    url: str = ""


class ProjectBody(BaseModel):
    """Fields accepted when creating a project."""

    name: str = ""
    description: str = ""
    status: str = "planning"
    priority: str = "medium"
    progress: int = 0
    start_date: str | None = None
    end_date: str | None = None
    budget: float = 0.0
    spent: float = 0.0
    category: str = "development"
    team: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class ProjectPatchBody(BaseModel):
    """Fields accepted when updating a project. Omitted fields are left alone."""

    name: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    progress: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    budget: float | None = None
    spent: float | None = None
    category: str | None = None
    team: list[str] | None = None
    tags: list[str] | None = None


# Tasks


@router.get("/tasks")
async def list_tasks(
    status_filter: StatusFilter = Query(default=StatusFilter.ALL, alias="status"),
    search: str = "",
) -> TaskLoadResult:
    """The board as the given filter and search show it."""
    return await task_service.list_visible_tasks(status_filter=status_filter, search_term=search)


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(body: TaskBody) -> Task:
    """Create a task at the end of the board."""
    try:
        return await task_service.create_task(**body.model_dump())
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


@router.post("/tasks/reorder")
async def reorder_tasks(body: ReorderBody) -> ReorderResult:
    """Move a task within the current view. Failed position writes are reported in the result."""
    try:
        return await task_service.reorder_tasks(**body.model_dump())
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


@router.get("/tasks/{task_id}")
async def get_task(task_id: str) -> Task:
    """One task with its comments and attachments."""
    try:
        return await task_service.get_task(task_id)
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


@router.patch("/tasks/{task_id}")
async def update_task(task_id: str, body: TaskPatchBody) -> Task:
    """Change some fields of a task."""
    try:
        return await task_service.update_task(task_id, **body.model_dump(exclude_unset=True))
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str) -> list[Task]:
    """Delete a task and return the renumbered board."""
    try:
        return await task_service.delete_task(task_id)
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


# Comments


@router.get("/tasks/{task_id}/comments")
async def get_comments(task_id: str) -> CommentMutationResult:
    """Nested comments of a task."""
    try:
        forest = await comment_service.get_forest(task_id)
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e
    return comment_service.snapshot(forest)


@router.post("/tasks/{task_id}/comments")
async def add_comment(task_id: str, body: CommentBody) -> JSONResponse:
    """Add a comment or reply. Replying to a missing comment answers 404 with the unchanged forest."""
    try:
        result = await comment_service.add_comment(task_id=task_id, **body.model_dump())
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e
    return _comment_response(result)


@router.delete("/tasks/{task_id}/comments/{comment_id}")
async def delete_comment(task_id: str, comment_id: str) -> JSONResponse:
    """Delete a comment with all of its replies."""
    try:
        result = await comment_service.delete_comment(task_id=task_id, comment_id=comment_id)
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e
    return _comment_response(result)


# Attachments


@router.post("/tasks/{task_id}/attachments", status_code=status.HTTP_201_CREATED)
async def add_attachment(task_id: str, body: AttachmentBody) -> Attachment:
    """Attach file metadata to a task."""
    try:
        return await attachment_service.add_attachment(task_id=task_id, **body.model_dump())
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


@router.delete("/tasks/{task_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_attachment(task_id: str, attachment_id: str) -> None:
    """Remove an attachment from a task."""
    try:
        await attachment_service.remove_attachment(task_id=task_id, attachment_id=attachment_id)
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


# Projects


@router.get("/projects")
async def list_projects(
    status_filter: str = Query(default="all", alias="status"),
    priority: str = "all",
    search: str = "",
    sort_by: str = "name",
    order: str = "asc",
) -> ProjectLoadResult:
    """Projects filtered and sorted for the grid."""
    return await project_service.list_projects(
        status=status_filter, priority=priority, search=search, sort_by=sort_by, order=order
    )


@router.post("/projects", status_code=status.HTTP_201_CREATED)
async def create_project(body: ProjectBody) -> Project:
    """Create a project."""
    try:
        return await project_service.create_project(**body.model_dump())
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


@router.patch("/projects/{project_id}")
async def update_project(project_id: str, body: ProjectPatchBody) -> Project:
    """Change some fields of a project."""
    changes: dict[str, Any] = body.model_dump(exclude_unset=True)
    try:
        return await project_service.update_project(project_id, **changes)
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str) -> None:
    """Delete a project."""
    try:
        await project_service.delete_project(project_id)
    except _HANDLED_ERRORS as e:
        raise _http_error(e) from e


# Analytics


@router.get("/analytics")
async def get_analytics() -> AnalyticsReport:
    """Dashboard numbers and chart series."""
    return await analytics_service.get_analytics_report()
