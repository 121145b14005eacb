"""Project service: CRUD and the filtered/sorted project grid."""

import json
import logging
from typing import Any

from taskboard.core import db_client
from taskboard.core.errors import PersistenceError, TaskValidationError
from taskboard.core.logging import span
from taskboard.core.projection import filter_projects
from taskboard.domain.create_models import ProjectCreate, build_validated
from taskboard.domain.project import Project
from taskboard.domain.update_models import ProjectUpdate
from taskboard.models.service_models import ProjectLoadResult


logger = logging.getLogger(__name__)

COLLECTION = "projects"

_PROJECT_FIELDS = set(Project.model_fields) - {"id"}

_LIST_FIELDS = ("team", "tags")


def to_project(record: dict[str, Any]) -> Project:
    """Convert a stored record into a Project."""
    fields = {key: value for key, value in record.items() if key in _PROJECT_FIELDS and value is not None}
    for key in _LIST_FIELDS:
        if isinstance(fields.get(key), str):
            fields[key] = json.loads(fields[key])
    return Project(id=str(record["id"]), **fields)


async def load_projects() -> ProjectLoadResult:
    """Full refresh of all projects; a store failure yields an empty list and an error."""
    with span("project_service.load_projects"):
        try:
            records = await db_client.list_all_records(collection=COLLECTION, sort="+name")
        except db_client.DatabaseError as e:
            logger.error("Projects unavailable: %s", e)
            return ProjectLoadResult(projects=[], error="Projects unavailable")
        return ProjectLoadResult(projects=[to_project(record) for record in records])


async def list_projects(
    *,
    status: str = "all",
    priority: str = "all",
    search: str = "",
    sort_by: str = "name",
    order: str = "asc",
) -> ProjectLoadResult:
    """Projects as the grid shows them."""
    loaded = await load_projects()
    return ProjectLoadResult(
        projects=filter_projects(
            loaded.projects, status=status, priority=priority, search=search, sort_by=sort_by, order=order
        ),
        error=loaded.error,
    )


async def create_project(**fields: Any) -> Project:
    """Create a project.

    Raises:
        TaskValidationError: If name, description or dates are missing, or the end is not after the start
        PersistenceError: If the store rejects the record
    """
    with span("project_service.create_project"):
        payload = build_validated(ProjectCreate, fields)
        try:
            record = await db_client.create_record(collection=COLLECTION, data=payload.model_dump(mode="json"))
        except db_client.DatabaseError as e:
            msg = f"Failed to create project {payload.name!r}"
            raise PersistenceError(msg) from e

        logger.info("Created project: %s", payload.name)
        return to_project(record)


async def update_project(project_id: str, **changes: Any) -> Project:
    """Apply a partial update; the merged project must still pass creation rules.

    Raises:
        TaskValidationError: If the merged project is invalid or nothing was given to change
        RecordNotFoundError: If the project does not exist
        PersistenceError: If the store rejects the update
    """
    with span("project_service.update_project", project_id=project_id):
        data = build_validated(ProjectUpdate, changes).model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if not data:
            msg = "Nothing to update"
            raise TaskValidationError(msg)

        current = to_project(await db_client.get_record(collection=COLLECTION, record_id=project_id))
        build_validated(ProjectCreate, {**current.model_dump(mode="json", exclude={"id"}), **data})

        try:
            record = await db_client.update_record(collection=COLLECTION, record_id=project_id, data=data)
        except db_client.DatabaseError as e:
            msg = f"Failed to update project {project_id}"
            raise PersistenceError(msg) from e

        logger.info("Updated project %s: %s", project_id, sorted(data))
        return to_project(record)


async def delete_project(project_id: str) -> None:
    """Delete a project.

    Raises:
        RecordNotFoundError: If the project does not exist
    """
    with span("project_service.delete_project", project_id=project_id):
        await db_client.delete_record(collection=COLLECTION, record_id=project_id)
        logger.info("Deleted project %s", project_id)
