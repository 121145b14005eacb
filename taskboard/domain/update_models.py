"""Update models for store operations."""

from pydantic import BaseModel, Field, field_validator

from taskboard.domain.create_models import check_iso_date, drop_blank_entries
from taskboard.domain.project import ProjectStatus
from taskboard.domain.task import TaskPriority, TaskStatus


class TaskUpdate(BaseModel):
    """Partial update for a task. Only fields that are set are written."""

    title: str | None = None
    description: str | None = None
    due_date: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    category: str | None = None
    project: str | None = None
    estimated_hours: float | None = Field(default=None, ge=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """A title may be changed but never blanked."""
        if v is not None and not v.strip():
            msg = "Task title is required"
            raise ValueError(msg)
        return v.strip() if v is not None else None

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: str | None) -> str | None:
        """Accept ISO dates only; an empty value clears the due date."""
        return check_iso_date(v)


class ProjectUpdate(BaseModel):
    """Partial update for a project."""

    name: str | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    priority: TaskPriority | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    start_date: str | None = None
    end_date: str | None = None
    budget: float | None = Field(default=None, ge=0)
    spent: float | None = Field(default=None, ge=0)
    category: str | None = None
    team: list[str] | None = None
    tags: list[str] | None = None

    @field_validator("team", "tags")
    @classmethod
    def validate_lists(cls, v: list[str] | None) -> list[str] | None:
        """Blank team members and tags are dropped."""
        return drop_blank_entries(v)

    @field_validator("name", "description")
    @classmethod
    def validate_not_blank(cls, v: str | None) -> str | None:
        """Name and description may change but never be blanked."""
        if v is not None and not v.strip():
            msg = "Project name and description are required"
            raise ValueError(msg)
        return v


class PositionUpdate(BaseModel):
    """New position for one task, produced by a reorder."""

    task_id: str
    position: int = Field(..., ge=0)
