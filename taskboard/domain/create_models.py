"""Pydantic models for creating records in the store."""

from datetime import UTC, date, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from taskboard.core.config import constants, settings
from taskboard.core.errors import TaskValidationError
from taskboard.domain.project import ProjectStatus
from taskboard.domain.task import TaskPriority, TaskStatus


ModelT = TypeVar("ModelT", bound=BaseModel)


def utc_now_iso() -> str:
    """Current UTC time in ISO format with a Z suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def build_validated(model_cls: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate ``data`` into ``model_cls``, raising TaskValidationError with the first problem."""
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        message = str(first["msg"]).removeprefix("Value error, ")
        raise TaskValidationError(message) from e


def _require_text(value: str, message: str) -> str:
    if not value or not value.strip():
        raise ValueError(message)
    return value.strip()


def drop_blank_entries(values: list[str] | None) -> list[str] | None:
    """Drop empty and whitespace-only entries from a list of names or tags."""
    if values is None:
        return None
    return [value for value in values if value.strip()]


def check_iso_date(value: str | None) -> str | None:
    """Return the value unchanged if it starts with a valid ISO date; empty means no date."""
    if value in (None, ""):
        return None
    try:
        date.fromisoformat(value[:10])
    except ValueError as e:
        msg = f"Invalid date: {value}. Use YYYY-MM-DD."
        raise ValueError(msg) from e
    return value


class TaskCreate(BaseModel):
    """Payload for creating a task record."""

    title: str
    description: str = ""
    due_date: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    category: str = ""
    project: str = ""
    estimated_hours: float = Field(default=1.0, ge=0)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject blank titles."""
        return _require_text(v, "Task title is required")

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: str | None) -> str | None:
        """Accept ISO dates only."""
        return check_iso_date(v)


class CommentCreate(BaseModel):
    """Payload for a new comment. Author identity is always passed explicitly."""

    text: str
    author: str
    avatar: str | None = None
    parent_id: str | None = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Reject blank or oversize comments."""
        text = _require_text(v, "Comment cannot be empty")
        if len(text) > settings.max_comment_length:
            msg = f"Comment cannot exceed {settings.max_comment_length} characters"
            raise ValueError(msg)
        return text

    @field_validator("author")
    @classmethod
    def validate_author(cls, v: str) -> str:
        """Every comment needs a named author."""
        return _require_text(v, "Comment author is required")


class ProjectCreate(BaseModel):
    """Payload for creating a project record."""

    name: str
    description: str
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: TaskPriority = TaskPriority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    start_date: str | None = None
    end_date: str | None = None
    budget: float = Field(default=0.0, ge=0)
    spent: float = Field(default=0.0, ge=0)
    category: str = "development"
    team: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject blank names."""
        return _require_text(v, "Project name is required")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        """Reject blank descriptions."""
        return _require_text(v, "Project description is required")

    @field_validator("team", "tags")
    @classmethod
    def validate_lists(cls, v: list[str]) -> list[str]:
        """Blank team members and tags are dropped."""
        return drop_blank_entries(v) or []

    @model_validator(mode="after")
    def validate_dates(self) -> "ProjectCreate":
        """Both dates are required and the end must come after the start."""
        if not self.start_date or not self.end_date:
            msg = "Start date and end date are required"
            raise ValueError(msg)
        check_iso_date(self.start_date)
        check_iso_date(self.end_date)
        if date.fromisoformat(self.start_date[:10]) >= date.fromisoformat(self.end_date[:10]):
            msg = "End date must be after start date"
            raise ValueError(msg)
        return self


class AttachmentCreate(BaseModel):
    """Metadata for a file being attached to a task."""

    name: str
    size: int = Field(..., ge=0)
    type: str
    url: str = ""
    uploaded_at: str = Field(default_factory=utc_now_iso)

    @model_validator(mode="after")
    def validate_file(self) -> "AttachmentCreate":
        """Enforce the size limit and the allowed MIME types."""
        if self.size > settings.max_attachment_bytes:
            limit_mb = settings.max_attachment_bytes // (1024 * 1024)
            msg = f"File {self.name} is too large. Maximum size is {limit_mb}MB."
            raise ValueError(msg)
        if self.type not in constants.ALLOWED_ATTACHMENT_TYPES:
            msg = f"File type {self.type} is not supported."
            raise ValueError(msg)
        return self
