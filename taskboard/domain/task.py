"""Task domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field

from taskboard.domain.attachment import Attachment
from taskboard.domain.comment import CommentForest


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StatusFilter(StrEnum):
    """Filters offered by the list, calendar and timeline views."""

    ALL = "all"
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    TODAY = "today"
    UPCOMING = "upcoming"


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from the record store")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    due_date: str | None = Field(default=None, description="Due date (ISO format)")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    category: str = Field(default="")
    project: str = Field(default="", description="Name or ID of the owning project")
    estimated_hours: float = Field(default=1.0, ge=0)
    position: int = Field(default=0, ge=0, description="Dense display position within the board")
    created_at: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated_at: str | None = Field(default=None, description="Last update timestamp (ISO format)")
    comments: CommentForest = Field(default_factory=CommentForest)
    attachments: list[Attachment] = Field(default_factory=list)
