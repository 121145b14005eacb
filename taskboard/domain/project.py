"""Project domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field

from taskboard.domain.task import TaskPriority


class ProjectStatus(StrEnum):
    """Project lifecycle status."""

    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Project(BaseModel):
    """Project data transfer object."""

    id: str
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: TaskPriority = TaskPriority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    start_date: str | None = None
    end_date: str | None = None
    budget: float = 0.0
    spent: float = 0.0
    category: str = "development"
    team: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_at: str | None = None
