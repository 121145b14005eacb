"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting store
dictionaries and core results into typed objects.
"""

from typing import Any

from pydantic import BaseModel, Field

from taskboard.core.errors import ErrorResponse
from taskboard.domain.project import Project
from taskboard.domain.task import Task
from taskboard.domain.update_models import PositionUpdate


class ReorderPlan(BaseModel):
    """Outcome of a reorder computed in memory."""

    tasks: list[Task]
    ops: list[PositionUpdate] = Field(default_factory=list)


class ReorderResult(BaseModel):
    """Reorder after the position writes were dispatched."""

    tasks: list[Task]
    persisted: list[PositionUpdate] = Field(default_factory=list)
    failed: list[PositionUpdate] = Field(default_factory=list)
    error: ErrorResponse | None = None


class TaskLoadResult(BaseModel):
    """Full task refresh; an unavailable store yields no tasks and an error."""

    tasks: list[Task]
    error: str | None = None


class ProjectLoadResult(BaseModel):
    """Full project refresh; an unavailable store yields no projects and an error."""

    projects: list[Project]
    error: str | None = None


class CommentMutationResult(BaseModel):
    """Result of adding or deleting a comment.

    ``found`` is False when the parent (for a reply) or the target (for a
    delete) does not exist; the forest is then returned unchanged.
    """

    found: bool
    forest: list[dict[str, Any]]
    total: int
    comment_ids: list[str] = Field(default_factory=list)


class Distribution(BaseModel):
    """Pie/donut chart data: one label per key, counts aligned to labels."""

    labels: list[str]
    series: list[int]


class SeriesData(BaseModel):
    """One named series in a chart."""

    name: str
    data: list[int]


class MonthlySeries(BaseModel):
    """Per-month counts for a set of statuses."""

    categories: list[str]
    series: list[SeriesData]


class CategorySeries(BaseModel):
    """Bar chart data for task categories."""

    categories: list[str]
    series: list[SeriesData]


class DashboardSummary(BaseModel):
    """Headline numbers for the analytics page."""

    total_projects: int
    total_tasks: int
    pending_tasks: int
    completion_rate: int


class AnalyticsReport(BaseModel):
    """Everything the analytics page renders."""

    summary: DashboardSummary
    project_status: Distribution
    task_priority: Distribution
    task_category: CategorySeries
    completion_trend: MonthlySeries
    errors: list[str] = Field(default_factory=list)
