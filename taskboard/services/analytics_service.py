"""Analytics service for the dashboard charts.

Produces:
- Headline numbers (projects, tasks, pending tasks, completion rate)
- Project status, task priority and task category distributions
- A per-month task trend split by status

Missing values fall back to fixed labels: project status ``unknown``, task
priority ``low``, task category ``Other``.
"""

import logging
from datetime import datetime

from taskboard.core.aggregation import (
    TREND_STATUSES,
    completion_rate,
    group_count,
    monthly_series,
    to_distribution,
)
from taskboard.core.config import constants
from taskboard.core.logging import span
from taskboard.domain.task import TaskStatus
from taskboard.models.service_models import AnalyticsReport, CategorySeries, DashboardSummary, SeriesData
from taskboard.services import project_service, task_service


logger = logging.getLogger(__name__)


async def get_analytics_report(*, now: datetime | None = None) -> AnalyticsReport:
    """Build every chart on the analytics page from a full refresh of tasks and projects.

    Args:
        now: Stand-in timestamp for tasks without a creation time (defaults to the current time)

    Returns:
        AnalyticsReport; if either store read failed its message is listed in ``errors``
        and the affected charts are empty
    """
    with span("analytics_service.get_analytics_report"):
        tasks_loaded = await task_service.load_tasks()
        projects_loaded = await project_service.load_projects()
        tasks = tasks_loaded.tasks
        projects = projects_loaded.projects

        summary = DashboardSummary(
            total_projects=len(projects),
            total_tasks=len(tasks),
            pending_tasks=sum(1 for task in tasks if task.status == TaskStatus.PENDING),
            completion_rate=completion_rate(tasks),
        )

        category_counts = group_count(
            tasks, lambda task: task.category, fallback=constants.OTHER_CATEGORY_LABEL
        )

        report = AnalyticsReport(
            summary=summary,
            project_status=to_distribution(group_count(projects, lambda project: project.status.value)),
            task_priority=to_distribution(
                group_count(tasks, lambda task: task.priority.value, fallback=constants.DEFAULT_PRIORITY_LABEL)
            ),
            task_category=CategorySeries(
                categories=list(category_counts),
                series=[SeriesData(name="Tasks", data=list(category_counts.values()))],
            ),
            completion_trend=monthly_series(tasks, TREND_STATUSES, now=now),
            errors=[error for error in (tasks_loaded.error, projects_loaded.error) if error],
        )

        logger.info(
            "Analytics report: %d tasks, %d projects, %d%% complete",
            summary.total_tasks,
            summary.total_projects,
            summary.completion_rate,
        )
        return report
