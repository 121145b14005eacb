"""Chart-ready aggregation over tasks and projects."""

from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import TypeVar

from dateutil import parser as dateutil_parser

from taskboard.core.config import constants
from taskboard.domain.task import Task, TaskStatus
from taskboard.models.service_models import Distribution, MonthlySeries, SeriesData


T = TypeVar("T")

# Order and names of the trend series on the analytics page
TREND_STATUSES: tuple[TaskStatus, ...] = (TaskStatus.COMPLETED, TaskStatus.IN_PROGRESS, TaskStatus.PENDING)


def group_count(
    items: Iterable[T],
    key_fn: Callable[[T], str | None],
    *,
    fallback: str = constants.UNKNOWN_LABEL,
) -> dict[str, int]:
    """Count items per key, in first-seen key order. Empty keys count under ``fallback``."""
    counts: dict[str, int] = {}
    for item in items:
        key = key_fn(item) or fallback
        counts[key] = counts.get(key, 0) + 1
    return counts


def status_label(status: str) -> str:
    """Human label for a status value: ``in-progress`` -> ``In Progress``."""
    return " ".join(part.capitalize() for part in status.split("-"))


def to_distribution(counts: dict[str, int]) -> Distribution:
    """Turn counts into donut chart labels and series."""
    return Distribution(labels=[status_label(key) for key in counts], series=list(counts.values()))


def month_label(created_at: str | None, *, now: datetime | None = None) -> str:
    """``YYYY-MM`` bucket for a creation timestamp; missing or unparseable values use ``now``."""
    moment = None
    if created_at:
        try:
            moment = dateutil_parser.isoparse(created_at)
        except ValueError:
            moment = None
    moment = moment or now or datetime.now(UTC)
    return moment.strftime("%Y-%m")


def monthly_series(
    tasks: Sequence[Task],
    statuses: Sequence[TaskStatus | str] = TREND_STATUSES,
    *,
    now: datetime | None = None,
) -> MonthlySeries:
    """Count tasks per creation month for each status.

    Args:
        tasks: Tasks to bucket
        statuses: Statuses to produce a series for, in output order
        now: Stand-in timestamp for tasks without ``created_at``

    Returns:
        MonthlySeries whose ``categories`` are ascending month labels and whose
        series each hold one count per category
    """
    now = now or datetime.now(UTC)
    buckets: dict[str, dict[str, int]] = {}
    for task in tasks:
        per_status = buckets.setdefault(month_label(task.created_at, now=now), {})
        status = str(task.status)
        per_status[status] = per_status.get(status, 0) + 1

    months = sorted(buckets)
    series = [
        SeriesData(
            name=status_label(str(status)),
            data=[buckets[month].get(str(status), 0) for month in months],
        )
        for status in statuses
    ]
    return MonthlySeries(categories=months, series=series)


def completion_rate(tasks: Sequence[Task]) -> int:
    """Percentage of completed tasks, rounded; 0 for an empty board."""
    if not tasks:
        return 0
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
    return round(completed / len(tasks) * 100)
