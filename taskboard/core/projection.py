"""View projections: status/date filters and search over tasks and projects.

The list, calendar and timeline views all read tasks through
``project_tasks`` so they agree on what is visible and in which order.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import date

from dateutil import parser as dateutil_parser

from taskboard.core.ordering import sort_by_position
from taskboard.domain.project import Project
from taskboard.domain.task import StatusFilter, Task


logger = logging.getLogger(__name__)

_NUMERIC_PROJECT_FIELDS = {"progress", "budget", "spent"}


def parse_due_date(value: str | None) -> date | None:
    """Parse an ISO due date, returning None when absent or unparseable."""
    if not value:
        return None
    try:
        return dateutil_parser.isoparse(value).date()
    except ValueError:
        logger.debug("Unparseable due date", extra={"due_date": value})
        return None


def _status_predicate(status_filter: StatusFilter, today: date) -> Callable[[Task], bool]:
    match status_filter:
        case StatusFilter.ALL:
            return lambda task: True
        case StatusFilter.TODAY:
            return lambda task: parse_due_date(task.due_date) == today
        case StatusFilter.UPCOMING:
            return lambda task: (due := parse_due_date(task.due_date)) is not None and due > today
        case _:
            return lambda task: task.status.value == status_filter.value


def matches_search(task: Task, search_term: str) -> bool:
    """Case-insensitive substring match on title, description or category."""
    needle = search_term.lower()
    return any(needle in (field or "").lower() for field in (task.title, task.description, task.category))


def project_tasks(
    collection: Sequence[Task],
    status_filter: StatusFilter | str = StatusFilter.ALL,
    search_term: str = "",
    *,
    today: date | None = None,
) -> list[Task]:
    """Return the visible subset of ``collection`` in position order.

    Args:
        collection: Every task on the board; never mutated
        status_filter: One of all, pending, in-progress, completed, today, upcoming
        search_term: Optional search text (matched against title, description, category)
        today: The caller's current date; defaults to ``date.today()`` at call time

    Returns:
        New list of the matching tasks sorted ascending by position
    """
    predicate = _status_predicate(StatusFilter(status_filter), today or date.today())
    visible = [task for task in collection if predicate(task)]
    if search_term:
        visible = [task for task in visible if matches_search(task, search_term)]
    return sort_by_position(visible)


def filter_projects(
    projects: Sequence[Project],
    *,
    status: str = "all",
    priority: str = "all",
    search: str = "",
    sort_by: str = "name",
    order: str = "asc",
) -> list[Project]:
    """Filter and sort projects for the project grid."""
    needle = search.lower()

    def keep(project: Project) -> bool:
        matches_search_term = needle in project.name.lower() or needle in project.description.lower()
        matches_status = status == "all" or project.status.value == status
        matches_priority = priority == "all" or project.priority.value == priority
        return matches_search_term and matches_status and matches_priority

    if sort_by not in Project.model_fields:
        logger.warning("Unknown project sort field, using name", extra={"sort_by": sort_by})
        sort_by = "name"

    def sort_key(project: Project) -> tuple[bool, float | str]:
        value = getattr(project, sort_by)
        if sort_by in _NUMERIC_PROJECT_FIELDS:
            return (value is None, float(value or 0))
        return (value is None, str(value or ""))

    return sorted((p for p in projects if keep(p)), key=sort_key, reverse=order == "desc")
