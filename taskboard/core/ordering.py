"""Position bookkeeping for the ordered task collection.

Positions across a board always read as ``0..n-1``. A drag inside a filtered
view only rearranges the slots that view occupies; hidden tasks keep theirs.
"""

import logging
from collections.abc import Sequence
from typing import TypeVar

from taskboard.core.errors import MalformedInputError
from taskboard.domain.task import Task
from taskboard.domain.update_models import PositionUpdate
from taskboard.models.service_models import ReorderPlan


logger = logging.getLogger(__name__)

T = TypeVar("T")


def move_item(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Splice-move the item at ``from_index`` so it ends up at ``to_index``."""
    for index in (from_index, to_index):
        if not 0 <= index < len(items):
            msg = f"Index {index} out of range for {len(items)} item(s)"
            raise MalformedInputError(msg)
    moved = list(items)
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return moved


def sort_by_position(tasks: Sequence[Task]) -> list[Task]:
    """Tasks in display order; ties keep their incoming order."""
    return sorted(tasks, key=lambda task: task.position)


def _check_unique_ids(tasks: Sequence[Task], label: str) -> None:
    ids = [task.id for task in tasks]
    if len(set(ids)) != len(ids):
        msg = f"Duplicate task ids in {label}"
        raise MalformedInputError(msg)


def renumber(tasks: Sequence[Task]) -> list[Task]:
    """Return copies of ``tasks`` (input order kept) with dense positions by current display order."""
    _check_unique_ids(tasks, "collection")
    new_positions = {task.id: index for index, task in enumerate(sort_by_position(tasks))}
    return [
        task if task.position == new_positions[task.id] else task.model_copy(update={"position": new_positions[task.id]})
        for task in tasks
    ]


def reorder(
    collection: Sequence[Task],
    visible: Sequence[Task],
    moved_task_id: str,
    from_index: int,
    to_index: int,
) -> ReorderPlan:
    """Move a task within the visible order and renumber the whole collection.

    Args:
        collection: Every task on the board
        visible: The currently displayed (filtered, sorted) tasks
        moved_task_id: ID of the dragged task; must sit at ``visible[from_index]``
        from_index: Source index within ``visible``
        to_index: Destination index within ``visible``

    Returns:
        ReorderPlan with the renumbered collection (input order, updated copies)
        and one PositionUpdate per task whose position changed

    Raises:
        MalformedInputError: If the indices, the moved task or the visible
            subset do not match the collection
    """
    _check_unique_ids(collection, "collection")
    _check_unique_ids(visible, "visible order")

    known_ids = {task.id for task in collection}
    missing = [task.id for task in visible if task.id not in known_ids]
    if missing:
        msg = f"Visible tasks not in collection: {missing}"
        raise MalformedInputError(msg)

    if not 0 <= from_index < len(visible):
        msg = f"Index {from_index} out of range for {len(visible)} item(s)"
        raise MalformedInputError(msg)
    if visible[from_index].id != moved_task_id:
        msg = f"Task {moved_task_id!r} is not at visible index {from_index}"
        raise MalformedInputError(msg)

    if from_index == to_index:
        return ReorderPlan(tasks=list(collection), ops=[])

    new_visible_ids = iter([task.id for task in move_item(visible, from_index, to_index)])
    visible_ids = {task.id for task in visible}

    # Visible tasks refill their own slots in the new order; hidden tasks stay put.
    slot_order = [
        next(new_visible_ids) if task.id in visible_ids else task.id for task in sort_by_position(collection)
    ]
    new_positions = {task_id: slot for slot, task_id in enumerate(slot_order)}

    tasks: list[Task] = []
    ops: list[PositionUpdate] = []
    for task in collection:
        position = new_positions[task.id]
        if task.position != position:
            ops.append(PositionUpdate(task_id=task.id, position=position))
            task = task.model_copy(update={"position": position})  # noqa: PLW2901
        tasks.append(task)

    logger.debug(
        "Computed reorder",
        extra={"task_id": moved_task_id, "from_index": from_index, "to_index": to_index, "changed": len(ops)},
    )
    return ReorderPlan(tasks=tasks, ops=ops)
