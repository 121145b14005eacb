"""Comment tree operations over an arena forest.

Every operation is pure: it returns a new forest and never touches the one it
was given. A reply to a missing parent and a delete of a missing comment are
no-ops reported through ``TreeMutation.found``; only a structurally invalid
forest raises.
"""

import logging
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any, NamedTuple

from taskboard.core.errors import MalformedInputError
from taskboard.domain.comment import CommentForest, CommentNode


logger = logging.getLogger(__name__)


class TreeMutation(NamedTuple):
    """Result of insert_reply / delete_node."""

    forest: CommentForest
    found: bool
    affected_ids: tuple[str, ...] = ()


def new_comment(*, text: str, author: str, avatar: str | None = None, created_at: str | None = None) -> CommentNode:
    """Build a detached comment node with a client-generated ID."""
    return CommentNode(
        id=uuid.uuid4().hex,
        text=text,
        author=author,
        avatar=avatar,
        created_at=created_at or datetime.now(UTC).isoformat().replace("+00:00", "Z"),
    )


def _walk(forest: CommentForest) -> Iterator[tuple[CommentNode, str | None]]:
    """Yield (node, owning parent id) in display order, depth first."""
    stack: list[tuple[str, str | None]] = [(root_id, None) for root_id in reversed(forest.roots)]
    visited: set[str] = set()
    while stack:
        node_id, owner_id = stack.pop()
        node = forest.nodes.get(node_id)
        if node is None:
            msg = f"Comment {node_id!r} is referenced but missing from the forest"
            raise MalformedInputError(msg)
        if node_id in visited:
            msg = f"Comment {node_id!r} is owned more than once"
            raise MalformedInputError(msg)
        visited.add(node_id)
        yield node, owner_id
        stack.extend((child_id, node_id) for child_id in reversed(node.children))


def validate_forest(forest: CommentForest) -> None:
    """Raise MalformedInputError unless every node is reachable exactly once and correctly parented."""
    reached = 0
    for node, owner_id in _walk(forest):
        if not node.id:
            msg = "Comment without an id"
            raise MalformedInputError(msg)
        if forest.nodes.get(node.id) is not node:
            msg = f"Comment {node.id!r} is stored under a different key"
            raise MalformedInputError(msg)
        if node.parent_id != owner_id:
            msg = f"Comment {node.id!r} claims parent {node.parent_id!r} but is owned by {owner_id!r}"
            raise MalformedInputError(msg)
        reached += 1
    if reached != len(forest.nodes):
        msg = f"{len(forest.nodes) - reached} comment(s) are not reachable from any root"
        raise MalformedInputError(msg)


def count_all(forest: CommentForest) -> int:
    """Total number of comments: every root plus every descendant."""
    return sum(1 for _ in _walk(forest))


def insert_reply(forest: CommentForest, parent_id: str | None, comment: CommentNode) -> TreeMutation:
    """Append ``comment`` under ``parent_id``, or as a new last root when ``parent_id`` is None."""
    validate_forest(forest)
    if not comment.id:
        msg = "Comment without an id"
        raise MalformedInputError(msg)
    if comment.id in forest.nodes:
        msg = f"Comment {comment.id!r} already exists in the forest"
        raise MalformedInputError(msg)

    if parent_id is not None and parent_id not in forest.nodes:
        logger.debug("Reply parent not found", extra={"parent_id": parent_id, "comment_id": comment.id})
        return TreeMutation(forest, found=False)

    updated = forest.model_copy(deep=True)
    node = comment.model_copy(update={"parent_id": parent_id, "children": []})
    updated.nodes[node.id] = node
    if parent_id is None:
        updated.roots.append(node.id)
    else:
        updated.nodes[parent_id].children.append(node.id)

    return TreeMutation(updated, found=True, affected_ids=(node.id,))


def delete_node(forest: CommentForest, comment_id: str) -> TreeMutation:
    """Remove ``comment_id`` and its whole reply subtree."""
    validate_forest(forest)
    if comment_id not in forest.nodes:
        logger.debug("Comment to delete not found", extra={"comment_id": comment_id})
        return TreeMutation(forest, found=False)

    updated = forest.model_copy(deep=True)
    target = updated.nodes[comment_id]

    removed: list[str] = []
    stack = [comment_id]
    while stack:
        node_id = stack.pop()
        removed.append(node_id)
        stack.extend(reversed(updated.nodes[node_id].children))

    if target.parent_id is None:
        updated.roots.remove(comment_id)
    else:
        updated.nodes[target.parent_id].children.remove(comment_id)
    for node_id in removed:
        del updated.nodes[node_id]

    return TreeMutation(updated, found=True, affected_ids=tuple(removed))


def to_nested(forest: CommentForest) -> list[dict[str, Any]]:
    """Render the forest as nested dicts with ``replies`` lists, in display order."""
    validate_forest(forest)

    def render(node_id: str) -> dict[str, Any]:
        node = forest.nodes[node_id]
        rendered = node.model_dump(exclude={"children"})
        rendered["replies"] = [render(child_id) for child_id in node.children]
        return rendered

    return [render(root_id) for root_id in forest.roots]


def from_nested(items: list[dict[str, Any]]) -> CommentForest:
    """Build a forest from nested dicts where each comment owns its ``replies`` list."""
    forest = CommentForest()
    stack: list[tuple[dict[str, Any], str | None]] = [(item, None) for item in reversed(items)]
    while stack:
        item, parent_id = stack.pop()
        if not isinstance(item, dict) or item.get("id") in (None, ""):
            msg = f"Comment without an id: {item!r}"
            raise MalformedInputError(msg)
        node_id = str(item["id"])
        if node_id in forest.nodes:
            msg = f"Duplicate comment id {node_id!r}"
            raise MalformedInputError(msg)

        forest.nodes[node_id] = CommentNode(
            id=node_id,
            text=item.get("text", ""),
            author=item.get("author", ""),
            avatar=item.get("avatar"),
            created_at=item.get("created_at", ""),
            parent_id=parent_id,
        )
        if parent_id is None:
            forest.roots.append(node_id)
        else:
            forest.nodes[parent_id].children.append(node_id)
        stack.extend((reply, node_id) for reply in reversed(item.get("replies") or []))

    return forest


def from_records(records: list[dict[str, Any]]) -> CommentForest:
    """Build a forest from flat stored comment records (``uid``/``parent_comment``).

    Records are placed in ``created_at`` order. A record whose parent is gone
    is shown as a root rather than hidden.
    """
    ordered = sorted(records, key=lambda r: (r.get("created_at") or "", int(r.get("id") or 0)))
    forest = CommentForest()
    for record in ordered:
        uid = record.get("uid")
        if not uid:
            msg = f"Stored comment without a uid: {record.get('id')!r}"
            raise MalformedInputError(msg)
        forest.nodes[uid] = CommentNode(
            id=uid,
            text=record.get("text", ""),
            author=record.get("author", ""),
            avatar=record.get("avatar"),
            created_at=record.get("created_at", ""),
        )

    for record in ordered:
        node = forest.nodes[record["uid"]]
        parent_id = record.get("parent_comment") or None
        if parent_id is not None and parent_id not in forest.nodes:
            logger.warning("Orphaned comment shown as root", extra={"comment_id": node.id, "parent_id": parent_id})
            parent_id = None
        node.parent_id = parent_id
        if parent_id is None:
            forest.roots.append(node.id)
        else:
            forest.nodes[parent_id].children.append(node.id)

    validate_forest(forest)
    return forest
