"""Comment domain models stored as an arena.

A forest keeps every comment of one task in a flat ``nodes`` mapping; the
ownership edges live in each node's ``children`` list and in ``roots``.
"""

from pydantic import BaseModel, Field


class CommentNode(BaseModel):
    """A single comment in a task's comment forest."""

    id: str = Field(..., description="Client-generated comment ID")
    text: str = Field(..., description="Comment body")
    author: str = Field(..., description="Display name of the author")
    avatar: str | None = Field(default=None, description="Author avatar URL")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
    parent_id: str | None = Field(default=None, description="Owning comment ID, None for a root comment")
    children: list[str] = Field(default_factory=list, description="Ordered IDs of direct replies")


class CommentForest(BaseModel):
    """All comments of a task: an ordered list of root IDs over a flat node arena."""

    nodes: dict[str, CommentNode] = Field(default_factory=dict)
    roots: list[str] = Field(default_factory=list)
