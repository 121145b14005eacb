"""Domain models and DTOs."""

from taskboard.domain.attachment import Attachment
from taskboard.domain.comment import CommentForest, CommentNode
from taskboard.domain.create_models import AttachmentCreate, CommentCreate, ProjectCreate, TaskCreate
from taskboard.domain.project import Project, ProjectStatus
from taskboard.domain.task import StatusFilter, Task, TaskPriority, TaskStatus
from taskboard.domain.update_models import PositionUpdate, ProjectUpdate, TaskUpdate


__all__ = [
    "Attachment",
    "AttachmentCreate",
    "CommentCreate",
    "CommentForest",
    "CommentNode",
    "PositionUpdate",
    "Project",
    "ProjectCreate",
    "ProjectStatus",
    "ProjectUpdate",
    "StatusFilter",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskUpdate",
]
