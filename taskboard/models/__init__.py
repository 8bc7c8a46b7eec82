"""
Database models for the Taskboard project management service.

Architecture: User → Project → Task (→ embedded Subtasks) ownership chain.
"""

from taskboard.models.project import Project
from taskboard.models.task import TASK_PRIORITIES, TASK_STATUSES, Task
from taskboard.models.user import User

__all__ = [
    "User",
    "Project",
    "Task",
    "TASK_STATUSES",
    "TASK_PRIORITIES",
]
