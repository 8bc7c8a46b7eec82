"""
Task model for units of work inside a project.

Tasks are stored as self-contained documents: subtasks and labels live in
JSON columns on the task row, so a subtask has no existence outside its
parent task and is removed together with it.

Lifecycle:
    1. Created by the owner of the parent project (status defaults to todo)
    2. Status moves freely between todo, in-progress and done
    3. Deleted individually, or together with the parent project

Key Features:
    - Status and priority enums enforced at the model level
    - Embedded subtasks with their own ids and timestamps
    - Derived completion percentage
"""

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship, validates

from taskboard.models.base import Base, ObjectIdMixin, TimestampMixin

TASK_STATUSES = ("todo", "in-progress", "done")
TASK_PRIORITIES = ("low", "medium", "high")

DocumentJSON = JSON().with_variant(JSONB(), "postgresql")


class Task(Base, ObjectIdMixin, TimestampMixin):
    """
    A unit of work belonging to exactly one project.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_project_id_status", "project_id", "status"),
        Index("ix_tasks_assignee_id", "assignee_id"),
        Index("ix_tasks_due_date", "due_date"),
        Index("ix_tasks_created_by", "created_by"),
        Index("ix_tasks_created_at", "created_at"),
    )

    title = Column(String(200), nullable=False, comment="Task title")

    description = Column(
        Text, nullable=False, default="", comment="Task description, may be rich text"
    )

    status = Column(
        String(20),
        nullable=False,
        default="todo",
        comment="Board column: todo/in-progress/done",
    )

    priority = Column(
        String(10),
        nullable=False,
        default="medium",
        comment="Priority: low/medium/high",
    )

    project_id = Column(
        String(24),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        comment="Parent project; immutable after creation",
    )

    assignee_id = Column(
        String(24),
        nullable=True,
        comment="Optional assignee, any user id",
    )

    due_date = Column(DateTime(timezone=True), nullable=True, comment="Optional due date")

    created_by = Column(
        String(24),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="User who created the task",
    )

    subtasks = Column(
        DocumentJSON,
        nullable=False,
        default=list,
        comment="Embedded subtask documents",
    )

    labels = Column(DocumentJSON, nullable=False, default=list, comment="Free labels")

    estimated_hours = Column(Float, nullable=True, comment="Estimated effort in hours")

    actual_hours = Column(Float, nullable=True, comment="Recorded effort in hours")

    project = relationship("Project", back_populates="tasks")

    @validates("status")
    def validate_status(self, key, value):
        if value not in TASK_STATUSES:
            raise ValueError(f"Invalid status: {value}")
        return value

    @validates("priority")
    def validate_priority(self, key, value):
        if value not in TASK_PRIORITIES:
            raise ValueError(f"Invalid priority: {value}")
        return value

    @property
    def completion_percentage(self) -> int:
        subtasks = self.subtasks or []
        if not subtasks:
            return 100 if self.status == "done" else 0
        completed = sum(1 for subtask in subtasks if subtask.get("completed"))
        return round(completed / len(subtasks) * 100)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["subtasks"] = list(self.subtasks or [])
        d["labels"] = list(self.labels or [])
        d["completion_percentage"] = self.completion_percentage
        return d

    def __repr__(self):
        return (
            f"<Task(id={self.id}, "
            f"status='{self.status}', "
            f"project_id={self.project_id}, "
            f"title='{self.title[:50]}')>"
        )
