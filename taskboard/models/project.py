"""
Project model: the unit of ownership.

Every task belongs to exactly one project and every project to exactly one
user. Access to a project or any of its tasks is granted to the owner only.
"""

from sqlalchemy import Column, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from taskboard.models.base import Base, ObjectIdMixin, TimestampMixin


class Project(Base, ObjectIdMixin, TimestampMixin):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_owner_id", "owner_id"),
        Index("ix_projects_owner_id_created_at", "owner_id", "created_at"),
    )

    name = Column(String(100), nullable=False, comment="Project name")

    description = Column(
        String(500),
        nullable=False,
        default="",
        comment="Free-form project description",
    )

    owner_id = Column(
        String(24),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="The only user allowed to read or modify this project",
    )

    owner = relationship("User", back_populates="projects")

    tasks = relationship(
        "Task",
        back_populates="project",
        passive_deletes=True,
        doc="Tasks of this project",
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"
