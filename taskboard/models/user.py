"""
User model for authentication and project ownership.

Architecture:
    User → Project → Task → Subtask

Key Features:
    - Secure bcrypt password hashing
    - Unique, lower-cased email used as the login identifier
    - Project ownership and access control
"""

from sqlalchemy import Column, Index, String
from sqlalchemy.orm import relationship

from taskboard.models.base import Base, ObjectIdMixin, TimestampMixin


class User(Base, ObjectIdMixin, TimestampMixin):
    """
    Registered account. Owns zero or more projects.
    """

    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    name = Column(
        String(50),
        nullable=False,
        comment="Display name",
    )

    email = Column(
        String(255),
        nullable=False,
        comment="Unique email address used for login",
    )

    hashed_password = Column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password for secure authentication",
    )

    projects = relationship(
        "Project",
        back_populates="owner",
        cascade="all, delete-orphan",
        doc="Projects owned by this user",
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
