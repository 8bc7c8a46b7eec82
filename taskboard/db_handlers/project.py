from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db_handlers.base import BaseDBHandler, check_local_db
from taskboard.models.project import Project
from taskboard.models.task import TASK_STATUSES, Task
from taskboard.utils.logger import setup_logger

logger = setup_logger("db_handlers.project")


def empty_task_counts() -> dict[str, int]:
    return {status: 0 for status in TASK_STATUSES}


def with_task_counts(project: Project, counts: dict[str, int] | None) -> dict[str, Any]:
    """Serialize ``project`` annotated with its per-status counts and total."""
    counts = counts or empty_task_counts()
    project_dict = project.to_dict()
    project_dict["task_counts"] = counts
    project_dict["total_tasks"] = sum(counts.values())
    return project_dict


class ProjectDBHandler(BaseDBHandler[Project]):
    def __init__(self):
        super().__init__(Project)

    @check_local_db
    async def get_owned_project(
        self, project_id: str, owner_id: str, *, db: AsyncSession = None
    ) -> Project | None:
        """Owner-scoped lookup: None if the project is missing or not owned."""
        return await self.get_by_attributes(id=project_id, owner_id=owner_id, db=db)

    @check_local_db
    async def list_owned_projects(
        self, owner_id: str, *, db: AsyncSession = None
    ) -> list[Project]:
        stmt = (
            select(Project)
            .where(Project.owner_id == owner_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def get_task_counts(
        self, project_ids: list[str], *, db: AsyncSession = None
    ) -> dict[str, dict[str, int]]:
        """
        Per-status task counts for many projects with one grouped query.

        Every requested project gets all three buckets, defaulting to zero.
        """
        counts = {project_id: empty_task_counts() for project_id in project_ids}
        if not project_ids:
            return counts

        stmt = (
            select(Task.project_id, Task.status, func.count(Task.id))
            .where(Task.project_id.in_(project_ids))
            .group_by(Task.project_id, Task.status)
        )
        result = await db.execute(stmt)
        for project_id, status, count in result.all():
            if status in counts[project_id]:
                counts[project_id][status] = count
        return counts

    @check_local_db
    async def list_with_task_counts(
        self, owner_id: str, *, db: AsyncSession = None
    ) -> list[dict[str, Any]]:
        projects = await self.list_owned_projects(owner_id, db=db)
        counts = await self.get_task_counts([p.id for p in projects], db=db)
        return [with_task_counts(p, counts[p.id]) for p in projects]

    @check_local_db
    async def delete_with_tasks(
        self, project: Project, *, db: AsyncSession = None
    ) -> int:
        """
        Delete every task of ``project`` and then the project, in one transaction.

        Returns the number of tasks removed.
        """
        try:
            result = await db.execute(delete(Task).where(Task.project_id == project.id))
            await db.execute(delete(Project).where(Project.id == project.id))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error deleting project {project.id}: {e}", exc_info=True)
            raise

        logger.info(f"Deleted project {project.id} and {result.rowcount} task(s)")
        return result.rowcount
