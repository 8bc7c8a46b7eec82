from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from taskboard.db_handlers.base import BaseDBHandler, check_local_db
from taskboard.models.base import utc_now
from taskboard.models.project import Project
from taskboard.models.task import TASK_PRIORITIES, TASK_STATUSES, Task
from taskboard.schemas import TaskFilters
from taskboard.utils.logger import setup_logger
from taskboard.utils.object_id import generate_object_id
from taskboard.utils.sanitize import LIKE_ESCAPE_CHAR, contains_pattern

logger = setup_logger("task_db_handler")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class TaskDBHandler(BaseDBHandler[Task]):
    def __init__(self):
        super().__init__(Task)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @staticmethod
    def _filter_conditions(filters: TaskFilters) -> list:
        conditions = []
        if filters.status:
            conditions.append(Task.status == filters.status)
        if filters.priority:
            conditions.append(Task.priority == filters.priority)
        if filters.assignee_id:
            conditions.append(Task.assignee_id == filters.assignee_id)
        if filters.search:
            pattern = contains_pattern(filters.search)
            conditions.append(
                or_(
                    Task.title.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                    Task.description.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                )
            )
        return conditions

    @check_local_db
    async def _paginate(
        self, stmt: Select, conditions: list, filters: TaskFilters, *, db: AsyncSession = None
    ) -> dict[str, Any]:
        stmt = stmt.where(*conditions)
        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await db.execute(count_stmt)).scalar_one()

        page_stmt = (
            stmt.order_by(Task.created_at.desc(), Task.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        tasks = (await db.execute(page_stmt)).scalars().all()

        return {
            "tasks": [task.to_dict() for task in tasks],
            "pagination": {
                "page": filters.page,
                "limit": filters.limit,
                "total": total,
                "pages": math.ceil(total / filters.limit),
            },
        }

    @check_local_db
    async def list_project_tasks(
        self, project_id: str, filters: TaskFilters, *, db: AsyncSession = None
    ) -> dict[str, Any]:
        """Filtered, paginated tasks of one project (ownership checked by caller)."""
        conditions = [Task.project_id == project_id, *self._filter_conditions(filters)]
        return await self._paginate(select(Task), conditions, filters, db=db)

    @check_local_db
    async def list_owner_tasks(
        self, owner_id: str, filters: TaskFilters, *, db: AsyncSession = None
    ) -> dict[str, Any]:
        """Filtered, paginated tasks across every project owned by ``owner_id``."""
        owned_projects = select(Project.id).where(Project.owner_id == owner_id)
        conditions = [
            Task.project_id.in_(owned_projects),
            *self._filter_conditions(filters),
        ]
        return await self._paginate(select(Task), conditions, filters, db=db)

    @check_local_db
    async def get_statistics(
        self, project_id: str, *, db: AsyncSession = None
    ) -> dict[str, Any]:
        """
        Status, priority and assignee breakdown of a project's tasks.

        One grouped query over (status, priority, assignee) feeds every branch
        of the result.
        """
        stmt = (
            select(Task.status, Task.priority, Task.assignee_id, func.count(Task.id))
            .where(Task.project_id == project_id)
            .group_by(Task.status, Task.priority, Task.assignee_id)
        )
        rows = (await db.execute(stmt)).all()

        by_status = {status: 0 for status in TASK_STATUSES}
        by_priority = {priority: 0 for priority in TASK_PRIORITIES}
        by_assignee: dict[str, int] = {}
        total = 0
        for status, priority, assignee_id, count in rows:
            total += count
            by_status[status] = by_status.get(status, 0) + count
            by_priority[priority] = by_priority.get(priority, 0) + count
            if assignee_id:
                by_assignee[assignee_id] = by_assignee.get(assignee_id, 0) + count

        return {
            "total": total,
            "completed": by_status["done"],
            "by_status": by_status,
            "by_priority": by_priority,
            "by_assignee": [
                {"assignee_id": assignee_id, "count": count}
                for assignee_id, count in sorted(
                    by_assignee.items(), key=lambda item: (-item[1], item[0])
                )
            ],
        }

    # ------------------------------------------------------------------
    # Task mutations
    # ------------------------------------------------------------------

    @check_local_db
    async def create_task(
        self, obj_dict: dict[str, Any], *, db: AsyncSession = None
    ) -> Task:
        task = await super().create(obj_dict, db=db)
        logger.info(f"Created task {task.id} in project {task.project_id}")
        return task

    @check_local_db
    async def update_task(
        self, task: Task, changes: dict[str, Any], *, db: AsyncSession = None
    ) -> Task:
        # Tasks never move between projects
        changes = {k: v for k, v in changes.items() if k not in ("project_id", "id")}
        changes["updated_at"] = utc_now()
        return await self.update(task, changes, db=db)

    @check_local_db
    async def update_status(
        self, task: Task, status: str, *, db: AsyncSession = None
    ) -> Task:
        return await self.update_task(task, {"status": status}, db=db)

    # ------------------------------------------------------------------
    # Embedded subtasks
    # ------------------------------------------------------------------

    @check_local_db
    async def add_subtask(
        self,
        task: Task,
        subtask_data: dict[str, Any],
        created_by: str,
        *,
        db: AsyncSession = None,
    ) -> dict[str, Any]:
        subtask = {
            "id": generate_object_id(),
            "title": subtask_data["title"],
            "description": subtask_data.get("description") or "",
            "assignee_id": subtask_data.get("assignee_id"),
            "due_date": _iso(subtask_data.get("due_date")),
            "completed": bool(subtask_data.get("completed", False)),
            "created_at": utc_now().isoformat(),
            "updated_at": None,
            "created_by": created_by,
        }
        await self.update(
            task,
            {"subtasks": [*(task.subtasks or []), subtask], "updated_at": utc_now()},
            db=db,
        )
        return subtask

    @check_local_db
    async def update_subtask(
        self,
        task: Task,
        subtask_id: str,
        changes: dict[str, Any],
        *,
        db: AsyncSession = None,
    ) -> dict[str, Any] | None:
        """Apply ``changes`` to one embedded subtask. None if it does not exist."""
        subtasks = [dict(subtask) for subtask in task.subtasks or []]
        target = next((s for s in subtasks if s.get("id") == subtask_id), None)
        if target is None:
            return None

        for field, value in changes.items():
            target[field] = _iso(value) if field == "due_date" else value
        target["updated_at"] = utc_now().isoformat()

        await self.update(task, {"subtasks": subtasks, "updated_at": utc_now()}, db=db)
        return target

    @check_local_db
    async def delete_subtask(
        self, task: Task, subtask_id: str, *, db: AsyncSession = None
    ) -> bool:
        subtasks = [s for s in task.subtasks or [] if s.get("id") != subtask_id]
        if len(subtasks) == len(task.subtasks or []):
            return False
        await self.update(task, {"subtasks": subtasks, "updated_at": utc_now()}, db=db)
        return True
