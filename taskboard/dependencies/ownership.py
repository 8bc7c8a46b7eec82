"""
Owner-scoped resource lookups.

A resource that exists but belongs to someone else is reported exactly like
one that does not exist (404), so ids of other tenants cannot be discovered. The
attempt itself is recorded as an authorization failure.
"""

from fastapi import Depends, HTTPException, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import get_app_db
from taskboard.db_handlers import ProjectDBHandler, TaskDBHandler
from taskboard.dependencies.auth import get_current_user
from taskboard.models import Project, Task, User
from taskboard.utils.object_id import is_object_id
from taskboard.utils.security_logger import security_logger

PROJECT_NOT_FOUND = "Project not found"
TASK_NOT_FOUND = "Task not found"


def parse_object_id(value: str, label: str) -> str:
    if not is_object_id(value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} ID"
        )
    return value


def _log_denied(request: Request, user: User, resource: str, action: str) -> None:
    security_logger.log_authorization_failure(
        user.id,
        resource,
        action,
        security_logger.get_client_ip(request),
        user_agent=security_logger.get_user_agent(request),
    )


async def require_owned_project(
    project_id: str,
    user: User,
    request: Request,
    db: AsyncSession,
    *,
    action: str = "read",
    not_found_detail: str = PROJECT_NOT_FOUND,
) -> Project:
    project_id = parse_object_id(project_id, "project")
    project_handler = ProjectDBHandler()
    project = await project_handler.get_owned_project(project_id, user.id, db=db)
    if project is None:
        if await project_handler.get(project_id, db=db) is not None:
            _log_denied(request, user, f"project/{project_id}", action)
        raise HTTPException(status_code=404, detail=not_found_detail)
    return project


async def require_task_access(
    task_id: str,
    user: User,
    request: Request,
    db: AsyncSession,
    *,
    action: str = "read",
) -> Task:
    """A task is accessible when its project is owned by ``user``."""
    task_id = parse_object_id(task_id, "task")
    task = await TaskDBHandler().get(task_id, db=db)
    if task is None:
        raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)

    project = await ProjectDBHandler().get(task.project_id, db=db)
    if project is None or project.owner_id != user.id:
        _log_denied(request, user, f"task/{task_id}", action)
        raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
    return task


async def get_owned_project(
    request: Request,
    project_id: str = Path(..., alias="id", description="The ID of the project"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
) -> Project:
    return await require_owned_project(
        project_id, current_user, request, db, action=request.method.lower()
    )


async def get_accessible_task(
    request: Request,
    task_id: str = Path(..., alias="taskId", description="The ID of the task"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
) -> Task:
    return await require_task_access(
        task_id, current_user, request, db, action=request.method.lower()
    )
