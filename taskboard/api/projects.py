"""
Project API routes.

Every route is owner-scoped: a project belonging to another user answers
exactly like a missing one.
"""

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import get_app_db
from taskboard.db_handlers import ProjectDBHandler, TaskDBHandler
from taskboard.db_handlers.project import with_task_counts
from taskboard.dependencies.auth import get_current_user
from taskboard.dependencies.filters import project_task_filters
from taskboard.dependencies.ownership import get_owned_project, require_owned_project
from taskboard.models import Project, User
from taskboard.schemas import (
    MessageResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    TaskFilters,
    TaskListResponse,
    TaskStatistics,
)
from taskboard.utils.logger import setup_logger

logger = setup_logger("api.projects")

router = APIRouter(prefix="/api/projects", tags=["Projects"])


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    """List the requester's projects, newest first, with per-status task counts."""
    return await ProjectDBHandler().list_with_task_counts(current_user.id, db=db)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    project = await ProjectDBHandler().create(
        {
            "name": project_data.name,
            "description": project_data.description,
            "owner_id": current_user.id,
        },
        db=db,
    )
    logger.info(f"User {current_user.id} created project {project.id}")
    return with_task_counts(project, None)


@router.get("/{id}", response_model=ProjectResponse)
async def get_project(
    project: Project = Depends(get_owned_project),
    db: AsyncSession = Depends(get_app_db),
):
    counts = await ProjectDBHandler().get_task_counts([project.id], db=db)
    return with_task_counts(project, counts[project.id])


@router.put("/{id}", response_model=ProjectResponse)
async def update_project(
    project_data: ProjectUpdate,
    request: Request,
    project_id: str = Path(..., alias="id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    """Partially update a project; only the fields sent are changed."""
    project = await require_owned_project(
        project_id, current_user, request, db, action="update"
    )
    project_handler = ProjectDBHandler()
    project = await project_handler.update(project, project_data.changes(), db=db)
    counts = await project_handler.get_task_counts([project.id], db=db)
    return with_task_counts(project, counts[project.id])


@router.delete("/{id}", response_model=MessageResponse)
async def delete_project(
    project: Project = Depends(get_owned_project),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    """Delete a project together with all of its tasks."""
    removed = await ProjectDBHandler().delete_with_tasks(project, db=db)
    logger.info(
        f"User {current_user.id} deleted project {project.id} ({removed} task(s))"
    )
    return MessageResponse(message="Project deleted successfully")


@router.get("/{id}/tasks", response_model=TaskListResponse)
async def list_project_tasks(
    project: Project = Depends(get_owned_project),
    filters: TaskFilters = Depends(project_task_filters),
    db: AsyncSession = Depends(get_app_db),
):
    return await TaskDBHandler().list_project_tasks(project.id, filters, db=db)


@router.get("/{id}/statistics", response_model=TaskStatistics)
async def get_project_statistics(
    project: Project = Depends(get_owned_project),
    db: AsyncSession = Depends(get_app_db),
):
    """Status, priority and assignee breakdown of the project's tasks."""
    return await TaskDBHandler().get_statistics(project.id, db=db)
