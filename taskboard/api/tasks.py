"""
Task API routes, including the embedded subtask endpoints.

Access to a task is granted through ownership of its parent project. Request
bodies are validated before any ownership lookup, so malformed input is always
answered with 400 regardless of whose task it names.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import get_app_db
from taskboard.db_handlers import TaskDBHandler
from taskboard.dependencies.auth import get_current_user
from taskboard.dependencies.filters import all_task_filters, project_task_filters
from taskboard.dependencies.ownership import (
    get_accessible_task,
    get_owned_project,
    require_owned_project,
    require_task_access,
)
from taskboard.models import Project, Task, User
from taskboard.schemas import (
    MessageResponse,
    SubtaskCreate,
    SubtaskResponse,
    SubtaskUpdate,
    TaskCreate,
    TaskFilters,
    TaskListResponse,
    TaskResponse,
    TaskStatusResponse,
    TaskStatusUpdate,
    TaskUpdate,
)
from taskboard.utils.logger import setup_logger

logger = setup_logger("api.tasks")

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

SUBTASK_NOT_FOUND = "Subtask not found"


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    current_user: User = Depends(get_current_user),
    filters: TaskFilters = Depends(all_task_filters),
    db: AsyncSession = Depends(get_app_db),
):
    """List tasks across every project the requester owns."""
    return await TaskDBHandler().list_owner_tasks(current_user.id, filters, db=db)


@router.get("/projects/{id}/tasks", response_model=TaskListResponse)
async def list_project_tasks(
    project: Project = Depends(get_owned_project),
    filters: TaskFilters = Depends(project_task_filters),
    db: AsyncSession = Depends(get_app_db),
):
    return await TaskDBHandler().list_project_tasks(project.id, filters, db=db)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    project = await require_owned_project(
        task_data.project_id,
        current_user,
        request,
        db,
        action="create_task",
        not_found_detail="Project not found or access denied",
    )
    task = await TaskDBHandler().create_task(
        {**task_data.model_dump(), "project_id": project.id, "created_by": current_user.id},
        db=db,
    )
    return task.to_dict()


@router.get("/{taskId}", response_model=TaskResponse)
async def get_task(task: Task = Depends(get_accessible_task)):
    return task.to_dict()


@router.put("/{taskId}", response_model=TaskResponse)
async def update_task(
    task_data: TaskUpdate,
    request: Request,
    task_id: str = Path(..., alias="taskId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    """Partially update a task. The owning project can never be changed."""
    task = await require_task_access(task_id, current_user, request, db, action="update")
    task = await TaskDBHandler().update_task(task, task_data.changes(), db=db)
    return task.to_dict()


@router.put("/{taskId}/status", response_model=TaskStatusResponse)
async def update_task_status(
    status_data: TaskStatusUpdate,
    request: Request,
    task_id: str = Path(..., alias="taskId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    task = await require_task_access(
        task_id, current_user, request, db, action="update_status"
    )
    task = await TaskDBHandler().update_status(task, status_data.status, db=db)
    return TaskStatusResponse.model_validate(task)


@router.delete("/{taskId}", response_model=MessageResponse)
async def delete_task(
    task: Task = Depends(get_accessible_task),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    await TaskDBHandler().remove(task.id, db=db)
    logger.info(f"User {current_user.id} deleted task {task.id}")
    return MessageResponse(message="Task deleted successfully")


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------


@router.post(
    "/{taskId}/subtasks",
    response_model=SubtaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_subtask(
    subtask_data: SubtaskCreate,
    request: Request,
    task_id: str = Path(..., alias="taskId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    task = await require_task_access(
        task_id, current_user, request, db, action="add_subtask"
    )
    return await TaskDBHandler().add_subtask(
        task, subtask_data.model_dump(), current_user.id, db=db
    )


@router.put("/{taskId}/subtasks/{subtaskId}", response_model=SubtaskResponse)
async def update_subtask(
    subtask_data: SubtaskUpdate,
    request: Request,
    task_id: str = Path(..., alias="taskId"),
    subtask_id: str = Path(..., alias="subtaskId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    task = await require_task_access(
        task_id, current_user, request, db, action="update_subtask"
    )
    subtask = await TaskDBHandler().update_subtask(
        task, subtask_id, subtask_data.changes(), db=db
    )
    if subtask is None:
        raise HTTPException(status_code=404, detail=SUBTASK_NOT_FOUND)
    return subtask


@router.delete("/{taskId}/subtasks/{subtaskId}", response_model=MessageResponse)
async def delete_subtask(
    task: Task = Depends(get_accessible_task),
    subtask_id: str = Path(..., alias="subtaskId"),
    db: AsyncSession = Depends(get_app_db),
):
    if not await TaskDBHandler().delete_subtask(task, subtask_id, db=db):
        raise HTTPException(status_code=404, detail=SUBTASK_NOT_FOUND)
    return MessageResponse(message="Subtask deleted successfully")
