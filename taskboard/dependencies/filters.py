from collections.abc import Callable

from fastapi import HTTPException, Query, status

from taskboard.config import settings
from taskboard.models import TASK_PRIORITIES, TASK_STATUSES
from taskboard.schemas import TaskFilters
from taskboard.utils.object_id import is_object_id
from taskboard.utils.sanitize import clamp_pagination, sanitize_search_input

ALL = "all"


def _choice(value: str | None, allowed: tuple[str, ...], label: str) -> str | None:
    if value is None or value == ALL:
        return None
    if value not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{label} must be one of: {', '.join((*allowed, ALL))}",
        )
    return value


def task_filters(default_limit: int) -> Callable[..., TaskFilters]:
    """Build a query-parameter dependency for task listings with ``default_limit``."""

    def dependency(
        status_filter: str | None = Query(None, alias="status"),
        priority: str | None = Query(None),
        assignee: str | None = Query(None),
        search: str | None = Query(None),
        page: int = Query(1),
        limit: int = Query(default_limit),
    ) -> TaskFilters:
        if assignee is not None and assignee != ALL and not is_object_id(assignee):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid assignee ID",
            )

        page, limit = clamp_pagination(
            page, limit, settings.max_page_size, settings.max_page
        )
        return TaskFilters(
            status=_choice(status_filter, TASK_STATUSES, "Status"),
            priority=_choice(priority, TASK_PRIORITIES, "Priority"),
            assignee_id=None if assignee in (None, ALL) else assignee,
            search=sanitize_search_input(search, settings.search_max_length),
            page=page,
            limit=limit,
        )

    return dependency


project_task_filters = task_filters(default_limit=20)
all_task_filters = task_filters(default_limit=50)
