from taskboard.dependencies.auth import get_bearer_token, get_current_user
from taskboard.dependencies.ownership import (
    get_accessible_task,
    get_owned_project,
    parse_object_id,
    require_owned_project,
    require_task_access,
)

__all__ = [
    "get_bearer_token",
    "get_current_user",
    "get_accessible_task",
    "get_owned_project",
    "parse_object_id",
    "require_owned_project",
    "require_task_access",
]
