from taskboard.db_handlers.base import BaseDBHandler, check_local_db
from taskboard.db_handlers.project import ProjectDBHandler
from taskboard.db_handlers.task import TaskDBHandler
from taskboard.db_handlers.user import UserDBHandler

__all__ = [
    "BaseDBHandler",
    "check_local_db",
    "ProjectDBHandler",
    "TaskDBHandler",
    "UserDBHandler",
]
