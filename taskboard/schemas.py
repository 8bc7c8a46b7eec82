import re
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from taskboard.utils.object_id import is_object_id
from taskboard.utils.sanitize import strip_control_chars

TaskStatus = Literal["todo", "in-progress", "done"]
TaskPriority = Literal["low", "medium", "high"]

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[!@#$%^&*])")


# ---------------------------------------------------------------------------
# Field validators shared by the request models
# ---------------------------------------------------------------------------


def _text(label: str, max_length: int, min_length: int = 0, single_line: bool = True):
    def validate(value: str) -> str:
        if single_line:
            value = strip_control_chars(value).strip()
        if min_length == 1 and not value:
            raise ValueError(f"{label} is required")
        if len(value) < min_length:
            raise ValueError(f"{label} must be at least {min_length} characters")
        if len(value) > max_length:
            raise ValueError(f"{label} must be less than {max_length} characters")
        return value

    return AfterValidator(validate)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _object_id(label: str):
    def validate(value: str | None) -> str | None:
        if value is not None and not is_object_id(value):
            raise ValueError(f"Invalid {label} ID")
        return value

    return AfterValidator(validate)


def _parse_due_date(value: Any) -> Any:
    value = _blank_to_none(value)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError("Invalid due date") from e
    return value


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _labels(value: list[str]) -> list[str]:
    for label in value:
        if len(label) > 20:
            raise ValueError("Labels must be less than 20 characters")
    return value


AssigneeId = Annotated[str | None, BeforeValidator(_blank_to_none), _object_id("assignee")]
DueDate = Annotated[
    datetime | None, BeforeValidator(_parse_due_date), AfterValidator(_as_utc)
]
Labels = Annotated[list[str], AfterValidator(_labels)]


class RequestModel(BaseModel):
    """Base for request bodies: camelCase keys, unknown keys rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=False,
    )


class PartialUpdateModel(RequestModel):
    @model_validator(mode="after")
    def require_at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self

    def changes(self) -> dict[str, Any]:
        """Only the fields the client actually sent, keyed by attribute name."""
        return self.model_dump(include=self.model_fields_set)


class APIModel(BaseModel):
    """Base for response bodies: camelCase keys, built from dicts or ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UserRegister(RequestModel):
    name: Annotated[str, _text("Name", max_length=50, min_length=3)]
    email: EmailStr
    password: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        if not PASSWORD_PATTERN.match(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase "
                "letter, one number, and one special character (!@#$%^&*)"
            )
        return v


class UserLogin(RequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class AuthResponse(APIModel):
    id: str = Field(..., description="User unique identifier")
    name: str
    email: str
    token: str = Field(..., description="JWT access token")


class UserInfo(APIModel):
    id: str = Field(..., description="User unique identifier")
    name: str
    email: str
    created_at: datetime = Field(..., description="Account creation timestamp")


class MessageResponse(BaseModel):
    message: str = Field(..., description="Response message")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class ProjectCreate(RequestModel):
    name: Annotated[str, _text("Project name", max_length=100, min_length=3)]
    description: Annotated[
        str, _text("Description", max_length=500, single_line=False)
    ] = ""


class ProjectUpdate(PartialUpdateModel):
    name: Annotated[str, _text("Project name", max_length=100, min_length=3)] = None
    description: Annotated[
        str, _text("Description", max_length=500, single_line=False)
    ] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Value must be a string")
        return v


class TaskCounts(APIModel):
    todo: int = 0
    in_progress: int = Field(0, alias="in-progress")
    done: int = 0


class ProjectResponse(APIModel):
    id: str
    name: str
    description: str
    owner_id: str
    created_at: datetime
    updated_at: datetime
    task_counts: TaskCounts = Field(default_factory=TaskCounts)
    total_tasks: int = 0


class AssigneeCount(APIModel):
    assignee_id: str
    count: int


class TaskStatistics(APIModel):
    total: int = 0
    completed: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)
    by_assignee: list[AssigneeCount] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskCreate(RequestModel):
    project_id: Annotated[str, _object_id("project")]
    title: Annotated[str, _text("Task title", max_length=200, min_length=1)]
    description: Annotated[
        str, _text("Description", max_length=10000, single_line=False)
    ] = ""
    status: TaskStatus = "todo"
    priority: TaskPriority = "medium"
    assignee_id: AssigneeId = None
    due_date: DueDate = None
    estimated_hours: float | None = Field(None, ge=0, le=1000)
    labels: Labels = Field(default_factory=list)


class TaskUpdate(PartialUpdateModel):
    """Partial task update. ``projectId`` is deliberately absent: tasks never move."""

    title: Annotated[str, _text("Task title", max_length=200, min_length=1)] = None
    description: Annotated[
        str, _text("Description", max_length=10000, single_line=False)
    ] = None
    status: TaskStatus = None
    priority: TaskPriority = None
    assignee_id: AssigneeId = None
    due_date: DueDate = None
    estimated_hours: float | None = Field(None, ge=0, le=1000)
    actual_hours: float | None = Field(None, ge=0)
    labels: Labels = None

    @field_validator("title", "description", "status", "priority", "labels", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Value must not be null")
        return v


class TaskStatusUpdate(RequestModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, v: str) -> str:
        if v not in ("todo", "in-progress", "done"):
            raise ValueError("Status must be one of: todo, in-progress, done")
        return v


class SubtaskCreate(RequestModel):
    title: Annotated[str, _text("Subtask title", max_length=200, min_length=1)]
    description: Annotated[
        str, _text("Description", max_length=500, single_line=False)
    ] = ""
    assignee_id: AssigneeId = None
    due_date: DueDate = None
    completed: bool = False


class SubtaskUpdate(PartialUpdateModel):
    completed: bool = None
    title: Annotated[str, _text("Subtask title", max_length=200, min_length=1)] = None
    description: Annotated[
        str, _text("Description", max_length=500, single_line=False)
    ] = None
    assignee_id: AssigneeId = None
    due_date: DueDate = None

    @field_validator("completed", "title", "description", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Value must not be null")
        return v


class SubtaskResponse(APIModel):
    id: str
    title: str
    description: str = ""
    assignee_id: str | None = None
    due_date: datetime | None = None
    completed: bool = False
    created_at: datetime
    updated_at: datetime | None = None
    created_by: str | None = None


class TaskResponse(APIModel):
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    project_id: str
    assignee_id: str | None = None
    due_date: datetime | None = None
    created_by: str
    subtasks: list[SubtaskResponse] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    estimated_hours: float | None = None
    actual_hours: float | None = None
    completion_percentage: int = 0
    created_at: datetime
    updated_at: datetime


class TaskStatusResponse(APIModel):
    id: str
    status: TaskStatus
    updated_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    pagination: Pagination


class TaskFilters(BaseModel):
    """Normalized list-query parameters (``all`` already mapped to None)."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assignee_id: str | None = None
    search: str | None = None
    page: int = 1
    limit: int = 20
