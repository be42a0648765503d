from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_serializer
from pydantic.alias_generators import to_camel

from .models import TODO_PRIORITIES, TODO_STATUSES, TodoPriority, TodoStatus

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

TITLE_MAX = 100
DESCRIPTION_MAX = 500
NAME_MIN, NAME_MAX = 2, 50
PASSWORD_MIN = 6


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize due_date input into an aware datetime.
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - Naive datetimes are taken to be UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        s = value.strip()
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError("Due date must be a valid date") from e
            parsed = datetime(d.year, d.month, d.day)
    else:
        raise ValueError("Due date must be a valid date")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _check_title(v: Optional[str]) -> str:
    if v is None:
        raise ValueError(f"Title must be between 1 and {TITLE_MAX} characters")
    s = v.strip()
    if not (1 <= len(s) <= TITLE_MAX):
        raise ValueError(f"Title must be between 1 and {TITLE_MAX} characters")
    return s


def _check_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if len(s) > DESCRIPTION_MAX:
        raise ValueError(f"Description cannot be more than {DESCRIPTION_MAX} characters")
    return s


def _check_status(v: Any) -> Any:
    if not isinstance(v, str) or v not in TODO_STATUSES:
        raise ValueError("Status must be pending, in-progress, or completed")
    return v


def _check_priority(v: Any) -> Any:
    if not isinstance(v, str) or v not in TODO_PRIORITIES:
        raise ValueError("Priority must be low, medium, or high")
    return v


def _check_boolean(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in {"true", "false", "1", "0"}:
        return v.strip().lower() in {"true", "1"}
    raise ValueError("isCompleted must be a boolean value")


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TodoCreate(CamelModel):
    """
    Schema for creating a new Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "Two litres, semi-skimmed",
                "priority": "high",
                "dueDate": "2025-02-01",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item (1..100 chars)")
    description: Optional[str] = Field(default=None, description="Optional detailed description (<= 500 chars)")
    status: TodoStatus = Field(default="pending", description="pending, in-progress or completed")
    priority: TodoPriority = Field(default="medium", description="low, medium or high")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the todo item. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )
    is_completed: bool = Field(default=False, description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """
        Strip whitespace and enforce 1..100 length.
        """
        return _check_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _check_description(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _check_status(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        return _check_priority(v)

    @field_validator("is_completed", mode="before")
    @classmethod
    def validate_is_completed(cls, v: Any) -> bool:
        return _check_boolean(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize due_date from str/date/datetime to datetime.
        """
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoUpdate(CamelModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be updated.
    description and dueDate may be set to null to clear them.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy milk and bread",
                "status": "in-progress",
                "dueDate": "2025-02-02T09:30:00Z",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item (1..100 chars)")
    description: Optional[str] = Field(default=None, description="Optional detailed description (<= 500 chars)")
    status: Optional[TodoStatus] = Field(default=None, description="pending, in-progress or completed")
    priority: Optional[TodoPriority] = Field(default=None, description="low, medium or high")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the todo item. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )
    is_completed: Optional[bool] = Field(default=None, description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """
        Strip whitespace and enforce 1..100 length.
        """
        return _check_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _check_description(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _check_status(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        return _check_priority(v)

    @field_validator("is_completed", mode="before")
    @classmethod
    def validate_is_completed(cls, v: Any) -> bool:
        return _check_boolean(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    def changes(self) -> dict:
        """The fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


# PUBLIC_INTERFACE
class RegisterRequest(CamelModel):
    """Schema for registering a new user."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Test User", "email": "test@example.com", "password": "password123"}
        }
    )

    name: str = Field(..., description="Display name (2..50 chars)")
    email: EmailStr = Field(..., description="Unique email address; stored lowercased")
    password: str = Field(..., description="Password, at least 6 characters")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        s = v.strip()
        if not (NAME_MIN <= len(s) <= NAME_MAX):
            raise ValueError(f"Name must be between {NAME_MIN} and {NAME_MAX} characters")
        return s

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN:
            raise ValueError(f"Password must be at least {PASSWORD_MIN} characters")
        return v


# PUBLIC_INTERFACE
class LoginRequest(CamelModel):
    """Schema for logging in with email and password."""

    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


# PUBLIC_INTERFACE
class UserOut(CamelModel):
    """Public profile of a user. The password hash is never part of it."""

    id: str = Field(..., description="Unique identifier of the user")
    name: str
    email: str
    created_at: datetime = Field(..., description="Registration timestamp")


# PUBLIC_INTERFACE
class TodoOut(CamelModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "665f1c2e9b1e8a3d4c5b6a71",
                "title": "Buy milk",
                "description": None,
                "status": "pending",
                "priority": "high",
                "dueDate": "2025-02-01T00:00:00Z",
                "isCompleted": False,
                "ownerId": "665f1b9f9b1e8a3d4c5b6a70",
                "createdAt": "2025-01-25T10:15:30.123000Z",
                "updatedAt": "2025-01-25T10:15:30.123000Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the todo item")
    title: str
    description: Optional[str] = None
    status: TodoStatus
    priority: TodoPriority
    due_date: Optional[datetime] = None
    is_completed: bool
    owner_id: str = Field(..., description="Id of the owning user")
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class MessageEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None

    @model_serializer(mode="wrap")
    def serialize_envelope(self, handler):
        """Leave ``message`` out of the body when the response carries none."""
        data: Dict[str, Any] = handler(self)
        if data.get("message") is None:
            data.pop("message", None)
        return data


class UserEnvelope(MessageEnvelope):
    data: UserOut


class LoginEnvelope(MessageEnvelope):
    token: str
    data: UserOut


class TodoEnvelope(MessageEnvelope):
    data: TodoOut


class TodoListEnvelope(MessageEnvelope):
    """
    Envelope for paginated list responses.
    """
    data: List[TodoOut] = Field(..., description="The requested page of Todo items")
    pagination: Pagination
