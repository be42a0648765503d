from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, TypedDict, get_args

TodoStatus = Literal["pending", "in-progress", "completed"]
TodoPriority = Literal["low", "medium", "high"]

TODO_STATUSES = get_args(TodoStatus)
TODO_PRIORITIES = get_args(TodoPriority)


# PUBLIC_INTERFACE
class PublicUser(TypedDict):
    """
    The user fields that may be returned to clients.

    Fields:
    - id: ObjectId hex string
    - name: Display name
    - email: Lowercased, unique email address
    - created_at: Registration timestamp
    """

    id: str
    name: str
    email: str
    created_at: datetime


# PUBLIC_INTERFACE
class UserEntity(PublicUser):
    """A stored user record; password_hash is a one-way bcrypt digest."""

    password_hash: str


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A todo item as stored by every repository backend.

    Fields:
    - id: ObjectId hex string
    - title: Short title (1..100 chars, trimmed on input via schemas)
    - description: Optional detailed description (<= 500 chars)
    - status: pending | in-progress | completed
    - priority: low | medium | high
    - due_date: Optional due datetime
    - is_completed: Completion flag
    - owner_id: Id of the owning user; set at creation and never reassigned
    - created_at / updated_at: UTC timestamps
    """

    id: str
    title: str
    description: Optional[str]
    status: TodoStatus
    priority: TodoPriority
    due_date: Optional[datetime]
    is_completed: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime


def to_public_user(user: UserEntity) -> PublicUser:
    return {
        "id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "created_at": user["created_at"],
    }
