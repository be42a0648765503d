"""
Auth and Todo services.

Both services are constructed from an explicit ``Settings`` object and the
repositories chosen for it; ``create_app`` stores them on ``app.state`` and
routes obtain them through the ``get_*_service`` dependencies below.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

from bson import ObjectId
from fastapi import Request

from .errors import DuplicateEmail, Forbidden, InvalidCredentials, NotFound, Unauthenticated, ValidationFailed
from .models import PublicUser, TodoEntity, to_public_user
from .repositories import SORTABLE_FIELDS, ListQuery, TodoRepository, UserRepository
from .schemas import TodoCreate, TodoUpdate
from .security import create_access_token, decode_access_token, hash_password, verify_password
from .settings import Settings

logger = logging.getLogger(__name__)


class AuthService:
    """Registers and authenticates users and issues access tokens."""

    def __init__(self, users: UserRepository, settings: Settings) -> None:
        self._users = users
        self._settings = settings

    def register(self, name: str, email: str, password: str) -> PublicUser:
        email = email.lower()
        if self._users.get_by_email(email) is not None:
            raise DuplicateEmail()
        password_hash = hash_password(password, self._settings.bcrypt_rounds)
        # The store rejects a concurrent duplicate with DuplicateEmail as well
        user = self._users.create(name=name, email=email, password_hash=password_hash)
        logger.info("Registered user %s (%s)", user["email"], user["id"])
        return to_public_user(user)

    def login(self, email: str, password: str) -> Tuple[str, PublicUser]:
        user = self._users.get_by_email(email.lower())
        if user is None or not verify_password(password, user["password_hash"]):
            logger.warning("Failed login for %s", email)
            raise InvalidCredentials()
        token = create_access_token(user["id"], self._settings.jwt_secret, self._settings.jwt_expires_in)
        logger.info("Login: %s (%s)", user["email"], user["id"])
        return token, to_public_user(user)

    def get_current_user(self, user_id: str) -> PublicUser:
        user = self._users.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return to_public_user(user)

    def authenticate(self, token: str) -> PublicUser:
        """Resolve a bearer token to the user it was issued for."""
        payload = decode_access_token(token, self._settings.jwt_secret)
        user = self._users.get(payload["userId"])
        if user is None:
            raise Unauthenticated()
        return to_public_user(user)


class TodoService:
    """CRUD and toggle operations over todos, scoped to their owner."""

    def __init__(self, todos: TodoRepository, settings: Settings) -> None:
        self._todos = todos
        self._settings = settings

    def _load_and_authorize(self, owner_id: str, todo_id: str, action: str = "access") -> TodoEntity:
        """
        Return the todo if it exists and belongs to owner_id.

        Checks run in a fixed order: malformed or unknown id -> NotFound,
        someone else's todo -> Forbidden, naming the attempted action.
        """
        if not ObjectId.is_valid(todo_id):
            raise NotFound()
        todo = self._todos.get(todo_id)
        if todo is None:
            raise NotFound()
        if todo["owner_id"] != owner_id:
            raise Forbidden(f"Not authorized to {action} this todo")
        return todo

    def create(self, owner_id: str, data: TodoCreate) -> TodoEntity:
        # Completion is only changed through update or toggle
        todo = self._todos.create(owner_id, data.model_dump(exclude={"is_completed"}))
        logger.info("Created todo %s for user %s", todo["id"], owner_id)
        return todo

    def list(
        self,
        owner_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[TodoEntity], Dict[str, int]]:
        order = (sort_order or "desc").strip().lower()
        if order not in {"asc", "desc"}:
            raise ValidationFailed([{"field": "sortOrder", "message": "sortOrder must be 'asc' or 'desc'"}])

        page = max(int(page), 1)
        limit = min(max(int(limit), 1), self._settings.max_page_limit)

        query = ListQuery(
            owner_id=owner_id,
            status=status or None,
            priority=priority or None,
            limit=limit,
            offset=(page - 1) * limit,
            sort_by=_sort_field(sort_by),
            descending=order == "desc",
        )
        items, total = self._todos.list(query)
        pagination = {
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "total_items": total,
            "items_per_page": limit,
        }
        return items, pagination

    def get(self, owner_id: str, todo_id: str) -> TodoEntity:
        return self._load_and_authorize(owner_id, todo_id)

    def update(self, owner_id: str, todo_id: str, data: TodoUpdate) -> TodoEntity:
        self._load_and_authorize(owner_id, todo_id, "update")
        updated = self._todos.update(todo_id, data.changes())
        if updated is None:
            # deleted between the ownership check and the write
            raise NotFound()
        return updated

    def delete(self, owner_id: str, todo_id: str) -> None:
        self._load_and_authorize(owner_id, todo_id, "delete")
        if not self._todos.delete(todo_id):
            raise NotFound()
        logger.info("Deleted todo %s for user %s", todo_id, owner_id)

    def toggle(self, owner_id: str, todo_id: str) -> TodoEntity:
        todo = self._load_and_authorize(owner_id, todo_id, "update")
        is_completed = not todo["is_completed"]
        # Un-toggling always lands on "pending", even if the todo was "in-progress" before
        changes = {
            "is_completed": is_completed,
            "status": "completed" if is_completed else "pending",
        }
        updated = self._todos.update(todo_id, changes)
        if updated is None:
            raise NotFound()
        logger.info("Toggled todo %s to is_completed=%s", todo_id, is_completed)
        return updated


def _sort_field(sort_by: Optional[str]) -> str:
    """Map a camelCase or snake_case sort key onto a stored field, defaulting to created_at."""
    if not sort_by:
        return "created_at"
    key = sort_by.strip()
    snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in key).lstrip("_")
    return snake if snake in SORTABLE_FIELDS else "created_at"


# PUBLIC_INTERFACE
def get_auth_service(request: Request) -> AuthService:
    """FastAPI dependency returning the AuthService of the running app."""
    return request.app.state.auth_service


# PUBLIC_INTERFACE
def get_todo_service(request: Request) -> TodoService:
    """FastAPI dependency returning the TodoService of the running app."""
    return request.app.state.todo_service
