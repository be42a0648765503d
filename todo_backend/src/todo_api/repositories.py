from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId

from .errors import DuplicateEmail
from .models import TodoEntity, UserEntity
from .settings import Settings

SORTABLE_FIELDS = {
    "created_at",
    "updated_at",
    "due_date",
    "title",
    "description",
    "priority",
    "status",
    "is_completed",
}


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing one owner's todos.
    """
    owner_id: str
    status: Optional[str] = None
    priority: Optional[str] = None
    limit: int = 10
    offset: int = 0
    sort_by: str = "created_at"  # one of SORTABLE_FIELDS
    descending: bool = True


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract repository contract for user storage backends."""

    @abstractmethod
    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        """Create and return a new UserEntity. Raise DuplicateEmail if the email is taken."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserEntity]:
        """Return a UserEntity by id, or None if not found."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a UserEntity by (lowercased) email, or None if not found."""


# PUBLIC_INTERFACE
class TodoRepository(ABC):
    """Abstract repository contract for todo storage backends."""

    @abstractmethod
    def create(self, owner_id: str, fields: Dict[str, Any]) -> TodoEntity:
        """Create and return a new TodoEntity owned by owner_id."""

    @abstractmethod
    def get(self, todo_id: str) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def update(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        """Set the given fields on an existing TodoEntity. Return updated entity or None if not found."""

    @abstractmethod
    def delete(self, todo_id: str) -> bool:
        """Delete a TodoEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, query: ListQuery) -> Tuple[List[TodoEntity], int]:
        """
        Return a slice of one owner's TodoEntities and the total count matching filters.
        - Equality filters on status and priority
        - Sorting by any of SORTABLE_FIELDS (asc/desc, nulls lowest)
        - Pagination by limit/offset
        """


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryUserRepository(UserRepository):
    """
    Thread-safe in-memory user store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, UserEntity] = {}

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        entity: UserEntity = {
            "id": str(ObjectId()),
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "created_at": utcnow(),
        }
        with self._lock:
            if any(u["email"] == email for u in self._items.values()):
                raise DuplicateEmail()
            self._items[entity["id"]] = entity
        return entity.copy()

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._lock:
            item = self._items.get(user_id)
            return None if item is None else item.copy()

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            for item in self._items.values():
                if item["email"] == email:
                    return item.copy()
            return None


class InMemoryTodoRepository(TodoRepository):
    """
    Thread-safe in-memory todo store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, TodoEntity] = {}

    def create(self, owner_id: str, fields: Dict[str, Any]) -> TodoEntity:
        now = utcnow()
        entity: TodoEntity = {
            "id": str(ObjectId()),
            "title": fields["title"],
            "description": fields.get("description"),
            "status": fields.get("status", "pending"),
            "priority": fields.get("priority", "medium"),
            "due_date": fields.get("due_date"),
            "is_completed": fields.get("is_completed", False),
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def get(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()

    def update(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                return None

            updated = existing.copy()
            for key, value in changes.items():
                # id, owner and creation time are immutable
                if key in {"id", "owner_id", "created_at"}:
                    continue
                updated[key] = value  # type: ignore[literal-required]
            updated["updated_at"] = utcnow()

            self._items[todo_id] = updated
            return updated.copy()

    def delete(self, todo_id: str) -> bool:
        with self._lock:
            return self._items.pop(todo_id, None) is not None

    def list(self, query: ListQuery) -> Tuple[List[TodoEntity], int]:
        q = query
        with self._lock:
            items: Iterable[TodoEntity] = [t for t in self._items.values() if t["owner_id"] == q.owner_id]

            if q.status is not None:
                items = [t for t in items if t["status"] == q.status]
            if q.priority is not None:
                items = [t for t in items if t["priority"] == q.priority]

            items = list(items)
            total = len(items)

            sort_field = q.sort_by if q.sort_by in SORTABLE_FIELDS else "created_at"
            # Missing values order lowest, as in MongoDB
            items_sorted = sorted(
                items,
                key=lambda t: (t[sort_field] is not None, t[sort_field]),  # type: ignore[literal-required]
                reverse=q.descending,
            )

            start = max(q.offset, 0)
            end = start + max(q.limit, 0)
            page = items_sorted[start:end]

            # Return copies to avoid external mutation
            return [t.copy() for t in page], total


@dataclass
class Storage:
    """
    The repositories used by one application instance, plus lifecycle hooks
    run on application startup and shutdown.
    """
    users: UserRepository
    todos: TodoRepository
    on_startup: List[Callable[[], None]] = field(default_factory=list)
    on_shutdown: List[Callable[[], None]] = field(default_factory=list)

    def open(self) -> None:
        for hook in self.on_startup:
            hook()

    def close(self) -> None:
        for hook in self.on_shutdown:
            hook()


# PUBLIC_INTERFACE
def get_storage(settings: Settings) -> Storage:
    """
    Build the configured storage backend.
    - memory: InMemoryUserRepository / InMemoryTodoRepository
    - mongo: MongoUserRepository / MongoTodoRepository sharing one MongoClient
    """
    if settings.persistence_backend == "mongo":
        from .db import MongoStore, MongoTodoRepository, MongoUserRepository

        store = MongoStore(settings.mongodb_uri, settings.mongodb_db)
        return Storage(
            users=MongoUserRepository(store.users),
            todos=MongoTodoRepository(store.todos),
            on_startup=[store.ensure_indexes],
            on_shutdown=[store.close],
        )
    return Storage(users=InMemoryUserRepository(), todos=InMemoryTodoRepository())
