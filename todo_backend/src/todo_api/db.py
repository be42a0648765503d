from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from .errors import DuplicateEmail
from .models import TodoEntity, UserEntity
from .repositories import SORTABLE_FIELDS, ListQuery, TodoRepository, UserRepository, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Collections:
    users: str = "users"
    todos: str = "todos"


_COLLECTIONS = _Collections()

# Fields a todo update may touch
_TODO_MUTABLE = {"title", "description", "status", "priority", "due_date", "is_completed"}


def _object_id(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


class MongoStore:
    """
    Owns the MongoClient and exposes the collections used by the repositories.
    """

    def __init__(self, uri: str, db_name: str) -> None:
        # MongoClient connects lazily; nothing touches the server until first use
        self._client: MongoClient = MongoClient(uri, tz_aware=True)
        self._db = self._client[db_name]
        self.users: Collection = self._db[_COLLECTIONS.users]
        self.todos: Collection = self._db[_COLLECTIONS.todos]

    def ensure_indexes(self) -> None:
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.todos.create_index([("owner_id", ASCENDING), ("created_at", DESCENDING)])
        logger.info("MongoDB indexes ensured on %s", self._db.name)

    def close(self) -> None:
        self._client.close()


class MongoUserRepository(UserRepository):
    """
    User repository backed by a MongoDB collection; email uniqueness is
    enforced by a unique index.
    """

    def __init__(self, collection: Collection) -> None:
        self._col = collection

    def _doc_to_entity(self, doc: Mapping[str, Any]) -> UserEntity:
        return {
            "id": str(doc["_id"]),
            "name": doc["name"],
            "email": doc["email"],
            "password_hash": doc["password_hash"],
            "created_at": doc["created_at"],
        }

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        doc = {
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "created_at": utcnow(),
        }
        try:
            result = self._col.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateEmail() from exc
        doc["_id"] = result.inserted_id
        return self._doc_to_entity(doc)

    def get(self, user_id: str) -> Optional[UserEntity]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return self._doc_to_entity(doc) if doc else None

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        doc = self._col.find_one({"email": email})
        return self._doc_to_entity(doc) if doc else None


class MongoTodoRepository(TodoRepository):
    """
    Todo repository backed by a MongoDB collection. Owner ids are stored as
    ObjectIds so they can be indexed alongside created_at.
    """

    def __init__(self, collection: Collection) -> None:
        self._col = collection

    def _doc_to_entity(self, doc: Mapping[str, Any]) -> TodoEntity:
        return {
            "id": str(doc["_id"]),
            "title": doc["title"],
            "description": doc.get("description"),
            "status": doc.get("status", "pending"),
            "priority": doc.get("priority", "medium"),
            "due_date": doc.get("due_date"),
            "is_completed": bool(doc.get("is_completed", False)),
            "owner_id": str(doc["owner_id"]),
            "created_at": doc["created_at"],
            "updated_at": doc["updated_at"],
        }

    def create(self, owner_id: str, fields: Dict[str, Any]) -> TodoEntity:
        now = utcnow()
        doc = {
            "title": fields["title"],
            "description": fields.get("description"),
            "status": fields.get("status", "pending"),
            "priority": fields.get("priority", "medium"),
            "due_date": fields.get("due_date"),
            "is_completed": fields.get("is_completed", False),
            "owner_id": ObjectId(owner_id),
            "created_at": now,
            "updated_at": now,
        }
        result = self._col.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._doc_to_entity(doc)

    def get(self, todo_id: str) -> Optional[TodoEntity]:
        oid = _object_id(todo_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return self._doc_to_entity(doc) if doc else None

    def update(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        oid = _object_id(todo_id)
        if oid is None:
            return None
        to_set = {k: v for k, v in changes.items() if k in _TODO_MUTABLE}
        to_set["updated_at"] = utcnow()
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$set": to_set},
            return_document=ReturnDocument.AFTER,
        )
        return self._doc_to_entity(doc) if doc else None

    def delete(self, todo_id: str) -> bool:
        oid = _object_id(todo_id)
        if oid is None:
            return False
        return self._col.delete_one({"_id": oid}).deleted_count > 0

    def list(self, query: ListQuery) -> Tuple[List[TodoEntity], int]:
        q = query
        owner = _object_id(q.owner_id)
        if owner is None:
            return [], 0

        filter_doc: Dict[str, Any] = {"owner_id": owner}
        if q.status is not None:
            filter_doc["status"] = q.status
        if q.priority is not None:
            filter_doc["priority"] = q.priority

        sort_field = q.sort_by if q.sort_by in SORTABLE_FIELDS else "created_at"
        direction = DESCENDING if q.descending else ASCENDING
        total = self._col.count_documents(filter_doc)
        cursor = (
            self._col.find(filter_doc)
            # _id breaks ties so pages never overlap
            .sort([(sort_field, direction), ("_id", direction)])
            .skip(max(q.offset, 0))
            .limit(max(q.limit, 1))
        )
        return [self._doc_to_entity(doc) for doc in cursor], total
