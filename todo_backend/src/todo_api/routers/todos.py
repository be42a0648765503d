from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_current_user
from ..models import PublicUser
from ..schemas import MessageEnvelope, Pagination, TodoCreate, TodoEnvelope, TodoListEnvelope, TodoOut, TodoUpdate
from ..services import TodoService, get_todo_service

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)

_ITEM_RESPONSES = {
    401: {"description": "Missing, invalid or expired token"},
    403: {"description": "Todo belongs to another user"},
    404: {"description": "Todo not found"},
}


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item owned by the authenticated user.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"description": "Validation error"},
        401: {"description": "Missing, invalid or expired token"},
    },
)
def create_todo(
    payload: TodoCreate,
    current_user: PublicUser = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service),
) -> TodoEnvelope:
    """
    Create a Todo owned by the caller.
    """
    created = service.create(current_user["id"], payload)
    return TodoEnvelope(message="Todo created successfully", data=TodoOut.model_validate(created))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TodoListEnvelope,
    summary="List Todos",
    description=(
        "List the authenticated user's todos with optional filters and pagination.\n\n"
        "Query parameters:\n"
        "- status: pending, in-progress or completed\n"
        "- priority: low, medium or high\n"
        "- page: 1-based page number (default 1)\n"
        "- limit: page size (default 10, capped by the server maximum)\n"
        "- sortBy: createdAt, updatedAt, dueDate, title, description, priority, status or isCompleted (default createdAt)\n"
        "- sortOrder: asc or desc (default desc)"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid query parameters"},
        401: {"description": "Missing, invalid or expired token"},
    },
)
def list_todos(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(10, ge=1, description="Number of items per page"),
    sort_by: str = Query("createdAt", alias="sortBy", description="Field to sort by"),
    sort_order: str = Query("desc", alias="sortOrder", description="'asc' or 'desc'"),
    current_user: PublicUser = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service),
) -> TodoListEnvelope:
    """
    List the caller's todos with filters, sorting and pagination metadata.
    """
    items, pagination = service.list(
        current_user["id"],
        status=status_filter,
        priority=priority,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return TodoListEnvelope(
        data=[TodoOut.model_validate(it) for it in items],
        pagination=Pagination.model_validate(pagination),
    )


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoEnvelope,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={200: {"description": "Todo found"}, **_ITEM_RESPONSES},
)
def get_todo(
    todo_id: str,
    current_user: PublicUser = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service),
) -> TodoEnvelope:
    """
    Return one of the caller's todos.
    """
    item = service.get(current_user["id"], todo_id)
    return TodoEnvelope(data=TodoOut.model_validate(item))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoEnvelope,
    summary="Update Todo",
    description="Update the provided fields of a Todo item; omitted fields are left unchanged.",
    responses={200: {"description": "Todo updated"}, 400: {"description": "Validation error"}, **_ITEM_RESPONSES},
)
def update_todo(
    todo_id: str,
    payload: TodoUpdate,
    current_user: PublicUser = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service),
) -> TodoEnvelope:
    """
    Apply a partial update; only fields present in the body change.
    """
    updated = service.update(current_user["id"], todo_id, payload)
    return TodoEnvelope(message="Todo updated successfully", data=TodoOut.model_validate(updated))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=MessageEnvelope,
    summary="Delete Todo",
    description="Permanently delete a Todo item by ID.",
    responses={200: {"description": "Todo deleted"}, **_ITEM_RESPONSES},
)
def delete_todo(
    todo_id: str,
    current_user: PublicUser = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service),
) -> MessageEnvelope:
    """
    Delete a Todo.
    """
    service.delete(current_user["id"], todo_id)
    return MessageEnvelope(message="Todo deleted successfully")


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}/toggle",
    response_model=TodoEnvelope,
    summary="Toggle Todo",
    description="Flip isCompleted and set status to 'completed' or 'pending' accordingly.",
    responses={200: {"description": "Todo toggled"}, **_ITEM_RESPONSES},
)
def toggle_todo(
    todo_id: str,
    current_user: PublicUser = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service),
) -> TodoEnvelope:
    """
    Toggle completion of a Todo.
    """
    toggled = service.toggle(current_user["id"], todo_id)
    return TodoEnvelope(message="Todo status toggled successfully", data=TodoOut.model_validate(toggled))
