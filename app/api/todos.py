from __future__ import annotations

from fastapi import APIRouter, Depends

from app.errors import ValidationError
from app.models.schemas import MessageResponse, Todo, TodoCreate, TodoUpdate
from app.services.dependencies import get_store
from app.services.todo_service import TodoStore

router = APIRouter(prefix="/api/todos", tags=["todos"])


@router.get("", response_model=list[Todo])
async def list_todos(store: TodoStore = Depends(get_store)) -> list[Todo]:
    return store.get_all()


@router.get("/{todo_id}", response_model=Todo)
async def get_todo(todo_id: str, store: TodoStore = Depends(get_store)) -> Todo:
    return store.get_by_id(todo_id)


@router.post("", response_model=Todo, status_code=201)
async def create_todo(payload: TodoCreate | None = None, store: TodoStore = Depends(get_store)) -> Todo:
    # An absent body reads the same as one without `text`.
    payload = payload or TodoCreate()
    if not payload.text:
        raise ValidationError("Text field is required")
    return store.create(payload.text)


@router.put("/{todo_id}", response_model=Todo)
async def update_todo(
    todo_id: str,
    payload: TodoUpdate | None = None,
    store: TodoStore = Depends(get_store),
) -> Todo:
    payload = payload or TodoUpdate()
    if payload.is_empty():
        raise ValidationError("At least one field (text or done) must be provided")
    return store.update(todo_id, payload)


@router.delete("/{todo_id}", response_model=MessageResponse)
async def delete_todo(todo_id: str, store: TodoStore = Depends(get_store)) -> dict[str, str]:
    return store.delete(todo_id)
