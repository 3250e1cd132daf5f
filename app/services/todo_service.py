from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from app.errors import NotFoundError, ValidationError
from app.models.schemas import Todo, TodoUpdate

logger = logging.getLogger(__name__)

TODO_NOT_FOUND = "Todo not found"


def _parse_id(todo_id: Any) -> int | None:
    if isinstance(todo_id, bool):
        return None
    if isinstance(todo_id, int):
        return todo_id
    raw = str(todo_id)
    digits = raw[1:] if raw.startswith("-") else raw
    # Plain ASCII digits only; no padding, signs, or underscores.
    if not (digits.isascii() and digits.isdigit()):
        return None
    return int(raw)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


class TodoStore:
    """Thread-safe, process-local todo collection (lost on restart).

    Every public method holds the lock for its whole duration and hands out
    copies, so callers never observe or keep a reference to internal state.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._todos: list[Todo] = []
        self._next_id = 1

    def _find(self, todo_id: Any) -> Todo:
        wanted = _parse_id(todo_id)
        for todo in self._todos:
            if todo.id == wanted:
                return todo
        raise NotFoundError(TODO_NOT_FOUND)

    def get_all(self) -> list[Todo]:
        with self._lock:
            return [todo.model_copy() for todo in self._todos]

    def get_by_id(self, todo_id: Any) -> Todo:
        with self._lock:
            return self._find(todo_id).model_copy()

    def create(self, text: Any) -> Todo:
        if _is_blank(text):
            raise ValidationError("Text is required and must be a non-empty string")

        with self._lock:
            todo = Todo(
                id=self._next_id,
                text=text.strip(),
                done=False,
                created_at=datetime.now(timezone.utc),
            )
            self._next_id += 1
            self._todos.append(todo)

        logger.info("todo.created", extra={"todo_id": todo.id})
        return todo.model_copy()

    def update(self, todo_id: Any, updates: TodoUpdate) -> Todo:
        with self._lock:
            todo = self._find(todo_id)

            # Validate everything before touching the record.
            if updates.has_text and _is_blank(updates.text):
                raise ValidationError("Text must be a non-empty string")
            if updates.has_done and not isinstance(updates.done, bool):
                raise ValidationError("Done must be a boolean")

            if updates.has_text:
                todo.text = updates.text.strip()
            if updates.has_done:
                todo.done = updates.done
            result = todo.model_copy()

        logger.info("todo.updated", extra={"todo_id": result.id})
        return result

    def delete(self, todo_id: Any) -> dict[str, str]:
        with self._lock:
            todo = self._find(todo_id)
            self._todos.remove(todo)

        logger.info("todo.deleted", extra={"todo_id": todo.id})
        return {"message": "Todo deleted successfully"}

    def __len__(self) -> int:
        with self._lock:
            return len(self._todos)
