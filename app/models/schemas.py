from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Todo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    text: str
    done: bool = False
    created_at: datetime = Field(alias="createdAt")


# Request fields stay `Any`: the store validates values, not the parser.
class TodoCreate(BaseModel):
    text: Any = None


class TodoUpdate(BaseModel):
    text: Any = None
    done: Any = None

    @property
    def has_text(self) -> bool:
        return "text" in self.model_fields_set

    @property
    def has_done(self) -> bool:
        return "done" in self.model_fields_set

    def is_empty(self) -> bool:
        return not (self.has_text or self.has_done)


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
