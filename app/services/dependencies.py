from __future__ import annotations

from fastapi import Request

from app.observability.metrics import MetricsRegistry
from app.services.todo_service import TodoStore


def get_store(request: Request) -> TodoStore:
    return request.app.state.todo_store


def get_metrics(request: Request) -> MetricsRegistry:
    return request.app.state.metrics
