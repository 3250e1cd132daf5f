from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from app.errors import status_for
from app.observability.metrics import MetricsRegistry


def _route_label(scope: dict[str, Any]) -> str:
    # The router stores the matched route on the scope; unmatched requests keep the raw path.
    route = scope.get("route")
    path_format = getattr(route, "path_format", None) or getattr(route, "path", None)
    if path_format:
        return str(path_format)
    return str(scope.get("path") or "")


class RequestContextMiddleware:
    """Adds request_id context, access logs, and per-route HTTP metrics."""

    def __init__(self, app: Callable[..., Any], metrics: MetricsRegistry) -> None:
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path")
        method = scope.get("method", "")

        # Error handlers outside this middleware read the id from request.state.
        scope.setdefault("state", {})["request_id"] = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        start = perf_counter()
        status_code: int = 500
        response_started = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code, response_started

            if message.get("type") == "http.response.start":
                response_started = True
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            # The outer error handler answers with this status; record the same one.
            if not response_started:
                status_code = status_for(exc)
            raise
        else:
            # Left bound on errors so the outer handler's log keeps the request_id.
            structlog.contextvars.clear_contextvars()
        finally:
            elapsed = perf_counter() - start
            route = _route_label(scope)

            # Update metrics first so they update even if logging misbehaves.
            self.metrics.observe_http_request(
                method=method,
                route=route,
                status=status_code,
                elapsed_seconds=elapsed,
            )

            structlog.get_logger("access").info(
                "http_request",
                request_id=request_id,
                path=path,
                method=method,
                route=route,
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000.0, 2),
            )
