"""TaskOps application factory.

``create_app`` builds a fresh store and metrics registry for every app it
returns; ``app`` is the process-wide instance served by uvicorn::

    uvicorn app.main:app --port 8000
"""

from __future__ import annotations

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.health import router as health_router
from app.api.metrics import router as metrics_router
from app.api.todos import router as todos_router
from app.config import Settings, get_settings
from app.errors import AppError, status_for
from app.observability.logging import configure_logging
from app.observability.metrics import MetricsRegistry
from app.observability.middleware import RequestContextMiddleware
from app.services.todo_service import TodoStore

GENERIC_ERROR = "Internal server error"

logger = structlog.get_logger("app")


def _error_response(status_code: int, message: str, exc: BaseException, settings: Settings) -> JSONResponse:
    body: dict[str, str] = {"error": message}
    if status_code >= 500:
        if settings.development:
            body["error"] = str(exc) or message
            body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        else:
            body["error"] = GENERIC_ERROR
    return JSONResponse(status_code=status_code, content=body)


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("app_error", error=exc.message, status_code=exc.status_code, exc_info=exc)
        return _error_response(exc.status_code, exc.message, exc, settings)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404 and "route" not in request.scope:
            message = "Route not found"
        else:
            message = str(exc.detail)
        response = _error_response(exc.status_code, message, exc, settings)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if not errors:
            message = "Invalid request"
        elif errors[0].get("type") == "json_invalid":
            message = "Invalid JSON body"
        else:
            message = str(errors[0].get("msg"))
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", path=request.url.path, exc_info=exc)
        response = _error_response(status_for(exc), str(exc) or GENERIC_ERROR, exc, settings)
        # Sent from outside RequestContextMiddleware, so the header is added here.
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        return response


def create_app(
    settings: Settings | None = None,
    store: TodoStore | None = None,
    metrics: MetricsRegistry | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="TaskOps", version="0.1.0")
    app.state.settings = settings
    app.state.todo_store = store if store is not None else TodoStore()
    app.state.metrics = metrics if metrics is not None else MetricsRegistry()

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(todos_router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last so it wraps everything else, CORS preflights included.
    app.add_middleware(RequestContextMiddleware, metrics=app.state.metrics)

    _register_error_handlers(app, settings)
    return app


app = create_app()
