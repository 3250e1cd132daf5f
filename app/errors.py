from __future__ import annotations


class AppError(Exception):
    """Base for errors the HTTP layer maps straight to a status code."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class InternalError(AppError):
    status_code = 500


def status_for(exc: BaseException) -> int:
    """HTTP status for an exception that escaped every handler."""
    status_code = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if not isinstance(status_code, int) or not 400 <= status_code < 600:
        return 500
    return status_code
