"""Error handling utilities for the API."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..functions.callable import HttpsError

logger = logging.getLogger(__name__)


# Default error messages
ERROR_MESSAGES = {
    "general": "Sorry, something went wrong. Please try again.",
    "not_found": "The requested item was not found.",
    "permission": "You do not have permission to do that.",
    "validation": "The request contains invalid data.",
    "conflict": "That change conflicts with existing data.",
    "storage": "File storage error. Please try again.",
    "configuration": "Server configuration error.",
}


class SemSyncError(Exception):
    """Base exception for application errors."""

    status_code = 500

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or ERROR_MESSAGES["general"]


class NotFoundError(SemSyncError):
    """Requested document does not exist for this caller."""

    status_code = 404

    def __init__(self, message: str = "Item not found"):
        super().__init__(message, ERROR_MESSAGES["not_found"])


class PermissionDeniedError(SemSyncError):
    """Caller is not allowed to touch this document."""

    status_code = 403

    def __init__(self, message: str = "Permission denied", user_message: str = None):
        super().__init__(message, user_message or ERROR_MESSAGES["permission"])


class ValidationError(SemSyncError):
    """Input failed validation. The message is safe to show to the caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, message)


class ConflictError(SemSyncError):
    """Operation conflicts with current state. The message is shown as-is."""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, message)


class StorageError(SemSyncError):
    """Blob storage operation failed."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, ERROR_MESSAGES["storage"])


class ConfigurationError(SemSyncError):
    """Server-side setup such as credentials is missing or unusable."""

    def __init__(self, message: str = "Server is misconfigured"):
        super().__init__(message, ERROR_MESSAGES["configuration"])


async def semsync_error_handler(request: Request, exc: SemSyncError) -> JSONResponse:
    """Translate application errors into JSON responses."""
    logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.user_message},
    )


async def https_error_handler(request: Request, exc: HttpsError) -> JSONResponse:
    """Callable errors raised from dependencies keep the callable envelope."""
    logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the traceback, hide internals from the caller."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": ERROR_MESSAGES["general"]},
    )


def register_error_handlers(app: FastAPI) -> None:
    """
    Register the application error handlers.

    Usage:
        app = FastAPI()
        register_error_handlers(app)
    """
    app.add_exception_handler(SemSyncError, semsync_error_handler)
    app.add_exception_handler(HttpsError, https_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

