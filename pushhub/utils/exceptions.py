"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger


class PushHubException(Exception):
    """Base exception for the application."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(PushHubException):
    """Malformed input, such as an audience and target mismatch."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(PushHubException):
    """Unknown notification, recipient or acknowledgement target."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PushHubException):
    """Operation not allowed in the entity's current state."""

    status_code = status.HTTP_409_CONFLICT


class IllegalTransitionError(ConflictError):
    """Requested notification status change is not in the transition table."""


class DispatchError(PushHubException):
    """Batch-level push transport failure. Never surfaced to API callers."""

    status_code = status.HTTP_502_BAD_GATEWAY


async def handle_pushhub_error(request: Request, exc: PushHubException) -> JSONResponse:
    """Translate domain errors into JSON responses."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "details": exc.details},
    )
