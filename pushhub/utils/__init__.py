"""Utility helpers package."""

from pushhub.utils.exceptions import (
    ConflictError,
    DispatchError,
    IllegalTransitionError,
    NotFoundError,
    PushHubException,
    ValidationError,
)

__all__ = [
    "ConflictError",
    "DispatchError",
    "IllegalTransitionError",
    "NotFoundError",
    "PushHubException",
    "ValidationError",
]
