"""Celery tasks package."""

from pushhub.tasks import notifications

__all__ = ["notifications"]
