"""API endpoint modules for v1."""

from pushhub.api.v1.endpoints import devices, history, notifications

__all__ = ["devices", "history", "notifications"]
