"""API router for version 1."""
from fastapi import APIRouter

from pushhub.api.v1.endpoints import devices, history, notifications


api_router = APIRouter()
# Static /notifications/... paths must be registered before /notifications/{id}.
api_router.include_router(devices.router)
api_router.include_router(history.router)
api_router.include_router(notifications.router)
