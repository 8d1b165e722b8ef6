"""FastAPI application factory."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pushhub.api.v1 import api_router
from pushhub.config import settings
from pushhub.services.push_transport import FirebaseTransport, PushTransport
from pushhub.utils.exceptions import PushHubException, handle_pushhub_error


tags_metadata: List[dict[str, str]] = [
    {"name": "notifications", "description": "Create, schedule and manage notifications."},
    {"name": "devices", "description": "Register push tokens for the current recipient."},
    {"name": "history", "description": "Delivery history and read/click acknowledgements."},
]


def create_app(transport: PushTransport | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    ``transport`` defaults to a Firebase transport built from settings. It is
    opened on startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        push_transport = transport or FirebaseTransport.from_settings()
        push_transport.open()
        app.state.push_transport = push_transport
        try:
            yield
        finally:
            push_transport.close()
            app.state.push_transport = None

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Push notification dispatch with scheduling and delivery history.",
        version="0.1.0",
        openapi_tags=tags_metadata,
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": jsonable_encoder(exc.errors()), "message": "Validation failed"},
        )

    app.add_exception_handler(PushHubException, handle_pushhub_error)

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
