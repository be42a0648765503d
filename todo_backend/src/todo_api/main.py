from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import AppError, Unauthenticated, ValidationFailed
from .middleware import register_middleware
from .repositories import get_storage
from .routers import auth as auth_router
from .routers import todos as todos_router
from .services import AuthService, TodoService
from .settings import DEFAULT_JWT_SECRET, Settings, get_settings
from .utils import validation_errors

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Registration, login and the current user's profile."},
    {
        "name": "todos",
        "description": "CRUD and toggle operations on the authenticated user's todos, with filtering, sorting, and pagination.",
    },
]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s - %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("pymongo", "httpx", "httpcore"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as {"message": ..., "errors"?: [...]}."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format (status 400):
            {
                "message": "Validation failed",
                "errors": [{"field": "title", "message": "Title must be between 1 and 100 characters"}, ...]
            }
        """
        failed = ValidationFailed(validation_errors(exc.errors()))
        return JSONResponse(status_code=failed.status_code, content=failed.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application for the given settings.

    Storage and services are constructed here from the settings object and
    kept on app.state; nothing is read from module-level globals afterwards.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; using the development default")

    storage = get_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage.open()
        try:
            yield
        finally:
            storage.close()

    app = FastAPI(
        title="Todo API",
        description="Authenticated personal todo list: registration, login and per-user todos.",
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.auth_service = AuthService(storage.users, settings)
    app.state.todo_service = TodoService(storage.todos, settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_middleware(app)
    register_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/api/health", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the storage backend in use.
        """
        return {
            "success": True,
            "message": "Todo API is running",
            "backend": settings.persistence_backend,
        }

    app.include_router(auth_router.router)
    app.include_router(todos_router.router)
    return app


app = create_app()


def main() -> None:
    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
