from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_config import configure_logging
from .repositories import Repository, StorageUnavailable, build_repository
from .routers import records as records_router
from .settings import Settings, get_settings

logger = structlog.get_logger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "records",
        "description": "Create, read, update, delete and search records.",
    },
]


def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Request validation failed"
    msg = str(errors[0].get("msg", "Request validation failed"))
    # pydantic prefixes messages raised from validators
    return msg.removeprefix("Value error, ")


def _jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raised ValueError itself
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The repository is created once here (from settings unless one is passed
    in), kept on ``app.state.repository`` for the route dependency, and closed
    when the app shuts down.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    repo = repository if repository is not None else build_repository(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("app_started", backend=settings.persistence_backend)
        yield
        repo.close()
        logger.info("app_stopped")

    app = FastAPI(
        title="Record Keeper Backend",
        description="REST API for managing records with in-memory or database storage.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.repository = repo
    app.state.settings = settings

    # '*' or an empty list allows every origin
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "message": "<first validation message>",
                "detail": [... pydantic/fastapi error details ...]
            }
        """
        return JSONResponse(
            status_code=400,
            content={
                "error": "ValidationError",
                "message": _first_error_message(exc),
                "detail": _jsonable_errors(exc),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StorageUnavailable)
    async def storage_exception_handler(request: Request, exc: StorageUnavailable) -> JSONResponse:
        logger.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            operation=exc.operation,
            record_id=exc.record_id,
        )
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(records_router.router)
    return app
