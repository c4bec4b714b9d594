from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .repositories import Repository, get_repository
from .routers import tasks as tasks_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "tasks", "description": "Create, list, update and delete to-do tasks."},
]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic may put the raised ValueError in 'ctx'; keep its message
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    # 'input' is raw bytes when the body was not sent as JSON
    return jsonable_encoder(errors)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The repository is created once here (or injected, e.g. by tests), kept on
    ``app.state`` for the lifetime of the process and closed on shutdown.
    """
    settings = settings or get_settings()
    repo = repository if repository is not None else get_repository(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Task service ready (backend=%s)", repo.name)
        try:
            yield
        finally:
            repo.close()

    app = FastAPI(
        title="Tasks Backend",
        description="Backend API service for a to-do list application.",
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = repo

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": repo.name}

    app.include_router(tasks_router.router)
    return app


app = create_app()


# PUBLIC_INTERFACE
def run() -> None:
    """Configure logging and serve the application with uvicorn."""
    import uvicorn

    from .logging_setup import setup_logging

    settings = app.state.settings
    setup_logging(settings.log_level)
    logger.info("Server running on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
