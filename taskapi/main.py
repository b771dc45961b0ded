"""Main FastAPI application entry point."""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import asynccontextmanager
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from taskapi import __version__
from taskapi.config import get_settings
from taskapi.database import check_connection, engine, ensure_schema
from taskapi.errors import StorageError, TaskApiError, ValidationError
from taskapi.logging_config import setup_logging
from taskapi.models.task import TaskPriority, TaskStatus
from taskapi.models.user import UserRole
from taskapi.routers import assignments, auth, tasks, users

logger = logging.getLogger("taskapi.system")

# Request fields backed by an enumeration, used to list allowed values in errors
ENUM_FIELDS: dict[str, type] = {
    "status": TaskStatus,
    "priority": TaskPriority,
    "role": UserRole,
}

OPENAPI_TAGS = [
    {"name": "Users", "description": "Create, read, update and delete users"},
    {"name": "Tasks", "description": "Task CRUD and user assignment"},
    {"name": "Auth", "description": "GitHub OAuth session login"},
    {"name": "System", "description": "Health checks"},
]


def _human_join(names: Sequence[str]) -> str:
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} and {names[-1]}"


def translate_request_errors(errors: Sequence[dict[str, Any]]) -> ValidationError:
    """Turn FastAPI/pydantic request errors into one `ValidationError`.

    Missing fields are listed under ``required``; an invalid enumeration value
    reports ``allowedValues``; unknown body keys are reported under
    ``unknownFields``.
    """
    missing: list[str] = []
    unknown: list[str] = []
    invalid_enum: str | None = None
    details: list[dict[str, str]] = []

    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = location[0] if location else "body"
        error_type = error.get("type", "")
        ctx = error.get("ctx") or {}

        if error_type == "missing" or (error_type == "string_too_short" and ctx.get("min_length") == 1):
            missing.append(field)
        elif error_type == "enum" and field in ENUM_FIELDS:
            invalid_enum = invalid_enum or field
        elif error_type == "extra_forbidden":
            unknown.append(field)
        details.append({"field": ".".join(location) or "body", "message": error.get("msg", "")})

    if missing:
        verb = "is" if len(missing) == 1 else "are"
        return ValidationError(f"{_human_join(missing)} {verb} required", required=missing)
    if invalid_enum:
        return ValidationError(
            f"Invalid {invalid_enum} value",
            allowedValues=[member.value for member in ENUM_FIELDS[invalid_enum]],
        )
    if unknown:
        return ValidationError("Unknown fields in request body", unknownFields=unknown)
    return ValidationError("Invalid request", errors=details)


async def handle_api_error(request: Request, exc: TaskApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = translate_request_errors(exc.errors())
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def handle_storage_failure(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("%s %s storage failure: %s", request.method, request.url.path, exc, exc_info=exc)
    error = StorageError("Database error", error=str(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    ensure_schema()
    yield
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging(log_dir=settings.log_path, debug=settings.debug)

    app = FastAPI(
        title="Task Management API",
        description="Users, tasks and task assignment with GitHub session authentication",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api-docs",
        redoc_url="/redoc",
        openapi_tags=OPENAPI_TAGS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="lax",
    )

    app.add_exception_handler(TaskApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(SQLAlchemyError, handle_storage_failure)

    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])
    app.include_router(assignments.router, prefix="/api/tasks", tags=["Tasks"])
    app.include_router(auth.router, tags=["Auth"])

    @app.get("/", tags=["System"])
    def root() -> dict[str, str]:
        return {
            "message": "Task Management API",
            "version": __version__,
            "docs": "/api-docs",
        }

    @app.get("/health", tags=["System"])
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db", tags=["System"])
    def health_check_db() -> dict[str, str]:
        check_connection()
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "taskapi.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
