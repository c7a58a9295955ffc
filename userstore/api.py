"""HTTP API exposing user records over JSON."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictStr
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_settings
from .database import ConnectionFactory
from .errors import CommitError, ConstraintError, UserStoreError
from .repository import AsyncUserRepository, UserRepository

logger = logging.getLogger("userstore.api")


class UserPayload(BaseModel):
    email: StrictStr
    name: StrictStr


def _ok(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    for error in exc.errors():
        location = error.get("loc", ())
        if error.get("type") == "json_invalid":
            return "Request body is not valid JSON."
        if "path" in location and "user_id" in location:
            return "The 'id' parameter must be a positive integer."
        if "query" in location:
            return "The 'user_id' filter must be an integer."
    return "Invalid data. 'email' and 'name' are required as strings."


def _build_repository(settings: Settings) -> UserRepository:
    factory = ConnectionFactory(settings.database_path, timeout=settings.busy_timeout)
    factory.initialize()
    return UserRepository(factory)


def register_error_handlers(app: FastAPI) -> None:
    """Translate validation and store failures into the JSON error envelope."""

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _describe_validation_error(exc)
        logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
        return _error(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(ConstraintError)
    async def constraint_error(request: Request, exc: ConstraintError) -> JSONResponse:
        logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc)
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(CommitError)
    async def commit_error(request: Request, exc: CommitError) -> JSONResponse:
        logger.error("Commit outcome unknown for user %s (deleted_at=%s)", exc.user_id, exc.deleted_at)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "The deletion could not be confirmed; check the user before retrying.",
        )

    @app.exception_handler(UserStoreError)
    async def store_error(request: Request, exc: UserStoreError) -> JSONResponse:
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_user_routes(app: FastAPI, users: AsyncUserRepository) -> None:
    """Expose the user endpoints on the provided FastAPI application."""

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/users")
    async def list_users() -> Dict[str, Any]:
        records = await users.list_all()
        return _ok([user.to_dict() for user in records])

    @app.get("/users/deletions")
    async def list_deletions(user_id: Optional[int] = None) -> Dict[str, Any]:
        entries = await users.list_deletions(user_id)
        return _ok([entry.to_dict() for entry in entries])

    @app.get("/users/{user_id}")
    async def get_user(user_id: int = Path(..., gt=0)) -> Dict[str, Any]:
        user = await users.get_by_id(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return _ok(user.to_dict())

    @app.post("/users", status_code=status.HTTP_201_CREATED)
    async def create_user(payload: UserPayload) -> Dict[str, Any]:
        user = await users.create(payload.email, payload.name)
        return _ok(user.to_dict())

    @app.put("/users/{user_id}")
    async def update_user(payload: UserPayload, user_id: int = Path(..., gt=0)) -> Dict[str, Any]:
        user = await users.update(user_id, payload.email, payload.name)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found for update."
            )
        return _ok(user.to_dict())

    @app.delete("/users/{user_id}")
    async def delete_user(user_id: int = Path(..., gt=0)) -> Dict[str, Any]:
        result = await users.delete_with_log(user_id)
        if result is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found for deletion."
            )
        return _ok(result.to_dict())


def create_app(
    repository: UserRepository | None = None,
    *,
    settings: Settings | None = None,
) -> FastAPI:
    """Create the FastAPI application serving the user endpoints."""

    if repository is None:
        repository = _build_repository(settings or load_settings())

    app = FastAPI(
        title="User Store",
        version="0.1.0",
        description="CRUD API for user records with an audited, transactional delete.",
    )
    users = AsyncUserRepository(repository)
    app.state.repository = users

    register_error_handlers(app)
    register_user_routes(app, users)
    return app


__all__ = ["UserPayload", "create_app", "register_error_handlers", "register_user_routes"]
