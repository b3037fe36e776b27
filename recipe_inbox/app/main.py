# recipe_inbox/app/main.py
from __future__ import annotations

import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from recipe_inbox.app.config import Settings, get_settings
from recipe_inbox.app.deps import build_repository
from recipe_inbox.app.domain.errors import (
    InboxError,
    MalformedRequest,
    StoreUnavailable,
    SubmissionConflict,
    Unauthorized,
    ValidationError,
)
from recipe_inbox.app.infra.db.base import SubmissionRepository
from recipe_inbox.app.routers.admin import router as admin_router
from recipe_inbox.app.routers.family import router as family_router
from recipe_inbox.app.routers.health import router as health_router

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = "GET, POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, X-Recipe-Password, X-Admin-Token"

_STATUS_BY_ERROR: dict[type[InboxError], int] = {
    Unauthorized: 401,
    ValidationError: 400,
    MalformedRequest: 400,
    SubmissionConflict: 409,
}


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def status_for_error(error: Exception) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status_code
    if not isinstance(error, InboxError):
        message = str(error).lower()
        if "password" in message or "token" in message:
            return 401
    return 500


def error_response(error: Exception) -> JSONResponse:
    message = str(error) or "Unexpected error"
    return JSONResponse({"ok": False, "error": message}, status_code=status_for_error(error))


async def _handle_inbox_error(request: Request, error: InboxError) -> JSONResponse:
    if isinstance(error, StoreUnavailable):
        logger.error("%s %s: %s", request.method, request.url.path, error)
    return error_response(error)


async def _handle_http_error(request: Request, error: StarletteHTTPException) -> Response:
    # unmapped paths and wrong methods are both plain 404s
    if error.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)
    return JSONResponse({"ok": False, "error": str(error.detail)}, status_code=error.status_code)


async def _handle_request_validation(request: Request, error: RequestValidationError) -> JSONResponse:
    return error_response(MalformedRequest("Invalid request"))


async def _cors_and_errors(request: Request, call_next) -> Response:
    if request.method == "OPTIONS":
        response: Response = Response(status_code=204)
    else:
        try:
            response = await call_next(request)
        except Exception as error:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = error_response(error)

    origin = request.headers.get("origin")
    if origin and origin in request.app.state.settings.ALLOWED_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
    response.headers["Vary"] = "Origin"
    return response


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[SubmissionRepository] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Recipe Inbox API", version="0.1.0")
    app.state.settings = settings
    app.state.repository = repository
    app.state.store_error = None

    if repository is None:
        try:
            app.state.repository = build_repository(settings)
        except StoreUnavailable as error:
            # keep serving so /health can report it; store routes answer 500
            logger.error("Submission store unavailable: %s", error)
            app.state.store_error = str(error)

    app.middleware("http")(_cors_and_errors)
    app.add_exception_handler(InboxError, _handle_inbox_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)

    app.include_router(health_router)
    app.include_router(family_router)
    app.include_router(admin_router)
    return app


configure_logging(get_settings().LOG_LEVEL)

app = create_app()
