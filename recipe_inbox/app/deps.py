# recipe_inbox/app/deps.py (settings and the repository live on app.state, exposed as dependencies)

from __future__ import annotations

import hmac
import json
import math
from typing import Any, Optional, Type, TypeVar

from fastapi import Depends, Header, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from recipe_inbox.app.config import Settings
from recipe_inbox.app.domain.errors import MalformedRequest, StoreUnavailable, Unauthorized
from recipe_inbox.app.infra.db.base import SubmissionRepository
from recipe_inbox.app.services.intake_service import IntakeService
from recipe_inbox.app.services.review_service import ReviewService


ModelT = TypeVar("ModelT", bound=BaseModel)


def build_repository(settings: Settings) -> SubmissionRepository:
    """Creates the configured store backend. Raises StoreUnavailable when misconfigured."""
    if settings.INBOX_BACKEND == "supabase":
        from recipe_inbox.app.infra.db.supabase_repo import SupabaseSubmissionRepository

        return SupabaseSubmissionRepository(
            url=settings.SUPABASE_URL,
            key=settings.SUPABASE_SERVICE_ROLE_KEY,
        )

    from recipe_inbox.app.infra.db.sql_repo import SqlSubmissionRepository

    return SqlSubmissionRepository.from_url(settings.DATABASE_URL)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _check_secret(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_family_password(
    settings: Settings = Depends(get_app_settings),
    x_recipe_password: Optional[str] = Header(default=None, alias="X-Recipe-Password"),
) -> None:
    expected = settings.family_password
    if not expected:
        raise Unauthorized("Family password not configured")
    if not _check_secret(x_recipe_password, expected):
        raise Unauthorized("Invalid family password")


def require_admin_token(
    settings: Settings = Depends(get_app_settings),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
    expected = settings.ADMIN_TOKEN
    if not expected:
        raise Unauthorized("Admin token not configured")
    if not _check_secret(x_admin_token, expected):
        raise Unauthorized("Invalid admin token")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unsupported JSON constant {name}")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    # 1e400 overflows to inf
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {text}")
    return value


async def read_json_body(request: Request) -> dict[str, Any]:
    """
    Parses the request body as a JSON object.
    An empty body counts as {}; anything that is not a JSON object is a MalformedRequest.
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw, parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except (ValueError, UnicodeDecodeError, RecursionError) as error:
        raise MalformedRequest() from error
    if not isinstance(body, dict):
        raise MalformedRequest("Request body must be a JSON object")
    return body


def parse_body(model: Type[ModelT], body: dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(body)
    except PydanticValidationError as error:
        raise MalformedRequest("Invalid request body") from error


def get_repository(request: Request) -> SubmissionRepository:
    repository: Optional[SubmissionRepository] = request.app.state.repository
    if repository is None:
        raise StoreUnavailable(request.app.state.store_error or "Submission store is not configured")
    repository.ensure_schema()
    return repository


def get_intake_service(repository: SubmissionRepository = Depends(get_repository)) -> IntakeService:
    return IntakeService(repository)


def get_review_service(repository: SubmissionRepository = Depends(get_repository)) -> ReviewService:
    return ReviewService(repository)
