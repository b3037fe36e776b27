from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from recipe_inbox.app.schemas.inbox import DatabaseHealth, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.api_route("/", methods=["GET"], response_model=HealthResponse, response_model_exclude_none=True)
@router.api_route("/health", methods=["GET", "POST"], response_model=HealthResponse, response_model_exclude_none=True)
def health(request: Request):
    repository = request.app.state.repository
    if repository is None:
        return HealthResponse(db=DatabaseHealth(ok=False, error=request.app.state.store_error))

    try:
        repository.ensure_schema()
        db = DatabaseHealth(ok=True, count=repository.count())
    except Exception as error:
        logger.warning("Health probe could not reach the store: %s", error)
        db = DatabaseHealth(ok=False, error=str(error))
    return HealthResponse(db=db)
