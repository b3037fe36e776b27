from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from recipe_inbox.app.deps import get_review_service, parse_body, read_json_body, require_admin_token
from recipe_inbox.app.routers.family import build_list_response
from recipe_inbox.app.schemas.inbox import (
    DeletedResponse,
    IdsRequest,
    ListRequest,
    ListResponse,
    RemovedResponse,
    UpdatedResponse,
)
from recipe_inbox.app.services.review_service import ReviewService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_token)])


@router.post("/export", response_model=ListResponse, response_model_exclude_none=True)
def export_submissions(
    body: dict[str, Any] = Depends(read_json_body),
    review: ReviewService = Depends(get_review_service),
):
    return build_list_response(review, parse_body(ListRequest, body))


@router.post("/mark-imported", response_model=UpdatedResponse)
def mark_imported(
    body: dict[str, Any] = Depends(read_json_body),
    review: ReviewService = Depends(get_review_service),
):
    request = parse_body(IdsRequest, body)
    return UpdatedResponse(updated=review.mark_imported(request.ids))


@router.post("/purge-imported", response_model=RemovedResponse)
def purge_imported(
    body: dict[str, Any] = Depends(read_json_body),
    review: ReviewService = Depends(get_review_service),
):
    request = parse_body(IdsRequest, body)
    return RemovedResponse(removed=review.purge(request.ids))


@router.post("/delete-pending", response_model=DeletedResponse)
def delete_pending(
    body: dict[str, Any] = Depends(read_json_body),
    review: ReviewService = Depends(get_review_service),
):
    request = parse_body(IdsRequest, body)
    return DeletedResponse(deleted=review.delete_pending(request.ids))


@router.post("/wipe", response_model=RemovedResponse)
def wipe(review: ReviewService = Depends(get_review_service)):
    return RemovedResponse(removed=review.wipe())
