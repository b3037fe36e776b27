from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from recipe_inbox.app.deps import (
    get_intake_service,
    get_review_service,
    parse_body,
    read_json_body,
    require_family_password,
)
from recipe_inbox.app.schemas.inbox import AddResponse, ListRequest, ListResponse, SubmissionItem
from recipe_inbox.app.services.intake_service import IntakeService
from recipe_inbox.app.services.review_service import ReviewService


router = APIRouter(prefix="/api", tags=["family"])


def build_list_response(review: ReviewService, request: ListRequest) -> ListResponse:
    label, submissions = review.list_submissions(request.status)
    return ListResponse(
        status=label,
        pending=[SubmissionItem.from_submission(s, request.include_payload) for s in submissions],
    )


# credentials are declared first so they are checked before the body is read
@router.post("/add", response_model=AddResponse)
def add_recipe(
    _: None = Depends(require_family_password),
    body: dict[str, Any] = Depends(read_json_body),
    intake: IntakeService = Depends(get_intake_service),
):
    result = intake.submit(body)
    return AddResponse(
        id=result.slug,
        content_hash=result.content_hash,
        status="duplicate" if result.duplicate else "pending",
    )


@router.post("/list", response_model=ListResponse, response_model_exclude_none=True)
def list_recipes(
    _: None = Depends(require_family_password),
    body: dict[str, Any] = Depends(read_json_body),
    review: ReviewService = Depends(get_review_service),
):
    return build_list_response(review, parse_body(ListRequest, body))
