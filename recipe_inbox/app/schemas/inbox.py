from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from recipe_inbox.app.domain.models import Submission


class ListRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None
    include_payload: bool = Field(
        default=False,
        validation_alias=AliasChoices("include_payload", "includePayload"),
    )


class IdsRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ids: Optional[list[Any]] = None


class AddResponse(BaseModel):
    ok: bool = True
    id: str = Field(..., description="Resolved slug of the stored submission")
    content_hash: str
    status: Literal["pending", "duplicate"]


class SubmissionItem(BaseModel):
    id: str
    recipe_id: str
    slug: str
    title: str
    status: str
    content_hash: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    payload: Optional[dict[str, Any]] = None

    @classmethod
    def from_submission(cls, submission: Submission, include_payload: bool = False) -> "SubmissionItem":
        return cls(
            id=submission.slug,
            recipe_id=submission.slug,
            slug=submission.slug,
            title=submission.title,
            status=submission.status.value,
            content_hash=submission.content_hash,
            created_at=submission.created_at,
            updated_at=submission.updated_at,
            payload=submission.payload if include_payload else None,
        )


class ListResponse(BaseModel):
    ok: bool = True
    status: str
    pending: list[SubmissionItem]


class UpdatedResponse(BaseModel):
    ok: bool = True
    updated: int


class RemovedResponse(BaseModel):
    ok: bool = True
    removed: int


class DeletedResponse(BaseModel):
    ok: bool = True
    deleted: int


class DatabaseHealth(BaseModel):
    ok: bool
    count: Optional[int] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    ok: bool = True
    db: Optional[DatabaseHealth] = None
