from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from recipe_inbox.app.domain.errors import ConstraintViolation, StoreUnavailable
from recipe_inbox.app.domain.models import NewSubmission, Submission, SubmissionStatus
from recipe_inbox.app.infra.db.base import TABLE_NAME, SubmissionRepository

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
UNDEFINED_TABLE = "42P01"
SELECT_COLUMNS = "id, slug, title, payload, status, content_hash, created_at, updated_at"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _row_to_submission(row: dict[str, Any]) -> Submission:
    payload = row.get("payload")
    return Submission(
        id=int(row["id"]),
        slug=str(row["slug"]),
        title=str(row["title"]),
        payload=payload if isinstance(payload, dict) else {},
        status=SubmissionStatus(str(row.get("status") or SubmissionStatus.PENDING.value)),
        content_hash=str(row.get("content_hash") or ""),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _create_supabase_client(url: str | None, key: str | None) -> Client:
    if not url or not key:
        raise StoreUnavailable("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


class SupabaseSubmissionRepository(SubmissionRepository):
    """
    Submission store on a Supabase Postgres table.

    Supabase cannot run DDL through PostgREST, so the table comes from
    sql/recipes_inbox.sql and ensure_schema only verifies it is reachable.
    """

    def __init__(self, client: Client | None = None, url: str | None = None, key: str | None = None):
        self._client = client or _create_supabase_client(url, key)
        self._schema_checked = False
        logger.info("SupabaseSubmissionRepository initialized")

    def _table(self):
        return self._client.table(TABLE_NAME)

    def ensure_schema(self) -> None:
        if self._schema_checked:
            return
        try:
            self._table().select("id").limit(1).execute()
        except APIError as error:
            if error.code == UNDEFINED_TABLE:
                raise StoreUnavailable(f"Table {TABLE_NAME} is missing; apply sql/{TABLE_NAME}.sql") from error
            raise StoreUnavailable(f"Submission store unreachable: {error.message}") from error
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error checking schema: %s", error)
            raise StoreUnavailable(f"Submission store unreachable: {error}") from error
        self._schema_checked = True

    def exists_by_slug(self, slug: str) -> bool:
        result = self._table().select("id").eq("slug", slug).limit(1).execute()
        return bool(result.data)

    def find_by_content_hash(self, content_hash: str) -> Optional[Submission]:
        result = self._table().select(SELECT_COLUMNS).eq("content_hash", content_hash).limit(1).execute()
        if not result.data:
            return None
        return _row_to_submission(result.data[0])

    def insert(self, submission: NewSubmission) -> Submission:
        # created_at and updated_at come from the table defaults
        row_data = {
            "slug": submission.slug,
            "title": submission.title,
            "payload": submission.payload,
            "status": submission.status.value,
            "content_hash": submission.content_hash,
        }

        try:
            result = self._table().insert(row_data).execute()
        except APIError as error:
            if error.code != UNIQUE_VIOLATION:
                raise
            detail = f"{error.message} {error.details or ''}"
            if "content_hash" in detail:
                raise ConstraintViolation("content_hash", submission.content_hash) from error
            raise ConstraintViolation("slug", submission.slug) from error

        if not result.data:
            raise StoreUnavailable("Insert returned no row")

        stored = _row_to_submission(result.data[0])
        logger.info("Inserted submission: id=%s, slug=%s", stored.id, stored.slug)
        return stored

    def list_by_status(self, status: Optional[SubmissionStatus]) -> list[Submission]:
        query = self._table().select(SELECT_COLUMNS)
        if status is not None:
            query = query.eq("status", status.value)
        result = query.order("created_at", desc=True).order("id", desc=True).execute()
        return [_row_to_submission(row) for row in result.data or []]

    def update_status(self, slug: str, new_status: SubmissionStatus) -> bool:
        result = (
            self._table()
            .update({"status": new_status.value, "updated_at": _now_utc().isoformat()})
            .eq("slug", slug)
            .neq("status", new_status.value)
            .execute()
        )
        return bool(result.data)

    def delete_by_slug(self, slug: str, status: Optional[SubmissionStatus] = None) -> bool:
        query = self._table().delete().eq("slug", slug)
        if status is not None:
            query = query.eq("status", status.value)
        result = query.execute()
        return bool(result.data)

    def delete_all(self) -> int:
        # PostgREST refuses an unfiltered DELETE
        result = self._table().delete().gte("id", 0).execute()
        return len(result.data or [])

    def count(self) -> int:
        result = self._table().select("id", count="exact").limit(1).execute()
        return int(result.count or 0)
