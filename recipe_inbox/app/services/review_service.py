"""
Review service.
Admin operations over stored submissions: listing, status transitions and purges.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from recipe_inbox.app.domain.errors import ValidationError
from recipe_inbox.app.domain.models import Submission, SubmissionStatus
from recipe_inbox.app.infra.db.base import SubmissionRepository

logger = logging.getLogger(__name__)

STATUS_ALL = "all"
_ALLOWED_STATUSES = {SubmissionStatus.PENDING.value, SubmissionStatus.IMPORTED.value, STATUS_ALL}


def normalize_status(value: Any) -> str:
    """Maps a client supplied status filter to pending, imported or all (default pending)."""
    if isinstance(value, str) and value.strip().lower() in _ALLOWED_STATUSES:
        return value.strip().lower()
    return SubmissionStatus.PENDING.value


def clean_ids(ids: Optional[Iterable[Any]]) -> list[str]:
    """Keeps non-blank string slugs, first occurrence only."""
    cleaned: list[str] = []
    for value in ids or []:
        if not isinstance(value, str):
            continue
        slug = value.strip()
        if slug and slug not in cleaned:
            cleaned.append(slug)
    if not cleaned:
        raise ValidationError("No ids provided")
    return cleaned


class ReviewService:
    """
    Service behind the admin surface.

    Batch operations are best effort: one store call per slug, a failing slug
    is logged and skipped, and the count of successes is returned.
    """

    def __init__(self, repository: SubmissionRepository):
        self._repo = repository

    def list_submissions(self, status: Any = None) -> tuple[str, list[Submission]]:
        """
        List submissions newest first.

        Args:
            status: pending, imported or all; anything else means pending

        Returns:
            The normalized status label and the matching submissions
        """
        label = normalize_status(status)
        status_filter = None if label == STATUS_ALL else SubmissionStatus(label)
        return label, self._repo.list_by_status(status_filter)

    def mark_imported(self, ids: Optional[Iterable[Any]]) -> int:
        return self._for_each(
            clean_ids(ids),
            "mark-imported",
            lambda slug: self._repo.update_status(slug, SubmissionStatus.IMPORTED),
        )

    def purge(self, ids: Optional[Iterable[Any]]) -> int:
        return self._for_each(clean_ids(ids), "purge", self._repo.delete_by_slug)

    def delete_pending(self, ids: Optional[Iterable[Any]]) -> int:
        return self._for_each(
            clean_ids(ids),
            "delete-pending",
            lambda slug: self._repo.delete_by_slug(slug, status=SubmissionStatus.PENDING),
        )

    def wipe(self) -> int:
        removed = self._repo.delete_all()
        logger.warning("Inbox wiped: removed=%d", removed)
        return removed

    def _for_each(self, slugs: list[str], operation: str, action: Callable[[str], bool]) -> int:
        succeeded = 0
        for slug in slugs:
            try:
                if action(slug):
                    succeeded += 1
            except Exception as error:
                logger.warning("%s failed for slug=%s: %s", operation, slug, error)
        logger.info("%s finished: requested=%d, succeeded=%d", operation, len(slugs), succeeded)
        return succeeded
