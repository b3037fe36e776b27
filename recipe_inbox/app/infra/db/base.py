# recipe_inbox/app/infra/db/base.py
"""
Abstract base class for the submission store.
This interface allows easy swapping between different storage backends.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from recipe_inbox.app.domain.models import NewSubmission, Submission, SubmissionStatus

TABLE_NAME = "recipes_inbox"


class SubmissionRepository(ABC):
    """
    Abstract interface for submission storage.

    Implementations:
    - SqlSubmissionRepository: SQLAlchemy (SQLite locally, any SQL database in production)
    - SupabaseSubmissionRepository: Postgres table behind Supabase/PostgREST

    Both enforce uniqueness of `slug` and `content_hash` in the database itself.
    """

    @abstractmethod
    def ensure_schema(self) -> None:
        """
        Make sure the submissions table exists.
        Idempotent; safe to call before every operation.

        Raises:
            StoreUnavailable: If the backend cannot be reached or the table is missing
        """
        pass

    @abstractmethod
    def exists_by_slug(self, slug: str) -> bool:
        pass

    @abstractmethod
    def find_by_content_hash(self, content_hash: str) -> Optional[Submission]:
        pass

    @abstractmethod
    def insert(self, submission: NewSubmission) -> Submission:
        """
        Insert a new submission in a single atomic write.

        Args:
            submission: The row to write (status normally PENDING)

        Returns:
            The stored Submission with id and created_at assigned

        Raises:
            ConstraintViolation: If slug or content_hash already exists
        """
        pass

    @abstractmethod
    def list_by_status(self, status: Optional[SubmissionStatus]) -> list[Submission]:
        """
        List submissions newest first (created_at desc, then row id desc).

        Args:
            status: Only rows in this state; None returns every row
        """
        pass

    @abstractmethod
    def update_status(self, slug: str, new_status: SubmissionStatus) -> bool:
        """
        Move a submission to `new_status`.

        Returns:
            True if a row with this slug existed and its status changed
        """
        pass

    @abstractmethod
    def delete_by_slug(self, slug: str, status: Optional[SubmissionStatus] = None) -> bool:
        """
        Delete one submission.

        Args:
            slug: The submission to remove
            status: If provided, only delete when the row is in this state

        Returns:
            True if a row was removed
        """
        pass

    @abstractmethod
    def delete_all(self) -> int:
        pass

    @abstractmethod
    def count(self) -> int:
        pass
