"""
Domain models for the recipe submission inbox.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class SubmissionStatus(str, Enum):
    """Lifecycle of a submission. Moves forward only."""
    PENDING = "pending"
    IMPORTED = "imported"


@dataclass
class NewSubmission:
    """A submission ready to be written; the store assigns id and timestamps."""
    slug: str
    title: str
    payload: dict[str, Any]
    content_hash: str
    status: SubmissionStatus = SubmissionStatus.PENDING


@dataclass
class Submission:
    """
    A stored recipe submission.
    Immutable apart from `status` (and the `updated_at` stamp that follows it).
    """
    id: int
    slug: str
    title: str
    payload: dict[str, Any] = field(default_factory=dict)
    status: SubmissionStatus = SubmissionStatus.PENDING
    content_hash: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == SubmissionStatus.PENDING


@dataclass
class IntakeResult:
    """Outcome of a submission: the slug it lives under and whether it already existed."""
    slug: str
    content_hash: str
    duplicate: bool = False
