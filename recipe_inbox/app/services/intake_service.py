"""
Submission intake.
Turns an untrusted recipe envelope into a stored, deduplicated submission.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from recipe_inbox.app.domain.errors import ConstraintViolation, SubmissionConflict, ValidationError
from recipe_inbox.app.domain.models import IntakeResult, NewSubmission, SubmissionStatus
from recipe_inbox.app.infra.db.base import SubmissionRepository
from recipe_inbox.services.canonical import content_hash
from recipe_inbox.services.slugify import resolve_unique_slug

logger = logging.getLogger(__name__)

# first try plus one retry after losing a slug race
MAX_INSERT_ATTEMPTS = 2

_ENVELOPE_KEYS = ("payload", "recipe")
_IDENTIFIER_KEYS = ("id", "recipe_id", "slug")


def unwrap_recipe(body: dict[str, Any]) -> dict[str, Any]:
    """Returns the nested `payload`/`recipe` object if there is one, else the body itself."""
    for key in _ENVELOPE_KEYS:
        inner = body.get(key)
        if isinstance(inner, dict):
            return inner
    return body


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _extract_title(recipe: dict[str, Any], body: dict[str, Any]) -> str:
    title = recipe.get("title")
    if not isinstance(title, str) or not title.strip():
        # clients may send {title, payload} with the title only on the envelope
        title = body.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Missing recipe payload")
    return title


def _desired_identifier(recipe: dict[str, Any], title: str) -> str:
    for key in _IDENTIFIER_KEYS:
        value = _clean_str(recipe.get(key))
        if value:
            return value
    return title


class IntakeService:
    """
    Stores recipe submissions exactly once per distinct content.

    The slug existence check is only a first guess: the repository's unique
    constraints decide. A lost slug race re-resolves the slug and retries, a
    lost content race resolves to the row that won.
    """

    def __init__(self, repository: SubmissionRepository):
        self._repo = repository

    def submit(self, body: dict[str, Any]) -> IntakeResult:
        recipe = unwrap_recipe(body)
        title = _extract_title(recipe, body)
        desired = _desired_identifier(recipe, title)
        digest = content_hash(title, recipe)

        slug = ""
        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            slug = resolve_unique_slug(desired, self._repo.exists_by_slug)

            duplicate = self._find_duplicate(digest)
            if duplicate is not None:
                return duplicate

            stored_payload = {**recipe, "id": slug, "recipe_id": slug}
            try:
                stored = self._repo.insert(
                    NewSubmission(
                        slug=slug,
                        title=title,
                        payload=stored_payload,
                        content_hash=digest,
                        status=SubmissionStatus.PENDING,
                    )
                )
            except ConstraintViolation as error:
                if error.field == "content_hash":
                    duplicate = self._find_duplicate(digest)
                    if duplicate is not None:
                        return duplicate
                    raise
                if error.field != "slug":
                    raise
                logger.warning(
                    "Slug taken by a concurrent submission: slug=%s, attempt=%d/%d",
                    slug,
                    attempt,
                    MAX_INSERT_ATTEMPTS,
                )
                continue

            logger.info("Submission stored: slug=%s, content_hash=%s", stored.slug, digest)
            return IntakeResult(slug=stored.slug, content_hash=digest)

        raise SubmissionConflict(slug)

    def _find_duplicate(self, digest: str) -> Optional[IntakeResult]:
        existing = self._repo.find_by_content_hash(digest)
        if existing is None:
            return None
        logger.info("Duplicate submission: slug=%s, content_hash=%s", existing.slug, digest)
        return IntakeResult(slug=existing.slug, content_hash=digest, duplicate=True)
