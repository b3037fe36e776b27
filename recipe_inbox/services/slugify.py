import re
from typing import Callable

DEFAULT_SLUG = "recipe"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str, fallback: str = DEFAULT_SLUG) -> str:
    """Transforms text into a slug: lowercase, hyphen separated, ascii alnum only."""
    t = _NON_ALNUM_RE.sub("-", (text or "").lower().strip()).strip("-")
    return t or fallback


def resolve_unique_slug(desired: str, exists: Callable[[str], bool]) -> str:
    """
    Returns the first slug derived from `desired` that `exists` reports as free.

    Tries the bare slug, then `<slug>-2`, `<slug>-3`, ... This is a plain
    check loop; the store's unique constraint still has the final word.
    """
    base = slugify(desired)
    candidate = base
    suffix = 2
    while exists(candidate):
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate
