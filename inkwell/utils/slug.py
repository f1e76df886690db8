"""Slug generation and collision-free slug resolution.

``slugify`` turns free text into ``lowercase-hyphenated`` ASCII.
``ensure_unique_slug`` probes the table for a free candidate, appending
``-1``, ``-2``... and falling back to a timestamp suffix when the probe
budget runs out, so it always returns a usable slug.
"""

import random
import re
import time
import unicodedata

from sqlalchemy import select
from sqlalchemy.orm import Session

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
NON_ALNUM = re.compile(r"[^a-z0-9]+")

MAX_ATTEMPTS = 100
POST_SLUG_MAX_LENGTH = 100
CATEGORY_SLUG_MAX_LENGTH = 50
POST_SLUG_MIN_LENGTH = 3
CATEGORY_SLUG_MIN_LENGTH = 2


def slugify(text: str | None, max_length: int = POST_SLUG_MAX_LENGTH) -> str:
    if not text or not isinstance(text, str):
        return ""

    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    slug = NON_ALNUM.sub("-", ascii_text.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def fallback_slug(prefix: str = "post") -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def _with_suffix(base: str, suffix: str, max_length: int) -> str:
    head = base[: max_length - len(suffix) - 1].rstrip("-")
    return f"{head}-{suffix}"


def candidate_slugs(base: str, max_length: int, attempts: int = MAX_ATTEMPTS):
    """Yield ``base``, ``base-1``, ``base-2``... up to ``attempts`` candidates."""
    yield base
    for n in range(1, attempts):
        yield _with_suffix(base, str(n), max_length)


def timestamp_slug(base: str, max_length: int) -> str:
    return _with_suffix(base, str(time.time_ns())[-8:], max_length)


def ensure_unique_slug(
    db: Session,
    model,
    source: str,
    *,
    exclude_id: int | None = None,
    max_length: int = POST_SLUG_MAX_LENGTH,
    min_length: int = POST_SLUG_MIN_LENGTH,
    prefix: str = "post",
) -> str:
    """Return a slug derived from ``source`` that no other ``model`` row uses.

    ``exclude_id`` is the row being updated: a candidate held only by that
    row is accepted, so an unchanged title keeps its slug. Only reads are
    issued; the caller writes the slug inside its own transaction.
    """
    base = slugify(source, max_length)
    if len(base) < min_length:
        base = fallback_slug(prefix)

    for candidate in candidate_slugs(base, max_length, MAX_ATTEMPTS):
        holder = db.execute(
            select(model.id).where(model.slug == candidate)
        ).scalar_one_or_none()
        if holder is None or (exclude_id is not None and holder == exclude_id):
            return candidate

    return timestamp_slug(base, max_length)
