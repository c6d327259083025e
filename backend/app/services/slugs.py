"""
Slug derivation shared by articles and categories.
"""

import time
from typing import Optional
from slugify import slugify
from sqlalchemy.orm import Session


# slugify drops commas between digits and apostrophes; both are separators here
SLUG_REPLACEMENTS = [[",", "-"], ["'", "-"], ["’", "-"]]


def derive_slug(text: str, fallback: str = "untitled") -> str:
    """
    Lower-case, collapse non-alphanumeric runs to one hyphen, trim hyphens.

    Accented letters are transliterated to ASCII first ("Café" -> "cafe").
    """
    return slugify(text, replacements=SLUG_REPLACEMENTS) or fallback


def unique_slug(
    db: Session,
    model,
    text: str,
    exclude_id: Optional[str] = None,
    fallback: str = "untitled",
) -> str:
    """
    Derive a slug for ``model`` that no other row uses.

    Soft-deleted and inactive rows count as taken. On collision the current
    epoch milliseconds are appended. The unique index on ``slug`` is the real
    guarantee; this check only avoids the common collision.
    """
    slug = derive_slug(text, fallback)

    query = db.query(model.id).filter(model.slug == slug)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)

    if query.first() is not None:
        slug = f"{slug}-{int(time.time() * 1000)}"

    return slug
