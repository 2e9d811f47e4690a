import re
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Entry

_WHITESPACE = re.compile(r"\s+")
_INVALID = re.compile(r"[^a-z0-9-]")
_HYPHENS = re.compile(r"-+")


def generate_slug(text: str) -> str:
    """Lowercase, hyphenate whitespace and drop anything outside [a-z0-9-]."""
    slug = _WHITESPACE.sub("-", (text or "").lower())
    slug = _INVALID.sub("", slug)
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


def is_slug_unique(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(Entry.id).filter(Entry.slug == slug)
    if exclude_id is not None:
        q = q.filter(Entry.id != exclude_id)
    return q.first() is None
