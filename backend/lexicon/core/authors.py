"""
Quote authors: name parsing, lookup and linking quotes to Author rows.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..models import Author, Entry
from .errors import AuthorExistsError, AuthorNotFoundError, SlugGenerationError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def parse_author_name(name: Optional[str]) -> Tuple[str, str]:
    """
    Split a display name into (first_name, last_name).

    "Lincoln, Abraham" and "Abraham Lincoln" both give ("Abraham", "Lincoln").
    A single word is treated as a last name.
    """
    name = (name or "").strip()
    if not name:
        return "", ""

    if "," in name:
        parts = [p.strip() for p in name.split(",")]
        return (parts[1] if len(parts) > 1 else ""), parts[0]

    words = name.split()
    if len(words) >= 2:
        return " ".join(words[:-1]), words[-1]
    return "", name


def author_slug(first_name: str, last_name: str) -> str:
    full = f"{first_name} {last_name}" if first_name else last_name
    return _NON_ALNUM.sub("-", full.lower()).strip("-")


def create_author(db: Session, name: str, bio: str = "") -> Author:
    """Insert an author from a display name. Commits."""
    first_name, last_name = parse_author_name(name)
    slug = author_slug(first_name, last_name)
    if not slug:
        raise SlugGenerationError(name)
    if db.query(Author.id).filter(Author.slug == slug).first() is not None:
        raise AuthorExistsError(slug)

    now = datetime.utcnow()
    author = Author(
        first_name=first_name,
        last_name=last_name,
        slug=slug,
        bio=bio or "",
        created_at=now,
        updated_at=now,
    )
    db.add(author)
    db.commit()
    db.refresh(author)
    return author


def link_quote_author(db: Session, entry: Entry, author_id: Optional[int] = None) -> None:
    """
    Point a quote at its Author row. An explicit author_id must exist and
    overrides the typed name; otherwise the author is matched by name and
    created when new. Does not commit.
    """
    if entry.type != "quote":
        entry.author_record = None
        return

    if author_id is not None:
        author = db.get(Author, author_id)
        if author is None:
            raise AuthorNotFoundError(author_id)
        entry.author_record = author
        entry.author = author.display_name
        return

    first_name, last_name = parse_author_name(entry.author)
    slug = author_slug(first_name, last_name)
    if not slug:
        entry.author_record = None
        return

    author = db.query(Author).filter(Author.slug == slug).first()
    if author is None:
        now = datetime.utcnow()
        author = Author(
            first_name=first_name,
            last_name=last_name,
            slug=slug,
            bio="",
            created_at=now,
            updated_at=now,
        )
        db.add(author)
    entry.author_record = author
