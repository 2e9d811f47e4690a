from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from ..models import LOOKUP_PENDING, SOURCE_MANUAL, Entry
from .authors import link_quote_author
from .errors import AuthorNotFoundError, SlugConflictError, SlugGenerationError
from .slugs import generate_slug, is_slug_unique
from .tags import remove_tags_from_entry, sync_tags
from .validation import EntryInputBase

# Columns an input model may carry; anything absent from the model is cleared
CONTENT_FIELDS = (
    "name",
    "body",
    "definition",
    "part_of_speech",
    "etymology",
    "source",
    "author",
    "notes",
)


def slug_for(payload: EntryInputBase) -> str:
    if payload.slug:
        return payload.slug
    return generate_slug(getattr(payload, "name", None) or getattr(payload, "body", ""))


def _apply_definition_state(entry: Entry, previous_definition: str | None, is_new: bool = False) -> None:
    """
    Keep definition_source and lookup status consistent with an admin edit.
    Typed definitions are manual; clearing one hands the word back to the
    updater. Words that simply still lack a definition keep their retry state.
    """
    if entry.definition:
        if entry.definition != previous_definition:
            entry.definition_source = SOURCE_MANUAL
        return

    if not (is_new or previous_definition):
        return

    entry.definition_source = None
    if entry.type == "word":
        entry.api_lookup_status = LOOKUP_PENDING
        entry.api_lookup_attempted_at = None
        entry.api_lookup_error = None


def _link_author(db: Session, entry: Entry, payload: EntryInputBase) -> None:
    try:
        link_quote_author(db, entry, getattr(payload, "author_id", None))
    except AuthorNotFoundError:
        db.rollback()
        raise


def create_entry(db: Session, payload: EntryInputBase) -> Entry:
    """Insert a validated entry and sync its tags. Commits."""
    slug = slug_for(payload)
    if not slug:
        raise SlugGenerationError(getattr(payload, "name", None) or getattr(payload, "body", None))
    if not is_slug_unique(db, slug):
        raise SlugConflictError(slug)

    now = datetime.utcnow()
    entry = Entry(type=payload.type, slug=slug, created_at=now, updated_at=now)
    for f in CONTENT_FIELDS:
        setattr(entry, f, getattr(payload, f, None))
    _apply_definition_state(entry, None, is_new=True)
    _link_author(db, entry, payload)

    entry.tags = sync_tags(db, payload.tags, [])
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def update_entry(db: Session, entry: Entry, payload: EntryInputBase) -> Entry:
    """Replace an entry's content with a validated payload. Commits."""
    slug = payload.slug or entry.slug
    if slug != entry.slug and not is_slug_unique(db, slug, exclude_id=entry.id):
        raise SlugConflictError(slug)

    previous_definition = entry.definition
    old_tags = entry.tag_names

    entry.slug = slug
    for f in CONTENT_FIELDS:
        setattr(entry, f, getattr(payload, f, None))
    _apply_definition_state(entry, previous_definition)
    _link_author(db, entry, payload)

    entry.tags = sync_tags(db, payload.tags, old_tags)
    entry.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(entry)
    return entry


def delete_entry(db: Session, entry: Entry) -> None:
    remove_tags_from_entry(db, entry.tag_names)
    db.delete(entry)
    db.commit()
