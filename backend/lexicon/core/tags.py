from __future__ import annotations

from typing import Iterable, List

from sqlalchemy.orm import Session

from ..models import Tag


def normalize_tags(tags: Iterable[str] | None) -> List[str]:
    """Strip, drop empties and de-duplicate while keeping order."""
    seen: list[str] = []
    for t in tags or []:
        t = t.strip()
        if t and t not in seen:
            seen.append(t)
    return seen


def parse_tag_string(value: str | None) -> List[str]:
    if not value:
        return []
    return normalize_tags(value.split(","))


def sync_tags(db: Session, new_tags: Iterable[str], old_tags: Iterable[str] = ()) -> List[Tag]:
    """
    Bring tag usage counts in line with an entry going from old_tags to new_tags.
    Missing tags are created. Returns Tag rows for new_tags, in order.
    Does not commit.
    """
    new_tags = normalize_tags(new_tags)
    old_tags = normalize_tags(old_tags)

    added = [t for t in new_tags if t not in old_tags]
    removed = [t for t in old_tags if t not in new_tags]

    existing = {}
    names = set(new_tags) | set(removed)
    if names:
        existing = {t.name: t for t in db.query(Tag).filter(Tag.name.in_(names)).all()}

    for name in new_tags:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(name=name, usage_count=1)
            db.add(tag)
            existing[name] = tag
        elif name in added:
            tag.usage_count = (tag.usage_count or 0) + 1

    for name in removed:
        tag = existing.get(name)
        if tag is not None and (tag.usage_count or 0) > 0:
            tag.usage_count -= 1

    return [existing[name] for name in new_tags]


def remove_tags_from_entry(db: Session, tags: Iterable[str]) -> None:
    """Decrement usage counts for an entry that is going away. Does not commit."""
    sync_tags(db, [], tags)
