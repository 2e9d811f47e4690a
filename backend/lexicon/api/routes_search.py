from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.search_ranking import rank_entry
from ..models import Entry, Tag
from .routes_entries import (
    MAX_PAGE_SIZE,
    EntryOut,
    check_type,
    filter_entries,
    order_entries,
    parse_tags_param,
)

router = APIRouter(tags=["search"])


class SearchOut(BaseModel):
    results: List[EntryOut]
    total: int
    limit: int
    offset: int
    query: str


def like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@router.get("/search", response_model=SearchOut)
def search(
    q: str = "",
    type: Optional[str] = None,
    tags: Optional[str] = None,
    limit: int = Query(30, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    check_type(type)
    limit = min(limit, MAX_PAGE_SIZE)
    query = q.strip()

    base = filter_entries(db.query(Entry), type, parse_tags_param(tags))

    if not query:
        total = base.count()
        results = order_entries(base, "name").offset(offset).limit(limit).all()
        return SearchOut(results=results, total=total, limit=limit, offset=offset, query=query)

    if query.isascii():
        pattern = like_pattern(query)
        candidates = base.filter(
            or_(
                Entry.name.ilike(pattern, escape="\\"),
                Entry.body.ilike(pattern, escape="\\"),
                Entry.definition.ilike(pattern, escape="\\"),
                Entry.notes.ilike(pattern, escape="\\"),
                Entry.source.ilike(pattern, escape="\\"),
                Entry.tags.any(Tag.name.ilike(pattern, escape="\\")),
            )
        ).all()
    else:
        # SQLite only case-folds ASCII in LIKE; rank everything in Python instead
        candidates = base.all()

    scored = [(rank_entry(e, query), e) for e in candidates]
    scored = [(score, e) for score, e in scored if score > 0]
    scored.sort(key=lambda pair: (-pair[0], pair[1].primary_text.lower(), pair[1].id))

    page = [e for _, e in scored[offset:offset + limit]]
    return SearchOut(results=page, total=len(scored), limit=limit, offset=offset, query=query)
