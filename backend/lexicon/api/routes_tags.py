from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..models import Entry, Tag
from .routes_entries import check_type

router = APIRouter(prefix="/tags", tags=["tags"])


class TagOut(BaseModel):
    name: str
    usage_count: int

    class Config:
        from_attributes = True


class TagsOut(BaseModel):
    tags: List[TagOut]
    total: int


@router.get("", response_model=TagsOut)
def list_tags(type: Optional[str] = None, db: Session = Depends(get_db)):
    check_type(type)

    if type:
        # Counts come from the entries themselves when scoped to one type
        count = func.count(Entry.id)
        rows = (
            db.query(Tag.name, count)
            .join(Tag.entries)
            .filter(Entry.type == type)
            .group_by(Tag.name)
            .order_by(count.desc(), Tag.name)
            .all()
        )
        tags = [TagOut(name=name, usage_count=n) for name, n in rows]
    else:
        tags = db.query(Tag).order_by(Tag.usage_count.desc(), Tag.name).all()

    return TagsOut(tags=tags, total=len(tags))


@router.get("/autocomplete", response_model=TagsOut)
def autocomplete_tags(
    q: str = "",
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    prefix = q.strip().lower()
    query = db.query(Tag)
    if prefix:
        query = query.filter(func.lower(Tag.name).startswith(prefix, autoescape=True))
    tags = query.order_by(Tag.usage_count.desc(), Tag.name).limit(limit).all()
    return TagsOut(tags=tags, total=len(tags))
