import string
from datetime import datetime
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, validator
from sqlalchemy import func
from sqlalchemy.orm import Query as SAQuery, Session

from ..core.auth import require_admin
from ..core.database import get_db
from ..core.entries import create_entry, delete_entry, update_entry
from ..core.errors import AuthorNotFoundError, SlugConflictError, SlugGenerationError
from ..core.slugs import is_slug_unique
from ..core.validation import HypotheticalInput, PhraseInput, QuoteInput, WordInput
from ..models import ENTRY_TYPES, Entry, Tag

router = APIRouter(prefix="/entries", tags=["entries"])

MAX_PAGE_SIZE = 100

EntryPayload = Union[WordInput, PhraseInput, QuoteInput, HypotheticalInput]


# ---------- Schemas ----------

class EntryOut(BaseModel):
    id: int
    type: str
    slug: str

    name: Optional[str] = None
    body: Optional[str] = None
    definition: Optional[str] = None
    part_of_speech: Optional[str] = None
    etymology: Optional[str] = None
    source: Optional[str] = None
    author: Optional[str] = None
    author_id: Optional[int] = None
    notes: Optional[str] = None
    tags: List[str] = []

    definition_source: Optional[str] = None
    api_provider: Optional[str] = None
    api_lookup_status: Optional[str] = None
    api_lookup_attempted_at: Optional[datetime] = None

    created_at: datetime
    updated_at: datetime

    @validator("tags", pre=True)
    def tag_names(cls, v):
        return [t.name if isinstance(t, Tag) else t for t in (v or [])]

    class Config:
        from_attributes = True


class EntryListOut(BaseModel):
    entries: List[EntryOut]
    total: int
    limit: int
    offset: int


class LetterCount(BaseModel):
    letter: str
    count: int


class LettersOut(BaseModel):
    letters: List[LetterCount]


class SlugCheck(BaseModel):
    slug: str
    exclude_id: Optional[int] = None


class SlugCheckOut(BaseModel):
    is_unique: bool
    slug: str


# ---------- Query helpers ----------

def sort_key_column():
    """Name for words/phrases/quotes that have one, body otherwise."""
    return func.coalesce(Entry.name, Entry.body)


def check_type(entry_type: Optional[str]) -> None:
    if entry_type and entry_type not in ENTRY_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid entry type. Must be one of: " + ", ".join(ENTRY_TYPES),
        )


def parse_tags_param(tags: Optional[str]) -> List[str]:
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def filter_entries(q: SAQuery, entry_type: Optional[str], tags: List[str]) -> SAQuery:
    if entry_type:
        q = q.filter(Entry.type == entry_type)
    # AND semantics: every requested tag must be present
    for t in tags:
        q = q.filter(Entry.tags.any(Tag.name == t))
    return q


def order_entries(q: SAQuery, sort_by: str) -> SAQuery:
    if sort_by == "author":
        return q.order_by(Entry.author, Entry.id)
    if sort_by == "created_at":
        return q.order_by(Entry.created_at.desc(), Entry.id.desc())
    if sort_by == "updated_at":
        return q.order_by(Entry.updated_at.desc(), Entry.id.desc())
    return q.order_by(func.lower(sort_key_column()), Entry.id)


def get_entry_or_404(db: Session, entry_id: int) -> Entry:
    e = db.query(Entry).filter(Entry.id == entry_id).first()
    if not e:
        raise HTTPException(status_code=404, detail="Entry not found")
    return e


# ---------- Public endpoints ----------

@router.get("", response_model=EntryListOut)
def list_entries(
    type: Optional[str] = None,
    letter: Optional[str] = None,
    tags: Optional[str] = None,
    author_id: Optional[int] = None,
    sort_by: str = "name",
    limit: int = Query(30, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    check_type(type)
    limit = min(limit, MAX_PAGE_SIZE)

    q = filter_entries(db.query(Entry), type, parse_tags_param(tags))
    if author_id is not None:
        q = q.filter(Entry.author_id == author_id)

    if letter:
        letter = letter.upper()
        if len(letter) != 1 or letter not in string.ascii_uppercase:
            raise HTTPException(status_code=400, detail="Letter must be a single letter A-Z")
        q = q.filter(func.upper(func.substr(sort_key_column(), 1, 1)) == letter)

    total = q.count()
    entries = order_entries(q, sort_by).offset(offset).limit(limit).all()
    return EntryListOut(entries=entries, total=total, limit=limit, offset=offset)


@router.get("/letters", response_model=LettersOut)
def list_letters(type: Optional[str] = None, db: Session = Depends(get_db)):
    """Entry counts per initial letter, for the alphabet index."""
    check_type(type)
    first = func.upper(func.substr(sort_key_column(), 1, 1))
    q = db.query(first.label("letter"), func.count(Entry.id))
    if type:
        q = q.filter(Entry.type == type)
    counts = dict(q.group_by(first).all())
    return LettersOut(
        letters=[LetterCount(letter=c, count=counts.get(c, 0)) for c in string.ascii_uppercase]
    )


@router.get("/slug/{slug}", response_model=EntryOut)
def get_entry_by_slug(slug: str, db: Session = Depends(get_db)):
    e = db.query(Entry).filter(Entry.slug == slug).first()
    if not e:
        raise HTTPException(status_code=404, detail=f"Entry with slug '{slug}' not found")
    return e


@router.get("/{entry_id}", response_model=EntryOut)
def get_entry(entry_id: int, db: Session = Depends(get_db)):
    return get_entry_or_404(db, entry_id)


# ---------- Admin endpoints ----------

@router.post("/validate-slug", response_model=SlugCheckOut, dependencies=[Depends(require_admin)])
def validate_slug(payload: SlugCheck, db: Session = Depends(get_db)):
    return SlugCheckOut(
        is_unique=is_slug_unique(db, payload.slug, exclude_id=payload.exclude_id),
        slug=payload.slug,
    )


@router.post(
    "",
    response_model=EntryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create(payload: EntryPayload, db: Session = Depends(get_db)):
    try:
        return create_entry(db, payload)
    except (SlugGenerationError, AuthorNotFoundError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SlugConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.put("/{entry_id}", response_model=EntryOut, dependencies=[Depends(require_admin)])
def update(entry_id: int, payload: EntryPayload, db: Session = Depends(get_db)):
    e = get_entry_or_404(db, entry_id)

    if payload.type != e.type:
        raise HTTPException(status_code=400, detail="Entry type cannot be changed")

    try:
        return update_entry(db, e, payload)
    except AuthorNotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SlugConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete(entry_id: int, db: Session = Depends(get_db)):
    e = get_entry_or_404(db, entry_id)
    delete_entry(db, e)
    return
