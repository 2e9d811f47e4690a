from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, validator
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from ..core.auth import require_admin
from ..core.authors import create_author
from ..core.database import get_db
from ..core.errors import AuthorExistsError, SlugGenerationError
from ..models import Author, Entry
from .routes_search import like_pattern

router = APIRouter(prefix="/authors", tags=["authors"])


# ---------- Schemas ----------

class AuthorOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    name: str
    slug: str
    bio: str
    quote_count: int
    created_at: datetime
    updated_at: datetime


class AuthorsOut(BaseModel):
    authors: List[AuthorOut]
    total: int


class AuthorCreate(BaseModel):
    name: str
    bio: Optional[str] = None

    @validator("name")
    def name_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Author name is required")
        return v.strip()


# ---------- Helpers ----------

def _with_quote_counts(db: Session):
    """Authors joined to a live count of their quotes."""
    quote_count = func.count(Entry.id).label("quote_count")
    q = (
        db.query(Author, quote_count)
        .outerjoin(Entry, and_(Entry.author_id == Author.id, Entry.type == "quote"))
        .group_by(Author.id)
    )
    return q, quote_count


def _to_out(author: Author, quote_count: int) -> AuthorOut:
    return AuthorOut(
        id=author.id,
        first_name=author.first_name or "",
        last_name=author.last_name,
        name=author.display_name,
        slug=author.slug,
        bio=author.bio or "",
        quote_count=quote_count or 0,
        created_at=author.created_at,
        updated_at=author.updated_at,
    )


# ---------- Endpoints ----------

@router.get("", response_model=AuthorsOut)
def list_authors(
    q: Optional[str] = None,
    sort: str = "quoteCount",
    db: Session = Depends(get_db),
):
    query, quote_count = _with_quote_counts(db)

    search = (q or "").strip()
    if search:
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                Author.first_name.ilike(pattern, escape="\\"),
                Author.last_name.ilike(pattern, escape="\\"),
            )
        )

    if sort == "name":
        query = query.order_by(Author.last_name, Author.first_name)
    else:
        query = query.order_by(quote_count.desc(), Author.last_name, Author.first_name)

    authors = [_to_out(a, n) for a, n in query.all()]
    return AuthorsOut(authors=authors, total=len(authors))


@router.get("/{author_id}", response_model=AuthorOut)
def get_author(author_id: int, db: Session = Depends(get_db)):
    query, _ = _with_quote_counts(db)
    row = query.filter(Author.id == author_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Author not found")
    return _to_out(*row)


@router.post(
    "",
    response_model=AuthorOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create(payload: AuthorCreate, db: Session = Depends(get_db)):
    try:
        author = create_author(db, payload.name, bio=payload.bio or "")
    except SlugGenerationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except AuthorExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _to_out(author, 0)
