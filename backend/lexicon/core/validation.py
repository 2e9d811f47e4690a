"""
Input schemas for the four entry types, discriminated on `type`.
Shared by the entries API and the CSV importer.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, validator


class EntryInputBase(BaseModel):
    slug: Optional[str] = None
    tags: List[str] = []
    notes: Optional[str] = None

    @validator("slug")
    def validate_slug(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    @validator("tags")
    def strip_tags(cls, v):
        return [t.strip() for t in v if t and t.strip()]


def _required_text(v: str, label: str) -> str:
    if v is None or not v.strip():
        raise ValueError(f"{label} is required")
    return v.strip()


def _optional_text(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class WordInput(EntryInputBase):
    type: Literal["word"]
    name: str
    definition: Optional[str] = None
    part_of_speech: Optional[str] = None
    etymology: Optional[str] = None

    @validator("name")
    def name_required(cls, v):
        return _required_text(v, "Name")

    @validator("definition", "part_of_speech", "etymology", "notes")
    def blank_to_none(cls, v):
        return _optional_text(v)


class PhraseInput(EntryInputBase):
    type: Literal["phrase"]
    body: str
    definition: Optional[str] = None
    source: Optional[str] = None

    @validator("body")
    def body_required(cls, v):
        return _required_text(v, "Phrase text")

    @validator("definition", "source", "notes")
    def blank_to_none(cls, v):
        return _optional_text(v)


class QuoteInput(EntryInputBase):
    type: Literal["quote"]
    name: Optional[str] = None
    body: str
    author: str
    author_id: Optional[int] = None
    source: Optional[str] = None

    @validator("body")
    def body_required(cls, v):
        return _required_text(v, "Body")

    @validator("author")
    def author_required(cls, v):
        return _required_text(v, "Author")

    @validator("name", "source", "notes")
    def blank_to_none(cls, v):
        return _optional_text(v)


class HypotheticalInput(EntryInputBase):
    type: Literal["hypothetical"]
    body: str
    source: Optional[str] = None

    @validator("body")
    def body_required(cls, v):
        return _required_text(v, "Body")

    @validator("source", "notes")
    def blank_to_none(cls, v):
        return _optional_text(v)


EntryInput = Annotated[
    Union[WordInput, PhraseInput, QuoteInput, HypotheticalInput],
    Field(discriminator="type"),
]

entry_input_adapter = TypeAdapter(EntryInput)


def validate_entry(data: dict) -> EntryInputBase:
    """Parse raw data into the matching input model. Raises pydantic.ValidationError."""
    return entry_input_adapter.validate_python(data)
