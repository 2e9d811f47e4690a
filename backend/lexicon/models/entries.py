from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from ..core.database import Base

ENTRY_TYPES = ("word", "phrase", "quote", "hypothetical")

# api_lookup_status values; NULL means never attempted
LOOKUP_PENDING = "pending"
LOOKUP_SUCCESS = "success"
LOOKUP_NOT_FOUND = "not_found"
LOOKUP_ERROR = "error"

# definition_source values
SOURCE_MANUAL = "manual"
SOURCE_API = "api"


entry_tags = Table(
    "entry_tags",
    Base.metadata,
    Column("entry_id", Integer, ForeignKey("entries.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Entry(Base):
    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(16), nullable=False)  # word | phrase | quote | hypothetical
    slug = Column(String, unique=True, nullable=False, index=True)

    name = Column(String, nullable=True)
    body = Column(Text, nullable=True)
    definition = Column(Text, nullable=True)

    part_of_speech = Column(String, nullable=True)
    etymology = Column(Text, nullable=True)
    source = Column(String, nullable=True)
    author = Column(String, nullable=True)  # display name, kept in step with author_id
    author_id = Column(Integer, ForeignKey("authors.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    definition_source = Column(String(16), nullable=True)  # manual | api
    api_provider = Column(String(64), nullable=True)
    api_lookup_status = Column(String(16), nullable=True)
    api_lookup_attempted_at = Column(DateTime, nullable=True)
    api_lookup_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    tags = relationship("Tag", secondary=entry_tags, back_populates="entries", order_by="Tag.name")
    author_record = relationship("Author", back_populates="quotes")

    __table_args__ = (
        Index("ix_entries_type_name", "type", "name"),
        Index("ix_entries_lookup", "type", "api_lookup_status", "api_lookup_attempted_at"),
    )

    @property
    def primary_text(self) -> str:
        """Headword for words, body text for everything else."""
        if self.type == "word":
            return self.name or ""
        return self.body or self.name or ""

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]
