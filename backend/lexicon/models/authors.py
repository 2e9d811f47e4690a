from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from ..core.database import Base


class Author(Base):
    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    bio = Column(Text, nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    quotes = relationship("Entry", back_populates="author_record")

    @property
    def display_name(self) -> str:
        """'Last, First' as stored on quotes, or just the last name."""
        if self.first_name:
            return f"{self.last_name}, {self.first_name}"
        return self.last_name
