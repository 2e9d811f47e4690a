from sqlalchemy.orm import Session

from ..models import Entry
from .entries import create_entry
from .validation import validate_entry


SAMPLE_ENTRIES = [
    {
        "type": "word",
        "name": "Serendipity",
        "definition": "The occurrence of events by chance in a happy or beneficial way.",
        "part_of_speech": "noun",
        "tags": ["favorites"],
    },
    {
        "type": "word",
        "name": "Petrichor",
        "part_of_speech": "noun",
        "tags": ["nature"],
    },
    {
        "type": "phrase",
        "body": "Bite the bullet",
        "definition": "To endure a painful or unpleasant situation that is unavoidable.",
        "tags": ["idioms"],
    },
    {
        "type": "quote",
        "body": "The only thing we have to fear is fear itself.",
        "author": "Roosevelt, Franklin D.",
        "source": "First inaugural address, 1933",
        "tags": ["speeches"],
    },
    {
        "type": "hypothetical",
        "body": "What if every library book could talk back?",
        "tags": ["whimsy"],
    },
]


def seed_initial_data(db: Session) -> int:
    """Seed a handful of entries if the table is empty. Returns how many were added."""
    if db.query(Entry).count() > 0:
        return 0

    for data in SAMPLE_ENTRIES:
        create_entry(db, validate_entry(data))
    return len(SAMPLE_ENTRIES)
