from .authors import Author
from .entries import (
    ENTRY_TYPES,
    LOOKUP_ERROR,
    LOOKUP_NOT_FOUND,
    LOOKUP_PENDING,
    LOOKUP_SUCCESS,
    SOURCE_API,
    SOURCE_MANUAL,
    Entry,
    entry_tags,
)
from .tags import Tag


__all__ = [
    "Author",
    "Entry",
    "Tag",
    "entry_tags",
    "ENTRY_TYPES",
    "LOOKUP_PENDING",
    "LOOKUP_SUCCESS",
    "LOOKUP_NOT_FOUND",
    "LOOKUP_ERROR",
    "SOURCE_MANUAL",
    "SOURCE_API",
]
