from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, TextIO

from pydantic import ValidationError
from sqlalchemy.orm import Session

from .entries import create_entry, slug_for
from .errors import SlugConflictError, SlugGenerationError
from .slugs import is_slug_unique
from .tags import normalize_tags, parse_tag_string
from .validation import validate_entry

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "word": ["name"],
    "phrase": ["body"],
    "quote": ["body", "author"],
    "hypothetical": ["body"],
}

ALLOWED_COLUMNS: Dict[str, List[str]] = {
    "word": ["name", "slug", "definition", "part_of_speech", "etymology", "notes"],
    "phrase": ["body", "slug", "definition", "source", "notes"],
    "quote": ["body", "author", "slug", "name", "source", "notes"],
    "hypothetical": ["body", "slug", "source", "notes"],
}

# Spreadsheet columns that are folded into tags
TAG_COLUMNS = ("tags", "context", "conveyance", "topic", "tone", "author_type")

COLUMN_ALIASES = {
    "partOfSpeech": "part_of_speech",
    "authorType": "author_type",
}


@dataclass
class ImportReport:
    total_rows: int = 0
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)


def _normalize_row(row: Dict[str, str]) -> Dict[str, str]:
    out = {}
    for key, value in row.items():
        if key is None:
            continue
        key = COLUMN_ALIASES.get(key.strip(), key.strip())
        out[key] = (value or "").strip()
    return out


def collect_tags(row: Dict[str, str]) -> List[str]:
    tags: List[str] = []
    for col in TAG_COLUMNS:
        tags.extend(parse_tag_string(row.get(col)))
    return normalize_tags(tags)


def row_to_payload(row: Dict[str, str], entry_type: str) -> dict:
    data = {"type": entry_type, "tags": collect_tags(row)}
    for col in ALLOWED_COLUMNS[entry_type]:
        if row.get(col):
            data[col] = row[col]
    return data


def import_rows(
    db: Session,
    rows: Iterable[Dict[str, str]],
    entry_type: str,
    dry_run: bool = False,
) -> ImportReport:
    if entry_type not in REQUIRED_COLUMNS:
        raise ValueError(f"Unknown entry type: {entry_type}")

    report = ImportReport()
    seen_slugs: set[str] = set()

    # Row 1 is the header
    for row_number, raw in enumerate(rows, start=2):
        report.total_rows += 1
        row = _normalize_row(raw)

        missing = [c for c in REQUIRED_COLUMNS[entry_type] if not row.get(c)]
        if missing:
            report.skipped += 1
            report.errors.extend(
                f"Row {row_number}: Missing required field '{c}'" for c in missing
            )
            continue

        try:
            payload = validate_entry(row_to_payload(row, entry_type))
        except ValidationError as exc:
            report.skipped += 1
            report.errors.append(f"Row {row_number}: {exc.errors()[0]['msg']}")
            continue

        slug = slug_for(payload)
        if not slug:
            report.skipped += 1
            report.errors.append(f"Row {row_number}: {SlugGenerationError()}")
            continue
        if slug in seen_slugs or not is_slug_unique(db, slug):
            report.skipped += 1
            report.errors.append(f"Row {row_number}: Duplicate slug '{slug}'")
            continue
        seen_slugs.add(slug)

        if dry_run:
            report.imported += 1
            continue

        try:
            create_entry(db, payload)
        except SlugConflictError as exc:
            report.skipped += 1
            report.errors.append(f"Row {row_number}: {exc}")
            continue
        report.imported += 1

    logger.info(
        "CSV import (%s%s): %d rows, %d imported, %d skipped",
        entry_type,
        ", dry run" if dry_run else "",
        report.total_rows,
        report.imported,
        report.skipped,
    )
    return report


def import_csv(db: Session, fh: TextIO, entry_type: str, dry_run: bool = False) -> ImportReport:
    return import_rows(db, csv.DictReader(fh), entry_type, dry_run=dry_run)
