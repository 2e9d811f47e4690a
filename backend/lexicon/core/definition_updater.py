"""
Definition updater: fills in missing word definitions from an external
dictionary API, one entry at a time, under a request cap and a fixed delay.

Retry bookkeeping lives on the entry itself (api_lookup_status and
api_lookup_attempted_at); a run only ever makes one attempt per entry.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, settings
from ..integrations.dictionary_api import DefinitionProvider, get_definition_provider
from ..models import (
    ENTRY_TYPES,
    LOOKUP_ERROR,
    LOOKUP_NOT_FOUND,
    LOOKUP_PENDING,
    LOOKUP_SUCCESS,
    SOURCE_API,
    Entry,
)

logger = logging.getLogger(__name__)


@dataclass
class UpdateConfig:
    max_requests: int = 100
    rate_limit_ms: int = 1000
    retry_not_found_days: int = 90
    retry_error_days: int = 7
    provider: Optional[str] = None

    @classmethod
    def from_settings(cls, s: Settings = settings, **overrides: Any) -> "UpdateConfig":
        cfg = cls(
            max_requests=s.def_max_requests,
            rate_limit_ms=s.def_rate_limit_ms,
            retry_not_found_days=s.def_retry_not_found_days,
            retry_error_days=s.def_retry_error_days,
            provider=s.definition_api_provider,
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(cfg, key, value)
        return cfg


@dataclass
class EntryError:
    slug: str
    term: str
    error: str


@dataclass
class UpdateResult:
    total_processed: int = 0
    successful_updates: int = 0
    not_found: int = 0
    failures: int = 0
    errors: List[EntryError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def select_candidates(
    db: Session,
    config: UpdateConfig,
    now: Optional[datetime] = None,
    entry_types: Sequence[str] = ("word",),
) -> List[Entry]:
    """
    Entries of entry_types without a definition that are due for a lookup:
    never attempted, or not_found / error and past their retry window.
    Manual definitions are never candidates.
    """
    if config.max_requests <= 0:
        return []

    now = now or datetime.utcnow()
    not_found_cutoff = now - timedelta(days=config.retry_not_found_days)
    error_cutoff = now - timedelta(days=config.retry_error_days)

    due = or_(
        Entry.api_lookup_status.is_(None),
        Entry.api_lookup_status == LOOKUP_PENDING,
        and_(
            Entry.api_lookup_status == LOOKUP_NOT_FOUND,
            or_(
                Entry.api_lookup_attempted_at.is_(None),
                Entry.api_lookup_attempted_at < not_found_cutoff,
            ),
        ),
        and_(
            Entry.api_lookup_status == LOOKUP_ERROR,
            or_(
                Entry.api_lookup_attempted_at.is_(None),
                Entry.api_lookup_attempted_at < error_cutoff,
            ),
        ),
    )

    return (
        db.query(Entry)
        .filter(
            Entry.type.in_(entry_types),
            or_(Entry.definition_source.is_(None), Entry.definition_source == SOURCE_API),
            or_(Entry.definition.is_(None), Entry.definition == ""),
            due,
        )
        .order_by(Entry.created_at, Entry.id)
        .limit(config.max_requests)
        .all()
    )


def _mark_found(entry: Entry, definition: str, provider: DefinitionProvider) -> None:
    stamp = datetime.utcnow()
    entry.definition = definition
    entry.definition_source = SOURCE_API
    entry.api_provider = provider.name
    entry.api_lookup_status = LOOKUP_SUCCESS
    entry.api_lookup_attempted_at = stamp
    entry.api_lookup_error = None
    entry.updated_at = stamp


def _mark_status(entry: Entry, status: str, error: Optional[str] = None) -> None:
    stamp = datetime.utcnow()
    entry.api_lookup_status = status
    entry.api_lookup_attempted_at = stamp
    entry.api_lookup_error = error
    entry.updated_at = stamp


async def update_definitions(
    db: Session,
    config: UpdateConfig,
    provider: Optional[DefinitionProvider] = None,
    now: Optional[datetime] = None,
) -> UpdateResult:
    """
    Run one pass of the updater. Per-entry failures are recorded and skipped;
    only setup failures (unknown provider, unreachable storage) raise.
    """
    provider = provider or get_definition_provider(config.provider)
    result = UpdateResult()

    logger.info(
        "Starting definition update: provider=%s max_requests=%s rate_limit_ms=%s",
        provider.name,
        config.max_requests,
        config.rate_limit_ms,
    )

    entry_types = [t for t in ENTRY_TYPES if provider.supports_type(t)]
    entries = select_candidates(db, config, now=now, entry_types=entry_types)
    result.total_processed = len(entries)
    logger.info("Found %d entries to process", len(entries))

    for i, entry in enumerate(entries):
        term = entry.primary_text
        slug = entry.slug
        logger.info("[%d/%d] Processing %r", i + 1, len(entries), term)

        try:
            definition = await provider.get_definition(term)

            if definition:
                _mark_found(entry, definition, provider)
                db.commit()
                result.successful_updates += 1
                logger.info("Updated definition for %r", term)
            else:
                _mark_status(entry, LOOKUP_NOT_FOUND)
                db.commit()
                result.not_found += 1
                logger.info("No definition found for %r", term)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            result.failures += 1
            result.errors.append(EntryError(slug=slug, term=term, error=message))
            logger.error("Error fetching definition for %r: %s", term, message)

            try:
                db.rollback()
                _mark_status(entry, LOOKUP_ERROR, error=message)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Failed to record error status for %r", term)

        # Only wait between calls, not after the last one
        if i < len(entries) - 1 and config.rate_limit_ms > 0:
            await asyncio.sleep(config.rate_limit_ms / 1000.0)

    logger.info(
        "Definition update complete: processed=%d updated=%d not_found=%d failures=%d",
        result.total_processed,
        result.successful_updates,
        result.not_found,
        result.failures,
    )
    return result
