from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .database import SessionLocal
from .definition_updater import UpdateConfig, update_definitions

logger = logging.getLogger(__name__)

# Sunday 00:00 UTC, same as a cron "@weekly"
WEEKLY_RUN_WEEKDAY = 6

# One updater run at a time across the weekly loop, the admin trigger and the CLI
_run_lock = asyncio.Lock()


def update_in_progress() -> bool:
    return _run_lock.locked()


def next_weekly_run(now: datetime) -> datetime:
    """The first Sunday midnight strictly after now (naive UTC)."""
    midnight = datetime.combine(now.date(), datetime.min.time())
    days_ahead = (WEEKLY_RUN_WEEKDAY - now.weekday()) % 7
    candidate = midnight + timedelta(days=days_ahead)
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


def seconds_until_next_run(now: Optional[datetime] = None) -> float:
    now = now or datetime.utcnow()
    return (next_weekly_run(now) - now).total_seconds()


async def run_scheduled_update(
    config: Optional[UpdateConfig] = None,
    db: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Run the definition updater once and wrap the outcome in a
    success/failure response. Never raises. A session passed in by the
    caller is left open. Concurrent calls wait for the running one.
    """
    config = config or UpdateConfig.from_settings()

    async with _run_lock:
        logger.info("Starting definition update run at %s", datetime.utcnow().isoformat())

        owns_session = db is None
        try:
            if owns_session:
                db = SessionLocal()
            result = await update_definitions(db, config)
        except Exception as exc:
            logger.exception("Fatal error during definition update")
            return {
                "success": False,
                "timestamp": datetime.utcnow().isoformat(),
                "error": str(exc) or exc.__class__.__name__,
            }
        finally:
            if owns_session and db is not None:
                db.close()

    if result.errors:
        logger.warning("Errors encountered: %s", [e.slug for e in result.errors])

    return {
        "success": True,
        "timestamp": datetime.utcnow().isoformat(),
        "result": result.to_dict(),
    }


async def definition_scheduler_loop() -> None:
    """
    Background loop that runs the definition updater weekly.
    Each run is awaited before the next sleep, so runs never overlap.
    """
    while True:
        delay = seconds_until_next_run()
        logger.info("Next definition update in %.0f seconds", delay)
        await asyncio.sleep(delay)

        response = await run_scheduled_update()
        if not response["success"]:
            logger.error("Scheduled definition update failed: %s", response["error"])
