"""
Maintenance commands for the lexicon backend.

    lexicon hash-password <password>
    lexicon init-db [--seed]
    lexicon update-definitions [--max-requests N] [--rate-limit-ms MS] [--provider NAME]
    lexicon backfill-sources [--dry-run]
    lexicon import-csv FILE --type word [--dry-run]
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime
from typing import List, Optional

from .config import settings
from .core.auth import hash_password
from .core.csv_import import import_csv
from .core.database import Base, SessionLocal, engine
from .core.definition_scheduler import run_scheduled_update
from .core.definition_updater import UpdateConfig
from .core.logging_config import setup_logging
from .core.seed import seed_initial_data
from .models import ENTRY_TYPES, SOURCE_MANUAL, Entry

MIN_PASSWORD_LENGTH = 8


def cmd_hash_password(args: argparse.Namespace) -> int:
    if len(args.password) < MIN_PASSWORD_LENGTH:
        print(f"Error: Password should be at least {MIN_PASSWORD_LENGTH} characters long", file=sys.stderr)
        return 1

    print("Add these to your .env file:\n")
    print(f"ADMIN_USERNAME={args.username}")
    print(f"ADMIN_PASSWORD_HASH={hash_password(args.password)}")
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    Base.metadata.create_all(bind=engine)
    print(f"Tables created on {settings.database_url}")

    if args.seed:
        db = SessionLocal()
        try:
            n = seed_initial_data(db)
        finally:
            db.close()
        print(f"Seeded {n} entries" if n else "Entries table not empty, nothing seeded")
    return 0


def cmd_update_definitions(args: argparse.Namespace) -> int:
    config = UpdateConfig.from_settings(
        max_requests=args.max_requests,
        rate_limit_ms=args.rate_limit_ms,
        provider=args.provider,
    )
    response = asyncio.run(run_scheduled_update(config))
    print(json.dumps(response, indent=2))
    return 0 if response["success"] else 1


def cmd_backfill_sources(args: argparse.Namespace) -> int:
    """Mark word definitions that predate source tracking as manual."""
    db = SessionLocal()
    try:
        q = db.query(Entry).filter(
            Entry.type == "word",
            Entry.definition.is_not(None),
            Entry.definition != "",
            Entry.definition_source.is_(None),
        )
        entries = q.all()
        print(f"Found {len(entries)} entries with definitions but no source")

        if args.dry_run:
            for e in entries[:10]:
                print(f"  - {e.name} ({e.slug})")
            if len(entries) > 10:
                print(f"  ... and {len(entries) - 10} more")
            return 0

        now = datetime.utcnow()
        for e in entries:
            e.definition_source = SOURCE_MANUAL
            e.updated_at = now
        db.commit()
        print(f"Backfilled {len(entries)} entries as '{SOURCE_MANUAL}'")
    finally:
        db.close()
    return 0


def cmd_import_csv(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        with open(args.file, newline="", encoding="utf-8-sig") as fh:
            report = import_csv(db, fh, args.type, dry_run=args.dry_run)
    finally:
        db.close()

    prefix = "[DRY RUN] " if args.dry_run else ""
    print(f"{prefix}Rows: {report.total_rows}, imported: {report.imported}, skipped: {report.skipped}")
    for err in report.errors:
        print(f"  {err}", file=sys.stderr)
    return 0 if not report.errors else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lexicon", description="Clinton Lexicon maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("hash-password", help="Generate a bcrypt hash for the admin password")
    p.add_argument("password")
    p.add_argument("--username", default="admin")
    p.set_defaults(func=cmd_hash_password)

    p = sub.add_parser("init-db", help="Create database tables")
    p.add_argument("--seed", action="store_true", help="Insert sample entries into an empty database")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("update-definitions", help="Run the definition updater once")
    p.add_argument("--max-requests", type=int)
    p.add_argument("--rate-limit-ms", type=int)
    p.add_argument("--provider")
    p.set_defaults(func=cmd_update_definitions)

    p = sub.add_parser("backfill-sources", help="Mark existing word definitions as manual")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_backfill_sources)

    p = sub.add_parser("import-csv", help="Import entries from a CSV file")
    p.add_argument("file")
    p.add_argument("--type", required=True, choices=ENTRY_TYPES)
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_import_csv)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging(settings.log_level)
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
