#!/usr/bin/env python3
"""
scripts/migrate_db.py — Copy Collections Between Databases
===========================================================
Replaces collections in a target database with the rows of a source
database, after writing a timestamped JSON backup of the target.

Usage:
  python scripts/migrate_db.py --source db/dev.db --target db/portfolio.db
  python scripts/migrate_db.py --source A --target B --collections projects blog_posts --yes

Empty source collections are skipped so they never wipe target data.
"""

import argparse
import json
import logging
import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path

from _term import _bold, _dim, _green, _yellow

from db.models import COLLECTION_TABLES, collection_counts, export_collections, get_db, import_collections, init_db

logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
log = logging.getLogger("portfolio.migrate")


def backup(conn: sqlite3.Connection, target: Path, tables) -> Path:
    data = export_collections(conn, tuple(tables))
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    path = target.parent / f"backup-{target.stem}-{stamp}.json"
    path.write_text(json.dumps(data, indent=2, default=str))
    for table, rows in data.items():
        log.info(f"Backed up {len(rows)} rows from {table}")
    log.info(f"Backup saved to: {path}")
    return path


def print_counts(label: str, conn: sqlite3.Connection) -> None:
    print()
    print(_bold(f"  {label} database"))
    for table, count in collection_counts(conn).items():
        shown = _dim("missing") if count < 0 else str(count)
        print(f"    {table:<14} {shown}")


def migrate(source: Path, target: Path, tables, assume_yes: bool = False) -> dict:
    if not source.exists():
        sys.exit(f"Source database not found at {source}")
    init_db(target)

    src = get_db(source)
    dst = get_db(target)
    try:
        print_counts("Source", src)
        print_counts("Target (before)", dst)
        backup(dst, target, tables)

        if not assume_yes:
            print(_yellow(f"\n  This replaces {', '.join(tables)} in {target}."))
            if input("  Continue? [y/N] ").strip().lower() != "y":
                log.info("Migration aborted")
                return {}

        data = export_collections(src, tuple(tables))
        non_empty = {}
        for table, rows in data.items():
            if rows:
                non_empty[table] = rows
            else:
                log.warning(f"No rows in source {table}, skipping")

        counts = import_collections(dst, non_empty)
        dst.commit()
        for table, n in counts.items():
            log.info(f"Migrated {n} rows to {table}")

        print_counts("Target (after)", dst)
        print(_green("\n  Migration completed successfully\n"))
        return counts
    except Exception as e:
        dst.rollback()
        log.error(f"Migration failed: {e}. The target backup is intact.")
        raise
    finally:
        src.close()
        dst.close()


def main():
    parser = argparse.ArgumentParser(description="Copy collections from one database to another")
    parser.add_argument("--source", required=True, type=Path, help="Database to read from")
    parser.add_argument("--target", required=True, type=Path, help="Database to replace collections in")
    parser.add_argument("--collections", nargs="+", default=list(COLLECTION_TABLES),
                        choices=COLLECTION_TABLES, metavar="NAME",
                        help=f"Subset to migrate (default: all of {', '.join(COLLECTION_TABLES)})")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args()

    migrate(args.source, args.target, args.collections, assume_yes=args.yes)


if __name__ == "__main__":
    main()
