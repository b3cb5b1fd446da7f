#!/usr/bin/env python3
"""
scripts/bulk_upload_photos.py — Upload a Folder of Photos
==========================================================
Feeds every image in a directory through the regular upload pipeline
(validation, blob storage, filename parsing, database row).

File names follow `tag1_tag2-title_words-MMDDYYYY.ext`, e.g.
`city_newyork-w_37st-08022022.webp` → tags [city, newyork], title "w 37st",
date 2022-08-02.

Usage:
  python scripts/bulk_upload_photos.py photos/ --dry-run
  python scripts/bulk_upload_photos.py photos/ --tags film
"""

import argparse
import logging
import mimetypes
import sys
from pathlib import Path

from _term import _bold, _cyan, _dim, _green, _red

from app.services.blob_storage import BlobStorageError, BlobStore, parse_filename, upload_photo
from config_loader import load_config
from db.models import DB_PATH, init_db

logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
log = logging.getLogger("portfolio.bulk_upload")

ROOT = Path(__file__).resolve().parent.parent
IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp"}


def find_images(directory: Path) -> list:
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES)


def dry_run(images) -> None:
    for path in images:
        parsed = parse_filename(path.name)
        date = parsed.parsed_date.date().isoformat() if parsed.parsed_date else _dim("no date")
        print(f"  {_cyan(path.name)}")
        print(f"    tags   {', '.join(parsed.tags) or _dim('none')}")
        print(f"    title  {parsed.title or _dim('none')}")
        print(f"    date   {date}")


def upload_all(images, extra_tags=None, db_path: Path = DB_PATH) -> tuple:
    config = load_config(root=ROOT).get("blob_storage", {})
    store = BlobStore(folder=config.get("folder", "gallery"), url_prefix=config.get("url_prefix", "/blobs"))
    init_db(db_path)

    uploaded, failed = 0, 0
    for path in images:
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            photo = upload_photo(
                path.name,
                content_type,
                path.read_bytes(),
                {"tags": extra_tags or []},
                store=store,
                db_path=db_path,
                config=config,
            )
        except BlobStorageError as e:
            failed += 1
            print(f"  {_red('✗')} {path.name}: {e}")
            continue
        uploaded += 1
        print(f"  {_green('✓')} {path.name} → {photo['blobUrl']}")
    return uploaded, failed


def main():
    parser = argparse.ArgumentParser(description="Upload every image in a directory to the gallery")
    parser.add_argument("directory", type=Path, help="Folder with images")
    parser.add_argument("--tags", nargs="*", default=[], help="Extra tags applied to every photo")
    parser.add_argument("--dry-run", action="store_true", help="Only print the parsed metadata")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    args = parser.parse_args()

    if not args.directory.is_dir():
        sys.exit(f"Not a directory: {args.directory}")
    images = find_images(args.directory)
    print(_bold(f"\n  {len(images)} images in {args.directory}\n"))

    if args.dry_run:
        dry_run(images)
        return

    uploaded, failed = upload_all(images, args.tags, db_path=args.db)
    log.info(f"Uploaded {uploaded} photos, {failed} failed")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
