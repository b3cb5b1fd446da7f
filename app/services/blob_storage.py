"""
app/services/blob_storage.py — Photo Gallery Storage
=====================================================
Filesystem blob store for gallery images plus the photo upload pipeline.

Blobs live under $BLOB_STORAGE_DIR/gallery/ and are served by the public
app at /blobs/gallery/<name>. Photo metadata lives in the photos table.

Filename convention (used for automatic metadata):
    tag1_tag2-title_words-MMDDYYYY.ext
      tags  → first dash part, split on "_"
      title → middle dash parts joined by spaces, "_" → " "
      date  → last dash part, MMDDYYYY
"""

import logging
import os
import random
import re
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from db.models import get_db, DB_PATH, get_photo, insert_photo, now_iso
from db.models import delete_photo as delete_photo_row

log = logging.getLogger("portfolio.photos")

BLOB_FOLDER = "gallery"
MAX_FILE_SIZE = 30 * 1024 * 1024  # 30MB
ALLOWED_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/webp"]
DEFAULT_WIDTH = 1200
DEFAULT_HEIGHT = 800

BLOB_ROOT = Path(os.environ.get("BLOB_STORAGE_DIR", Path(__file__).resolve().parent.parent.parent / "blobs"))


class BlobStorageError(Exception):
    """Blob could not be written, read or removed."""


class PhotoValidationError(BlobStorageError):
    """Upload rejected before touching storage (size, type, missing file)."""


# --- Blob store ---

class BlobStore:
    def __init__(self, root: Path = None, folder: str = BLOB_FOLDER, url_prefix: str = "/blobs"):
        self.root = Path(root or BLOB_ROOT)
        self.folder = folder
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, name: str) -> Path:
        if "/" in name or "\\" in name or name.startswith("."):
            raise BlobStorageError(f"Invalid blob name: {name!r}")
        return self.root / self.folder / name

    def url_for(self, name: str) -> str:
        return f"{self.url_prefix}/{self.folder}/{name}"

    def put(self, name: str, data: bytes) -> str:
        path = self._path(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise BlobStorageError(f"Failed to store blob {name}: {e}") from e
        log.info(f"Stored blob {self.folder}/{name} ({len(data)} bytes)")
        return self.url_for(name)

    def delete(self, name: str) -> None:
        path = self._path(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise BlobStorageError(f"Failed to delete blob {name}: {e}") from e

    def list(self) -> List[str]:
        """Pathnames (folder/name) of every stored blob."""
        folder = self.root / self.folder
        if not folder.exists():
            return []
        return sorted(f"{self.folder}/{p.name}" for p in folder.iterdir() if p.is_file())


# --- Filename parsing ---

@dataclass
class ParsedFilename:
    tags: List[str] = field(default_factory=list)
    title: str = ""
    date_string: str = ""
    parsed_date: Optional[datetime] = None


def parse_filename(filename: str) -> ParsedFilename:
    name = re.sub(r"\.[^/.]+$", "", filename)
    parts = name.split("-")

    if len(parts) < 2:
        return ParsedFilename(title=re.sub(r"[_-]", " ", name))

    date_string = parts[-1]
    parsed_date = None
    if re.fullmatch(r"\d{8}", date_string):
        month, day, year = int(date_string[0:2]), int(date_string[2:4]), int(date_string[4:8])
        if 1 <= month <= 12 and 1 <= day <= 31 and year >= 1900:
            try:
                parsed_date = datetime(year, month, day, tzinfo=timezone.utc)
            except ValueError:
                # e.g. 02/31 passes the range check but is not a real day
                parsed_date = None

    title = " ".join(parts[1:-1]).replace("_", " ")
    tags = [t.strip() for t in parts[0].split("_") if t.strip()]
    return ParsedFilename(tags=tags, title=title, date_string=date_string, parsed_date=parsed_date)


def _stored_name(original: str) -> str:
    ext = original.rsplit(".", 1)[-1].lower() if "." in original else "jpg"
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{int(time.time() * 1000)}-{suffix}.{ext}"


# --- Upload / delete pipeline ---

def upload_photo(filename: str,
                 content_type: str,
                 data: bytes,
                 metadata: Dict[str, Any],
                 store: BlobStore = None,
                 db_path: Path = None,
                 config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Validate, store the blob and insert the photo row.

    `metadata` keys: alt, description, tags, camera, lens, settings, location.
    Returns the created photo document.
    """
    config = config or {}
    max_size = int(config.get("max_file_size", MAX_FILE_SIZE))
    allowed = config.get("allowed_types", ALLOWED_TYPES)

    if not filename or data is None:
        raise PhotoValidationError("No file provided")
    if len(data) > max_size:
        raise PhotoValidationError(f"File size exceeds {max_size // 1024 // 1024}MB limit")
    if content_type not in allowed:
        raise PhotoValidationError(
            f"File type {content_type} not allowed. Allowed types: {', '.join(allowed)}"
        )

    store = store or BlobStore()
    stored = _stored_name(filename)
    blob_url = store.put(stored, data)

    parsed = parse_filename(filename)
    merged_tags: List[str] = []
    for tag in [*parsed.tags, *(metadata.get("tags") or [])]:
        if tag not in merged_tags:
            merged_tags.append(tag)

    alt = metadata.get("alt") or parsed.title or filename
    photo_date = parsed.parsed_date or datetime.now(timezone.utc)
    description = metadata.get("description") or (parsed.title if parsed.title != alt else None)

    doc = {
        "filename": stored,
        "originalName": filename,
        "blobUrl": blob_url,
        "alt": alt,
        "description": description or None,
        "tags": merged_tags,
        "metadata": {
            "size": len(data),
            "width": int(config.get("default_width", DEFAULT_WIDTH)),
            "height": int(config.get("default_height", DEFAULT_HEIGHT)),
            "format": stored.rsplit(".", 1)[-1],
            "camera": metadata.get("camera"),
            "lens": metadata.get("lens"),
            "settings": metadata.get("settings"),
            "location": metadata.get("location"),
        },
        "featured": False,
        "order": int(photo_date.timestamp() * 1000),
        "createdAt": photo_date.isoformat(),
        "updatedAt": now_iso(),
    }

    conn = get_db(db_path or DB_PATH)
    try:
        photo = insert_photo(conn, doc)
        conn.commit()
    except Exception:
        conn.rollback()
        # Row insert failed; drop the orphaned blob
        store.delete(stored)
        raise
    finally:
        conn.close()

    log.info(f"Uploaded photo {filename} as {stored}")
    return photo


def delete_photo(photo_id: str, store: BlobStore = None, db_path: Path = None) -> bool:
    """Remove blob + row. Returns False when the photo does not exist."""
    store = store or BlobStore()
    conn = get_db(db_path or DB_PATH)
    try:
        photo = get_photo(conn, photo_id)
        if not photo:
            return False
        store.delete(photo["filename"])
        delete_photo_row(conn, photo_id)
        conn.commit()
        return True
    finally:
        conn.close()


def upload_requirements(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    config = config or {}
    max_size = int(config.get("max_file_size", MAX_FILE_SIZE))
    return {
        "maxSize": f"{max_size // 1024 // 1024}MB",
        "allowedTypes": config.get("allowed_types", ALLOWED_TYPES),
        "requiredFields": ["file"],
        "optionalFields": [
            "alt", "description", "tags", "camera", "lens",
            "aperture", "shutterSpeed", "iso", "focalLength",
            "locationName", "lat", "lng",
        ],
        "note": "Alt text will be auto-generated from filename if not provided",
    }
