"""
app/routers/photos.py — Photo Gallery Endpoints
================================================

Endpoints:
  GET /api/photos            → gallery listing {success, photos, total}
  GET /api/photos?action=tags → distinct photo tags {success, tags}
  GET /api/photos/upload     → upload requirements (size, types, fields)

Uploading, editing and deleting photos are admin operations
(admin/routers/admin.py). Out-of-range `limit`/`skip` values are ignored
rather than rejected.
"""

import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.dependencies.shared import CONFIG, db, limiter, rate
from app.services.blob_storage import upload_requirements
from db.models import PHOTO_SORTS, list_photo_tags, list_photos

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/photos", tags=["Photos"])

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def _int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@router.get("", summary="Photo gallery")
@limiter.limit(rate("default"))
async def photos_list(
    request: Request,
    conn=Depends(db),
    featured: Optional[str] = Query(None, description="'true' for featured photos only"),
    tags: Optional[str]     = Query(None, description="Comma-separated tags (any match)"),
    limit: Optional[str]    = Query(None, description="1-100, default 50"),
    skip: Optional[str]     = Query(None, description=">= 0, default 0"),
    sort: Optional[str]     = Query(None, description="newest | oldest | order"),
    action: Optional[str]   = Query(None, description="'tags' to list distinct tags"),
):
    if action == "tags":
        try:
            return {"success": True, "tags": list_photo_tags(conn)}
        except sqlite3.Error as e:
            logger.error(f"Error fetching photo tags: {e}")
            return JSONResponse(
                status_code=500,
                content={"success": False, "tags": [], "error": "Failed to fetch tags"},
            )

    limit_n = _int_or_none(limit)
    if limit_n is None or not 1 <= limit_n <= MAX_LIMIT:
        limit_n = DEFAULT_LIMIT
    skip_n = _int_or_none(skip)
    if skip_n is None or skip_n < 0:
        skip_n = 0
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None

    try:
        photos, total = list_photos(
            conn,
            featured=True if featured == "true" else None,
            tags=tag_list,
            limit=limit_n,
            skip=skip_n,
            sort=sort if sort in PHOTO_SORTS else "order",
        )
    except sqlite3.Error as e:
        logger.error(f"Error fetching photos: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "photos": [], "total": 0, "error": "Failed to fetch photos"},
        )
    return {"success": True, "photos": photos, "total": total}


@router.get("/upload", summary="Upload requirements")
async def photo_upload_info():
    return upload_requirements(CONFIG.get("blob_storage", {}))
