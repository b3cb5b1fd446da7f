# Admin Router
# Purpose: Content management endpoints (blog, projects, guest book, photos, Mux videos)
# Main functions: blog/project CRUD, signature moderation, photo upload, video assignment, DB stats
# Dependent files: admin/dependencies/access_control.py, db/models.py, app/services/*

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional
import logging
import os
from pathlib import Path
from pydantic import BaseModel, ConfigDict

from admin.dependencies.access_control import get_current_admin_user
from app.services.blob_storage import (
    BlobStorageError, BlobStore, PhotoValidationError, delete_photo, upload_photo,
)
from app.services.mux import MuxClient, MuxConfigError, MuxError, video_from_asset
from config_loader import env_secret, load_config
from db.models import (
    DB_PATH, PROJECT_TYPES, DuplicateSlugError,
    collection_counts, create_blog_post, create_project, delete_blog_post,
    delete_project, delete_signature, get_db, get_project,
    list_assigned_asset_ids, list_blog_posts, list_projects, update_blog_post,
    update_photo, update_project, add_project_video, find_project_by_asset,
)

logger = logging.getLogger(__name__)

# Project root (admin/routers/admin.py → repo root)
ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG = load_config(root=ROOT)

ORIENTATIONS = ("vertical", "horizontal")

# --- Pydantic models ---


class BlogPostBody(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    featuredImage: Optional[str] = None
    tags: Optional[List[str]] = None
    isPublished: Optional[bool] = None
    publishedAt: Optional[str] = None


class ProjectBody(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    slug: Optional[str] = None
    images: Optional[List[str]] = None
    technologies: Optional[List[str]] = None
    links: Optional[Dict[str, str]] = None
    featured: Optional[bool] = None
    order: Optional[int] = None
    orientation: Optional[str] = None


class PhotoUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    photoId: Optional[str] = None


class VideoAssign(BaseModel):
    assetId: str
    projectSlug: str
    orientation: Optional[str] = None


# --- Helpers ---

def _get_db_conn():
    return get_db(DB_PATH)


def _blob_store() -> BlobStore:
    cfg = CONFIG.get("blob_storage", {})
    return BlobStore(folder=cfg.get("folder", "gallery"), url_prefix=cfg.get("url_prefix", "/blobs"))


def _mux_client() -> MuxClient:
    return MuxClient(env_secret("MUX_TOKEN_ID"), env_secret("MUX_TOKEN_SECRET"), CONFIG.get("mux", {}))


def _photo_error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


# --- ROUTER SETUP ---

router = APIRouter()


@router.get("/")
async def admin_root():
    """Admin root, health check (no auth required for Docker healthcheck)."""
    return {"message": "Portfolio Admin Backend", "status": "active"}


# ============================================================================
# BLOG
# ============================================================================

@router.get("/blog")
async def admin_list_blog(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    tag: Optional[str] = Query(None),
    _user: dict = Depends(get_current_admin_user),
):
    """All posts including drafts (metadata only)."""
    conn = _get_db_conn()
    try:
        posts, total = list_blog_posts(conn, page=page, limit=limit, tag=tag, published_only=False)
        return {"posts": posts, "count": len(posts), "total": total}
    finally:
        conn.close()


@router.post("/blog", status_code=201)
async def admin_create_blog(body: BlogPostBody, _user: dict = Depends(get_current_admin_user)):
    if not body.title or not body.content:
        raise HTTPException(status_code=400, detail="Title and content are required")

    conn = _get_db_conn()
    try:
        post_id = create_blog_post(conn, body.model_dump(exclude_none=True))
        conn.commit()
        slug = conn.execute("SELECT slug FROM blog_posts WHERE id=?", (post_id,)).fetchone()["slug"]
    except DuplicateSlugError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"A blog post with slug '{e}' already exists")
    finally:
        conn.close()

    logger.info(f"Created blog post {slug}")
    return {"id": post_id, "slug": slug}


@router.put("/blog/{slug}")
async def admin_update_blog(slug: str, body: BlogPostBody, _user: dict = Depends(get_current_admin_user)):
    conn = _get_db_conn()
    try:
        updated = update_blog_post(conn, slug, body.model_dump(exclude_none=True))
        if not updated:
            raise HTTPException(status_code=404, detail="Blog post not found")
        conn.commit()
        return {"message": "Blog post updated successfully"}
    finally:
        conn.close()


@router.delete("/blog/{slug}")
async def admin_delete_blog(slug: str, _user: dict = Depends(get_current_admin_user)):
    conn = _get_db_conn()
    try:
        if not delete_blog_post(conn, slug):
            raise HTTPException(status_code=404, detail="Blog post not found")
        conn.commit()
        logger.info(f"Deleted blog post {slug}")
        return {"message": "Blog post deleted successfully"}
    finally:
        conn.close()


# ============================================================================
# PROJECTS
# ============================================================================

@router.get("/projects")
async def admin_list_projects(
    type: Optional[str] = Query(None),
    _user: dict = Depends(get_current_admin_user),
):
    conn = _get_db_conn()
    try:
        projects = list_projects(conn, project_type=type)
        return {"projects": projects, "count": len(projects)}
    finally:
        conn.close()


@router.post("/projects", status_code=201)
async def admin_create_project(body: ProjectBody, _user: dict = Depends(get_current_admin_user)):
    if not body.title or not body.description or not body.type:
        raise HTTPException(status_code=400, detail="Title, description, and type are required")
    if body.type not in PROJECT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid project type. Must be one of: {', '.join(PROJECT_TYPES)}",
        )

    conn = _get_db_conn()
    try:
        project_id = create_project(conn, body.model_dump(exclude_none=True))
        conn.commit()
        slug = conn.execute("SELECT slug FROM projects WHERE id=?", (project_id,)).fetchone()["slug"]
    except DuplicateSlugError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"A project with slug '{e}' already exists")
    finally:
        conn.close()

    logger.info(f"Created project {slug}")
    return {"id": project_id, "slug": slug}


@router.put("/projects/{slug}")
async def admin_update_project(slug: str, body: ProjectBody, _user: dict = Depends(get_current_admin_user)):
    if body.type is not None and body.type not in PROJECT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid project type. Must be one of: {', '.join(PROJECT_TYPES)}",
        )
    conn = _get_db_conn()
    try:
        if not update_project(conn, slug, body.model_dump(exclude_none=True)):
            raise HTTPException(status_code=404, detail="Project not found")
        conn.commit()
        return {"message": "Project updated successfully"}
    finally:
        conn.close()


@router.delete("/projects/{slug}")
async def admin_delete_project(slug: str, _user: dict = Depends(get_current_admin_user)):
    conn = _get_db_conn()
    try:
        if not delete_project(conn, slug):
            raise HTTPException(status_code=404, detail="Project not found")
        conn.commit()
        logger.info(f"Deleted project {slug}")
        return {"message": "Project deleted successfully"}
    finally:
        conn.close()


# ============================================================================
# SIGNATURE MODERATION
# ============================================================================

@router.delete("/signatures/{sig_id}")
async def admin_delete_signature(sig_id: str, _user: dict = Depends(get_current_admin_user)):
    """Remove any signature regardless of owner."""
    conn = _get_db_conn()
    try:
        if not delete_signature(conn, sig_id):
            raise HTTPException(status_code=404, detail="Signature not found")
        conn.commit()
        logger.info(f"Moderated signature {sig_id}")
        return {"message": "Signature deleted successfully"}
    finally:
        conn.close()


# ============================================================================
# PHOTOS
# ============================================================================

@router.post("/photos/upload")
async def admin_upload_photo(
    file: Optional[UploadFile] = File(None),
    alt: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    camera: Optional[str] = Form(None),
    lens: Optional[str] = Form(None),
    aperture: Optional[str] = Form(None),
    shutterSpeed: Optional[str] = Form(None),
    iso: Optional[str] = Form(None),
    focalLength: Optional[str] = Form(None),
    locationName: Optional[str] = Form(None),
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    _user: dict = Depends(get_current_admin_user),
):
    """Store an image and create its gallery entry."""
    if os.environ.get("ENABLE_ADMIN") != "true":
        return _photo_error("Photo upload is disabled", 403)
    if file is None or not file.filename:
        return _photo_error("No file provided", 400)

    settings = {
        "aperture": aperture or None,
        "shutterSpeed": shutterSpeed or None,
        "iso": int(iso) if iso and iso.isdigit() else None,
        "focalLength": focalLength or None,
    }
    location = None
    if locationName or (lat and lng):
        location = {"name": locationName or None}
        if lat and lng:
            try:
                location["coordinates"] = {"lat": float(lat), "lng": float(lng)}
            except ValueError:
                return _photo_error("Invalid coordinates", 400)

    metadata: Dict[str, Any] = {
        "alt": alt,
        "description": description or None,
        "tags": [t.strip() for t in tags.split(",") if t.strip()] if tags else [],
        "camera": camera or None,
        "lens": lens or None,
        "settings": settings if any(settings.values()) else None,
        "location": location,
    }

    data = await file.read()
    try:
        photo = upload_photo(
            file.filename,
            file.content_type,
            data,
            metadata,
            store=_blob_store(),
            config=CONFIG.get("blob_storage", {}),
        )
    except PhotoValidationError as e:
        return _photo_error(str(e), 400)
    except BlobStorageError as e:
        logger.error(f"Photo upload error: {e}")
        return _photo_error(str(e), 500)

    return {"success": True, "photo": photo}


@router.put("/photos")
async def admin_update_photo(body: PhotoUpdate, _user: dict = Depends(get_current_admin_user)):
    if not body.photoId:
        return _photo_error("Photo ID is required", 400)

    updates = body.model_dump(exclude={"photoId"})
    conn = _get_db_conn()
    try:
        photo = update_photo(conn, body.photoId, updates)
        if not photo:
            return _photo_error("Photo not found", 404)
        conn.commit()
        return {"success": True, "photo": photo}
    finally:
        conn.close()


@router.delete("/photos")
async def admin_delete_photo(
    id: Optional[str] = Query(None),
    _user: dict = Depends(get_current_admin_user),
):
    if not id:
        return _photo_error("Photo ID is required", 400)
    try:
        deleted = delete_photo(id, store=_blob_store())
    except BlobStorageError as e:
        logger.error(f"Error deleting photo {id}: {e}")
        return _photo_error(str(e), 500)
    if not deleted:
        return _photo_error("Failed to delete photo or photo not found", 404)
    return {"success": True, "message": "Photo deleted successfully"}


# ============================================================================
# MUX VIDEOS
# ============================================================================

@router.get("/videos/assets")
def admin_list_assets(_user: dict = Depends(get_current_admin_user)):
    """Every Mux asset, flagged with whether a project already uses it."""
    try:
        assets = _mux_client().list_assets()
    except MuxConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except MuxError as e:
        logger.error(f"Error listing Mux assets: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    conn = _get_db_conn()
    try:
        assigned = list_assigned_asset_ids(conn)
    finally:
        conn.close()

    return {
        "assets": [
            {**a.to_dict(), "playback_id": a.playback_id, "assigned": a.id in assigned}
            for a in assets
        ],
        "count": len(assets),
    }


@router.post("/videos/assign")
def admin_assign_video(body: VideoAssign, _user: dict = Depends(get_current_admin_user)):
    """Attach a Mux asset to a project."""
    if body.orientation is not None and body.orientation not in ORIENTATIONS:
        raise HTTPException(status_code=400, detail="Orientation must be 'vertical' or 'horizontal'")

    try:
        asset = _mux_client().get_asset(body.assetId)
        video = video_from_asset(asset)
    except MuxConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except MuxError as e:
        raise HTTPException(status_code=400, detail=str(e))

    conn = _get_db_conn()
    try:
        owner = find_project_by_asset(conn, body.assetId)
        if owner and owner["slug"] != body.projectSlug:
            logger.warning(f"Asset {body.assetId} is also assigned to project {owner['slug']}")
        try:
            added = add_project_video(conn, body.projectSlug, video, orientation=body.orientation)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Project '{body.projectSlug}' not found")
        conn.commit()
        project = get_project(conn, body.projectSlug)
    finally:
        conn.close()

    logger.info(f"Assigned asset {body.assetId} to {body.projectSlug}")
    return {
        "message": "Video assigned successfully" if added else "Video already assigned to this project",
        "video": video,
        "project": {
            "slug": project["slug"],
            "videoCount": len(project["videos"]),
            "orientation": project.get("orientation"),
        },
    }


# ============================================================================
# DATABASE
# ============================================================================

@router.get("/db/stats")
async def database_stats(_user: dict = Depends(get_current_admin_user)):
    """Row counts per collection."""
    conn = _get_db_conn()
    try:
        counts = collection_counts(conn)
        return {"collections": counts, "total": sum(c for c in counts.values() if c > 0)}
    finally:
        conn.close()
