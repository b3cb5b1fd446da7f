"""
app/routers/blog.py — Public Blog Endpoints
============================================

Endpoints:
  GET /api/blog                  → paginated listing (metadata only, no content)
  GET /api/blog/tags             → distinct tags of published posts
  GET /api/blog/{slug}           → full post (increments views)
  GET /api/blog/{slug}/metadata  → listing fields only, edge-cacheable
  GET /api/blog/{slug}/content   → {content, title} (increments views)
  GET /api/blog/{slug}/toc       → heading outline of the post body

The metadata/content split lets list views and hover-prefetch pull the
lightweight fields without the Markdown body. Writes live in the admin app.
"""

import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.dependencies.shared import CONFIG, cached_json, db, err, limiter, rate
from app.services.markdown_render import extract_headings
from db.models import (
    get_blog_content, get_blog_metadata, get_blog_post,
    increment_views, list_blog_posts, list_blog_tags, pagination,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog", tags=["Blog"])

_blog_cfg = CONFIG.get("blog", {})
DEFAULT_LIMIT = int(_blog_cfg.get("default_limit", 10))
MAX_LIMIT = int(_blog_cfg.get("max_limit", 100))


@router.get("", summary="Paginated blog listing (metadata only)")
@limiter.limit(rate("default"))
async def blog_list(
    request: Request,
    conn=Depends(db),
    page: int           = Query(1, ge=1),
    limit: int          = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    tag: Optional[str]  = Query(None, description="Filter by tag; 'All' disables the filter"),
):
    try:
        posts, total = list_blog_posts(conn, page=page, limit=limit, tag=tag)
    except sqlite3.Error as e:
        logger.error(f"Error fetching blog posts: {e}")
        return err("Failed to fetch blog posts", 500)
    return {"posts": posts, "pagination": pagination(page, limit, total)}


@router.get("/tags", summary="Distinct tags of published posts")
@limiter.limit(rate("default"))
async def blog_tags(request: Request, conn=Depends(db)):
    return {"tags": list_blog_tags(conn)}


@router.get("/{slug}", summary="Full published post")
@limiter.limit(rate("default"))
async def blog_detail(request: Request, slug: str, conn=Depends(db)):
    try:
        post = get_blog_post(conn, slug)
        if not post:
            return err("Blog post not found", 404)
        increment_views(conn, slug)
        conn.commit()
    except sqlite3.Error as e:
        logger.error(f"Error fetching blog post {slug}: {e}")
        return err("Failed to fetch blog post", 500)

    post["metadata"]["views"] += 1
    return post


@router.get("/{slug}/metadata", summary="Post metadata without content")
@limiter.limit(rate("default"))
async def blog_metadata(request: Request, slug: str, conn=Depends(db)):
    try:
        metadata = get_blog_metadata(conn, slug)
    except sqlite3.Error as e:
        logger.error(f"Error fetching blog metadata {slug}: {e}")
        return err("Failed to fetch blog metadata", 500)
    if not metadata:
        return err("Blog post not found", 404)
    return cached_json(metadata, "blog_metadata")


@router.get("/{slug}/content", summary="Post body only")
@limiter.limit(rate("default"))
async def blog_content(request: Request, slug: str, conn=Depends(db)) -> JSONResponse:
    try:
        content = get_blog_content(conn, slug)
    except sqlite3.Error as e:
        logger.error(f"Error fetching blog content {slug}: {e}")
        return err("Failed to fetch content", 500)
    if not content:
        return err("Blog post not found", 404)

    # View counting must never block serving the body
    try:
        increment_views(conn, slug)
        conn.commit()
    except sqlite3.Error as e:
        logger.warning(f"Could not update view count for {slug}: {e}")

    logger.info(f"Served content for: {slug} ({len(content['content'])} chars)")
    return cached_json(content, "blog_content")


@router.get("/{slug}/toc", summary="Heading outline of a post")
@limiter.limit(rate("default"))
async def blog_toc(request: Request, slug: str, conn=Depends(db)):
    content = get_blog_content(conn, slug)
    if not content:
        return err("Blog post not found", 404)
    return {"headings": extract_headings(content["content"])}
