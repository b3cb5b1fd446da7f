"""
app/routers/homelab.py — Homelab Documentation
===============================================

Endpoints:
  GET /api/homelab          → {hardware, technologies}
  GET /api/homelab/{slug}   → single technology write-up
  GET /homelab              → HTML overview page
  GET /homelab/{slug}       → HTML technology page
"""

from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.dependencies.shared import CONFIG, err
from app.services.homelab import (
    default_og_image, get_homelab_hardware,
    get_homelab_technologies, get_homelab_technology_by_slug,
)

router = APIRouter(tags=["Homelab"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/api/homelab", summary="Homelab hardware + technologies")
async def homelab_data():
    return {
        "hardware": get_homelab_hardware(CONFIG),
        "technologies": get_homelab_technologies(CONFIG),
    }


@router.get("/api/homelab/{slug}", summary="Single homelab technology")
async def homelab_technology(slug: str):
    tech = get_homelab_technology_by_slug(slug, CONFIG)
    if not tech:
        return err("Technology not found", 404)
    return tech


@router.get("/homelab", response_class=HTMLResponse, include_in_schema=False)
async def homelab_page(request: Request):
    return templates.TemplateResponse(
        request,
        "homelab.html",
        {
            "site": CONFIG.get("site", {}),
            "hardware": get_homelab_hardware(CONFIG),
            "technologies": get_homelab_technologies(CONFIG),
            "og_image": default_og_image(),
        },
    )


@router.get("/homelab/{slug}", response_class=HTMLResponse, include_in_schema=False)
async def homelab_technology_page(request: Request, slug: str):
    tech = get_homelab_technology_by_slug(slug, CONFIG)
    if not tech:
        raise HTTPException(404, "Technology not found")
    return templates.TemplateResponse(
        request,
        "homelab_technology.html",
        {
            "site": CONFIG.get("site", {}),
            "tech": tech,
            "og_image": default_og_image(tech["slug"]),
        },
    )
