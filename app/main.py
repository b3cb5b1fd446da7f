"""
app/main.py — Portfolio & Blog FastAPI Server
==============================================
Public JSON API for the portfolio site. Visitor writes (guest book) need an
OAuth session; content management lives in the separate admin app
(admin/main.py).

Error bodies are always {"error": "<message>"} except the photo gallery,
which keeps its {success, ...} envelope.

Routes:
  GET  /                               → API index (JSON)
  GET  /health                         → liveness probe
  GET  /api/blog                       → paginated published posts (metadata only)
  GET  /api/blog/tags                  → distinct tags
  GET  /api/blog/{slug}                → full post (increments views)
  GET  /api/blog/{slug}/metadata       → listing fields only
  GET  /api/blog/{slug}/content        → {content, title}
  GET  /api/blog/{slug}/toc            → heading outline
  GET  /api/signatures                 → guest book, newest first
  POST /api/signatures                 → sign the wall (session)
  GET  /api/signatures/user            → own signature (session)
  PUT  /api/signatures/{id}            → edit own signature (session)
  DELETE /api/signatures/{id}          → delete own signature (session)
  GET  /api/auth/providers             → enabled OAuth providers
  GET  /api/auth/signin/{provider}     → start OAuth flow
  GET  /api/auth/callback/{provider}   → finish OAuth flow
  GET  /api/auth/session               → current session
  POST /api/auth/signout               → sign out
  GET  /api/projects                   → GitHub + database projects
  GET  /api/projects/{slug}            → single project
  GET  /api/projects/{slug}/stats      → live GitHub stats
  GET  /api/projects/{slug}/languages  → language percentages
  GET  /api/projects/{slug}/readme     → README as HTML
  GET  /api/projects/{slug}/videos     → attached videos
  GET  /api/videos/{playback_id}       → Mux playback URLs
  GET  /api/homelab                    → hardware + technologies
  GET  /api/homelab/{slug}             → single technology
  GET  /homelab, /homelab/{slug}       → server-rendered pages
  GET  /api/photos                     → photo gallery
  GET  /api/photos/upload              → upload requirements
  GET  /blobs/...                      → stored photo files
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.dependencies.shared import CONFIG, DEFAULT_RATE, limiter
from app.routers import auth, blog, homelab, photos, projects, signatures, videos
from app.services.blob_storage import BLOB_ROOT
from db.models import DB_PATH, init_db

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

server_cfg = CONFIG.get("server", {})
host = server_cfg.get("host", "localhost")
port = server_cfg.get("port", 8000)
# Use localhost for display if host is 0.0.0.0 (bind-all)
display_host = "localhost" if host == "0.0.0.0" else host
BASE_URL = server_cfg.get("base_url", f"http://{display_host}:{port}")

_blob_cfg = CONFIG.get("blob_storage", {})
BLOB_URL_PREFIX = _blob_cfg.get("url_prefix", "/blobs")


# ─────────────────────────────────────────────────────────────────────────────
# APP SETUP
# ─────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(DB_PATH)
    logger.info(f"Database ready at {DB_PATH}")
    yield


app = FastAPI(
    title="Portfolio & Blog API",
    description="Blog, guest book, projects, homelab and photo gallery for the portfolio site.",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url=None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Security settings from config (with safe defaults)
_security_cfg = CONFIG.get("security", {})
_trusted_proxies = _security_cfg.get("trusted_proxies", ["127.0.0.1", "::1"])
_cors_origins = _security_cfg.get("cors_origins", [BASE_URL])

app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=_trusted_proxies)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

# Include routers
app.include_router(blog.router)
app.include_router(signatures.router)
app.include_router(auth.router)
app.include_router(projects.router)
app.include_router(videos.router)
app.include_router(homelab.router)
app.include_router(photos.router)

BLOB_ROOT.mkdir(parents=True, exist_ok=True)
app.mount(BLOB_URL_PREFIX, StaticFiles(directory=str(BLOB_ROOT)), name="blobs")


# ─────────────────────────────────────────────────────────────────────────────
# ROUTES
# ─────────────────────────────────────────────────────────────────────────────

@app.get("/", summary="API index")
@limiter.limit(DEFAULT_RATE)
async def index(request: Request):
    """Machine-readable index of the public API."""
    return {
        "name":    CONFIG.get("site", {}).get("title", "Portfolio & Blog"),
        "version": APP_VERSION,
        "endpoints": {
            "blog":       "/api/blog",
            "signatures": "/api/signatures",
            "auth":       "/api/auth/providers",
            "projects":   "/api/projects",
            "videos":     "/api/videos/{playback_id}",
            "homelab":    "/api/homelab",
            "photos":     "/api/photos",
        },
        "docs": f"{BASE_URL}/docs",
    }


@app.get("/health")
async def health():
    return {"status": "ok", "ts": time.time(), "version": APP_VERSION}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=host, port=port, log_level="info")
