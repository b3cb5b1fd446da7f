"""
admin/main.py — Portfolio admin application
============================================
Separate FastAPI app (own port, own CORS list) for managing blog posts,
projects, photos, Mux videos and guest book moderation.

POST /admin/login hands out the bearer JWT; everything under the admin
router checks it. Run with `python -m admin.main` or point uvicorn at
`admin.main:app`.
"""

import logging
import os

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from admin.dependencies.access_control import authenticate_admin, create_access_token
from admin.routers import admin as admin_router
from db.models import DB_PATH, init_db

logger = logging.getLogger(__name__)

ADMIN_PORT = int(os.environ.get("ADMIN_PORT", "8081"))


class LoginRequest(BaseModel):
    username: str
    password: str


def _cors_origins() -> list[str]:
    raw = os.environ.get("ADMIN_CORS_ORIGINS", "http://localhost:3000")
    return [o.strip() for o in raw.split(",") if o.strip()]


async def admin_login(body: LoginRequest):
    """Trade admin credentials for a bearer JWT. Disabled while ADMIN_PASSWORD is unset."""
    if not authenticate_admin(body.username, body.password):
        logger.warning(f"Rejected admin login for {body.username!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
        )
    return {
        "access_token": create_access_token(subject=body.username),
        "token_type": "bearer",
    }


def create_admin_app() -> FastAPI:
    init_db(DB_PATH)

    app = FastAPI(
        title="Portfolio Admin Backend",
        description="Content management for blog posts, projects, photos, videos and the guest book",
        version="1.0.0",
        docs_url="/admin/docs",
        redoc_url="/admin/redoc",
        openapi_url="/admin/openapi.json",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    # login is the only unauthenticated write
    app.add_api_route("/admin/login", admin_login, methods=["POST"], tags=["admin"])
    app.include_router(admin_router.router, prefix="/admin", tags=["admin"])

    logger.info(f"Admin backend ready (db: {DB_PATH})")
    return app


app = create_admin_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=ADMIN_PORT, log_level="info")
