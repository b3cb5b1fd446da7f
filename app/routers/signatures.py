"""
app/routers/signatures.py — Guest Book Endpoints
=================================================

Endpoints:
  GET    /api/signatures          → paginated signatures, newest first (public)
  POST   /api/signatures          → sign the wall (session required, once per user)
  GET    /api/signatures/user     → the caller's own signature or null (session required)
  PUT    /api/signatures/{id}     → edit own signature (session required)
  DELETE /api/signatures/{id}     → delete own signature (session required)

The signer's userId always comes from the session, never from the body.
"""

import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.dependencies.access_control import SessionInfo, require_session
from app.dependencies.shared import CONFIG, db, err, limiter, rate
from db.models import (
    DuplicateSignatureError,
    create_signature, delete_signature, get_profile_url, get_signature_by_user,
    list_signatures, pagination, update_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/signatures", tags=["Signatures"])

_sig_cfg = CONFIG.get("signatures", {})
DEFAULT_LIMIT = int(_sig_cfg.get("default_limit", 20))
MAX_LIMIT = int(_sig_cfg.get("max_limit", 100))
PROVIDERS = tuple(_sig_cfg.get("providers", ["google", "github", "linkedin"]))


class SignatureBody(BaseModel):
    name: Optional[str] = None
    message: Optional[str] = None
    provider: Optional[str] = None
    profileUrl: Optional[str] = None
    avatarUrl: Optional[str] = None
    useRandomIcon: bool = False


def _validate(body: SignatureBody) -> Optional[JSONResponse]:
    if not (body.name or "").strip() or not (body.message or "").strip() or not body.provider:
        return err("Name, message, and provider are required", 400)
    if body.provider not in PROVIDERS:
        return err(f"Invalid provider. Must be {', '.join(PROVIDERS[:-1])}, or {PROVIDERS[-1]}", 400)
    return None


def _signature_data(conn, body: SignatureBody, session: SessionInfo) -> dict:
    return {
        "userId": session.user_id,
        "name": body.name.strip(),
        "message": body.message.strip(),
        "provider": body.provider,
        "profileUrl": body.profileUrl or get_profile_url(conn, session.user_id, body.provider),
        "avatarUrl": body.avatarUrl or session.image or "",
        "useRandomIcon": body.useRandomIcon,
    }


@router.get("", summary="Guest book, newest first")
@limiter.limit(rate("default"))
async def signatures_list(
    request: Request,
    conn=Depends(db),
    page: int  = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
):
    try:
        signatures, total = list_signatures(conn, page=page, limit=limit)
    except sqlite3.Error as e:
        logger.error(f"Error fetching signatures: {e}")
        return err("Failed to fetch signatures", 500)
    return {"signatures": signatures, "pagination": pagination(page, limit, total)}


@router.post("", summary="Sign the wall", status_code=201)
@limiter.limit(rate("signatures_write"))
async def signature_create(
    request: Request,
    body: SignatureBody,
    conn=Depends(db),
    session: SessionInfo = Depends(require_session),
):
    invalid = _validate(body)
    if invalid:
        return invalid

    try:
        sig_id = create_signature(conn, _signature_data(conn, body, session))
        conn.commit()
    except DuplicateSignatureError:
        return err("User has already signed the wall", 409)
    except sqlite3.Error as e:
        logger.error(f"Error creating signature: {e}")
        return err("Failed to create signature", 500)

    logger.info(f"New signature {sig_id} by user {session.user_id}")
    return JSONResponse(status_code=201, content={"id": sig_id})


@router.get("/user", summary="The signed-in visitor's signature")
@limiter.limit(rate("default"))
async def signature_for_user(
    request: Request,
    conn=Depends(db),
    session: SessionInfo = Depends(require_session),
):
    return {"signature": get_signature_by_user(conn, session.user_id)}


@router.put("/{sig_id}", summary="Edit own signature")
@limiter.limit(rate("signatures_write"))
async def signature_update(
    request: Request,
    sig_id: str,
    body: SignatureBody,
    conn=Depends(db),
    session: SessionInfo = Depends(require_session),
):
    invalid = _validate(body)
    if invalid:
        return invalid

    try:
        updated = update_signature(conn, sig_id, session.user_id, _signature_data(conn, body, session))
        conn.commit()
    except sqlite3.Error as e:
        logger.error(f"Error updating signature {sig_id}: {e}")
        return err("Failed to update signature", 500)

    if not updated:
        return err("Signature not found or unauthorized", 404)
    return {"success": True}


@router.delete("/{sig_id}", summary="Delete own signature")
@limiter.limit(rate("signatures_write"))
async def signature_delete(
    request: Request,
    sig_id: str,
    conn=Depends(db),
    session: SessionInfo = Depends(require_session),
):
    try:
        deleted = delete_signature(conn, sig_id, user_id=session.user_id)
        conn.commit()
    except sqlite3.Error as e:
        logger.error(f"Error deleting signature {sig_id}: {e}")
        return err("Failed to delete signature", 500)

    if not deleted:
        return err("Signature not found or unauthorized", 404)
    return {"success": True}
