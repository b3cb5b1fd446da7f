"""
app/routers/auth.py — OAuth Sign-in Endpoints
==============================================

Endpoints:
  GET  /api/auth/providers              → enabled OAuth providers
  GET  /api/auth/signin/{provider}      → redirect to the provider consent page
  GET  /api/auth/callback/{provider}    → finish sign-in, set session cookie, redirect
  GET  /api/auth/session                → {authenticated, user, provider}
  POST /api/auth/signout                → drop the session + cookie

Sessions are database rows (sessions table); the cookie holds an opaque
random token, never user data.
"""

import logging
import secrets
from datetime import timedelta
from typing import Iterator, Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from app.dependencies.access_control import (
    SESSION_COOKIE, SessionInfo, extract_session_token, get_optional_session,
)
from app.dependencies.shared import CONFIG, db, err, limiter, rate
from app.services.oauth import (
    OAuthError, authorization_url, create_state, enabled_providers, exchange_code,
    fetch_profile, load_providers, safe_callback_url, verify_state,
)
from db.models import create_session, delete_session, upsert_oauth_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

_auth_cfg = CONFIG.get("auth", {})
SESSION_TTL = timedelta(days=int(_auth_cfg.get("session_ttl_days", 30)))
STATE_TTL_MINUTES = int(_auth_cfg.get("state_ttl_minutes", 10))

PROVIDERS = load_providers(_auth_cfg)


def http_client() -> Iterator[httpx.Client]:
    """Outbound client for the token exchange; overridden in tests."""
    with httpx.Client(timeout=15) as client:
        yield client


def _redirect_uri(request: Request, provider: str) -> str:
    return str(request.url_for("auth_callback", provider=provider))


@router.get("/providers", summary="Enabled OAuth providers")
async def providers():
    return {"providers": enabled_providers(PROVIDERS)}


@router.get("/signin/{provider}", summary="Start OAuth sign-in")
@limiter.limit(rate("auth"))
async def signin(
    request: Request,
    provider: str,
    callbackUrl: Optional[str] = Query("/"),
):
    oauth_provider = PROVIDERS.get(provider)
    if not oauth_provider or not oauth_provider.enabled:
        return err(f"Unknown or disabled provider: {provider}", 400)

    state = create_state(provider, callbackUrl, ttl_minutes=STATE_TTL_MINUTES)
    url = authorization_url(oauth_provider, _redirect_uri(request, provider), state)
    return RedirectResponse(url, status_code=302)


@router.get("/callback/{provider}", summary="OAuth callback", name="auth_callback")
@limiter.limit(rate("auth"))
def callback(
    request: Request,
    provider: str,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    conn=Depends(db),
    client: httpx.Client = Depends(http_client),
):
    oauth_provider = PROVIDERS.get(provider)
    if not oauth_provider or not oauth_provider.enabled:
        return err(f"Unknown or disabled provider: {provider}", 400)
    if error:
        logger.warning(f"{provider} sign-in denied: {error}")
        return err(f"Sign-in was cancelled: {error}", 400)
    if not code or not state:
        return err("Missing code or state", 400)

    try:
        payload = verify_state(state, provider)
        access_token = exchange_code(client, oauth_provider, code, _redirect_uri(request, provider))
        profile = fetch_profile(client, oauth_provider, access_token)
    except OAuthError as e:
        logger.warning(f"OAuth callback for {provider} failed: {e}")
        return err(str(e), 400)

    user = upsert_oauth_user(conn, provider, profile)
    session_token = secrets.token_urlsafe(32)
    create_session(conn, session_token, user["id"], provider, SESSION_TTL)
    conn.commit()
    logger.info(f"User {user['id']} signed in with {provider}")

    response = RedirectResponse(safe_callback_url(payload.get("callbackUrl")), status_code=302)
    response.set_cookie(
        SESSION_COOKIE,
        session_token,
        max_age=int(SESSION_TTL.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
    )
    return response


@router.get("/session", summary="Current visitor session")
async def current_session(session: Optional[SessionInfo] = Depends(get_optional_session)):
    if session is None:
        return {"authenticated": False, "user": None}
    return {
        "authenticated": True,
        "user": session.user_dict(),
        "provider": session.provider,
    }


@router.post("/signout", summary="Sign out")
async def signout(request: Request, conn=Depends(db)):
    token = extract_session_token(request)
    if token:
        delete_session(conn, token)
        conn.commit()
    response = JSONResponse({"success": True})
    response.delete_cookie(SESSION_COOKIE)
    return response
