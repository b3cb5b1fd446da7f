"""
app/dependencies/access_control.py — Visitor Session Access Control
====================================================================

Implements the two access levels of the public API:

  - Anonymous:     No session → read-only routes (blog, projects, signature list).
  - Signed in:     Valid database session → guest-book writes (/api/signatures).

Session lookup (checked in order):
  1. session_token cookie            (set by /api/auth/callback/{provider})
  2. Authorization: Bearer <token>   header (API clients, tests)

Usage
-----
Protect an endpoint that requires a signed-in visitor::

    from app.dependencies.access_control import require_session, SessionInfo

    @router.post("/api/signatures")
    async def create(..., session: SessionInfo = Depends(require_session)):
        ...

Optionally inspect the session without hard-blocking::

    from app.dependencies.access_control import get_optional_session

    @router.get("/api/auth/session")
    async def current(session: SessionInfo | None = Depends(get_optional_session)):
        ...
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from app.dependencies.shared import CONFIG
from db.models import get_db, get_session, DB_PATH

logger = logging.getLogger(__name__)

SESSION_COOKIE = CONFIG.get("auth", {}).get("session_cookie", "session_token")


# ── Data model ───────────────────────────────────────────────────────────────

@dataclass
class SessionInfo:
    """Validated visitor session returned by access dependencies."""
    session_token: str
    user_id:       str
    provider:      str
    name:          Optional[str] = None
    email:         Optional[str] = None
    image:         Optional[str] = None

    def user_dict(self) -> dict:
        return {"id": self.user_id, "name": self.name, "email": self.email, "image": self.image}


# ── Internal DB helpers ───────────────────────────────────────────────────────

def _get_db_conn():
    """Scoped DB connection for access-control dependency."""
    conn = get_db(DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


def _validate_session(conn, session_token: str) -> Optional[SessionInfo]:
    """
    Look up *session_token* in the ``sessions`` table.
    Returns ``None`` when unknown or expired (expired rows are deleted).
    """
    session = get_session(conn, session_token)
    if not session:
        return None
    user = session["user"]
    return SessionInfo(
        session_token=session["sessionToken"],
        user_id=user["id"],
        provider=session.get("provider") or "unknown",
        name=user.get("name"),
        email=user.get("email"),
        image=user.get("image"),
    )


# ── Token extraction ──────────────────────────────────────────────────────────

def extract_session_token(request: Request) -> Optional[str]:
    """
    Pull the raw session token from the request.

    Priority:
      1. ``session_token`` cookie
      2. ``Authorization: Bearer <token>`` header
    """
    cookie = request.cookies.get(SESSION_COOKIE, "").strip()
    if cookie:
        return cookie

    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        candidate = auth[len("Bearer "):].strip()
        if candidate:
            return candidate
    return None


# ── Dependency factory ────────────────────────────────────────────────────────

class _SessionGate:
    """
    Callable FastAPI dependency that resolves the visitor session.

    Parameters
    ----------
    require_session:
        ``True``  → raises HTTP 401 when no valid session exists.
        ``False`` → returns ``None`` for anonymous visitors.
    """

    def __init__(self, require_session: bool) -> None:
        self._require = require_session

    def __call__(
        self,
        request: Request,
        conn=Depends(_get_db_conn),
    ) -> Optional[SessionInfo]:
        raw_token = extract_session_token(request)
        session = _validate_session(conn, raw_token) if raw_token else None

        if session is None and self._require:
            if raw_token:
                logger.info("Rejected expired or unknown session on %s", request.url.path)
            raise HTTPException(status_code=401, detail="Authentication required")
        return session


# ── Public dependency instances ───────────────────────────────────────────────

require_session = _SessionGate(require_session=True)
"""
Dependency: raises HTTP 401 if no valid session is present.
Inject as ``session: SessionInfo = Depends(require_session)``.
"""

get_optional_session = _SessionGate(require_session=False)
"""
Dependency: returns ``None`` (anonymous) or ``SessionInfo``.
Inject as ``session: SessionInfo | None = Depends(get_optional_session)``.
"""
