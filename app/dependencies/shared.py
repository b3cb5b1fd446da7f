"""
app/dependencies/shared.py — Shared Route Plumbing
===================================================
Config, rate limiter, DB connection dependency and response helpers used
by every public router.
"""

import hashlib
from pathlib import Path
from typing import Any, Dict

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from config_loader import load_config
from db.models import get_db, DB_PATH

ROOT = Path(__file__).resolve().parent.parent.parent

CONFIG = load_config(root=ROOT)

_rate_cfg: Dict[str, str] = CONFIG.get("rate_limits", {})
DEFAULT_RATE = _rate_cfg.get("default", "120/minute")


def rate(name: str) -> str:
    """Configured limit string for a route group (falls back to the default)."""
    return _rate_cfg.get(name, DEFAULT_RATE)


def _rate_limit_key(request: Request) -> str:
    """Use session/bearer hash as rate limit key for signed-in requests, IP otherwise."""
    token = request.cookies.get(CONFIG.get("auth", {}).get("session_cookie", "session_token"), "")
    auth_header = request.headers.get("Authorization", "")
    if not token and auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
    if token:
        return f"session:{hashlib.sha256(token.encode()).hexdigest()[:16]}"
    return get_remote_address(request)


limiter = Limiter(key_func=_rate_limit_key, default_limits=[DEFAULT_RATE])


def db():
    conn = get_db(DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


def err(msg: str, code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=code, content={"error": msg})


def cached_json(content: Any, cache_key: str, status_code: int = 200) -> JSONResponse:
    """JSONResponse carrying the Cache-Control value configured under cache_headers."""
    headers = {}
    value = CONFIG.get("cache_headers", {}).get(cache_key)
    if value:
        headers["Cache-Control"] = value
    return JSONResponse(content=content, status_code=status_code, headers=headers)


def cache_control(cache_key: str) -> Dict[str, str]:
    value = CONFIG.get("cache_headers", {}).get(cache_key)
    return {"Cache-Control": value} if value else {}
