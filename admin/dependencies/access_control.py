# Admin Access Control
# Purpose: Credential check and JWT issue/verify for the portfolio admin app
# Main functions: authenticate_admin(), create_access_token(), get_current_admin_user()
# Dependent files: admin/main.py, admin/routers/admin.py

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from typing import Optional
import logging
import os
import secrets
from datetime import datetime, timedelta, timezone
import jwt

logger = logging.getLogger(__name__)

# --- Configuration from environment variables ---

SECRET_KEY = os.environ.get("ADMIN_SECRET_KEY", "")
if not SECRET_KEY:
    SECRET_KEY = secrets.token_urlsafe(48)
    logger.warning(
        "ADMIN_SECRET_KEY not set, generated a random key. "
        "Admin logins will not survive a restart."
    )

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ADMIN_TOKEN_EXPIRE_MINUTES", "60"))
TOKEN_ROLE = "portfolio-admin"

ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/admin/login", auto_error=True)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def authenticate_admin(username: str, password: str) -> bool:
    """True when username/password match ADMIN_USERNAME / ADMIN_PASSWORD."""
    if not ADMIN_PASSWORD:
        logger.error("ADMIN_PASSWORD env var not set, admin login disabled")
        return False
    user_ok = secrets.compare_digest(username.encode(), ADMIN_USERNAME.encode())
    pass_ok = secrets.compare_digest(password.encode(), ADMIN_PASSWORD.encode())
    if not (user_ok and pass_ok):
        logger.warning(f"Failed admin login for '{username}'")
    return user_ok and pass_ok


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    issued = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": TOKEN_ROLE,
        "iat": issued,
        "exp": issued + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verified admin claims; raises HTTP 401 for expired, forged or non-admin tokens."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Admin token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid or expired admin token")

    if not payload.get("sub") or payload.get("role") != TOKEN_ROLE:
        raise _unauthorized("Invalid or expired admin token")
    return payload


def get_current_admin_user(token: str = Depends(oauth2_scheme)) -> dict:
    """FastAPI dependency: the admin identity carried by the bearer JWT."""
    payload = decode_access_token(token)
    return {"username": payload["sub"], "role": payload["role"]}
