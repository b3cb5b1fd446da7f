"""
app/services/oauth.py — OAuth 2.0 Sign-in (Google / GitHub / LinkedIn)
=======================================================================
Authorization-code flow used by the guest book:

  1. /api/auth/signin/{provider}  → redirect to provider with a signed `state`
  2. /api/auth/callback/{provider} → verify state, exchange code (httpx),
                                     fetch profile, upsert user, open session

The `state` parameter is a short-lived HS256 JWT (PyJWT) carrying the
provider, the post-login callback URL and a nonce, so no server-side state
store is needed between the two legs.
"""

import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
import jwt

log = logging.getLogger("portfolio.auth")

ALGORITHM = "HS256"
PROVIDERS = ("google", "github", "linkedin")

SESSION_SECRET_KEY = os.environ.get("SESSION_SECRET_KEY", "")
if not SESSION_SECRET_KEY:
    SESSION_SECRET_KEY = secrets.token_urlsafe(48)
    log.warning(
        "SESSION_SECRET_KEY not set, generated a random key. "
        "Pending sign-ins will fail after a restart. Set SESSION_SECRET_KEY env var for persistence."
    )


class OAuthError(Exception):
    """Provider rejected the exchange, or the callback state is invalid."""


@dataclass
class OAuthProvider:
    name: str
    client_id: str
    client_secret: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scope: str

    @property
    def enabled(self) -> bool:
        return bool(self.client_id and self.client_secret)


def load_providers(auth_config: Dict[str, Any]) -> Dict[str, OAuthProvider]:
    """Build providers from config + {NAME}_CLIENT_ID / {NAME}_CLIENT_SECRET env vars."""
    providers = {}
    for name, cfg in (auth_config.get("providers") or {}).items():
        if name not in PROVIDERS:
            log.warning(f"Ignoring unknown OAuth provider '{name}' in config")
            continue
        prefix = name.upper()
        providers[name] = OAuthProvider(
            name=name,
            client_id=os.environ.get(f"{prefix}_CLIENT_ID", "").strip(),
            client_secret=os.environ.get(f"{prefix}_CLIENT_SECRET", "").strip(),
            authorize_url=cfg["authorize_url"],
            token_url=cfg["token_url"],
            userinfo_url=cfg["userinfo_url"],
            scope=cfg.get("scope", ""),
        )
    return providers


def enabled_providers(providers: Dict[str, OAuthProvider]) -> List[str]:
    return [name for name, p in providers.items() if p.enabled]


def safe_callback_url(url: Optional[str]) -> str:
    """Only same-site relative paths are allowed as post-login targets."""
    if not url or not url.startswith("/") or url.startswith("//") or "\\" in url:
        return "/"
    return url


# --- State token ---

def create_state(provider: str, callback_url: str, ttl_minutes: int = 10,
                 secret: str = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "provider": provider,
        "callbackUrl": safe_callback_url(callback_url),
        "nonce": secrets.token_urlsafe(16),
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes),
    }
    return jwt.encode(payload, secret or SESSION_SECRET_KEY, algorithm=ALGORITHM)


def verify_state(state: str, provider: str, secret: str = None) -> Dict[str, Any]:
    """Decode the state JWT. Raises OAuthError when invalid, expired or for another provider."""
    try:
        payload = jwt.decode(state, secret or SESSION_SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise OAuthError("Sign-in attempt expired, please try again") from e
    except jwt.InvalidTokenError as e:
        raise OAuthError("Invalid OAuth state") from e
    if payload.get("provider") != provider:
        raise OAuthError("OAuth state does not match provider")
    return payload


# --- Provider round trips ---

def authorization_url(provider: OAuthProvider, redirect_uri: str, state: str) -> str:
    params = {
        "client_id": provider.client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": provider.scope,
        "state": state,
    }
    return f"{provider.authorize_url}?{urlencode(params)}"


def exchange_code(client: httpx.Client, provider: OAuthProvider,
                  code: str, redirect_uri: str) -> str:
    """Trade the authorization code for an access token."""
    try:
        resp = client.post(
            provider.token_url,
            data={
                "client_id": provider.client_id,
                "client_secret": provider.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        raise OAuthError(f"Token exchange with {provider.name} failed: {e}") from e

    if resp.status_code != 200:
        raise OAuthError(f"Token exchange with {provider.name} failed: {resp.status_code}")
    token = resp.json().get("access_token")
    if not token:
        raise OAuthError(f"{provider.name} did not return an access token")
    return token


def normalize_profile(provider: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Provider userinfo → {id, name, email, image, profileUrl}."""
    if provider == "github":
        return {
            "id": str(data["id"]),
            "name": data.get("name") or data.get("login"),
            "email": data.get("email"),
            "image": data.get("avatar_url"),
            "profileUrl": data.get("html_url") or "",
        }
    # google and linkedin both speak OpenID Connect userinfo
    return {
        "id": str(data["sub"]),
        "name": data.get("name"),
        "email": data.get("email"),
        "image": data.get("picture"),
        "profileUrl": data.get("profile") or "",
    }


def fetch_profile(client: httpx.Client, provider: OAuthProvider, access_token: str) -> Dict[str, Any]:
    try:
        resp = client.get(
            provider.userinfo_url,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        raise OAuthError(f"Profile request to {provider.name} failed: {e}") from e

    if resp.status_code != 200:
        raise OAuthError(f"Profile request to {provider.name} failed: {resp.status_code}")
    try:
        return normalize_profile(provider.name, resp.json())
    except KeyError as e:
        raise OAuthError(f"{provider.name} profile is missing {e}") from e
