# Shared test setup
# Env vars must be set BEFORE any app/admin/db module is imported: the DB path,
# blob root, OAuth clients and admin credentials are read at import time.

import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="portfolio-tests-"))

os.environ["PORTFOLIO_DB_PATH"] = str(_TMP / "portfolio.db")
os.environ["BLOB_STORAGE_DIR"] = str(_TMP / "blobs")
os.environ["SESSION_SECRET_KEY"] = "test-session-secret"
os.environ["GITHUB_CLIENT_ID"] = "gh-client-id"
os.environ["GITHUB_CLIENT_SECRET"] = "gh-client-secret"
os.environ["ENABLE_ADMIN"] = "true"
os.environ.setdefault("ADMIN_USERNAME", "testadmin")
os.environ.setdefault("ADMIN_PASSWORD", "testpass123")
os.environ.setdefault("ADMIN_SECRET_KEY", "test-secret-key-for-testing-only")
for _name in ("GITHUB_TOKEN", "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET",
              "LINKEDIN_CLIENT_ID", "LINKEDIN_CLIENT_SECRET",
              "MUX_TOKEN_ID", "MUX_TOKEN_SECRET"):
    os.environ.pop(_name, None)

import secrets
from datetime import timedelta

import pytest
from starlette.testclient import TestClient

from db.models import DB_PATH, create_session, get_db, init_db, upsert_oauth_user

# Children before parents (foreign keys)
_TABLES = ("sessions", "accounts", "signatures", "users", "blog_posts", "projects", "photos", "api_cache")


@pytest.fixture(autouse=True)
def clean_db():
    init_db(DB_PATH)
    conn = get_db(DB_PATH)
    try:
        for table in _TABLES:
            conn.execute(f"DELETE FROM {table}")
        conn.commit()
    finally:
        conn.close()
    yield


@pytest.fixture
def conn():
    c = get_db(DB_PATH)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def client():
    from app.main import app
    from app.dependencies.shared import limiter

    limiter.enabled = False
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_session(conn):
    """Create a signed-in visitor and return (user, Authorization header)."""
    def _make(provider="github", account_id="42", name="Ada", email="ada@example.com",
              image="https://avatars.example.com/ada.png", profile_url="https://github.com/ada"):
        user = upsert_oauth_user(conn, provider, {
            "id": account_id,
            "name": name,
            "email": email,
            "image": image,
            "profileUrl": profile_url,
        })
        token = secrets.token_urlsafe(16)
        create_session(conn, token, user["id"], provider, timedelta(days=1))
        conn.commit()
        return user, {"Authorization": f"Bearer {token}"}
    return _make
