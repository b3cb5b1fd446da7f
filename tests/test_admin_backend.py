# Admin Backend Tests
# Tests for the admin backend with JWT authentication
# Dependent files: admin/main.py, admin/routers/admin.py, admin/dependencies/access_control.py
#
# Admin credentials come from tests/conftest.py (testadmin / testpass123).

import asyncio
from datetime import timedelta

import pytest
from starlette.testclient import TestClient

from admin.dependencies.access_control import create_access_token
from admin.main import create_admin_app
from db.models import create_blog_post, create_project, create_signature, get_project, upsert_oauth_user

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


def _on_event_loop():
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


@pytest.fixture
def client():
    app = create_admin_app()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_header(client):
    """Login and return Authorization header."""
    resp = client.post("/admin/login", json={
        "username": "testadmin",
        "password": "testpass123",
    })
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


# --- Auth tests ---

def test_login_success(client):
    resp = client.post("/admin/login", json={
        "username": "testadmin",
        "password": "testpass123",
    })
    assert resp.status_code == 200
    data = resp.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


def test_login_wrong_password(client):
    resp = client.post("/admin/login", json={
        "username": "testadmin",
        "password": "wrongpass",
    })
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid admin credentials"


def test_endpoint_requires_auth(client):
    """Endpoints should return 401 without a valid JWT."""
    assert client.get("/admin/blog").status_code == 401
    assert client.get("/admin/db/stats", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_expired_token_rejected(client):
    token = create_access_token("testadmin", expires_delta=timedelta(minutes=-1))
    resp = client.get("/admin/blog", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Admin token has expired"


# --- Root (no auth, for healthcheck) ---

def test_admin_root(client):
    resp = client.get("/admin/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "active"


# --- Blog ---

def test_blog_crud(client, auth_header):
    resp = client.post("/admin/blog", headers=auth_header, json={
        "title": "Draft Post",
        "content": "Hello world",
        "tags": ["meta"],
    })
    assert resp.status_code == 201
    assert resp.json()["slug"] == "draft-post"

    # Drafts are visible to the admin listing
    listing = client.get("/admin/blog", headers=auth_header).json()
    assert listing["total"] == 1
    assert listing["posts"][0]["isPublished"] is False

    resp = client.put("/admin/blog/draft-post", headers=auth_header, json={"isPublished": True})
    assert resp.status_code == 200
    listing = client.get("/admin/blog", headers=auth_header).json()
    assert listing["posts"][0]["isPublished"] is True

    assert client.delete("/admin/blog/draft-post", headers=auth_header).status_code == 200
    assert client.delete("/admin/blog/draft-post", headers=auth_header).status_code == 404


def test_blog_create_always_starts_as_draft(client, auth_header):
    resp = client.post("/admin/blog", headers=auth_header, json={
        "title": "Eager", "content": "x", "isPublished": True,
    })
    assert resp.status_code == 201
    assert client.get("/admin/blog", headers=auth_header).json()["posts"][0]["isPublished"] is False


def test_blog_validation(client, auth_header):
    resp = client.post("/admin/blog", headers=auth_header, json={"title": "No body"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Title and content are required"

    assert client.put("/admin/blog/missing", headers=auth_header, json={"title": "x"}).status_code == 404


def test_blog_duplicate_slug(client, auth_header, conn):
    create_blog_post(conn, {"title": "Taken", "content": "x"})
    conn.commit()
    resp = client.post("/admin/blog", headers=auth_header, json={"title": "Taken", "content": "y"})
    assert resp.status_code == 409


# --- Projects ---

def test_project_crud(client, auth_header):
    resp = client.post("/admin/projects", headers=auth_header, json={
        "title": "Reel 2024",
        "description": "Short films",
        "type": "videography",
    })
    assert resp.status_code == 201
    slug = resp.json()["slug"]
    assert slug == "reel-2024"

    resp = client.put(f"/admin/projects/{slug}", headers=auth_header, json={"featured": True, "order": 3})
    assert resp.status_code == 200

    projects = client.get("/admin/projects", headers=auth_header, params={"type": "videography"}).json()
    assert projects["count"] == 1
    assert projects["projects"][0]["featured"] is True
    assert projects["projects"][0]["order"] == 3

    assert client.delete(f"/admin/projects/{slug}", headers=auth_header).status_code == 200
    assert client.delete(f"/admin/projects/{slug}", headers=auth_header).status_code == 404


def test_project_validation(client, auth_header):
    resp = client.post("/admin/projects", headers=auth_header, json={"title": "x"})
    assert resp.status_code == 400
    resp = client.post("/admin/projects", headers=auth_header,
                       json={"title": "x", "description": "d", "type": "github"})
    assert resp.status_code == 201
    resp = client.post("/admin/projects", headers=auth_header,
                       json={"title": "y", "description": "d", "type": "painting"})
    assert resp.status_code == 400
    assert "Invalid project type" in resp.json()["detail"]


# --- Signature moderation ---

def test_moderate_signature(client, auth_header, conn):
    user = upsert_oauth_user(conn, "google", {"id": "g1", "name": "Spammer"})
    sig_id = create_signature(conn, {
        "userId": user["id"], "name": "Spammer", "message": "buy now", "provider": "google",
    })
    conn.commit()

    resp = client.delete(f"/admin/signatures/{sig_id}", headers=auth_header)
    assert resp.status_code == 200
    assert client.delete(f"/admin/signatures/{sig_id}", headers=auth_header).status_code == 404


# --- Photos ---

def test_photo_upload_update_delete(client, auth_header):
    resp = client.post(
        "/admin/photos/upload",
        headers=auth_header,
        files={"file": ("street_night-Neon_Alley-03142024.jpg", JPEG, "image/jpeg")},
        data={"tags": "film, night", "camera": "Leica M6", "iso": "400", "lat": "52.5", "lng": "13.4"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    photo = body["photo"]
    assert photo["alt"] == "Neon Alley"
    assert photo["tags"] == ["street", "night", "film"]
    assert photo["metadata"]["settings"]["iso"] == 400
    assert photo["metadata"]["location"]["coordinates"] == {"lat": 52.5, "lng": 13.4}

    resp = client.put("/admin/photos", headers=auth_header,
                      json={"photoId": photo["_id"], "featured": True, "alt": "Neon"})
    assert resp.status_code == 200
    assert resp.json()["photo"]["featured"] is True
    assert resp.json()["photo"]["alt"] == "Neon"

    resp = client.delete("/admin/photos", headers=auth_header, params={"id": photo["_id"]})
    assert resp.json() == {"success": True, "message": "Photo deleted successfully"}
    resp = client.delete("/admin/photos", headers=auth_header, params={"id": photo["_id"]})
    assert resp.status_code == 404


def test_photo_upload_rejects_bad_input(client, auth_header):
    resp = client.post("/admin/photos/upload", headers=auth_header, data={"alt": "nothing"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "No file provided"}

    resp = client.post("/admin/photos/upload", headers=auth_header,
                       files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400
    assert "not allowed" in resp.json()["error"]


def test_photo_upload_rejects_bad_coordinates(client, auth_header):
    resp = client.post("/admin/photos/upload", headers=auth_header,
                       files={"file": ("a.jpg", JPEG, "image/jpeg")},
                       data={"lat": "north", "lng": "13.4"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid coordinates"}
    assert client.get("/admin/db/stats", headers=auth_header).json()["collections"]["photos"] == 0


def test_photo_upload_disabled(client, auth_header, monkeypatch):
    monkeypatch.setenv("ENABLE_ADMIN", "false")
    resp = client.post("/admin/photos/upload", headers=auth_header,
                       files={"file": ("a.jpg", JPEG, "image/jpeg")})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Photo upload is disabled"


def test_photo_update_errors(client, auth_header):
    assert client.put("/admin/photos", headers=auth_header, json={"alt": "x"}).status_code == 400
    resp = client.put("/admin/photos", headers=auth_header, json={"photoId": "missing", "alt": "x"})
    assert resp.status_code == 404
    assert client.delete("/admin/photos", headers=auth_header).status_code == 400


# --- Mux videos ---

class FakeMuxResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


MUX_ASSET = {
    "id": "asset1",
    "status": "ready",
    "playback_ids": [{"id": "play1", "policy": "public"}],
    "duration": 30.0,
    "aspect_ratio": "9:16",
}


@pytest.fixture
def mux(monkeypatch):
    monkeypatch.setenv("MUX_TOKEN_ID", "mux-id")
    monkeypatch.setenv("MUX_TOKEN_SECRET", "mux-secret")
    loop_flags = []

    def fake_get(url, auth=None, params=None, timeout=None):
        loop_flags.append(_on_event_loop())
        if url.endswith("/video/v1/assets"):
            return FakeMuxResponse(200, {"data": [MUX_ASSET]})
        if url.endswith("/video/v1/assets/asset1"):
            return FakeMuxResponse(200, {"data": MUX_ASSET})
        return FakeMuxResponse(404, {"error": "not found"})

    monkeypatch.setattr("app.services.mux.requests.get", fake_get)
    return loop_flags


def test_video_assets_without_credentials(client, auth_header):
    resp = client.get("/admin/videos/assets", headers=auth_header)
    assert resp.status_code == 503


def test_video_assign_flow(client, auth_header, conn, mux):
    create_project(conn, {"title": "Shorts", "description": "d", "type": "videography"})
    conn.commit()

    assets = client.get("/admin/videos/assets", headers=auth_header).json()
    assert assets["count"] == 1
    assert assets["assets"][0]["assigned"] is False
    assert assets["assets"][0]["playback_id"] == "play1"

    payload = {"assetId": "asset1", "projectSlug": "shorts", "orientation": "vertical"}
    resp = client.post("/admin/videos/assign", headers=auth_header, json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Video assigned successfully"
    assert data["project"] == {"slug": "shorts", "videoCount": 1, "orientation": "vertical"}

    again = client.post("/admin/videos/assign", headers=auth_header, json=payload).json()
    assert again["message"] == "Video already assigned to this project"
    assert again["project"]["videoCount"] == 1

    assets = client.get("/admin/videos/assets", headers=auth_header).json()
    assert assets["assets"][0]["assigned"] is True
    assert get_project(conn, "shorts")["videos"][0]["muxPlaybackId"] == "play1"


def test_mux_calls_run_off_the_event_loop(client, auth_header, conn, mux):
    create_project(conn, {"title": "Loop", "description": "d", "type": "videography"})
    conn.commit()
    client.get("/admin/videos/assets", headers=auth_header)
    client.post("/admin/videos/assign", headers=auth_header,
                json={"assetId": "asset1", "projectSlug": "loop"})
    assert mux
    assert not any(mux)


def test_video_assign_errors(client, auth_header, mux):
    resp = client.post("/admin/videos/assign", headers=auth_header,
                       json={"assetId": "asset1", "projectSlug": "nope", "orientation": "diagonal"})
    assert resp.status_code == 400

    resp = client.post("/admin/videos/assign", headers=auth_header,
                       json={"assetId": "asset1", "projectSlug": "nope"})
    assert resp.status_code == 404

    resp = client.post("/admin/videos/assign", headers=auth_header,
                       json={"assetId": "unknown", "projectSlug": "nope"})
    assert resp.status_code == 400


# --- Database ---

def test_db_stats(client, auth_header, conn):
    create_blog_post(conn, {"title": "One", "content": "x"})
    create_project(conn, {"title": "P", "description": "d", "type": "other"})
    conn.commit()

    data = client.get("/admin/db/stats", headers=auth_header).json()
    assert data["collections"]["blog_posts"] == 1
    assert data["collections"]["projects"] == 1
    assert data["collections"]["signatures"] == 0
    assert data["total"] == 2
