# Database layer tests
# Dependent files: db/models.py

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from db.models import (
    DuplicateSignatureError, DuplicateSlugError,
    add_project_video, collection_counts, create_blog_post, create_project,
    create_session, create_signature, default_excerpt, delete_signature,
    export_collections, find_project_by_asset, get_blog_content, get_blog_metadata,
    get_blog_post, get_cached_response, get_session, import_collections,
    increment_views, list_assigned_asset_ids, list_blog_posts, list_blog_tags,
    list_projects, pagination, reading_time, save_cached_response, slugify,
    update_blog_post, update_signature, upsert_oauth_user,
)


def _post(conn, title, content="Hello world", **extra):
    create_blog_post(conn, {"title": title, "content": content, **extra})
    update_blog_post(conn, extra.get("slug") or slugify(title), {"isPublished": True})
    conn.commit()


# --- helpers ---

def test_slugify():
    assert slugify("Hello, World_Post") == "hello-world-post"
    assert slugify("  Two   spaces ") == "-two-spaces-"


def test_reading_time_rounds_up_with_minimum_one():
    assert reading_time("") == 1
    assert reading_time("word " * 200) == 1
    assert reading_time("word " * 201) == 2


def test_default_excerpt():
    assert default_excerpt("x" * 300) == "x" * 200 + "..."


def test_pagination():
    assert pagination(1, 10, 25) == {
        "page": 1, "limit": 10, "total": 25, "pages": 3, "hasNext": True, "hasPrev": False,
    }
    last = pagination(3, 10, 25)
    assert last["hasNext"] is False
    assert last["hasPrev"] is True


# --- blog ---

def test_new_post_is_unpublished_by_default(conn):
    # isPublished on create is ignored; publishing is an update
    create_blog_post(conn, {"title": "Draft", "content": "body", "isPublished": True})
    conn.commit()
    assert get_blog_post(conn, "draft") is None
    draft = get_blog_post(conn, "draft", published_only=False)
    assert draft["isPublished"] is False
    assert draft["excerpt"] == "body..."


def test_duplicate_slug(conn):
    _post(conn, "Same Title")
    with pytest.raises(DuplicateSlugError):
        create_blog_post(conn, {"title": "Same Title", "content": "again"})


def test_metadata_projection_has_no_content(conn):
    _post(conn, "Meta Post", content="secret body")
    meta = get_blog_metadata(conn, "meta-post")
    assert "content" not in meta
    assert meta["metadata"] == {"views": 0, "likes": 0}
    assert get_blog_content(conn, "meta-post") == {"content": "secret body", "title": "Meta Post"}


def test_list_filters_by_tag_and_all_disables_filter(conn):
    _post(conn, "Python Post", tags=["python"])
    _post(conn, "Rust Post", tags=["rust"])
    posts, total = list_blog_posts(conn, tag="python")
    assert total == 1
    assert posts[0]["slug"] == "python-post"
    assert "content" not in posts[0]
    _, total_all = list_blog_posts(conn, tag="All")
    assert total_all == 2
    assert list_blog_tags(conn) == ["python", "rust"]


def test_increment_views_and_update(conn):
    _post(conn, "Counted")
    increment_views(conn, "counted")
    increment_views(conn, "counted")
    assert get_blog_post(conn, "counted")["metadata"]["views"] == 2

    assert update_blog_post(conn, "counted", {"title": "Counted v2", "tags": ["x"]}) is True
    assert update_blog_post(conn, "missing", {"title": "nope"}) is False
    post = get_blog_post(conn, "counted")
    assert post["title"] == "Counted v2"
    assert post["tags"] == ["x"]


# --- projects ---

def test_projects_sorted_by_order(conn):
    create_project(conn, {"title": "Second", "description": "d", "type": "other", "order": 2})
    create_project(conn, {"title": "First", "description": "d", "type": "other", "order": 1})
    conn.commit()
    assert [p["slug"] for p in list_projects(conn)] == ["first", "second"]


def test_add_project_video_sets_orientation_only_for_videography(conn):
    create_project(conn, {"title": "Reel", "description": "d", "type": "videography"})
    create_project(conn, {"title": "Lab", "description": "d", "type": "homelab"})
    video = {"muxAssetId": "asset1", "muxPlaybackId": "pb1"}

    assert add_project_video(conn, "reel", video, orientation="vertical") is True
    assert add_project_video(conn, "reel", video, orientation="vertical") is False
    assert add_project_video(conn, "lab", {"muxAssetId": "asset2"}, orientation="vertical") is True
    conn.commit()

    reel, lab = list_projects(conn, project_type="videography")[0], list_projects(conn, project_type="homelab")[0]
    assert reel["orientation"] == "vertical"
    assert "orientation" not in lab
    assert find_project_by_asset(conn, "asset1")["slug"] == "reel"
    assert list_assigned_asset_ids(conn) == {"asset1", "asset2"}

    with pytest.raises(KeyError):
        add_project_video(conn, "missing", video)


# --- signatures ---

def test_one_signature_per_user(conn):
    data = {"userId": "u1", "name": "Ada", "message": "hi", "provider": "github"}
    sig_id = create_signature(conn, data)
    with pytest.raises(DuplicateSignatureError):
        create_signature(conn, data)

    assert update_signature(conn, sig_id, "someone-else", data) is False
    assert update_signature(conn, sig_id, "u1", {**data, "message": "edited"}) is True
    assert delete_signature(conn, sig_id, user_id="someone-else") is False
    assert delete_signature(conn, sig_id, user_id="u1") is True


# --- users / sessions ---

def test_upsert_oauth_user_links_existing_account(conn):
    profile = {"id": "7", "name": "Ada", "email": "a@x.io", "image": None, "profileUrl": ""}
    first = upsert_oauth_user(conn, "github", profile)
    again = upsert_oauth_user(conn, "github", {**profile, "name": "Ada L."})
    assert first["id"] == again["id"]
    assert again["name"] == "Ada L."


def test_expired_session_is_deleted(conn):
    user = upsert_oauth_user(conn, "google", {"id": "g1", "name": "G"})
    create_session(conn, "live", user["id"], "google", timedelta(hours=1))
    create_session(conn, "dead", user["id"], "google", timedelta(seconds=-1))
    conn.commit()

    assert get_session(conn, "live")["user"]["id"] == user["id"]
    assert get_session(conn, "dead") is None
    assert conn.execute("SELECT COUNT(*) FROM sessions WHERE session_token='dead'").fetchone()[0] == 0


# --- api cache ---

def test_cached_response_respects_ttl(conn):
    save_cached_response(conn, "https://api/x", '{"a": 1}', {"Link": "<u>; rel=\"next\""}, 200)
    hit = get_cached_response(conn, "https://api/x", 60)
    assert hit["headers"]["Link"]
    assert get_cached_response(conn, "https://api/x", 0) is None

    stale = (datetime.now(timezone.utc) - timedelta(seconds=120)).isoformat()
    conn.execute("UPDATE api_cache SET fetched_at=? WHERE url=?", (stale, "https://api/x"))
    assert get_cached_response(conn, "https://api/x", 60) is None


# --- maintenance ---

def test_export_import_round_trip_between_databases(conn, tmp_path):
    from db.models import get_db, init_db

    _post(conn, "Exported")
    data = export_collections(conn)

    target = tmp_path / "target.db"
    init_db(target)
    other = get_db(target)
    try:
        counts = import_collections(other, {"blog_posts": data["blog_posts"]})
        other.commit()
        assert counts == {"blog_posts": 1}
        assert collection_counts(other)["blog_posts"] == 1
        assert get_blog_post(other, "exported")["title"] == "Exported"
    finally:
        other.close()


def test_collection_counts_marks_missing_tables(tmp_path):
    bare = sqlite3.connect(tmp_path / "bare.db")
    try:
        assert collection_counts(bare)["photos"] == -1
    finally:
        bare.close()
