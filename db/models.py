"""
db/models.py — Portfolio Document Store
========================================

Design principles:
  1. One table per document collection (blog posts, projects, signatures,
     photos, users/accounts/sessions)
  2. Nested document fields (tags, links, videos, photo metadata) are stored
     as JSON text and decoded by the _hydrate_* helpers
  3. Rows are returned as camelCase dicts with an "_id" key, which is the
     wire format the frontend consumes
  4. SQLite backing store - portable, zero infra

Collections:
  blog_posts  → Markdown posts; list views read the metadata projection only
  projects    → Showcase entries (github | homelab | photography | videography | other)
  signatures  → Guest-book entries, one per signed-in user
  photos      → Gallery images stored in the blob store
  users       → OAuth identities (accounts) and database sessions
  api_cache   → Cached third-party API responses (GitHub)
"""

import json
import math
import os
import re
import sqlite3
import uuid
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import Any, Optional

DB_PATH = Path(os.environ.get("PORTFOLIO_DB_PATH", Path(__file__).parent / "portfolio.db"))

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 200

PROJECT_TYPES = ("github", "homelab", "photography", "videography", "other")
PHOTO_SORTS = ("newest", "oldest", "order")

# Tables copied by the migration / check scripts, in dependency order
COLLECTION_TABLES = ("users", "accounts", "projects", "blog_posts", "signatures", "photos")


# --- SCHEMA DDL ---

SCHEMA = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

-- ── Blog posts ──────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS blog_posts (
    id              TEXT PRIMARY KEY,       -- uuid4
    title           TEXT NOT NULL,
    slug            TEXT NOT NULL UNIQUE,
    content         TEXT NOT NULL,          -- Markdown body (heavy)
    excerpt         TEXT,
    featured_image  TEXT DEFAULT '',
    tags            TEXT DEFAULT '[]',      -- JSON list
    published_at    TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    is_published    INTEGER DEFAULT 0,
    reading_time    INTEGER DEFAULT 1,      -- minutes
    views           INTEGER DEFAULT 0,
    likes           INTEGER DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_blog_published ON blog_posts(is_published, published_at);

-- ── Projects ────────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS projects (
    id              TEXT PRIMARY KEY,
    title           TEXT NOT NULL,
    slug            TEXT NOT NULL UNIQUE,
    description     TEXT NOT NULL,
    type            TEXT NOT NULL,          -- github | homelab | photography | videography | other
    images          TEXT DEFAULT '[]',      -- JSON list of URLs
    technologies    TEXT DEFAULT '[]',      -- JSON list
    links           TEXT DEFAULT '{}',      -- JSON {github, live, demo}
    videos          TEXT DEFAULT '[]',      -- JSON list of Mux video records
    orientation     TEXT,                   -- vertical | horizontal (videography)
    featured        INTEGER DEFAULT 0,
    sort_order      INTEGER DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_projects_type ON projects(type);

-- ── Signatures (guest book) ─────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS signatures (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL UNIQUE,   -- one signature per user
    name            TEXT NOT NULL,
    message         TEXT NOT NULL,
    provider        TEXT NOT NULL,          -- google | github | linkedin
    profile_url     TEXT DEFAULT '',
    avatar_url      TEXT DEFAULT '',
    use_random_icon INTEGER DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT
);
CREATE INDEX IF NOT EXISTS idx_signatures_created ON signatures(created_at);

-- ── Photos ──────────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS photos (
    id              TEXT PRIMARY KEY,
    filename        TEXT NOT NULL,          -- stored blob name
    original_name   TEXT NOT NULL,
    blob_url        TEXT NOT NULL,
    alt             TEXT NOT NULL,
    description     TEXT,
    tags            TEXT DEFAULT '[]',
    metadata        TEXT DEFAULT '{}',      -- JSON {size, width, height, format, camera, lens, settings, location}
    featured        INTEGER DEFAULT 0,
    sort_order      INTEGER DEFAULT 0,      -- photo date in ms
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

-- ── Users / OAuth accounts / database sessions ──────────────────────────────
CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    name            TEXT,
    email           TEXT,
    image           TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS accounts (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    provider            TEXT NOT NULL,
    provider_account_id TEXT NOT NULL,
    profile_url         TEXT DEFAULT '',
    created_at          TEXT NOT NULL,
    UNIQUE(provider, provider_account_id)
);

CREATE TABLE IF NOT EXISTS sessions (
    session_token   TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    provider        TEXT,
    expires_at      TEXT NOT NULL,
    created_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id);

-- ── Third-party API response cache ──────────────────────────────────────────
CREATE TABLE IF NOT EXISTS api_cache (
    url         TEXT PRIMARY KEY,
    content     TEXT,
    headers     TEXT DEFAULT '{}',          -- JSON of the response headers we reuse (Link)
    fetched_at  TEXT NOT NULL,
    status_code INTEGER
);
"""


# --- ERRORS ---

class DuplicateSlugError(Exception):
    """A blog post or project with this slug already exists."""


class DuplicateSignatureError(Exception):
    """The user has already signed the wall."""


# --- DB CONNECTION ---

def get_db(path: Path = None) -> sqlite3.Connection:
    conn = sqlite3.connect(path or DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_db(path: Path = None):
    """Initialize database schema and run any pending column migrations."""
    path = Path(path or DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_db(path)
    conn.executescript(SCHEMA)
    _migrate_columns(conn)
    conn.commit()
    conn.close()


def _migrate_columns(conn: sqlite3.Connection) -> None:
    """
    Safely add columns introduced after the first release.
    SQLite raises OperationalError when a column already exists; that case
    is the expected no-op.
    """
    migrations = [
        "ALTER TABLE signatures ADD COLUMN use_random_icon INTEGER DEFAULT 0",
        "ALTER TABLE signatures ADD COLUMN updated_at TEXT",
        "ALTER TABLE projects ADD COLUMN videos TEXT DEFAULT '[]'",
        "ALTER TABLE projects ADD COLUMN orientation TEXT",
        "ALTER TABLE api_cache ADD COLUMN headers TEXT DEFAULT '{}'",
    ]
    for stmt in migrations:
        try:
            conn.execute(stmt)
        except sqlite3.OperationalError:
            pass


# --- SHARED HELPERS ---

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def slugify(title: str) -> str:
    """'Hello, World_Post' → 'hello-world-post'."""
    slug = re.sub(r"[^\w\s-]", "", title.lower())
    return re.sub(r"[\s_-]+", "-", slug)


def reading_time(content: str) -> int:
    """Minutes at WORDS_PER_MINUTE, rounded up."""
    words = len(content.split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def default_excerpt(content: str) -> str:
    return content[:EXCERPT_LENGTH] + "..."


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
        "hasNext": page * limit < total,
        "hasPrev": page > 1,
    }


def _loads(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return default


def _tag_filter(column: str) -> str:
    return f"EXISTS (SELECT 1 FROM json_each({column}) WHERE json_each.value = ?)"


# --- BLOG POSTS ---

BLOG_METADATA_COLUMNS = (
    "id, title, slug, excerpt, featured_image, tags, published_at, "
    "updated_at, is_published, reading_time, views, likes"
)


def _hydrate_post(row: sqlite3.Row) -> dict:
    row = dict(row)
    post = {
        "_id": row["id"],
        "title": row["title"],
        "slug": row["slug"],
        "excerpt": row.get("excerpt") or "",
        "featuredImage": row.get("featured_image") or "",
        "tags": _loads(row.get("tags"), []),
        "publishedAt": row["published_at"],
        "updatedAt": row["updated_at"],
        "isPublished": bool(row["is_published"]),
        "readingTime": row["reading_time"],
        "metadata": {"views": row["views"], "likes": row["likes"]},
    }
    if "content" in row:
        post["content"] = row["content"]
    return post


def create_blog_post(conn: sqlite3.Connection, data: dict) -> str:
    """
    Insert a new blog post and return its id.
    `data` must have: title, content. Optional: slug, excerpt, featuredImage,
    tags, publishedAt. New posts always start unpublished; publishing goes
    through update_blog_post().
    """
    ts = now_iso()
    content = data["content"]
    post_id = new_id()
    try:
        conn.execute("""
            INSERT INTO blog_posts (id, title, slug, content, excerpt, featured_image, tags,
                published_at, updated_at, is_published, reading_time, views, likes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, 0, 0)
        """, (
            post_id,
            data["title"],
            data.get("slug") or slugify(data["title"]),
            content,
            data.get("excerpt") or default_excerpt(content),
            data.get("featuredImage") or "",
            json.dumps(data.get("tags") or []),
            data.get("publishedAt") or ts,
            ts,
            reading_time(content),
        ))
    except sqlite3.IntegrityError as e:
        raise DuplicateSlugError(data.get("slug") or slugify(data["title"])) from e
    return post_id


def update_blog_post(conn: sqlite3.Connection, slug: str, data: dict) -> bool:
    """Partial update. Returns False when no post has this slug."""
    fields: dict[str, Any] = {"updated_at": now_iso()}
    if data.get("title"):
        fields["title"] = data["title"]
    if data.get("content"):
        fields["content"] = data["content"]
        fields["reading_time"] = reading_time(data["content"])
    if data.get("excerpt"):
        fields["excerpt"] = data["excerpt"]
    if data.get("featuredImage") is not None:
        fields["featured_image"] = data["featuredImage"]
    if data.get("tags"):
        fields["tags"] = json.dumps(data["tags"])
    if data.get("isPublished") is not None:
        fields["is_published"] = 1 if data["isPublished"] else 0

    assignments = ", ".join(f"{col}=:{col}" for col in fields)
    cur = conn.execute(
        f"UPDATE blog_posts SET {assignments} WHERE slug=:slug",
        {**fields, "slug": slug},
    )
    return cur.rowcount > 0


def delete_blog_post(conn: sqlite3.Connection, slug: str) -> bool:
    cur = conn.execute("DELETE FROM blog_posts WHERE slug=?", (slug,))
    return cur.rowcount > 0


def get_blog_post(conn: sqlite3.Connection, slug: str,
                  published_only: bool = True) -> Optional[dict]:
    """Full post including the Markdown body."""
    sql = "SELECT * FROM blog_posts WHERE slug=?"
    if published_only:
        sql += " AND is_published=1"
    row = conn.execute(sql, (slug,)).fetchone()
    return _hydrate_post(row) if row else None


def get_blog_metadata(conn: sqlite3.Connection, slug: str) -> Optional[dict]:
    """Lightweight projection: every listing field, never the content."""
    row = conn.execute(
        f"SELECT {BLOG_METADATA_COLUMNS} FROM blog_posts WHERE slug=? AND is_published=1",
        (slug,),
    ).fetchone()
    return _hydrate_post(row) if row else None


def get_blog_content(conn: sqlite3.Connection, slug: str) -> Optional[dict]:
    row = conn.execute(
        "SELECT content, title FROM blog_posts WHERE slug=? AND is_published=1",
        (slug,),
    ).fetchone()
    if not row:
        return None
    return {"content": row["content"], "title": row["title"]}


def list_blog_posts(conn: sqlite3.Connection,
                    page: int = 1,
                    limit: int = 10,
                    tag: str = None,
                    published_only: bool = True) -> tuple[list[dict], int]:
    """
    Metadata projection of posts, newest first.
    Returns (posts, total) where total ignores pagination.
    """
    where = []
    params: list[Any] = []
    if published_only:
        where.append("is_published=1")
    if tag and tag != "All":
        where.append(_tag_filter("tags"))
        params.append(tag)
    where_sql = f"WHERE {' AND '.join(where)}" if where else ""

    total = conn.execute(f"SELECT COUNT(*) FROM blog_posts {where_sql}", params).fetchone()[0]
    rows = conn.execute(f"""
        SELECT {BLOG_METADATA_COLUMNS} FROM blog_posts {where_sql}
        ORDER BY published_at DESC
        LIMIT ? OFFSET ?
    """, [*params, limit, (page - 1) * limit]).fetchall()
    return [_hydrate_post(r) for r in rows], total


def increment_views(conn: sqlite3.Connection, slug: str) -> None:
    conn.execute("UPDATE blog_posts SET views = views + 1 WHERE slug=?", (slug,))


def list_blog_tags(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute("""
        SELECT DISTINCT json_each.value AS tag
        FROM blog_posts, json_each(blog_posts.tags)
        WHERE blog_posts.is_published=1
        ORDER BY tag
    """).fetchall()
    return [r["tag"] for r in rows]


# --- PROJECTS ---

def _hydrate_project(row: sqlite3.Row) -> dict:
    row = dict(row)
    project = {
        "_id": row["id"],
        "title": row["title"],
        "slug": row["slug"],
        "description": row["description"],
        "type": row["type"],
        "images": _loads(row.get("images"), []),
        "technologies": _loads(row.get("technologies"), []),
        "links": _loads(row.get("links"), {}),
        "videos": _loads(row.get("videos"), []),
        "featured": bool(row["featured"]),
        "order": row["sort_order"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }
    if row.get("orientation"):
        project["orientation"] = row["orientation"]
    return project


def create_project(conn: sqlite3.Connection, data: dict) -> str:
    """`data` must have: title, description, type."""
    ts = now_iso()
    project_id = new_id()
    slug = data.get("slug") or slugify(data["title"])
    try:
        conn.execute("""
            INSERT INTO projects (id, title, slug, description, type, images, technologies,
                links, videos, orientation, featured, sort_order, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            project_id,
            data["title"],
            slug,
            data["description"],
            data["type"],
            json.dumps(data.get("images") or []),
            json.dumps(data.get("technologies") or []),
            json.dumps(data.get("links") or {}),
            json.dumps(data.get("videos") or []),
            data.get("orientation"),
            1 if data.get("featured") else 0,
            int(data.get("order") or 0),
            data.get("createdAt") or ts,
            ts,
        ))
    except sqlite3.IntegrityError as e:
        raise DuplicateSlugError(slug) from e
    return project_id


_PROJECT_UPDATABLE = {
    "title": "title",
    "description": "description",
    "type": "type",
    "featured": "featured",
    "order": "sort_order",
    "orientation": "orientation",
}
_PROJECT_JSON = {"images": "images", "technologies": "technologies", "links": "links"}


def update_project(conn: sqlite3.Connection, slug: str, data: dict) -> bool:
    fields: dict[str, Any] = {"updated_at": now_iso()}
    for key, col in _PROJECT_UPDATABLE.items():
        if data.get(key) is not None:
            value = data[key]
            fields[col] = (1 if value else 0) if key == "featured" else value
    for key, col in _PROJECT_JSON.items():
        if data.get(key) is not None:
            fields[col] = json.dumps(data[key])

    assignments = ", ".join(f"{col}=:{col}" for col in fields)
    cur = conn.execute(
        f"UPDATE projects SET {assignments} WHERE slug=:slug",
        {**fields, "slug": slug},
    )
    return cur.rowcount > 0


def delete_project(conn: sqlite3.Connection, slug: str) -> bool:
    cur = conn.execute("DELETE FROM projects WHERE slug=?", (slug,))
    return cur.rowcount > 0


def get_project(conn: sqlite3.Connection, slug: str) -> Optional[dict]:
    row = conn.execute("SELECT * FROM projects WHERE slug=?", (slug,)).fetchone()
    return _hydrate_project(row) if row else None


def list_projects(conn: sqlite3.Connection,
                  project_type: str = None,
                  featured: bool = None) -> list[dict]:
    """Database projects sorted by order, then newest first."""
    where = []
    params: list[Any] = []
    if project_type:
        where.append("type=?")
        params.append(project_type)
    if featured:
        where.append("featured=1")
    where_sql = f"WHERE {' AND '.join(where)}" if where else ""
    rows = conn.execute(
        f"SELECT * FROM projects {where_sql} ORDER BY sort_order ASC, created_at DESC",
        params,
    ).fetchall()
    return [_hydrate_project(r) for r in rows]


def add_project_video(conn: sqlite3.Connection, slug: str, video: dict,
                      orientation: str = None) -> bool:
    """
    Append a Mux video record to a project.
    Returns False if the asset is already attached to this project.
    Raises KeyError when the project does not exist.
    """
    project = get_project(conn, slug)
    if not project:
        raise KeyError(slug)
    videos = project["videos"]
    if any(v.get("muxAssetId") == video["muxAssetId"] for v in videos):
        return False
    videos.append(video)

    fields = {"videos": json.dumps(videos), "updated_at": now_iso(), "slug": slug}
    sql = "UPDATE projects SET videos=:videos, updated_at=:updated_at"
    if orientation and project["type"] == "videography":
        sql += ", orientation=:orientation"
        fields["orientation"] = orientation
    conn.execute(sql + " WHERE slug=:slug", fields)
    return True


def find_project_by_asset(conn: sqlite3.Connection, asset_id: str) -> Optional[dict]:
    row = conn.execute("""
        SELECT p.* FROM projects p
        WHERE EXISTS (
            SELECT 1 FROM json_each(p.videos)
            WHERE json_extract(json_each.value, '$.muxAssetId') = ?
        )
        LIMIT 1
    """, (asset_id,)).fetchone()
    return _hydrate_project(row) if row else None


def list_assigned_asset_ids(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("""
        SELECT json_extract(json_each.value, '$.muxAssetId') AS asset_id
        FROM projects, json_each(projects.videos)
    """).fetchall()
    return {r["asset_id"] for r in rows if r["asset_id"]}


# --- SIGNATURES ---

def _hydrate_signature(row: sqlite3.Row) -> dict:
    row = dict(row)
    sig = {
        "_id": row["id"],
        "userId": row["user_id"],
        "name": row["name"],
        "message": row["message"],
        "provider": row["provider"],
        "profileUrl": row.get("profile_url") or "",
        "avatarUrl": row.get("avatar_url") or "",
        "useRandomIcon": bool(row.get("use_random_icon")),
        "createdAt": row["created_at"],
    }
    if row.get("updated_at"):
        sig["updatedAt"] = row["updated_at"]
    return sig


def create_signature(conn: sqlite3.Connection, data: dict) -> str:
    """Raises DuplicateSignatureError if this userId has already signed."""
    existing = conn.execute(
        "SELECT 1 FROM signatures WHERE user_id=?", (data["userId"],)
    ).fetchone()
    if existing:
        raise DuplicateSignatureError(data["userId"])

    sig_id = new_id()
    try:
        conn.execute("""
            INSERT INTO signatures (id, user_id, name, message, provider, profile_url,
                avatar_url, use_random_icon, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            sig_id,
            data["userId"],
            data["name"],
            data["message"],
            data["provider"],
            data.get("profileUrl") or "",
            data.get("avatarUrl") or "",
            1 if data.get("useRandomIcon") else 0,
            data.get("createdAt") or now_iso(),
        ))
    except sqlite3.IntegrityError as e:
        # Lost a race against a concurrent insert for the same user
        raise DuplicateSignatureError(data["userId"]) from e
    return sig_id


def list_signatures(conn: sqlite3.Connection,
                    page: int = 1, limit: int = 20) -> tuple[list[dict], int]:
    total = conn.execute("SELECT COUNT(*) FROM signatures").fetchone()[0]
    rows = conn.execute(
        "SELECT * FROM signatures ORDER BY created_at DESC LIMIT ? OFFSET ?",
        (limit, (page - 1) * limit),
    ).fetchall()
    return [_hydrate_signature(r) for r in rows], total


def get_signature_by_user(conn: sqlite3.Connection, user_id: str) -> Optional[dict]:
    row = conn.execute("SELECT * FROM signatures WHERE user_id=?", (user_id,)).fetchone()
    return _hydrate_signature(row) if row else None


def update_signature(conn: sqlite3.Connection, sig_id: str, user_id: str, data: dict) -> bool:
    """Owner-scoped update. Returns False if not found or owned by someone else."""
    cur = conn.execute("""
        UPDATE signatures SET name=?, message=?, provider=?, profile_url=?,
            avatar_url=?, use_random_icon=?, updated_at=?
        WHERE id=? AND user_id=?
    """, (
        data["name"],
        data["message"],
        data["provider"],
        data.get("profileUrl") or "",
        data.get("avatarUrl") or "",
        1 if data.get("useRandomIcon") else 0,
        now_iso(),
        sig_id,
        user_id,
    ))
    return cur.rowcount > 0


def delete_signature(conn: sqlite3.Connection, sig_id: str, user_id: str = None) -> bool:
    """Delete by id; when user_id is given only the owner's row matches."""
    if user_id is None:
        cur = conn.execute("DELETE FROM signatures WHERE id=?", (sig_id,))
    else:
        cur = conn.execute("DELETE FROM signatures WHERE id=? AND user_id=?", (sig_id, user_id))
    return cur.rowcount > 0


# --- PHOTOS ---

def _hydrate_photo(row: sqlite3.Row) -> dict:
    row = dict(row)
    photo = {
        "_id": row["id"],
        "filename": row["filename"],
        "originalName": row["original_name"],
        "blobUrl": row["blob_url"],
        "alt": row["alt"],
        "tags": _loads(row.get("tags"), []),
        "metadata": _loads(row.get("metadata"), {}),
        "featured": bool(row["featured"]),
        "order": row["sort_order"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }
    if row.get("description"):
        photo["description"] = row["description"]
    return photo


def insert_photo(conn: sqlite3.Connection, doc: dict) -> dict:
    photo_id = new_id()
    conn.execute("""
        INSERT INTO photos (id, filename, original_name, blob_url, alt, description, tags,
            metadata, featured, sort_order, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        photo_id,
        doc["filename"],
        doc["originalName"],
        doc["blobUrl"],
        doc["alt"],
        doc.get("description"),
        json.dumps(doc.get("tags") or []),
        json.dumps(doc.get("metadata") or {}),
        1 if doc.get("featured") else 0,
        int(doc.get("order") or 0),
        doc["createdAt"],
        doc.get("updatedAt") or now_iso(),
    ))
    return {"_id": photo_id, **doc}


def get_photo(conn: sqlite3.Connection, photo_id: str) -> Optional[dict]:
    row = conn.execute("SELECT * FROM photos WHERE id=?", (photo_id,)).fetchone()
    return _hydrate_photo(row) if row else None


_PHOTO_ORDER_BY = {
    "newest": "created_at DESC",
    "oldest": "created_at ASC",
    "order": "sort_order ASC, created_at DESC",
}


def list_photos(conn: sqlite3.Connection,
                featured: bool = None,
                tags: list[str] = None,
                limit: int = 50,
                skip: int = 0,
                sort: str = "order") -> tuple[list[dict], int]:
    where = []
    params: list[Any] = []
    if featured is not None:
        where.append("featured=?")
        params.append(1 if featured else 0)
    if tags:
        placeholders = ",".join("?" for _ in tags)
        where.append(
            f"EXISTS (SELECT 1 FROM json_each(photos.tags) WHERE json_each.value IN ({placeholders}))"
        )
        params.extend(tags)
    where_sql = f"WHERE {' AND '.join(where)}" if where else ""
    order_by = _PHOTO_ORDER_BY.get(sort, _PHOTO_ORDER_BY["order"])

    total = conn.execute(f"SELECT COUNT(*) FROM photos {where_sql}", params).fetchone()[0]
    rows = conn.execute(
        f"SELECT * FROM photos {where_sql} ORDER BY {order_by} LIMIT ? OFFSET ?",
        [*params, limit, skip],
    ).fetchall()
    return [_hydrate_photo(r) for r in rows], total


_PHOTO_UPDATABLE = {"alt": "alt", "description": "description", "featured": "featured", "order": "sort_order"}


def update_photo(conn: sqlite3.Connection, photo_id: str, updates: dict) -> Optional[dict]:
    """Apply metadata updates and return the updated photo (None if missing)."""
    fields: dict[str, Any] = {"updated_at": now_iso()}
    for key, col in _PHOTO_UPDATABLE.items():
        if key in updates:
            value = updates[key]
            fields[col] = (1 if value else 0) if key == "featured" else value
    if "tags" in updates:
        fields["tags"] = json.dumps(updates["tags"] or [])
    if "metadata" in updates:
        fields["metadata"] = json.dumps(updates["metadata"] or {})

    assignments = ", ".join(f"{col}=:{col}" for col in fields)
    cur = conn.execute(
        f"UPDATE photos SET {assignments} WHERE id=:id",
        {**fields, "id": photo_id},
    )
    if cur.rowcount == 0:
        return None
    return get_photo(conn, photo_id)


def delete_photo(conn: sqlite3.Connection, photo_id: str) -> bool:
    cur = conn.execute("DELETE FROM photos WHERE id=?", (photo_id,))
    return cur.rowcount > 0


def list_photo_tags(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute("""
        SELECT DISTINCT json_each.value AS tag
        FROM photos, json_each(photos.tags)
        ORDER BY tag
    """).fetchall()
    return [r["tag"] for r in rows]


# --- USERS / SESSIONS ---

def upsert_oauth_user(conn: sqlite3.Connection, provider: str, profile: dict) -> dict:
    """
    Link an OAuth profile to a user, creating both on first sign-in.

    `profile` keys: id (provider account id), name, email, image, profileUrl.
    Returns the user dict.
    """
    ts = now_iso()
    account = conn.execute(
        "SELECT user_id FROM accounts WHERE provider=? AND provider_account_id=?",
        (provider, str(profile["id"])),
    ).fetchone()

    if account:
        user_id = account["user_id"]
        conn.execute(
            "UPDATE users SET name=?, email=?, image=? WHERE id=?",
            (profile.get("name"), profile.get("email"), profile.get("image"), user_id),
        )
        conn.execute(
            "UPDATE accounts SET profile_url=? WHERE provider=? AND provider_account_id=?",
            (profile.get("profileUrl") or "", provider, str(profile["id"])),
        )
    else:
        user_id = new_id()
        conn.execute(
            "INSERT INTO users (id, name, email, image, created_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, profile.get("name"), profile.get("email"), profile.get("image"), ts),
        )
        conn.execute("""
            INSERT INTO accounts (id, user_id, provider, provider_account_id, profile_url, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (new_id(), user_id, provider, str(profile["id"]), profile.get("profileUrl") or "", ts))

    return get_user(conn, user_id)


def get_user(conn: sqlite3.Connection, user_id: str) -> Optional[dict]:
    row = conn.execute("SELECT * FROM users WHERE id=?", (user_id,)).fetchone()
    if not row:
        return None
    return {"id": row["id"], "name": row["name"], "email": row["email"], "image": row["image"]}


def get_profile_url(conn: sqlite3.Connection, user_id: str, provider: str) -> str:
    row = conn.execute(
        "SELECT profile_url FROM accounts WHERE user_id=? AND provider=?",
        (user_id, provider),
    ).fetchone()
    return (row["profile_url"] or "") if row else ""


def create_session(conn: sqlite3.Connection, session_token: str, user_id: str,
                   provider: str, ttl: timedelta) -> dict:
    now = datetime.now(timezone.utc)
    expires = (now + ttl).isoformat()
    conn.execute("""
        INSERT INTO sessions (session_token, user_id, provider, expires_at, created_at)
        VALUES (?, ?, ?, ?, ?)
    """, (session_token, user_id, provider, expires, now.isoformat()))
    return {"sessionToken": session_token, "userId": user_id, "provider": provider, "expires": expires}


def get_session(conn: sqlite3.Connection, session_token: str) -> Optional[dict]:
    """Return session + user, deleting the row if it has expired."""
    row = conn.execute(
        "SELECT * FROM sessions WHERE session_token=?", (session_token,)
    ).fetchone()
    if not row:
        return None
    expires = datetime.fromisoformat(row["expires_at"])
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    if datetime.now(timezone.utc) >= expires:
        conn.execute("DELETE FROM sessions WHERE session_token=?", (session_token,))
        conn.commit()
        return None
    user = get_user(conn, row["user_id"])
    if not user:
        return None
    return {
        "sessionToken": row["session_token"],
        "provider": row["provider"],
        "expires": row["expires_at"],
        "user": user,
    }


def delete_session(conn: sqlite3.Connection, session_token: str) -> bool:
    cur = conn.execute("DELETE FROM sessions WHERE session_token=?", (session_token,))
    return cur.rowcount > 0


# --- API CACHE ---

def get_cached_response(conn: sqlite3.Connection, url: str,
                        ttl_seconds: int) -> Optional[dict]:
    """Cached body + headers if younger than ttl_seconds."""
    if ttl_seconds <= 0:
        return None
    row = conn.execute("SELECT * FROM api_cache WHERE url=?", (url,)).fetchone()
    if not row:
        return None
    fetched = datetime.fromisoformat(row["fetched_at"])
    if datetime.now(timezone.utc) - fetched > timedelta(seconds=ttl_seconds):
        return None
    return {
        "content": row["content"],
        "headers": _loads(row["headers"], {}),
        "status_code": row["status_code"],
    }


def save_cached_response(conn: sqlite3.Connection, url: str, content: str,
                         headers: dict, status_code: int) -> None:
    conn.execute("""
        INSERT OR REPLACE INTO api_cache (url, content, headers, fetched_at, status_code)
        VALUES (?, ?, ?, ?, ?)
    """, (url, content, json.dumps(headers), now_iso(), status_code))
    conn.commit()


# --- MAINTENANCE (migration / inspection scripts) ---

def collection_counts(conn: sqlite3.Connection) -> dict[str, int]:
    counts = {}
    for table in COLLECTION_TABLES:
        try:
            counts[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        except sqlite3.OperationalError:
            counts[table] = -1  # table missing
    return counts


def export_collections(conn: sqlite3.Connection,
                       tables: tuple[str, ...] = COLLECTION_TABLES) -> dict[str, list[dict]]:
    """Raw row dump per table (column names as stored)."""
    data: dict[str, list[dict]] = {}
    for table in tables:
        try:
            rows = conn.execute(f"SELECT * FROM {table}").fetchall()
            data[table] = [dict(r) for r in rows]
        except sqlite3.OperationalError:
            data[table] = []
    return data


def replace_collection(conn: sqlite3.Connection, table: str, rows: list[dict]) -> int:
    """Delete every row of `table` and insert `rows`. Returns inserted count."""
    if table not in COLLECTION_TABLES:
        raise ValueError(f"Unknown collection: {table}")
    conn.execute(f"DELETE FROM {table}")
    for row in rows:
        cols = ", ".join(row.keys())
        placeholders = ", ".join(f":{c}" for c in row.keys())
        conn.execute(f"INSERT INTO {table} ({cols}) VALUES ({placeholders})", row)
    return len(rows)


def import_collections(conn: sqlite3.Connection, data: dict[str, list[dict]]) -> dict[str, int]:
    """Replace each named collection with the given rows. Caller commits."""
    counts = {}
    for table in COLLECTION_TABLES:
        if table in data:
            counts[table] = replace_collection(conn, table, data[table])
    return counts
