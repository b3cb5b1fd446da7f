"""
app/services/projects.py — Project Collection
==============================================
Merges GitHub repositories (live) with the projects stored in SQLite.

GitHub repos become read-only "github" projects; anything else (homelab,
photography, videography, other) lives in the projects table and is managed
through the admin backend.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from app.services.github import GitHubClient, GitHubError
from db.models import list_projects

log = logging.getLogger("portfolio.projects")


def _iso(value: Optional[str]) -> Optional[str]:
    """GitHub '2023-01-05T10:00:00Z' → '2023-01-05T10:00:00+00:00'."""
    if not value:
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).isoformat()
    except ValueError:
        return value


def _title_from_repo_name(name: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group().upper(), name.replace("-", " "))


def repo_to_project(repo: Dict[str, Any], index: int) -> Dict[str, Any]:
    """Convert a GitHub repository dict into the project shape."""
    topics = repo.get("topics") or []
    language = repo.get("language")
    links = {"github": repo.get("html_url")}
    if repo.get("homepage"):
        links["live"] = repo["homepage"]

    return {
        "_id": f"github-{repo['id']}",
        "title": _title_from_repo_name(repo["name"]),
        "slug": repo["name"],
        "description": repo.get("description") or "No description available",
        "type": "github",
        "images": [],
        "technologies": [language, *topics] if language else list(topics),
        "links": links,
        "videos": [],
        "featured": repo.get("stargazers_count", 0) > 0 or repo.get("forks_count", 0) > 0,
        "order": index,
        "createdAt": _iso(repo.get("created_at")),
        "updatedAt": _iso(repo.get("updated_at")),
    }


def fetch_github_projects(client: Optional[GitHubClient]) -> List[Dict[str, Any]]:
    """
    GitHub repos as projects. Repos with 'fork' in the name or without a
    description are skipped. A missing client or an API failure yields [].
    """
    if client is None:
        log.warning("GITHUB_TOKEN not configured, skipping GitHub projects")
        return []

    try:
        repos = client.list_user_repos()
    except GitHubError as e:
        log.error(f"Error fetching GitHub projects: {e}")
        return []

    kept = [r for r in repos if "fork" not in r.get("name", "") and r.get("description")]
    return [repo_to_project(repo, i) for i, repo in enumerate(kept)]


def sort_projects(projects: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Featured first, then order ascending, then newest createdAt."""
    by_date = sorted(projects, key=lambda p: p.get("createdAt") or "", reverse=True)
    return sorted(by_date, key=lambda p: (not p.get("featured"), p.get("order") or 0))


def collect_projects(conn,
                     client: Optional[GitHubClient],
                     project_type: Optional[str] = None,
                     featured: bool = False,
                     include_github: bool = True) -> List[Dict[str, Any]]:
    projects: List[Dict[str, Any]] = []

    if include_github and project_type in (None, "github"):
        projects.extend(fetch_github_projects(client))

    if project_type != "github":
        projects.extend(list_projects(conn, project_type=project_type, featured=featured))

    if project_type:
        projects = [p for p in projects if p["type"] == project_type]
    if featured:
        projects = [p for p in projects if p.get("featured")]

    return sort_projects(projects)


def find_project(conn, client: Optional[GitHubClient], slug: str) -> Optional[Dict[str, Any]]:
    """Look a slug up across GitHub and database projects."""
    for project in collect_projects(conn, client):
        if project["slug"] == slug:
            return project
    return None


def parse_github_url(url: str) -> Tuple[str, str]:
    """'https://github.com/owner/repo' → ('owner', 'repo')."""
    parsed = urlparse(url or "")
    parts = [p for p in parsed.path.split("/") if p]
    if "github.com" not in parsed.netloc or len(parts) < 2:
        raise ValueError(f"Not a GitHub repository URL: {url!r}")
    repo = parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    return parts[0], repo
