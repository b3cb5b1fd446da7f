"""
app/routers/projects.py — Project Showcase Endpoints
=====================================================

Endpoints:
  GET /api/projects                    → GitHub + database projects (filterable)
  GET /api/projects/{slug}             → single project
  GET /api/projects/{slug}/stats       → live GitHub repository stats
  GET /api/projects/{slug}/languages   → language share in percent
  GET /api/projects/{slug}/readme      → README rendered to HTML
  GET /api/projects/{slug}/videos      → attached Mux videos with playback URLs

GitHub-backed routes answer 500 when GITHUB_TOKEN is unset and 404 when the
project has no GitHub link.
"""

import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from app.dependencies.shared import CONFIG, cache_control, cached_json, db, err, limiter, rate
from app.services.github import (
    GitHubClient, GitHubError, GitHubNotFoundError, language_percentages, repo_stats,
)
from app.services.markdown_render import render_markdown
from app.services.mux import enrich_video
from app.services.projects import collect_projects, find_project, parse_github_url
from config_loader import env_secret
from db.models import PROJECT_TYPES, get_project

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])


def github_client() -> Optional[GitHubClient]:
    """GitHubClient when GITHUB_TOKEN is configured, else None."""
    token = env_secret("GITHUB_TOKEN")
    if not token:
        return None
    return GitHubClient(token, CONFIG.get("github", {}))


def _resolve_repo(conn, client: Optional[GitHubClient], slug: str) -> Tuple[Optional[Tuple[str, str]], Optional[JSONResponse]]:
    """(owner, repo) for a project slug, or an error response."""
    if client is None:
        return None, err("GitHub token not configured", 500)

    project = find_project(conn, client, slug)
    github_url = (project or {}).get("links", {}).get("github")
    if not github_url:
        return None, err("Project or GitHub link not found", 404)
    try:
        return parse_github_url(github_url), None
    except ValueError:
        return None, err("Project or GitHub link not found", 404)


@router.get("", summary="All projects")
@limiter.limit(rate("default"))
def projects_list(
    request: Request,
    conn=Depends(db),
    client: Optional[GitHubClient] = Depends(github_client),
    type: Optional[str]  = Query(None, description="github | homelab | photography | videography | other"),
    featured: Optional[str] = Query(None, description="'true' to only return featured projects"),
    includeGithub: Optional[str] = Query(None, description="'false' to skip GitHub repos"),
):
    if type and type not in PROJECT_TYPES:
        return err(f"Invalid project type. Must be one of: {', '.join(PROJECT_TYPES)}", 400)
    projects = collect_projects(
        conn,
        client,
        project_type=type,
        featured=featured == "true",
        include_github=includeGithub != "false",
    )
    return {"projects": projects}


@router.get("/{slug}", summary="Single project")
@limiter.limit(rate("default"))
def project_detail(
    request: Request,
    slug: str,
    conn=Depends(db),
    client: Optional[GitHubClient] = Depends(github_client),
):
    project = find_project(conn, client, slug)
    if not project:
        return err("Project not found", 404)
    return project


@router.get("/{slug}/stats", summary="Live GitHub stats")
@limiter.limit(rate("default"))
def project_stats(
    request: Request,
    slug: str,
    conn=Depends(db),
    client: Optional[GitHubClient] = Depends(github_client),
):
    repo, error = _resolve_repo(conn, client, slug)
    if error:
        return error
    try:
        stats = repo_stats(client, *repo)
    except GitHubError as e:
        logger.error(f"Error fetching GitHub stats for {slug}: {e}")
        return err("Failed to fetch GitHub stats", 500)
    return cached_json(stats, "github_stats")


@router.get("/{slug}/languages", summary="Language share in percent")
@limiter.limit(rate("default"))
def project_languages(
    request: Request,
    slug: str,
    conn=Depends(db),
    client: Optional[GitHubClient] = Depends(github_client),
):
    repo, error = _resolve_repo(conn, client, slug)
    if error:
        return error
    try:
        languages = client.get_languages(*repo)
    except GitHubError as e:
        logger.error(f"Error fetching GitHub languages for {slug}: {e}")
        return err("Failed to fetch GitHub languages", 500)
    return cached_json(language_percentages(languages), "github_languages")


@router.get("/{slug}/readme", summary="README as HTML")
@limiter.limit(rate("default"))
def project_readme(
    request: Request,
    slug: str,
    conn=Depends(db),
    client: Optional[GitHubClient] = Depends(github_client),
):
    repo, error = _resolve_repo(conn, client, slug)
    if error:
        return error
    try:
        readme = client.get_readme(*repo)
    except GitHubNotFoundError:
        return PlainTextResponse("README not found", status_code=404)
    except GitHubError as e:
        logger.error(f"Error fetching README for {slug}: {e}")
        return err("Failed to fetch README", 500)
    return HTMLResponse(render_markdown(readme), headers=cache_control("github_readme"))


@router.get("/{slug}/videos", summary="Project videos with playback URLs")
@limiter.limit(rate("default"))
async def project_videos(request: Request, slug: str, conn=Depends(db)):
    project = get_project(conn, slug)
    if not project:
        return err("Project not found", 404)
    return {
        "videos": [enrich_video(v) for v in project["videos"]],
        "orientation": project.get("orientation"),
    }
