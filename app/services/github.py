"""
app/services/github.py — GitHub REST API Client
================================================
Fetches repositories and per-repo statistics for the projects section.

Features:
- Automatic pagination via the Link header (fetches ALL repos)
- Commit counting from the rel="last" page number (per_page=1 trick)
- README fetching (base64-decoded)
- Response cache in the api_cache table (TTL from config.tech.yaml)

Depends on:
- requests for HTTP calls
- db.models for the api_cache table
"""

import base64
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests

from db.models import DB_PATH, get_db, get_cached_response, save_cached_response

log = logging.getLogger("portfolio.github")

API_URL = "https://api.github.com"


class GitHubError(Exception):
    """GitHub answered with an error status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubNotFoundError(GitHubError):
    """The repository or resource does not exist (HTTP 404)."""


def parse_link_header(link_header: Optional[str]) -> Dict[str, str]:
    """
    Parse a GitHub Link header into {rel: url}.

    Format: '<https://api.github.com/...&page=2>; rel="next", <...&page=5>; rel="last"'
    """
    links: Dict[str, str] = {}
    if not link_header:
        return links

    for link in link_header.split(","):
        # Each link is like: <URL>; rel="next"
        parts = link.split(";")
        if len(parts) != 2:
            continue
        url_part = parts[0].strip()
        rel_match = re.search(r'rel=["\']?([^"\']+)["\']?', parts[1])
        if rel_match and url_part.startswith("<") and url_part.endswith(">"):
            links[rel_match.group(1)] = url_part[1:-1]
    return links


def last_page_number(link_header: Optional[str]) -> int:
    """Page number of the rel="last" link, 0 if there is none."""
    last_url = parse_link_header(link_header).get("last")
    if not last_url:
        return 0
    match = re.search(r"[?&]page=(\d+)", last_url)
    return int(match.group(1)) if match else 0


class GitHubClient:
    """
    Thin GitHub REST v3 client used by the projects routes.

    Every GET is served from the api_cache table when a fresh entry exists
    (younger than cache_ttl seconds); only 200 responses are cached.
    """

    def __init__(self, token: str, config: Optional[Dict[str, Any]] = None,
                 db_path: Path = None):
        config = config or {}
        self.token = token
        self.api_url = config.get("api_url", API_URL).rstrip("/")
        self.repos_path = config.get("repos_path", "/user/repos?sort=updated&per_page=100")
        self.user_agent = config.get("user_agent", "Portfolio-App")
        self.cache_ttl = int(config.get("cache_ttl_seconds", 300))
        self.timeout = config.get("timeout", 15)
        self.db_path = db_path or DB_PATH

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": self.user_agent,
        }

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.api_url}{path}"

    def _get(self, path: str) -> Tuple[Any, Dict[str, str]]:
        """
        GET a GitHub API path. Returns (parsed JSON, selected headers).
        Raises GitHubNotFoundError on 404 and GitHubError on any other failure.
        """
        url = self._url(path)

        conn = get_db(self.db_path)
        try:
            cached = get_cached_response(conn, url, self.cache_ttl)
        finally:
            conn.close()
        if cached is not None:
            log.debug(f"Cache hit: {url}")
            return json.loads(cached["content"]), cached["headers"]

        try:
            resp = requests.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"Failed to reach GitHub API: {e}")
            raise GitHubError(f"GitHub API request failed: {e}") from e

        if resp.status_code == 404:
            raise GitHubNotFoundError(f"GitHub API error: 404 for {url}", 404)
        if resp.status_code != 200:
            log.error(f"GitHub API error: {resp.status_code} - {resp.text[:200]}")
            raise GitHubError(f"GitHub API error: {resp.status_code}", resp.status_code)

        kept_headers = {}
        if resp.headers.get("Link"):
            kept_headers["Link"] = resp.headers["Link"]

        conn = get_db(self.db_path)
        try:
            save_cached_response(conn, url, resp.text, kept_headers, resp.status_code)
        finally:
            conn.close()

        return resp.json(), kept_headers

    # ── Repositories ─────────────────────────────────────────────────────────

    def list_user_repos(self) -> List[Dict[str, Any]]:
        """
        Fetch all repositories of the authenticated user, following the
        rel="next" links. GitHub returns max 100 items per page.
        """
        all_repos: List[Dict[str, Any]] = []
        current: Optional[str] = self.repos_path
        page = 1

        while current:
            log.info(f"Fetching repos page {page} from GitHub API...")
            repos, headers = self._get(current)

            if not isinstance(repos, list):
                raise GitHubError(f"GitHub API returned non-list: {type(repos).__name__}")
            if not repos:
                break

            all_repos.extend(repos)
            current = parse_link_header(headers.get("Link")).get("next")
            page += 1

        log.info(f"Fetched {len(all_repos)} repositories")
        return all_repos

    def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        data, _ = self._get(f"/repos/{owner}/{repo}")
        return data

    def count_commits(self, owner: str, repo: str) -> int:
        """
        With per_page=1 the rel="last" page number equals the commit count.
        No Link header means everything fits on one page.
        """
        _, headers = self._get(f"/repos/{owner}/{repo}/commits?per_page=1")
        link = headers.get("Link")
        if not link:
            return 1
        return last_page_number(link)

    def count_contributors(self, owner: str, repo: str) -> int:
        try:
            data, _ = self._get(f"/repos/{owner}/{repo}/contributors?per_page=100")
        except GitHubError as e:
            log.warning(f"Could not fetch contributors for {owner}/{repo}: {e}")
            return 0
        return len(data) if isinstance(data, list) else 0

    def get_languages(self, owner: str, repo: str) -> Dict[str, int]:
        data, _ = self._get(f"/repos/{owner}/{repo}/languages")
        return data or {}

    def get_readme(self, owner: str, repo: str) -> str:
        """Decoded README text. Raises GitHubNotFoundError if the repo has none."""
        data, _ = self._get(f"/repos/{owner}/{repo}/readme")
        content = data.get("content") or ""
        return base64.b64decode(content).decode("utf-8", errors="replace")


def language_percentages(languages: Dict[str, int]) -> Dict[str, float]:
    """{lang: bytes} → {lang: percent of total}. Empty when total is 0."""
    total = sum(languages.values())
    if not total:
        return {}
    return {lang: (count / total) * 100 for lang, count in languages.items()}


def repo_stats(client: GitHubClient, owner: str, repo: str) -> Dict[str, Any]:
    """Stats payload for GET /api/projects/{slug}/stats."""
    data = client.get_repo(owner, repo)
    commits = client.count_commits(owner, repo)
    contributors = client.count_contributors(owner, repo)
    return {
        "stars": data.get("stargazers_count", 0),
        "forks": data.get("forks_count", 0),
        "watchers": data.get("watchers_count", 0),
        "language": data.get("language") or "Unknown",
        "size": data.get("size", 0),
        "openIssues": data.get("open_issues_count", 0),
        "commits": commits,
        "contributors": contributors,
        "createdAt": data.get("created_at"),
        "updatedAt": data.get("updated_at"),
        "lastCommit": data.get("pushed_at"),
    }
