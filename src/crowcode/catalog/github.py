"""GitHub client for live repository stats.

Catalog entries link to GitHub repositories; this client enriches them with
current star/fork counts and powers the trending-MCP search. Lookups are
best effort: any failure yields ``None`` (or an empty list) so listings still
render from the bundled data.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

import requests
import structlog

from .models import MCPServer

log = structlog.get_logger()

GITHUB_API_BASE = "https://api.github.com"
CACHE_TTL_S = 5 * 60

_REPO_RE = re.compile(r"github\.com/([^/]+)/([^/]+)")


@dataclass
class RepoStats:
    """Subset of the GitHub repository payload shown in item detail."""
    stars: int
    forks: int
    description: str = ""
    updated_at: str = ""
    open_issues: int = 0
    language: Optional[str] = None
    topics: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "RepoStats":
        return cls(
            stars=data.get("stargazers_count", 0),
            forks=data.get("forks_count", 0),
            description=data.get("description") or "",
            updated_at=data.get("updated_at", ""),
            open_issues=data.get("open_issues_count", 0),
            language=data.get("language"),
            topics=data.get("topics") or [],
        )


@dataclass
class RepoSearchHit:
    name: str
    url: str
    stars: int
    description: str = ""


def parse_github_url(url: str) -> Optional[Tuple[str, str]]:
    """Extract ``(owner, repo)`` from a GitHub URL."""
    match = _REPO_RE.search(url or "")
    if not match:
        return None
    repo = match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return match.group(1), repo


def format_stars(stars: int) -> str:
    """Compact star count: 950, 1.2k, 3.4M."""
    if stars >= 1_000_000:
        return f"{stars / 1_000_000:.1f}M"
    if stars >= 1000:
        return f"{stars / 1000:.1f}k"
    return str(stars)


class GitHubClient:
    """Thin, cached wrapper over the GitHub REST API."""

    def __init__(
        self,
        token: str = "",
        base_url: str = GITHUB_API_BASE,
        timeout_s: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._clock = clock
        self._cache: Dict[str, Tuple[float, RepoStats]] = {}
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/vnd.github.v3+json"
        if token:
            self._session.headers["Authorization"] = f"token {token}"

    def _get(self, path: str, **kwargs) -> Optional[dict]:
        try:
            response = self._session.get(f"{self.base_url}{path}", timeout=self.timeout_s, **kwargs)
        except requests.exceptions.RequestException as e:
            log.warning("github_request_failed", path=path, error=str(e))
            return None
        if response.status_code == 403:
            log.warning("github_rate_limited", path=path)
            return None
        if not response.ok:
            log.info("github_request_rejected", path=path, status=response.status_code)
            return None
        try:
            return response.json()
        except ValueError:
            log.warning("github_invalid_json", path=path)
            return None

    # --- Repositories ---

    def fetch_repo(self, url: str) -> Optional[RepoStats]:
        """Stats for the repository behind ``url``; cached for five minutes."""
        parsed = parse_github_url(url)
        if parsed is None:
            return None
        key = f"{parsed[0]}/{parsed[1]}"

        cached = self._cache.get(key)
        if cached is not None and self._clock() - cached[0] < CACHE_TTL_S:
            return cached[1]

        data = self._get(f"/repos/{key}")
        if data is None:
            return None
        stats = RepoStats.from_api(data)
        self._cache[key] = (self._clock(), stats)
        return stats

    def fetch_many(self, urls: List[str]) -> Dict[str, RepoStats]:
        """Stats keyed by URL; URLs that fail are left out."""
        results: Dict[str, RepoStats] = {}
        for url in urls:
            stats = self.fetch_repo(url)
            if stats is not None:
                results[url] = stats
        return results

    def refresh_servers(self, servers: List[MCPServer]) -> List[MCPServer]:
        """Copies of ``servers`` with live star counts and descriptions."""
        live = self.fetch_many([s.github_url for s in servers if s.github_url])
        refreshed = []
        for server in servers:
            stats = live.get(server.github_url or "")
            if stats is None:
                refreshed.append(server)
                continue
            refreshed.append(
                replace(
                    server,
                    stars=stats.stars,
                    description=stats.description or server.description,
                )
            )
        return refreshed

    # --- Search ---

    def search_repos(self, query: str, sort: str = "stars", per_page: int = 10) -> List[RepoSearchHit]:
        data = self._get(
            "/search/repositories",
            params={"q": query, "sort": sort, "per_page": per_page},
        )
        if data is None:
            return []
        return [
            RepoSearchHit(
                name=item.get("full_name", ""),
                url=item.get("html_url", ""),
                stars=item.get("stargazers_count", 0),
                description=item.get("description") or "",
            )
            for item in data.get("items", [])
        ]

    def trending_mcp_repos(self) -> List[RepoSearchHit]:
        return self.search_repos("mcp server model context protocol", "stars", 20)
