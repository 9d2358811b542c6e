"""GitHub REST API client with conditional requests.

All network I/O to GitHub goes through a single GitHubClient instance shared
across requests. The client receives an httpx.AsyncClient via constructor
injection; the server lifespan owns the client lifecycle.

Every request remembers the last ETag seen per endpoint string and replays
it as ``If-None-Match``; a ``304 Not Modified`` answers with the remembered
body without re-transferring it.
"""

from __future__ import annotations

import base64
import binascii
import time
from collections import OrderedDict
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
import structlog

from markview.errors import ErrorKind, MarkViewError
from markview.models.github import (
    ETagCacheEntry,
    FileContent,
    MarkdownFile,
    RateLimitInfo,
    RepositoryMetadata,
)

if TYPE_CHECKING:
    from markview.config import GitHubSettings

log = structlog.get_logger()

MARKDOWN_SUFFIXES = (".md", ".mdx")
RATE_LIMIT_FALLBACK = timedelta(hours=1)
DEFAULT_MAX_ETAG_ENTRIES = 500


def build_http_client(settings: GitHubSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    headers = {
        "Accept": settings.accept,
        "User-Agent": settings.user_agent,
    }
    token = settings.resolved_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    return httpx.AsyncClient(
        base_url=settings.api_url,
        follow_redirects=True,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers=headers,
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


def parse_rate_limit_headers(headers: httpx.Headers) -> RateLimitInfo | None:
    """Read ``x-ratelimit-*`` headers. ``None`` unless limit/remaining/reset are all present."""
    limit = headers.get("x-ratelimit-limit")
    remaining = headers.get("x-ratelimit-remaining")
    reset = headers.get("x-ratelimit-reset")
    if not (limit and remaining and reset):
        return None
    try:
        return RateLimitInfo(
            limit=int(limit),
            remaining=int(remaining),
            reset_at=datetime.fromtimestamp(int(reset), tz=UTC),
            used=int(headers.get("x-ratelimit-used") or 0),
        )
    except ValueError:
        log.debug("rate_limit_headers_unparseable", limit=limit, remaining=remaining, reset=reset)
        return None


def _quota_exhausted(headers: httpx.Headers, rate_limit: RateLimitInfo | None) -> bool:
    if rate_limit is not None:
        return rate_limit.remaining == 0
    return headers.get("x-ratelimit-remaining", "").strip() == "0"


def _fallback_reset() -> datetime:
    return datetime.now(UTC) + RATE_LIMIT_FALLBACK


def is_markdown_path(path: str) -> bool:
    return path.lower().endswith(MARKDOWN_SUFFIXES)


class GitHubClient:
    """GitHub API client implementing GitHubClientProtocol."""

    def __init__(
        self, client: httpx.AsyncClient, *, max_etag_entries: int = DEFAULT_MAX_ETAG_ENTRIES
    ) -> None:
        self._client = client
        # Endpoint -> last 2xx body, least-recently-used first
        self._etag_cache: OrderedDict[str, ETagCacheEntry] = OrderedDict()
        self._max_etag_entries = max_etag_entries
        self.last_rate_limit: RateLimitInfo | None = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, endpoint: str) -> Any:
        """GET ``endpoint`` (path + query relative to the API root) and decode JSON.

        Raises MarkViewError for rate limiting, non-2xx responses and
        network failures.
        """
        cached = self._etag_cache.get(endpoint)
        headers = {"If-None-Match": cached.etag} if cached is not None else {}

        try:
            response = await self._client.get(endpoint, headers=headers)
        except httpx.HTTPError as exc:
            log.warning("github_network_error", endpoint=endpoint, error=str(exc))
            raise MarkViewError(
                ErrorKind.GITHUB_API_ERROR,
                f"Network error: {exc}",
            ) from exc

        rate_limit = parse_rate_limit_headers(response.headers)
        if rate_limit is not None:
            self.last_rate_limit = rate_limit

        if response.status_code == 304 and cached is not None:
            log.debug("github_not_modified", endpoint=endpoint)
            if endpoint in self._etag_cache:
                self._etag_cache.move_to_end(endpoint)
            return cached.data

        if response.status_code == 403 and _quota_exhausted(response.headers, rate_limit):
            reset_at = rate_limit.reset_at if rate_limit is not None else _fallback_reset()
            log.warning("rate_limit_exceeded", endpoint=endpoint, reset_at=reset_at.isoformat())
            raise MarkViewError.rate_limited(reset_at)

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            message = body.get("message") or f"GitHub API error: {response.status_code}"
            log.info("github_error_response", endpoint=endpoint, status_code=response.status_code)
            raise MarkViewError(
                ErrorKind.GITHUB_API_ERROR,
                message,
                upstream_status=response.status_code,
                response=body,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MarkViewError(
                ErrorKind.GITHUB_API_ERROR,
                f"GitHub returned a non-JSON response for {endpoint}",
                upstream_status=response.status_code,
            ) from exc

        etag = response.headers.get("etag")
        if etag:
            self._etag_cache[endpoint] = ETagCacheEntry(
                etag=etag, data=data, fetched_at=time.time()
            )
            self._etag_cache.move_to_end(endpoint)
            while len(self._etag_cache) > self._max_etag_entries:
                self._etag_cache.popitem(last=False)
        else:
            self._etag_cache.pop(endpoint, None)

        log.info(
            "github_request",
            endpoint=endpoint,
            status_code=response.status_code,
            rate_remaining=rate_limit.remaining if rate_limit else None,
        )
        return data

    def clear_etag_cache(self) -> None:
        self._etag_cache.clear()

    @property
    def etag_cache_size(self) -> int:
        return len(self._etag_cache)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def validate_repository(self, owner: str, repo: str) -> RepositoryMetadata:
        """Fetch repository metadata.

        Raises MarkViewError of kind REPOSITORY_NOT_FOUND on 404 and
        REPOSITORY_FORBIDDEN on a 403 that is not a rate limit.
        """
        try:
            data = await self._request(f"/repos/{owner}/{repo}")
        except MarkViewError as exc:
            if exc.kind == ErrorKind.GITHUB_API_ERROR:
                if exc.upstream_status == 404:
                    raise MarkViewError.not_found(owner, repo) from exc
                if exc.upstream_status == 403:
                    raise MarkViewError.forbidden(owner, repo) from exc
            raise

        return RepositoryMetadata(
            owner=data["owner"]["login"],
            name=data["name"],
            full_name=data["full_name"],
            description=data.get("description"),
            default_branch=data["default_branch"],
            is_private=bool(data.get("private", False)),
            html_url=data["html_url"],
        )

    async def get_file_tree(
        self, owner: str, repo: str, ref: str | None = None
    ) -> list[MarkdownFile]:
        """List Markdown blobs (``.md``/``.mdx``) in the recursive tree.

        Without a ref, the default branch is resolved first. A truncated tree
        is returned as-is.
        """
        tree_ref = ref
        if not tree_ref:
            metadata = await self.validate_repository(owner, repo)
            tree_ref = metadata.default_branch

        data = await self._request(
            f"/repos/{owner}/{repo}/git/trees/{quote(tree_ref, safe='/')}?recursive=1"
        )

        if data.get("truncated"):
            log.warning("github_tree_truncated", repository=f"{owner}/{repo}", ref=tree_ref)

        return [
            MarkdownFile(
                path=item["path"],
                sha=item["sha"],
                size=item.get("size") or 0,
                url=item.get("url", ""),
            )
            for item in data.get("tree", [])
            if item.get("type") == "blob" and is_markdown_path(item.get("path", ""))
        ]

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileContent:
        """Fetch and decode a single file.

        The response must carry base64 content; directories, symlinks and
        submodules are rejected.
        """
        endpoint = f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}"
        if ref:
            endpoint = f"{endpoint}?ref={quote(ref, safe='')}"

        data = await self._request(endpoint)

        if (
            not isinstance(data, dict)
            or not data.get("content")
            or data.get("encoding") != "base64"
        ):
            raise MarkViewError(
                ErrorKind.GITHUB_API_ERROR,
                "File content is not base64 encoded",
            )

        try:
            raw = base64.b64decode(data["content"].replace("\n", ""))
        except (binascii.Error, ValueError) as exc:
            raise MarkViewError(
                ErrorKind.GITHUB_API_ERROR,
                f"File content for {path} could not be decoded",
            ) from exc

        return FileContent(
            path=data.get("path", path),
            content=raw.decode("utf-8", errors="replace"),
            sha=data.get("sha", ""),
            size=data.get("size", len(raw)),
        )

    async def get_rate_limit(self) -> RateLimitInfo:
        data = await self._request("/rate_limit")
        rate = data["rate"]
        info = RateLimitInfo(
            limit=rate["limit"],
            remaining=rate["remaining"],
            reset_at=datetime.fromtimestamp(rate["reset"], tz=UTC),
            used=rate.get("used", 0),
        )
        self.last_rate_limit = info
        return info
