"""Cache-through access to GitHub.

Every read consults the shared response cache first and populates it on a
miss. Results carry a ``cached`` flag so the API can report whether GitHub
was contacted. No HTTP framework imports; server.py and the viewer session
both sit on top of this.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

from markview.cache import CacheKeys

if TYPE_CHECKING:
    from markview.models.github import (
        FileContent,
        MarkdownFile,
        RateLimitInfo,
        RepositoryMetadata,
    )
    from markview.protocols import CacheProtocol, GitHubClientProtocol

T = TypeVar("T")

log = structlog.get_logger()


@dataclass(frozen=True)
class Cached(Generic[T]):
    data: T
    cached: bool


class RepositoryService:
    def __init__(
        self,
        github: GitHubClientProtocol,
        cache: CacheProtocol,
        *,
        rate_limit_ttl_seconds: float = 60,
    ) -> None:
        self._github = github
        self._cache = cache
        self._rate_limit_ttl = rate_limit_ttl_seconds

    def _lookup(self, key: str) -> object | None:
        value = self._cache.get(key)
        if value is None:
            log.info("cache_miss", key=key)
        else:
            log.info("cache_hit", key=key)
        return value

    async def get_repository(self, owner: str, repo: str) -> Cached[RepositoryMetadata]:
        key = CacheKeys.repository(owner, repo)
        hit = self._lookup(key)
        if hit is not None:
            return Cached(hit, cached=True)  # type: ignore[arg-type]

        metadata = await self._github.validate_repository(owner, repo)
        self._cache.set(key, metadata)
        return Cached(metadata, cached=False)

    async def get_files(
        self, owner: str, repo: str, ref: str | None = None
    ) -> Cached[list[MarkdownFile]]:
        key = CacheKeys.file_tree(owner, repo, ref)
        hit = self._lookup(key)
        if hit is not None:
            return Cached(list(hit), cached=True)  # type: ignore[call-overload]

        files = await self._github.get_file_tree(owner, repo, ref or None)
        # Stored as a tuple so callers can't mutate the shared copy
        self._cache.set(key, tuple(files))
        return Cached(list(files), cached=False)

    async def get_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> Cached[FileContent]:
        key = CacheKeys.file_content(owner, repo, path, ref)
        hit = self._lookup(key)
        if hit is not None:
            return Cached(hit, cached=True)  # type: ignore[arg-type]

        content = await self._github.get_file_content(owner, repo, path, ref or None)
        self._cache.set(key, content)
        return Cached(content, cached=False)

    async def get_rate_limit(self) -> Cached[RateLimitInfo]:
        key = CacheKeys.rate_limit()
        hit = self._lookup(key)
        if hit is not None:
            return Cached(hit, cached=True)  # type: ignore[arg-type]

        info = await self._github.get_rate_limit()
        self._cache.set(key, info, ttl=self._rate_limit_ttl, sliding=False)
        return Cached(info, cached=False)

    def invalidate_repository(self, owner: str, repo: str) -> int:
        return self._cache.invalidate_repository(owner, repo)
