"""Shared test fixtures for the markview test suite."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from markview.cache import ResponseCache
from markview.config import Settings
from markview.errors import MarkViewError
from markview.github import GitHubClient
from markview.models.github import FileContent, MarkdownFile, RateLimitInfo, RepositoryMetadata
from markview.service import RepositoryService
from markview.state import AppState

API_URL = "https://api.github.com"


class FakeClock:
    """Manually advanced monotonic clock for cache TTL tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGitHub:
    """In-memory GitHubClientProtocol implementation.

    ``gates`` holds events keyed like the response cache (``repo:o/r``,
    ``tree:o/r:ref``, ``content:o/r:path``); a call waits on its gate before
    answering, which lets tests complete requests out of order.
    """

    def __init__(self) -> None:
        self.repos: dict[str, RepositoryMetadata] = {}
        self.trees: dict[tuple[str, str], list[MarkdownFile]] = {}
        self.contents: dict[tuple[str, str], FileContent] = {}
        self.rate_limit = RateLimitInfo(
            limit=60, remaining=59, reset_at="2026-01-01T00:00:00Z", used=1
        )
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple] = []

    def add_repository(self, owner: str, repo: str, *, default_branch: str = "main") -> None:
        self.repos[f"{owner}/{repo}"] = RepositoryMetadata(
            owner=owner,
            name=repo,
            full_name=f"{owner}/{repo}",
            description=None,
            default_branch=default_branch,
            is_private=False,
            html_url=f"https://github.com/{owner}/{repo}",
        )

    async def _wait(self, key: str) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()

    async def validate_repository(self, owner: str, repo: str) -> RepositoryMetadata:
        self.calls.append(("repo", owner, repo))
        await self._wait(f"repo:{owner}/{repo}")
        try:
            return self.repos[f"{owner}/{repo}"]
        except KeyError:
            raise MarkViewError.not_found(owner, repo) from None

    async def get_file_tree(
        self, owner: str, repo: str, ref: str | None = None
    ) -> list[MarkdownFile]:
        self.calls.append(("tree", owner, repo, ref))
        await self._wait(f"tree:{owner}/{repo}:{ref}")
        return list(self.trees.get((f"{owner}/{repo}", ref or "main"), []))

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileContent:
        self.calls.append(("content", owner, repo, path, ref))
        await self._wait(f"content:{owner}/{repo}:{path}")
        try:
            return self.contents[(f"{owner}/{repo}", path)]
        except KeyError:
            raise MarkViewError.not_found(owner, repo) from None

    async def get_rate_limit(self) -> RateLimitInfo:
        self.calls.append(("rate_limit",))
        return self.rate_limit


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> ResponseCache:
    return ResponseCache(max_entries=50, max_bytes=1024 * 1024, ttl_seconds=600, clock=clock)


@pytest.fixture()
def fake_github() -> FakeGitHub:
    fake = FakeGitHub()
    fake.add_repository("octo", "docs")
    fake.trees[("octo/docs", "main")] = [
        MarkdownFile(path="README.md", sha="r1", size=40, url=""),
        MarkdownFile(path="docs/guide.md", sha="g1", size=80, url=""),
        MarkdownFile(path="docs/api.md", sha="a1", size=60, url=""),
    ]
    fake.contents[("octo/docs", "README.md")] = FileContent(
        path="README.md",
        content="# Docs\n\n![Logo](./logo.png)\n\n## Install\n",
        sha="r1",
        size=40,
    )
    fake.contents[("octo/docs", "docs/guide.md")] = FileContent(
        path="docs/guide.md",
        content="# Guide\n\n![Diagram](../img/flow.png)\n",
        sha="g1",
        size=80,
    )
    return fake


@pytest.fixture()
def fake_service(fake_github: FakeGitHub, cache: ResponseCache) -> RepositoryService:
    return RepositoryService(fake_github, cache, rate_limit_ttl_seconds=60)


@pytest.fixture()
async def http_client():
    async with httpx.AsyncClient(base_url=API_URL) as client:
        yield client


@pytest.fixture()
def github(http_client: httpx.AsyncClient) -> GitHubClient:
    return GitHubClient(http_client)


@pytest.fixture()
def app_state(
    github: GitHubClient, cache: ResponseCache, http_client: httpx.AsyncClient
) -> AppState:
    """AppState wired to the real GitHubClient. Mock upstream with respx."""
    settings = Settings()
    return AppState(
        settings=settings,
        cache=cache,
        github=github,
        service=RepositoryService(
            github, cache, rate_limit_ttl_seconds=settings.cache.rate_limit_ttl_seconds
        ),
        http_client=http_client,
    )
