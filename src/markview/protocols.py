"""Protocol interfaces for swappable components.

Handlers, the viewer session and AppState reference these protocols, not the
concrete implementations. This allows:
- Tests to use lightweight in-memory fakes
- The scroll-spy to run against any viewport (browser bridge, test double)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from markview.models.cache import CacheStats
    from markview.models.github import (
        FileContent,
        MarkdownFile,
        RateLimitInfo,
        RepositoryMetadata,
    )


class CacheProtocol(Protocol):
    """Interface for the shared response cache."""

    def get(self, key: str) -> Any | None: ...

    def set(
        self, key: str, value: Any, *, ttl: float | None = None, sliding: bool = True
    ) -> bool: ...

    def has(self, key: str) -> bool: ...

    def delete(self, key: str) -> bool: ...

    def clear(self) -> None: ...

    def invalidate_repository(self, owner: str, repo: str) -> int: ...

    def purge_expired(self) -> int: ...

    def get_stats(self) -> CacheStats: ...


class GitHubClientProtocol(Protocol):
    """Interface for the GitHub API client."""

    async def validate_repository(self, owner: str, repo: str) -> RepositoryMetadata: ...

    async def get_file_tree(
        self, owner: str, repo: str, ref: str | None = None
    ) -> list[MarkdownFile]: ...

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileContent: ...

    async def get_rate_limit(self) -> RateLimitInfo: ...


class ViewportObserver(Protocol):
    """Delivers intersection changes for observed heading elements.

    Notifications arrive asynchronously through the callback the observer
    was created with; nothing is polled.
    """

    def observe(self, element_id: str) -> bool:
        """Start observing the element with this id. False if it does not exist."""
        ...

    def disconnect(self) -> None: ...


class Viewport(Protocol):
    """The scrollable document as seen by the table of contents."""

    @property
    def scroll_y(self) -> float: ...

    def element_top(self, element_id: str) -> float | None:
        """Top of the element relative to the viewport, or None if absent."""
        ...

    def scroll_to(self, top: float, *, smooth: bool = True) -> None: ...

    def set_fragment(self, fragment: str) -> None:
        """Update the visible URL fragment without navigating."""
        ...
