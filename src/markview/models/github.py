from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from markview.models.base import WireModel


class RepositoryMetadata(WireModel):
    """Snapshot of ``GET /repos/:owner/:repo``."""

    owner: str
    name: str
    full_name: str
    description: str | None = None
    default_branch: str
    is_private: bool
    html_url: str


class MarkdownFile(WireModel):
    """A Markdown blob from the recursive git tree."""

    path: str  # Repo-relative, forward-slash separated
    sha: str
    size: int = 0  # 0 when the tree omits it
    url: str  # API blob URL


class FileContent(WireModel):
    path: str
    content: str  # Decoded UTF-8 text
    sha: str
    size: int


class RateLimitInfo(WireModel):
    limit: int
    remaining: int
    reset_at: datetime
    used: int = 0


@dataclass
class ETagCacheEntry:
    """Last-seen ETag and decoded body for one upstream endpoint string."""

    etag: str
    data: Any
    fetched_at: float


@dataclass(frozen=True)
class RepositoryRef:
    """Parsed user input identifying a repository and optional ref."""

    owner: str
    repo: str
    ref: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"
