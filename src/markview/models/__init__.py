from __future__ import annotations

from markview.models.cache import CacheEntry, CacheStats
from markview.models.github import (
    ETagCacheEntry,
    FileContent,
    MarkdownFile,
    RateLimitInfo,
    RepositoryMetadata,
    RepositoryRef,
)
from markview.models.requests import ContentRequest, InvalidateRequest, RepositoryRequest
from markview.models.toc import TocItem

__all__ = [
    # github
    "RepositoryMetadata",
    "MarkdownFile",
    "FileContent",
    "RateLimitInfo",
    "ETagCacheEntry",
    "RepositoryRef",
    # toc
    "TocItem",
    # cache
    "CacheEntry",
    "CacheStats",
    # requests
    "RepositoryRequest",
    "ContentRequest",
    "InvalidateRequest",
]
