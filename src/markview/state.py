"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan
context manager) and reachable from every request handler via
``request.app.state.markview``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from markview.config import Settings
    from markview.protocols import CacheProtocol, GitHubClientProtocol
    from markview.service import RepositoryService


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every request handler."""

    settings: Settings
    cache: CacheProtocol
    github: GitHubClientProtocol
    service: RepositoryService
    http_client: httpx.AsyncClient | None = None
