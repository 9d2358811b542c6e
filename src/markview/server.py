"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState in the Starlette lifespan context manager
- Map routes onto the handlers in ``markview.api``
- Serialise MarkViewError into the error envelope
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route

import markview.api.cache as h_cache
import markview.api.rate_limit as h_rate_limit
import markview.api.repository as h_repository
from markview import __version__
from markview.cache import ResponseCache
from markview.config import Settings
from markview.errors import ErrorKind, MarkViewError
from markview.github import GitHubClient, build_http_client
from markview.schedulers import run_cache_purge_scheduler
from markview.service import RepositoryService
from markview.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# State and lifespan
# ---------------------------------------------------------------------------


def build_state(settings: Settings) -> AppState:
    """Construct the process-wide services. Called once per server."""
    http_client = build_http_client(settings.github)
    cache = ResponseCache(
        max_entries=settings.cache.max_entries,
        max_bytes=settings.cache.max_bytes,
        ttl_seconds=settings.cache.ttl_seconds,
    )
    github = GitHubClient(http_client, max_etag_entries=settings.cache.max_entries)
    service = RepositoryService(
        github,
        cache,
        rate_limit_ttl_seconds=settings.cache.rate_limit_ttl_seconds,
    )
    return AppState(
        settings=settings,
        cache=cache,
        github=github,
        service=service,
        http_client=http_client,
    )


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
    """Create and tear down all shared resources for the server's lifetime.

    A state injected through ``create_app`` is used as-is and not closed here.
    """
    state: AppState | None = getattr(app.state, "markview", None)
    owns_state = state is None
    if state is None:
        settings: Settings = getattr(app.state, "settings", None) or Settings()
        _setup_logging(settings)
        state = build_state(settings)
        app.state.markview = state

    purge_task = asyncio.create_task(run_cache_purge_scheduler(state))

    log.info(
        "server_started",
        version=__version__,
        authenticated=state.settings.github.resolved_token() is not None,
        cache_max_entries=state.settings.cache.max_entries,
    )

    try:
        yield
    finally:
        purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await purge_task
        if owns_state and state.http_client is not None:
            await state.http_client.aclose()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _state(request: Request) -> AppState:
    return request.app.state.markview


async def _json_body(request: Request) -> object:
    try:
        return await request.json()
    except ValueError as exc:
        raise MarkViewError.validation("Invalid JSON body") from exc


async def _dispatch(route: str, call: Callable[[], Awaitable[dict]]) -> JSONResponse:
    """Run a handler and map failures onto the error envelope."""
    try:
        payload = await call()
    except MarkViewError as exc:
        log.warning(
            "api_error",
            route=route,
            kind=str(exc.kind),
            message=exc.message,
            upstream_status=exc.upstream_status,
        )
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)
    except Exception:
        log.error("api_unexpected_error", route=route, exc_info=True)
        error = MarkViewError(ErrorKind.INTERNAL, "An unexpected error occurred")
        return JSONResponse(error.to_dict(), status_code=error.status_code)
    return JSONResponse(payload)


async def repository_validate(request: Request) -> JSONResponse:
    async def call() -> dict:
        return await h_repository.validate(await _json_body(request), _state(request))

    return await _dispatch("repository_validate", call)


async def repository_files(request: Request) -> JSONResponse:
    async def call() -> dict:
        return await h_repository.files(await _json_body(request), _state(request))

    return await _dispatch("repository_files", call)


async def repository_content(request: Request) -> JSONResponse:
    async def call() -> dict:
        return await h_repository.content(await _json_body(request), _state(request))

    return await _dispatch("repository_content", call)


async def rate_limit(request: Request) -> JSONResponse:
    return await _dispatch("rate_limit", lambda: h_rate_limit.handle(_state(request)))


async def cache_invalidate(request: Request) -> JSONResponse:
    async def call() -> dict:
        return await h_cache.invalidate(await _json_body(request), _state(request))

    return await _dispatch("cache_invalidate", call)


async def cache_stats(request: Request) -> JSONResponse:
    return await _dispatch("cache_stats", lambda: h_cache.stats(_state(request)))


ROUTES = [
    Route("/api/repository/validate", repository_validate, methods=["POST"]),
    Route("/api/repository/files", repository_files, methods=["POST"]),
    Route("/api/repository/content", repository_content, methods=["POST"]),
    Route("/api/rate-limit", rate_limit, methods=["GET"]),
    Route("/api/cache/invalidate", cache_invalidate, methods=["POST"]),
    Route("/api/cache/stats", cache_stats, methods=["GET"]),
]


def create_app(
    state: AppState | None = None, *, settings: Settings | None = None
) -> Starlette:
    """Build the ASGI app. Pass ``state`` to serve pre-built services (tests)."""
    app = Starlette(routes=ROUTES, lifespan=lifespan)
    if settings is not None:
        app.state.settings = settings
    if state is not None:
        app.state.markview = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
