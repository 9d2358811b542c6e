"""Handlers for ``/api/cache/*`` maintenance routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from markview.api import success
from markview.models.requests import InvalidateRequest
from markview.validation import parse_body

if TYPE_CHECKING:
    from markview.state import AppState


async def invalidate(body: object, state: AppState) -> dict:
    """POST /api/cache/invalidate drops every cached response for a repository."""
    request = parse_body(InvalidateRequest, body, required=("owner", "repo"))
    deleted = state.service.invalidate_repository(request.owner, request.repo)
    structlog.get_logger().info(
        "cache_invalidate_requested",
        repository=f"{request.owner}/{request.repo}",
        deleted=deleted,
    )
    return success({"invalidated": deleted})


async def stats(state: AppState) -> dict:
    """GET /api/cache/stats."""
    return success(state.cache.get_stats().to_payload())
