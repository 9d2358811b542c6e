"""Handlers for ``/api/repository/*``."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from markview.api import success
from markview.models.requests import ContentRequest, RepositoryRequest
from markview.validation import parse_body

if TYPE_CHECKING:
    from markview.state import AppState


async def validate(body: object, state: AppState) -> dict:
    """POST /api/repository/validate returns repository metadata."""
    request = parse_body(RepositoryRequest, body, required=("owner", "repo"))
    log = structlog.get_logger().bind(
        route="repository_validate", repository=f"{request.owner}/{request.repo}"
    )
    log.info("handler_called")

    result = await state.service.get_repository(request.owner, request.repo)
    return success(result.data.to_payload(), result.cached)


async def files(body: object, state: AppState) -> dict:
    """POST /api/repository/files lists Markdown files in the repository tree."""
    request = parse_body(RepositoryRequest, body, required=("owner", "repo"))
    log = structlog.get_logger().bind(
        route="repository_files",
        repository=f"{request.owner}/{request.repo}",
        ref=request.ref,
    )
    log.info("handler_called")

    result = await state.service.get_files(request.owner, request.repo, request.ref)
    log.info("files_listed", count=len(result.data), cached=result.cached)
    return success([f.to_payload() for f in result.data], result.cached)


async def content(body: object, state: AppState) -> dict:
    """POST /api/repository/content returns the decoded content of one file."""
    request = parse_body(ContentRequest, body, required=("owner", "repo", "path"))
    log = structlog.get_logger().bind(
        route="repository_content",
        repository=f"{request.owner}/{request.repo}",
        path=request.path,
        ref=request.ref,
    )
    log.info("handler_called")

    result = await state.service.get_content(
        request.owner, request.repo, request.path, request.ref
    )
    return success(result.data.to_payload(), result.cached)
