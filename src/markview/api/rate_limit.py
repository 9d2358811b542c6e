"""Handler for ``GET /api/rate-limit``."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from markview.api import success

if TYPE_CHECKING:
    from markview.state import AppState


async def handle(state: AppState) -> dict:
    structlog.get_logger().bind(route="rate_limit").info("handler_called")
    result = await state.service.get_rate_limit()
    return success(result.data.to_payload(), result.cached)
