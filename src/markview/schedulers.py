"""Background scheduler coroutines."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from markview.state import AppState

log = structlog.get_logger()


async def run_cache_purge_scheduler(state: AppState) -> None:
    """Drop expired response-cache entries on the configured interval.

    Expired entries already read as absent; this only reclaims their memory
    so they stop counting against the size and entry bounds.
    """
    interval_seconds = state.settings.cache.purge_interval_seconds
    if interval_seconds <= 0:
        log.info("cache_purge_scheduler_disabled")
        return

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = state.cache.purge_expired()
        except Exception:
            log.warning("cache_purge_error", exc_info=True)
            continue
        if removed:
            log.info("cache_purge_complete", deleted=removed)
