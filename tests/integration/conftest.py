"""Integration test fixtures.

The app is served in-process through httpx.ASGITransport with the AppState
from tests/conftest.py injected, so upstream GitHub calls made by the real
GitHubClient can be mocked with respx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from markview.server import create_app

if TYPE_CHECKING:
    from markview.state import AppState


@pytest.fixture()
async def api_client(app_state: AppState):
    transport = httpx.ASGITransport(app=create_app(app_state))
    async with httpx.AsyncClient(transport=transport, base_url="http://markview.test") as client:
        yield client
