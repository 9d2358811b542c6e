"""Request handlers for the HTTP API.

Each handler receives the decoded JSON body (where the route has one) and
the AppState, and returns the success envelope ``{data, cached}``. No
Starlette imports; server.py handles the HTTP wiring and error envelopes.
"""

from __future__ import annotations

from typing import Any


def success(data: Any, cached: bool = False) -> dict:
    return {"data": data, "cached": cached}
