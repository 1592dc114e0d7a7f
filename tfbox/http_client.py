"""Shared httpx client factory.

All upstream requests (release listing, binary download) go through one
``httpx.AsyncClient`` so timeouts and headers are configured in one place.
"""

from __future__ import annotations

import httpx

from tfbox.settings import TfboxSettings


def build_async_client(
    settings: TfboxSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` from settings.

    ``transport`` is only used by tests (``httpx.MockTransport``).
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent},
        transport=transport,
    )
