"""Shared test fixtures.

No network or Docker daemon is needed: HTTP goes through
``httpx.MockTransport`` and the Docker client is a ``MagicMock``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from tests.helpers import LISTING_HTML, RELEASES_URL, RecordingTransport, make_container, make_zip
from tfbox.settings import TfboxSettings, get_settings

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def settings(home: Path) -> TfboxSettings:
    return TfboxSettings(home=home, releases_url=RELEASES_URL)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def releases_handler() -> Callable[[httpx.Request], httpx.Response]:
    """Serves the listing page and a valid archive for every version."""

    def _handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == RELEASES_URL:
            return httpx.Response(200, text=LISTING_HTML)
        if request.url.path.endswith(".zip"):
            return httpx.Response(200, content=make_zip({"terraform": b"#!/bin/sh\necho terraform\n"}))
        return httpx.Response(404)

    return _handler


@pytest.fixture
def transport(releases_handler: Callable[[httpx.Request], httpx.Response]) -> RecordingTransport:
    return RecordingTransport(releases_handler)


@pytest.fixture
async def http_client(transport: RecordingTransport) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=transport) as client:
        yield client


# ---------------------------------------------------------------------------
# Docker
# ---------------------------------------------------------------------------


@pytest.fixture
def container() -> MagicMock:
    return make_container(logs=[(b"Initializing...\n", None), (None, b"Warning: deprecated\n")])


@pytest.fixture
def docker_client(container: MagicMock) -> MagicMock:
    client = MagicMock()
    client.containers.create.return_value = container
    client.images.list.return_value = []
    client.api.pull.return_value = iter([{"status": "Pulling from devcontainers/base"}])
    return client
