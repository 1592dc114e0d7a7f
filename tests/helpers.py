"""Test helpers shared across modules (imported, not fixtures)."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Callable
from unittest.mock import MagicMock

import httpx

RELEASES_URL = "https://releases.example.test/terraform/"

LISTING_HTML = """
<html><body><ul>
  <li><a href="../">../</a></li>
  <li><a href="/terraform/1.9.0/">terraform_1.9.0</a></li>
  <li><a href="/terraform/1.8.5-beta/">terraform_1.8.5-beta</a></li>
  <li><a href="/terraform/1.8.5/">terraform_1.8.5</a></li>
  <li><a href="https://www.hashicorp.com/">HashiCorp</a></li>
</ul></body></html>
"""


def make_zip(entries: dict[str, bytes]) -> bytes:
    """Build an in-memory zip archive from ``{name: content}``."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def make_container(
    *,
    logs: list[tuple[bytes | None, bytes | None]] | None = None,
    status: dict | None = None,
) -> MagicMock:
    container = MagicMock()
    container.id = "c0ffee"
    container.logs.return_value = iter(logs or [])
    container.wait.return_value = status or {"StatusCode": 0, "Error": None}
    return container
