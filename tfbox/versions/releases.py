"""Upstream release index.

The resolver only needs a list of release names; where they come from is
hidden behind the ``ReleaseIndex`` protocol.  ``HashiCorpReleaseIndex``
scrapes the HTML listing at ``releases.hashicorp.com``, where every release
is an anchor of the form::

    <a href="/terraform/1.9.0/">terraform_1.9.0</a>
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx
from bs4 import BeautifulSoup

from tfbox.errors import NetworkError

RELEASE_PATH_PREFIX = "/terraform/"


@runtime_checkable
class ReleaseIndex(Protocol):
    """Async source of release names, in whatever order the source provides."""

    async def fetch_version_list(self) -> list[str]:
        """Return release names.  Raises ``NetworkError`` if the source is unreachable."""
        ...


def parse_release_listing(html: str, prefix: str = RELEASE_PATH_PREFIX) -> list[str]:
    """Extract release names from listing HTML, in page order.

    Anchors whose ``href`` does not start with ``prefix`` are ignored, as
    are entries that are empty once the prefix and trailing ``/`` are
    stripped.
    """
    soup = BeautifulSoup(html, "html.parser")

    versions: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"])
        if not href.startswith(prefix):
            continue
        version = href.removeprefix(prefix).removesuffix("/")
        if version:
            versions.append(version)
    return versions


class HashiCorpReleaseIndex:
    """``ReleaseIndex`` backed by the HashiCorp releases HTML page."""

    def __init__(self, client: httpx.AsyncClient, url: str, *, prefix: str = RELEASE_PATH_PREFIX) -> None:
        self._client = client
        self._url = url
        self._prefix = prefix

    async def fetch_version_list(self) -> list[str]:
        try:
            response = await self._client.get(self._url)
        except httpx.HTTPError as exc:
            msg = f"Failed to get Terraform versions page: {exc}"
            raise NetworkError(msg) from exc

        if response.status_code != httpx.codes.OK:
            msg = f"Failed to get Terraform versions page: {response.status_code} {response.reason_phrase}"
            raise NetworkError(msg)

        return parse_release_listing(response.text, self._prefix)
