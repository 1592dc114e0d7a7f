"""Terraform binary provisioning.

Binaries are cached per version under the cache root::

    {home}/.tfbox/linux/{version}/terraform

A cache hit is trusted as-is.  On a miss the release archive is downloaded
and extracted into a temporary directory, made executable there, and then
renamed into the cache.
Concurrent invocations for the same version may both download; the extracted
content is identical, so the last writer wins.
"""

from __future__ import annotations

import os
import platform
import shutil
import tempfile
from functools import partial
from pathlib import Path

import anyio
import httpx
from anyio import to_thread
from loguru import logger

from tfbox.errors import BinaryPermissionError, DownloadError, UnsupportedArchitectureError
from tfbox.provision.archive import extract_zip
from tfbox.settings import TfboxSettings

BINARY_NAME = "terraform"

# Host machine names (``platform.machine()``) -> HashiCorp release arch.
_ARCH_MAP: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "386": "386",
}


def map_architecture(machine: str) -> str:
    """Map a host machine name to the release arch.  Raises ``UnsupportedArchitectureError``."""
    arch = _ARCH_MAP.get(machine.lower())
    if arch is None:
        raise UnsupportedArchitectureError(machine)
    return arch


def download_url(base_url: str, version: str, arch: str) -> str:
    """``{base}/{version}/terraform_{version}_linux_{arch}.zip``."""
    return f"{base_url.rstrip('/')}/{version}/{BINARY_NAME}_{version}_linux_{arch}.zip"


class BinaryProvisioner:
    """Fetches and caches Terraform Linux binaries.

    ``machine`` defaults to the host's ``platform.machine()``; the container
    runs on the same daemon architecture, so the Linux build for the host
    architecture is the one mounted into it.
    """

    def __init__(
        self,
        settings: TfboxSettings,
        client: httpx.AsyncClient,
        *,
        machine: str | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._machine = machine or platform.machine()

    def binary_path(self, version: str) -> Path:
        return self._settings.cache_root / version / BINARY_NAME

    async def ensure(self, version: str) -> Path:
        """Return the absolute path of the cached binary, downloading it if needed.

        The binary is extracted and made executable inside a temporary
        directory, then moved into the cache, so the cache path only ever
        holds a complete executable.
        """
        binary = self.binary_path(version)
        if await to_thread.run_sync(binary.exists):
            logger.debug("Terraform {} found in cache: {}", version, binary)
            return binary

        arch = map_architecture(self._machine)
        url = download_url(self._settings.releases_url, version, arch)
        logger.info("Downloading Terraform {} ({}) from {}", version, arch, url)

        tmp_dir = Path(await to_thread.run_sync(partial(tempfile.mkdtemp, prefix="tfinstaller")))
        try:
            archive = await self._download(url, tmp_dir)
            staging = tmp_dir / "extract"
            await to_thread.run_sync(partial(extract_zip, archive, staging))

            staged = staging / BINARY_NAME
            try:
                await to_thread.run_sync(staged.chmod, 0o755)
            except OSError as exc:
                msg = f"Failed to make {staged} executable: {exc}"
                raise BinaryPermissionError(msg) from exc

            try:
                await to_thread.run_sync(partial(_install, staged, binary))
            except OSError as exc:
                msg = f"Failed to install {binary}: {exc}"
                raise BinaryPermissionError(msg) from exc
        finally:
            with anyio.CancelScope(shield=True):
                await to_thread.run_sync(_remove_tree, tmp_dir)

        return binary

    async def _download(self, url: str, target_dir: Path) -> Path:
        dest = target_dir / url.rsplit("/", 1)[-1]
        try:
            async with self._client.stream("GET", url) as response:
                if response.status_code != httpx.codes.OK:
                    msg = f"Error downloading {url}: bad status code {response.status_code}"
                    raise DownloadError(msg)
                async with await anyio.open_file(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
        except httpx.HTTPError as exc:
            msg = f"Error downloading {url}: {exc}"
            raise DownloadError(msg) from exc
        return dest


def _remove_tree(path: Path) -> None:
    """Remove a temporary directory.  Failures are logged, never raised."""
    try:
        shutil.rmtree(path)
    except OSError as exc:
        logger.warning("Failed to remove temporary directory {}: {}", path, exc)


def _install(staged: Path, binary: Path) -> None:
    """Copy ``staged`` next to ``binary`` and rename it into place.

    The rename stays on one filesystem, so readers see either no binary or
    the complete one.
    """
    binary.parent.mkdir(parents=True, exist_ok=True)
    fd, partial_name = tempfile.mkstemp(prefix=f".{binary.name}.", dir=binary.parent)
    os.close(fd)
    partial_path = Path(partial_name)
    try:
        shutil.copy2(staged, partial_path)
        os.replace(partial_path, binary)
    except OSError:
        partial_path.unlink(missing_ok=True)
        raise
