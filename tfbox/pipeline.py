"""Pipeline entry point -- provision, then run Terraform in a container.

``run`` chains every step for one invocation:

1. **Paths**: resolve the project root and working directory
2. **Version**: explicit ``version`` or resolved from ``required_version``
3. **Binary**: cached or downloaded Terraform build for the host arch
4. **Image**: base image present locally or pulled
5. **Run**: container created, output streamed, exit status collected

Provisioning (steps 2-4) always completes before the container is created.
Clients created here are closed here; injected clients are left open.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import TYPE_CHECKING

import docker
import httpx
from anyio import to_thread
from docker.errors import DockerException
from loguru import logger

from tfbox.errors import ContainerEngineError
from tfbox.http_client import build_async_client
from tfbox.paths import HostPaths, build_container_env
from tfbox.provision.binary import BinaryProvisioner
from tfbox.provision.image import ensure_image
from tfbox.runner.orchestrator import run_container
from tfbox.runner.spec import CONTAINER_BINARY_PATH, ContainerRunSpec, RunResult
from tfbox.settings import TfboxSettings
from tfbox.versions.releases import HashiCorpReleaseIndex
from tfbox.versions.resolver import resolve_version

if TYPE_CHECKING:
    from pathlib import Path

    from docker import DockerClient


def create_docker_client() -> DockerClient:
    """Docker client from ``DOCKER_HOST`` / default socket.  Raises ``ContainerEngineError``."""
    try:
        return docker.from_env()
    except DockerException as exc:
        msg = f"Cannot connect to the Docker daemon: {exc}"
        raise ContainerEngineError(msg) from exc


def build_run_spec(
    settings: TfboxSettings,
    paths: HostPaths,
    binary_path: Path,
    tf_args: Sequence[str],
    *,
    host_env: Mapping[str, str] | None = None,
) -> ContainerRunSpec:
    return ContainerRunSpec(
        image=settings.image,
        working_dir=paths.container_workdir,
        command=[CONTAINER_BINARY_PATH.name, *tf_args],
        environment=build_container_env(
            os.environ if host_env is None else host_env,
            exclude=settings.env_exclude,
        ),
        mounts=paths.bind_mounts(binary_path),
    )


async def provision_binary(
    settings: TfboxSettings,
    paths: HostPaths,
    version: str | None,
    client: httpx.AsyncClient,
) -> Path:
    """Resolve the version (unless given) and return the cached binary path."""
    if not version:
        releases = HashiCorpReleaseIndex(client, settings.releases_url)
        version = await resolve_version(paths.project_dir, releases)
    return await BinaryProvisioner(settings, client).ensure(version)


async def run(
    settings: TfboxSettings,
    *,
    tf_args: Sequence[str],
    root: str | None = None,
    working_dir: str | None = None,
    version: str | None = None,
    verbose: bool = True,
    docker_client: DockerClient | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> RunResult:
    """Run ``terraform {tf_args}`` for the project at ``root``.

    Raises ``ValueError`` if ``tf_args`` is empty, and ``TfboxError``
    subclasses for every provisioning or run failure.
    """
    if not tf_args:
        msg = "you need to pass terraform commands/flags"
        raise ValueError(msg)

    paths = HostPaths.from_options(home=settings.home, root=root, working_dir=working_dir)
    logger.debug("Project root {} (working directory {})", paths.root, paths.working_dir)

    async with _http_client(settings, http_client) as client:
        binary_path = await provision_binary(settings, paths, version, client)

    async with _docker_client(docker_client) as engine:
        await ensure_image(engine, settings.image, verbose=verbose)
        spec = build_run_spec(settings, paths, binary_path, tf_args)
        return await run_container(engine, spec, verbose=verbose)


# ---------------------------------------------------------------------------
# Client lifecycles
# ---------------------------------------------------------------------------


@contextlib.asynccontextmanager
async def _http_client(
    settings: TfboxSettings,
    injected: httpx.AsyncClient | None,
) -> AsyncIterator[httpx.AsyncClient]:
    if injected is not None:
        yield injected
        return
    async with build_async_client(settings) as client:
        yield client


@contextlib.asynccontextmanager
async def _docker_client(injected: DockerClient | None) -> AsyncIterator[DockerClient]:
    if injected is not None:
        yield injected
        return
    client = await to_thread.run_sync(create_docker_client)
    try:
        yield client
    finally:
        client.close()
