"""Unit tests for the run orchestrator (mock Docker container)."""

from __future__ import annotations

import io
import threading
from collections.abc import Iterator
from unittest.mock import MagicMock

import anyio
import pytest
from docker.errors import APIError, NotFound

from tests.helpers import make_container
from tfbox.errors import ContainerExitError, ContainerWaitError, CreateError, LogStreamError, StartError
from tfbox.runner import BindMount, ContainerRunSpec, RunState, run_container
from tfbox.runner.spec import CONTAINER_BINARY_PATH


@pytest.fixture
def spec() -> ContainerRunSpec:
    return ContainerRunSpec(
        image="mcr.microsoft.com/devcontainers/base:alpine",
        working_dir="/host",
        command=["terraform", "plan"],
        environment=["TMPDIR=/tmp"],
        mounts=[
            BindMount(source="/work", target="/host"),
            BindMount(source="/cache/1.9.0/terraform", target=str(CONTAINER_BINARY_PATH), read_only=True),
        ],
    )


async def test_run_success(docker_client: MagicMock, container: MagicMock, spec: ContainerRunSpec) -> None:
    stdout, stderr = io.BytesIO(), io.BytesIO()

    result = await run_container(docker_client, spec, stdout=stdout, stderr=stderr)

    assert result.ok
    assert result.exit_code == 0
    assert result.state == RunState.REMOVED
    assert result.container_id == "c0ffee"
    assert stdout.getvalue() == b"Initializing...\n"
    assert stderr.getvalue() == b"Warning: deprecated\n"

    docker_client.containers.create.assert_called_once_with(**spec.create_kwargs())
    container.start.assert_called_once_with()
    container.logs.assert_called_once_with(stdout=True, stderr=True, stream=True, follow=True, demux=True)
    container.remove.assert_called_once_with(force=True)


async def test_run_quiet_discards_output(
    docker_client: MagicMock,
    spec: ContainerRunSpec,
    capsysbinary: pytest.CaptureFixture[bytes],
) -> None:
    chunks = [(b"out-%d\n" % i, None) for i in range(5)]
    consumed: list[tuple[bytes | None, bytes | None]] = []

    def _logs() -> Iterator[tuple[bytes | None, bytes | None]]:
        for chunk in chunks:
            consumed.append(chunk)
            yield chunk

    container = make_container()
    container.logs.return_value = _logs()
    docker_client.containers.create.return_value = container
    stdout = io.BytesIO()

    result = await run_container(docker_client, spec, verbose=False, stdout=stdout)

    assert result.ok
    assert stdout.getvalue() == b""
    assert consumed == chunks
    assert capsysbinary.readouterr().out == b""


async def test_run_nonzero_exit(docker_client: MagicMock, spec: ContainerRunSpec) -> None:
    container = make_container(status={"StatusCode": 3, "Error": None})
    docker_client.containers.create.return_value = container

    with pytest.raises(ContainerExitError) as exc_info:
        await run_container(docker_client, spec, verbose=False)

    assert exc_info.value.exit_code == 3
    container.remove.assert_called_once_with(force=True)


async def test_run_log_error_wins_over_exit_code(docker_client: MagicMock, spec: ContainerRunSpec) -> None:
    def _broken_logs() -> Iterator[tuple[bytes | None, bytes | None]]:
        yield (b"partial\n", None)
        raise OSError("connection reset")

    container = make_container(status={"StatusCode": 1, "Error": None})
    container.logs.return_value = _broken_logs()
    docker_client.containers.create.return_value = container

    with pytest.raises(LogStreamError) as exc_info:
        await run_container(docker_client, spec, stdout=io.BytesIO(), stderr=io.BytesIO())

    assert isinstance(exc_info.value.__cause__, OSError)
    container.remove.assert_called_once_with(force=True)


async def test_run_log_error_with_clean_exit(docker_client: MagicMock, spec: ContainerRunSpec) -> None:
    container = make_container()
    container.logs.side_effect = APIError("logs unavailable")
    docker_client.containers.create.return_value = container

    with pytest.raises(LogStreamError, match="logs unavailable"):
        await run_container(docker_client, spec, verbose=False)

    container.wait.assert_called_once_with()


async def test_run_wait_failure(docker_client: MagicMock, spec: ContainerRunSpec) -> None:
    container = make_container()
    container.wait.side_effect = APIError("wait interrupted")
    docker_client.containers.create.return_value = container

    with pytest.raises(ContainerWaitError) as exc_info:
        await run_container(docker_client, spec, verbose=False)

    assert isinstance(exc_info.value.__cause__, APIError)
    container.remove.assert_called_once_with(force=True)


async def test_run_wait_reports_engine_error(docker_client: MagicMock, spec: ContainerRunSpec) -> None:
    container = make_container(status={"StatusCode": 0, "Error": {"Message": "oci runtime failed"}})
    docker_client.containers.create.return_value = container

    with pytest.raises(ContainerWaitError, match="oci runtime failed"):
        await run_container(docker_client, spec, verbose=False)


async def test_run_create_failure(docker_client: MagicMock, container: MagicMock, spec: ContainerRunSpec) -> None:
    docker_client.containers.create.side_effect = APIError("no such image")

    with pytest.raises(CreateError):
        await run_container(docker_client, spec, verbose=False)

    container.start.assert_not_called()
    container.remove.assert_not_called()


async def test_run_start_failure_still_removes(
    docker_client: MagicMock, container: MagicMock, spec: ContainerRunSpec
) -> None:
    container.start.side_effect = APIError("port already allocated")

    with pytest.raises(StartError):
        await run_container(docker_client, spec, verbose=False)

    container.logs.assert_not_called()
    container.remove.assert_called_once_with(force=True)


async def test_run_remove_failure_is_not_fatal(
    docker_client: MagicMock, container: MagicMock, spec: ContainerRunSpec
) -> None:
    container.remove.side_effect = NotFound("already gone")

    result = await run_container(docker_client, spec, verbose=False)

    assert result.ok
    assert result.state == RunState.EXITED


async def test_cancelled_run_still_removes(docker_client: MagicMock, spec: ContainerRunSpec) -> None:
    release = threading.Event()

    def _blocking_logs(**kwargs: object) -> Iterator[tuple[bytes | None, bytes | None]]:
        release.wait(5)
        yield from ()

    def _blocking_wait() -> dict:
        release.wait(5)
        return {"StatusCode": 0, "Error": None}

    container = make_container()
    container.logs.side_effect = _blocking_logs
    container.wait.side_effect = _blocking_wait
    docker_client.containers.create.return_value = container

    try:
        with anyio.move_on_after(0.3) as scope:
            await run_container(docker_client, spec, verbose=False)
    finally:
        release.set()

    assert scope.cancelled_caught
    container.remove.assert_called_once_with(force=True)


async def test_run_wait_connection_lost(docker_client: MagicMock, spec: ContainerRunSpec) -> None:
    container = make_container()
    container.wait.side_effect = ConnectionResetError("daemon went away")
    docker_client.containers.create.return_value = container

    with pytest.raises(ContainerWaitError, match="daemon went away") as exc_info:
        await run_container(docker_client, spec, verbose=False)

    assert isinstance(exc_info.value.__cause__, ConnectionResetError)
    container.remove.assert_called_once_with(force=True)
