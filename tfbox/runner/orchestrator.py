"""Run orchestrator -- create, start, stream, wait, remove.

The orchestrator manages the full lifecycle of one Terraform container:

1. **Create** the container from a ``ContainerRunSpec``
2. **Start** it
3. **Run** two concurrent tasks until both finish:
   - copy the demultiplexed log stream to stdout/stderr (or discard it)
   - wait for the container to stop and record its status
4. **Remove** the container (forced), on every exit path

The Docker SDK is synchronous, so every engine call runs in a worker thread.
The two long-running calls are abandoned on cancellation; forced removal
then stops the container and closes the log stream behind them.
"""

from __future__ import annotations

import contextlib
import sys
from functools import partial
from typing import TYPE_CHECKING, BinaryIO

import anyio
from anyio import to_thread
from docker.errors import DockerException
from loguru import logger

from tfbox.errors import ContainerWaitError, CreateError, LogStreamError, StartError
from tfbox.runner.spec import RunResult, RunState

if TYPE_CHECKING:
    from docker import DockerClient
    from docker.models.containers import Container

    from tfbox.runner.spec import ContainerRunSpec


async def run_container(
    client: DockerClient,
    spec: ContainerRunSpec,
    *,
    verbose: bool = True,
    stdout: BinaryIO | None = None,
    stderr: BinaryIO | None = None,
) -> RunResult:
    """Run ``spec`` to completion and return its result.

    Raises ``CreateError`` / ``StartError`` when the engine rejects the
    container, and the result's ``RunError`` when the run itself failed.
    With ``verbose=False`` output is drained and discarded.
    """
    if verbose:
        stdout = stdout or sys.stdout.buffer
        stderr = stderr or sys.stderr.buffer
    else:
        stdout = stderr = None

    try:
        container = await to_thread.run_sync(partial(client.containers.create, **spec.create_kwargs()))
    except DockerException as exc:
        msg = f"Failed to create container from {spec.image}: {exc}"
        raise CreateError(msg) from exc

    result = RunResult(container_id=container.id)
    logger.debug("Container {} created (image={})", container.id, spec.image)

    try:
        try:
            await to_thread.run_sync(container.start)
        except DockerException as exc:
            result.state = RunState.ERRORED
            msg = f"Failed to start container {container.id}: {exc}"
            raise StartError(msg) from exc
        result.state = RunState.STARTED
        logger.debug("Container {} started", container.id)

        result.state = RunState.RUNNING
        async with anyio.create_task_group() as tg:
            tg.start_soon(_stream_logs, container, result, stdout, stderr)
            tg.start_soon(_wait_for_exit, container, result)

        result.state = RunState.EXITED if result.wait_error is None else RunState.ERRORED
    finally:
        with anyio.CancelScope(shield=True):
            if await _remove_container(container):
                result.state = RunState.REMOVED

    result.raise_for_error()
    return result


# ---------------------------------------------------------------------------
# Concurrent tasks
# ---------------------------------------------------------------------------


async def _stream_logs(
    container: Container,
    result: RunResult,
    stdout: BinaryIO | None,
    stderr: BinaryIO | None,
) -> None:
    """Copy the log stream until it closes.  Writes only ``result.log_error``."""
    try:
        await to_thread.run_sync(partial(copy_logs, container, stdout, stderr), abandon_on_cancel=True)
    except (DockerException, OSError, ValueError) as exc:
        msg = f"Error streaming container logs: {exc}"
        result.log_error = LogStreamError(msg)
        result.log_error.__cause__ = exc


async def _wait_for_exit(container: Container, result: RunResult) -> None:
    """Wait for a non-running state.  Writes only ``result.wait_error`` / ``result.exit_code``."""
    try:
        status = await to_thread.run_sync(container.wait, abandon_on_cancel=True)
    except (DockerException, OSError, ValueError) as exc:
        msg = f"Error waiting for container: {exc}"
        result.wait_error = ContainerWaitError(msg)
        result.wait_error.__cause__ = exc
        return

    error = status.get("Error")
    if error:
        message = error.get("Message", error) if isinstance(error, dict) else error
        result.wait_error = ContainerWaitError(f"Container error: {message}")
        return
    result.exit_code = status.get("StatusCode", 0)


def copy_logs(container: Container, stdout: BinaryIO | None, stderr: BinaryIO | None) -> None:
    """Follow the demultiplexed log stream, writing each chunk to its sink.

    ``None`` sinks discard their chunks; the stream is still read to the end.
    """
    stream = container.logs(stdout=True, stderr=True, stream=True, follow=True, demux=True)
    with contextlib.closing(stream):
        for out_chunk, err_chunk in stream:
            if out_chunk and stdout is not None:
                stdout.write(out_chunk)
                stdout.flush()
            if err_chunk and stderr is not None:
                stderr.write(err_chunk)
                stderr.flush()


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


async def _remove_container(container: Container) -> bool:
    """Force-remove the container.  Failures are logged, never raised."""
    try:
        await to_thread.run_sync(partial(container.remove, force=True))
    except DockerException as exc:
        logger.warning("Failed to remove container {}: {}", container.id, exc)
        return False
    logger.debug("Container {} removed", container.id)
    return True
