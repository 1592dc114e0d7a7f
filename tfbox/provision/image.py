"""Base image provisioning.

Checks the local image inventory for an exact ``repo:tag`` match and pulls
the image on a miss.  Pull progress arrives as decoded JSON events; the most
recent lines are kept in a fixed-size buffer and redrawn in place after each
event when output is verbose.
"""

from __future__ import annotations

from collections import deque
from functools import partial
from typing import TYPE_CHECKING, Any, TextIO

import click
from anyio import to_thread
from docker.errors import DockerException, StreamParseError
from loguru import logger

from tfbox.errors import ContainerEngineError, PullError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from docker import DockerClient

PROGRESS_LINES = 10
"""Number of progress lines kept on screen during a pull."""


class PullProgressView:
    """Rolling window of the last ``max_lines`` pull events.

    With ``verbose=False`` events are still consumed but nothing is printed.
    """

    def __init__(self, *, verbose: bool, max_lines: int = PROGRESS_LINES, out: TextIO | None = None) -> None:
        self.verbose = verbose
        self.max_lines = max_lines
        self.lines: deque[str] = deque(maxlen=max_lines)
        self._out = out

    def push(self, event: dict[str, Any]) -> None:
        self.lines.append(format_progress(event))
        if self.verbose:
            self.redraw()

    def redraw(self) -> None:
        """Clear the screen and rewrite the buffer, padded to ``max_lines``."""
        click.echo("\033[H\033[J", nl=False, file=self._out)
        for line in self.lines:
            click.echo(line, file=self._out)
        for _ in range(len(self.lines), self.max_lines):
            click.echo(file=self._out)


def format_progress(event: dict[str, Any]) -> str:
    status = event.get("status", "")
    if event.get("id"):
        return f"[Image {event['id']}] {status}: {event.get('progress', '')}"
    return f"[Status] {status}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def image_available(client: DockerClient, image_ref: str) -> bool:
    """True if any local image carries exactly ``image_ref`` as a tag."""
    try:
        images = await to_thread.run_sync(client.images.list)
    except DockerException as exc:
        msg = f"Failed to list local images: {exc}"
        raise ContainerEngineError(msg) from exc

    return any(image_ref in (image.tags or []) for image in images)


async def ensure_image(
    client: DockerClient,
    image_ref: str,
    *,
    verbose: bool = True,
    out: TextIO | None = None,
) -> bool:
    """Make ``image_ref`` available locally.

    Returns ``True`` if a pull was performed, ``False`` if the image was
    already present.  Raises ``PullError`` if the pull fails.
    """
    if await image_available(client, image_ref):
        logger.debug("Image {} is already available locally", image_ref)
        return False

    if verbose:
        click.echo(f"Image {image_ref} not found locally. Pulling from registry...", file=out)

    view = PullProgressView(verbose=verbose, out=out)
    await to_thread.run_sync(partial(pull_image, client, image_ref, view))

    if verbose:
        click.echo(f"Pull completed: {image_ref}", file=out)
    return True


def pull_image(client: DockerClient, image_ref: str, view: PullProgressView) -> None:
    """Pull ``image_ref``, feeding every progress event to ``view``.  Runs in a worker thread."""
    try:
        stream = client.api.pull(image_ref, stream=True, decode=True)
    except DockerException as exc:
        msg = f"Failed to pull image {image_ref}: {exc}"
        raise PullError(msg) from exc

    try:
        drain_pull_stream(stream, view)
    except (DockerException, StreamParseError, ValueError, OSError) as exc:
        msg = f"Error decoding image pull progress: {exc}"
        raise PullError(msg) from exc


def drain_pull_stream(stream: Iterable[dict[str, Any]], view: PullProgressView) -> None:
    """Consume pull events until end of stream.

    Raises ``PullError`` for events carrying an ``error`` field.
    """
    for event in stream:
        error = event.get("error")
        if error:
            detail = event.get("errorDetail")
            if isinstance(detail, dict):
                error = detail.get("message", error)
            msg = f"Image pull failed: {error}"
            raise PullError(msg)
        view.push(event)
