"""Exception hierarchy.

Every failure tfbox raises derives from ``TfboxError`` so the CLI can turn
it into a one-line message.  Library exceptions (httpx, docker, OSError) are
chained as ``__cause__``.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class TfboxError(Exception):
    """Base class for all tfbox errors."""


# ---------------------------------------------------------------------------
# Version resolution
# ---------------------------------------------------------------------------


class ConfigReadError(TfboxError):
    """Project configuration could not be read.  Callers fall back to no constraint."""


class NetworkError(TfboxError):
    """An upstream HTTP request failed or returned a non-success status."""


class NoMatchingVersionError(TfboxError, LookupError):
    """No release in the listing satisfies the version constraint."""

    def __init__(self, constraint: str = "") -> None:
        if constraint:
            super().__init__(f"No Terraform release matches constraint '{constraint}'")
        else:
            super().__init__("No Terraform release found in the release listing")
        self.constraint = constraint


# ---------------------------------------------------------------------------
# Binary provisioning
# ---------------------------------------------------------------------------


class DownloadError(NetworkError):
    """Binary archive download failed."""


class UnsupportedArchitectureError(TfboxError):
    """The host architecture has no Terraform Linux build."""

    def __init__(self, arch: str) -> None:
        super().__init__(f"Unsupported architecture: {arch}")
        self.arch = arch


class PathTraversalError(TfboxError):
    """An archive entry would be extracted outside the destination directory."""

    def __init__(self, entry: str) -> None:
        super().__init__(f"Illegal file path in archive: {entry}")
        self.entry = entry


class BinaryPermissionError(TfboxError, PermissionError):
    """The extracted binary could not be made executable."""


# ---------------------------------------------------------------------------
# Container engine
# ---------------------------------------------------------------------------


class ContainerEngineError(TfboxError):
    """The container engine is unreachable or rejected an operation."""


class PullError(ContainerEngineError):
    """The base image could not be pulled."""


class CreateError(ContainerEngineError):
    """The container could not be created."""


class StartError(ContainerEngineError):
    """The container was created but could not be started."""


# ---------------------------------------------------------------------------
# Run outcome
# ---------------------------------------------------------------------------


class RunError(TfboxError):
    """The container ran but the run did not succeed."""


class LogStreamError(RunError):
    """Copying the container's output failed before the stream closed."""


class ContainerWaitError(RunError):
    """Waiting for the container failed or the engine reported an error."""


class ContainerExitError(RunError):
    """Terraform exited with a non-zero status code."""

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"terraform exited with status {exit_code}")
        self.exit_code = exit_code
