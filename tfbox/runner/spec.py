"""Container run data models.

``ContainerRunSpec`` describes a single Terraform invocation; ``RunResult``
collects its outcome from the two concurrent tasks of the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, Field, model_validator

from tfbox.errors import ContainerExitError, RunError

CONTAINER_BINARY_PATH = PurePosixPath("/usr/local/bin/terraform")
"""Where the cached binary is mounted inside the container."""


class RunState(StrEnum):
    """Lifecycle of the container behind a run."""

    CREATED = "created"
    STARTED = "started"
    RUNNING = "running"
    EXITED = "exited"
    ERRORED = "errored"
    REMOVED = "removed"


# -- Run spec ----------------------------------------------------------------


class BindMount(BaseModel):
    """Host path made available inside the container."""

    source: str
    target: str
    read_only: bool = False

    def to_volume(self) -> str:
        """Docker volume string: ``{source}:{target}:{mode}``."""
        mode = "ro" if self.read_only else "rw"
        return f"{self.source}:{self.target}:{mode}"


class ContainerRunSpec(BaseModel):
    """Everything needed to create the Terraform container."""

    image: str
    working_dir: str
    command: list[str] = Field(min_length=1)
    environment: list[str] = Field(default_factory=list)
    mounts: list[BindMount] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_binary_mount(self) -> ContainerRunSpec:
        targets = [m for m in self.mounts if m.target == str(CONTAINER_BINARY_PATH)]
        if len(targets) != 1:
            msg = f"Expected exactly one bind mount at {CONTAINER_BINARY_PATH}, found {len(targets)}"
            raise ValueError(msg)
        return self

    def create_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``DockerClient.containers.create``."""
        return {
            "image": self.image,
            "command": self.command,
            "working_dir": self.working_dir,
            "environment": self.environment,
            "volumes": [m.to_volume() for m in self.mounts],
        }


# -- Run result --------------------------------------------------------------


@dataclass
class RunResult:
    """Outcome of a container run.

    The log task writes only ``log_error``; the wait task writes only
    ``wait_error`` and ``exit_code``.  Both are read after the join.
    """

    container_id: str
    state: RunState = RunState.CREATED
    exit_code: int | None = None
    log_error: RunError | None = None
    wait_error: RunError | None = None

    @property
    def error(self) -> RunError | None:
        """First failure by priority: log copy, then wait, then exit code."""
        if self.log_error is not None:
            return self.log_error
        if self.wait_error is not None:
            return self.wait_error
        if self.exit_code:
            return ContainerExitError(self.exit_code)
        return None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        error = self.error
        if error is not None:
            raise error
