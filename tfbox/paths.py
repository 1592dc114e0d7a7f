"""Host paths and container environment.

Resolves the project root on the host, maps it into the container, and
assembles the environment and bind mounts for a run.

Container layout
----------------

- ``/host/``                    -> project root (CWD is ``/host/{directory}``)
- ``/usr/local/bin/terraform``  -> cached binary (read-only)
- ``/.aws/``                    -> ``{home}/.aws`` (if present)
- ``/root/.netrc``              -> ``{home}/.netrc`` (if present)

Credential files are pointed at through ``AWS_CONFIG_FILE`` and
``AWS_SHARED_CREDENTIALS_FILE`` so the AWS provider finds them regardless of
the container user's home directory.
"""

from __future__ import annotations

import os
import posixpath
from collections.abc import Mapping
from pathlib import Path, PurePosixPath

from tfbox.runner.spec import CONTAINER_BINARY_PATH, BindMount

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONTAINER_ROOT = PurePosixPath("/host")
"""Mount point of the project root inside the container."""

ENV_OVERRIDES: dict[str, str] = {
    "AWS_CONFIG_FILE": "/.aws/config",
    "AWS_SHARED_CREDENTIALS_FILE": "/.aws/credentials",
    "TMPDIR": "/tmp",  # noqa: S108
}


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def expand_home(path: str, home: Path) -> str:
    """Replace a leading ``~`` with ``home``."""
    if path == "~":
        return str(home)
    if path.startswith("~/"):
        return str(home / path[2:])
    return path


def resolve_root(root: str | None, home: Path) -> Path:
    """Absolute project root.  ``None`` or empty means the current directory."""
    if not root:
        return Path.cwd()
    return Path(os.path.abspath(expand_home(root, home)))


class HostPaths:
    """Resolved host and container paths for a single run.

    ``working_dir`` is relative to the project root and must stay inside it;
    it becomes both the host directory scanned for ``required_version`` and
    the container's working directory.
    """

    def __init__(self, *, home: Path, root: Path, working_dir: str = ".") -> None:
        self.home = home
        self.root = root

        normalized = posixpath.normpath(working_dir or ".")
        if normalized == ".." or normalized.startswith("../") or posixpath.isabs(normalized):
            msg = f"Working directory must be relative to the project root: {working_dir}"
            raise ValueError(msg)
        self.working_dir = normalized

    @classmethod
    def from_options(cls, *, home: Path, root: str | None, working_dir: str | None) -> HostPaths:
        return cls(home=home, root=resolve_root(root, home), working_dir=working_dir or ".")

    @property
    def project_dir(self) -> Path:
        """Host directory Terraform runs in: ``{root}/{working_dir}``."""
        if self.working_dir == ".":
            return self.root
        return self.root / self.working_dir

    @property
    def container_workdir(self) -> str:
        """Container working directory: ``/host/{working_dir}``."""
        if self.working_dir == ".":
            return str(CONTAINER_ROOT)
        return str(CONTAINER_ROOT / self.working_dir)

    @property
    def aws_dir(self) -> Path:
        return self.home / ".aws"

    @property
    def netrc(self) -> Path:
        return self.home / ".netrc"

    def bind_mounts(self, binary_path: Path) -> list[BindMount]:
        """Project root, binary, and whichever credential files exist on the host.

        Docker creates missing bind sources as empty directories, so absent
        credential paths are left out rather than mounted.
        """
        mounts = [
            BindMount(source=str(self.root), target=str(CONTAINER_ROOT)),
            BindMount(source=str(binary_path), target=str(CONTAINER_BINARY_PATH), read_only=True),
        ]
        if self.aws_dir.is_dir():
            mounts.append(BindMount(source=str(self.aws_dir), target="/.aws"))
        if self.netrc.is_file():
            mounts.append(BindMount(source=str(self.netrc), target="/root/.netrc"))
        return mounts


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


def build_container_env(
    host_env: Mapping[str, str] | None = None,
    *,
    exclude: list[str] | tuple[str, ...] = (),
) -> list[str]:
    """Merge the host environment with the fixed overrides.

    Returns ``KEY=VALUE`` strings sorted by key.  Overrides always win;
    ``exclude`` names are dropped from the host side only.
    """
    source = os.environ if host_env is None else host_env
    skipped = set(exclude)

    merged = {key: value for key, value in source.items() if key not in skipped}
    merged.update(ENV_OVERRIDES)
    return [f"{key}={merged[key]}" for key in sorted(merged)]
