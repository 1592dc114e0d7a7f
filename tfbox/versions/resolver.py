"""Version resolver -- picks the Terraform release for a project.

Resolution order:

1. Read ``required_version`` declarations from the project directory and
   join them with ``,`` (all must hold).  Missing or broken configuration
   means no constraint.
2. Fetch the release listing from the ``ReleaseIndex``.
3. Parse the constraint; a malformed constraint also means no constraint.
4. Walk the listing newest first, skipping unparsable names and
   prereleases, and return the first release that satisfies the constraint.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from packaging.version import InvalidVersion, Version

from tfbox.errors import ConfigReadError, NoMatchingVersionError
from tfbox.versions.config import read_required_versions
from tfbox.versions.constraint import (
    ConstraintParseError,
    VersionConstraint,
    is_prerelease,
    parse_constraint,
    parse_version,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from tfbox.versions.releases import ReleaseIndex

logger = logging.getLogger(__name__)


def load_constraint_text(project_dir: Path) -> str:
    """Joined ``required_version`` string for ``project_dir``, or ``""``."""
    try:
        declared = read_required_versions(project_dir)
    except ConfigReadError as exc:
        logger.warning("Ignoring project configuration: %s", exc)
        return ""
    return ",".join(declared)


def parse_constraint_or_empty(text: str) -> VersionConstraint:
    try:
        return parse_constraint(text)
    except ConstraintParseError as exc:
        logger.warning("Ignoring version constraint %r: %s", text, exc)
        return VersionConstraint()


def select_version(candidates: Iterable[str], constraint: VersionConstraint) -> str:
    """Newest non-prerelease candidate satisfying ``constraint``.

    Listing order is not trusted; candidates are sorted by version first.
    Raises ``NoMatchingVersionError``.
    """
    parsed: list[tuple[Version, str]] = []
    for name in candidates:
        try:
            parsed.append((parse_version(name), name))
        except InvalidVersion:
            logger.info("Skipping malformed release name %r", name)

    parsed.sort(key=lambda item: item[0], reverse=True)
    for version, name in parsed:
        if is_prerelease(version):
            continue
        if constraint.check(version):
            return name

    raise NoMatchingVersionError(str(constraint))


async def resolve_version(project_dir: Path, releases: ReleaseIndex) -> str:
    """Resolve the Terraform version for ``project_dir``.

    Raises
    ------
    NetworkError:
        The release listing could not be fetched.
    NoMatchingVersionError:
        No release satisfies the project's constraint.
    """
    constraint_text = load_constraint_text(project_dir)
    candidates = await releases.fetch_version_list()
    constraint = parse_constraint_or_empty(constraint_text)

    version = select_version(candidates, constraint)
    logger.info("Resolved Terraform %s (constraint=%r)", version, str(constraint) or "any")
    return version
