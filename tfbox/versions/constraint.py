"""Terraform version constraint parsing and matching.

Constraint strings follow Terraform's ``required_version`` syntax: a
comma-separated list of comparators, all of which must hold::

    ">= 1.8.0, < 1.9.0"
    "~> 1.5"
    "1.7.3"

Versions are parsed with ``packaging.version.Version``, which accepts
Terraform's release names (``1.8.5``, ``1.9.0-beta2``, ``1.10.0-alpha20240606``)
and orders them totally.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from packaging.version import InvalidVersion, Version


class ConstraintParseError(ValueError):
    """A constraint string is not valid comparator syntax."""


class Operator(StrEnum):
    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    PESSIMISTIC = "~>"


_COMPARATOR_RE = re.compile(r"^\s*(~>|>=|<=|!=|=|>|<)?\s*(\S+)\s*$")


def parse_version(text: str) -> Version:
    """Parse a release name.  Raises ``InvalidVersion``."""
    return Version(text.strip())


def is_prerelease(version: Version) -> bool:
    return version.is_prerelease


@dataclass(frozen=True)
class Comparator:
    operator: Operator
    version: Version

    def check(self, candidate: Version) -> bool:
        match self.operator:
            case Operator.EQ:
                return candidate == self.version
            case Operator.NE:
                return candidate != self.version
            case Operator.GT:
                return candidate > self.version
            case Operator.GE:
                return candidate >= self.version
            case Operator.LT:
                return candidate < self.version
            case Operator.LE:
                return candidate <= self.version
            case Operator.PESSIMISTIC:
                return self.version <= candidate < _pessimistic_upper_bound(self.version)

    def __str__(self) -> str:
        return f"{self.operator} {self.version}"


def _pessimistic_upper_bound(version: Version) -> Version:
    """Upper bound of ``~> version``: bump the second-to-last given segment.

    ``~> 1.2.3`` -> ``< 1.3``, ``~> 1.2`` -> ``< 2``, ``~> 1`` -> ``< 2``.
    """
    release = version.release
    if len(release) == 1:
        return Version(str(release[0] + 1))
    bumped = (*release[:-2], release[-2] + 1)
    return Version(".".join(str(part) for part in bumped))


@dataclass(frozen=True)
class VersionConstraint:
    """Logical AND of comparators.  Empty matches every version."""

    comparators: tuple[Comparator, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.comparators

    def check(self, candidate: Version) -> bool:
        return all(c.check(candidate) for c in self.comparators)

    def __str__(self) -> str:
        return ", ".join(str(c) for c in self.comparators)


def parse_constraint(text: str) -> VersionConstraint:
    """Parse a comma-separated constraint string.

    Blank input yields the empty constraint.  Raises ``ConstraintParseError``
    for a malformed comparator.
    """
    if not text.strip():
        return VersionConstraint()

    comparators: list[Comparator] = []
    for part in text.split(","):
        match = _COMPARATOR_RE.match(part)
        if match is None:
            msg = f"Malformed constraint: {part.strip()!r}"
            raise ConstraintParseError(msg)

        op, raw_version = match.groups()
        try:
            version = parse_version(raw_version)
        except InvalidVersion as exc:
            msg = f"Malformed version in constraint: {raw_version!r}"
            raise ConstraintParseError(msg) from exc
        comparators.append(Comparator(Operator(op or "="), version))

    return VersionConstraint(tuple(comparators))
