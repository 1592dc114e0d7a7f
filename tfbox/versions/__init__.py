"""Terraform version resolution.

- **config**: ``required_version`` extraction from ``*.tf`` / ``*.tf.json``
- **constraint**: Constraint parsing and matching
- **releases**: Release index protocol + HashiCorp HTML listing scraper
- **resolver**: Constraint + listing -> version string
"""

from tfbox.versions.releases import HashiCorpReleaseIndex, ReleaseIndex
from tfbox.versions.resolver import resolve_version

__all__ = ["HashiCorpReleaseIndex", "ReleaseIndex", "resolve_version"]
