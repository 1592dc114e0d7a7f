"""tfbox - run Terraform inside an ephemeral Docker container."""

from tfbox.pipeline import run

__all__ = ["run"]
