"""Tool configuration loaded from TFBOX_* environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_IMAGE = "mcr.microsoft.com/devcontainers/base:alpine"
DEFAULT_RELEASES_URL = "https://releases.hashicorp.com/terraform/"


class TfboxSettings(BaseSettings):
    """tfbox settings.

    All fields are read from environment variables with the ``TFBOX_`` prefix.
    For example, ``TFBOX_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    The settings object is passed explicitly to every provisioning step, so
    tests can point ``home`` at a temporary directory without touching the
    real cache.
    """

    model_config = SettingsConfigDict(
        env_prefix="TFBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "WARNING"

    # -- Filesystem ------------------------------------------------------------
    home: Path = Field(default_factory=Path.home)
    """User home directory.  Holds the binary cache and the credential files."""

    # -- Container -------------------------------------------------------------
    image: str = DEFAULT_IMAGE
    """Base image the Terraform binary is mounted into."""

    env_exclude: list[str] = Field(default_factory=lambda: ["PATH", "HOME"])
    """Host environment variables that are never forwarded into the container."""

    # -- Upstream --------------------------------------------------------------
    releases_url: str = DEFAULT_RELEASES_URL
    """Release listing page; binary archives live under ``{releases_url}/{version}/``."""

    http_timeout_seconds: float = Field(default=60.0, gt=0)
    user_agent: str = Field(default="tfbox", min_length=1)

    # -- Helpers ---------------------------------------------------------------

    @property
    def cache_root(self) -> Path:
        """Binary cache root: ``{home}/.tfbox/linux``."""
        return self.home / ".tfbox" / "linux"


@lru_cache(maxsize=1)
def get_settings() -> TfboxSettings:
    """Settings read once from ``TFBOX_*`` variables and ``.env``.

    Tests call ``get_settings.cache_clear()`` after changing the environment.
    """
    return TfboxSettings()
