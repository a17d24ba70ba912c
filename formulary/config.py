"""Installer configuration — env-driven.

Centralized settings using pydantic-settings.  Reads from a .env file and
FORMULARY_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class InstallerSettings(BaseSettings):
    """Installer settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export FORMULARY_BIN_DIR=/usr/local/bin
        export FORMULARY_LOG_LEVEL=DEBUG
        export FORMULARY_FETCH_MAX_ATTEMPTS=6

    Or via .env file::

        FORMULARY_USE_CACHE=false
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FORMULARY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Paths
    bin_dir: Path = Path.home() / ".local" / "bin"
    manifest_path: Path | None = None  # None -> bundled netfetch manifest
    cache_dir: Path = Path.home() / ".cache" / "formulary" / "archives"
    use_cache: bool = True

    # Fetch
    fetch_timeout_seconds: float = 30.0
    fetch_max_attempts: int = 4
    fetch_backoff_max_seconds: float = 10.0

    # Install
    smoke_test_timeout_seconds: float = 30.0
    lock_timeout_seconds: float = 60.0


# Module-level singleton; import as `from formulary.config import settings`
settings = InstallerSettings()
