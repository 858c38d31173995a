"""
mediapull configuration (pydantic-settings).

Settings come from MEDIAPULL_* environment variables or a .env file and are
read-only for the lifetime of a transfer. There is no global instance:
build one with load_settings() and pass it down.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediapull.exceptions import ConfigurationError

BYTES_PER_MB = 1024 * 1024


class TransferSettings(BaseSettings):
    """Startup configuration for transfers."""

    model_config = SettingsConfigDict(
        env_prefix="MEDIAPULL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Transport selection
    mode: Literal["sftp", "http"] = "sftp"

    # Media server / HTTP origin
    server_url: str | None = None
    server_token: SecretStr | None = None

    # SSH endpoint
    remote_host: str | None = None
    remote_port: int = Field(default=22, ge=1, le=65535)
    remote_user: str | None = None
    remote_root: str | None = None
    private_key_path: Path | None = None

    # Local storage
    local_root: Path | None = None

    # Throughput
    speed_limit_mb: float | None = Field(default=None, gt=0)
    chunk_size: int = Field(default=64 * 1024, ge=1024, le=16 * BYTES_PER_MB)
    max_buffered_chunks: int = Field(default=32, ge=1, le=1024)

    # Timeouts
    connect_timeout: float = Field(default=20.0, ge=1.0, le=120.0)
    keepalive_interval: float = Field(default=10.0, ge=1.0, le=300.0)
    read_timeout: float = Field(default=60.0, ge=1.0, le=600.0)

    # Catalog HTTP retries
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_backoff: float = Field(default=1.0, ge=0.0, le=60.0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    @field_validator("server_url")
    @classmethod
    def _check_server_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not value.startswith(("http://", "https://")):
            raise ValueError("server_url must be a valid HTTP/HTTPS URL")
        return value.rstrip("/")

    @field_validator("remote_root")
    @classmethod
    def _check_remote_root(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not value.startswith("/"):
            raise ValueError("remote_root must be an absolute path")
        return value.rstrip("/") or "/"

    @property
    def rate_limit(self) -> int | None:
        """Speed limit in bytes per second, or None for unthrottled."""
        if not self.speed_limit_mb:
            return None
        return int(self.speed_limit_mb * BYTES_PER_MB)

    @property
    def token(self) -> str | None:
        """Plain server token."""
        return self.server_token.get_secret_value() if self.server_token else None

    def validate_for_transfer(self) -> None:
        """
        Check that every field the selected mode needs is present.

        Raises:
            ConfigurationError: Listing all problems found.
        """
        errors: list[str] = []

        if self.local_root is None:
            errors.append("MEDIAPULL_LOCAL_ROOT is not set")
        elif not self.local_root.exists():
            errors.append("MEDIAPULL_LOCAL_ROOT must exist on the filesystem")

        if self.mode == "sftp":
            required = {
                "MEDIAPULL_REMOTE_HOST": self.remote_host,
                "MEDIAPULL_REMOTE_USER": self.remote_user,
                "MEDIAPULL_REMOTE_ROOT": self.remote_root,
                "MEDIAPULL_PRIVATE_KEY_PATH": self.private_key_path,
            }
            for name, value in required.items():
                if not value:
                    errors.append(f"{name} is not set")
            if self.private_key_path and not self.private_key_path.is_file():
                errors.append("MEDIAPULL_PRIVATE_KEY_PATH must point to a readable key file")
        else:
            if not self.server_url:
                errors.append("MEDIAPULL_SERVER_URL is not set")
            if not self.token:
                errors.append("MEDIAPULL_SERVER_TOKEN is not set")

        if errors:
            raise ConfigurationError(errors)

    def validate_for_catalog(self) -> None:
        """Check the fields the catalog lookup needs."""
        errors: list[str] = []
        if not self.server_url:
            errors.append("MEDIAPULL_SERVER_URL is not set")
        if not self.token:
            errors.append("MEDIAPULL_SERVER_TOKEN is not set")
        if errors:
            raise ConfigurationError(errors)


def load_settings(env_file: str | Path | None = None, **overrides: Any) -> TransferSettings:
    """
    Build settings from the environment, an optional .env file and overrides.

    Args:
        env_file: Alternative .env file (default: ./.env if present).
        **overrides: Explicit field values; None values are ignored.

    Returns:
        A new immutable TransferSettings.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    if env_file is not None:
        return TransferSettings(_env_file=env_file, **values)
    return TransferSettings(**values)


__all__ = ["TransferSettings", "load_settings", "BYTES_PER_MB"]
