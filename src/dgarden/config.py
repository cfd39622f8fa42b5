"""Configuration module for dgarden."""

import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from dgarden.exceptions import ConfigurationError

# Project-level .env (searched upward from the working directory), then the
# user-level one. Neither overrides variables already set in the environment.
load_dotenv(find_dotenv(usecwd=True))
load_dotenv(Path.home() / ".dgarden" / ".env")

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_IGNORE_DIRS = ".obsidian,.trash,.git"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class GardenConfig(BaseModel):
    """Configuration for vault loading and linting."""

    # Root of the Obsidian vault
    vault_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("DGARDEN_VAULT_DIR", "."))
    )
    # Directory names skipped while walking the vault
    ignore_dirs: List[str] = Field(
        default_factory=lambda: _env_list("DGARDEN_IGNORE_DIRS", DEFAULT_IGNORE_DIRS)
    )
    # Persistent log files are only written when this is set
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("DGARDEN_LOG_DIR"))
            if os.getenv("DGARDEN_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("DGARDEN_LOG_LEVEL", "WARNING").upper()
    )
    # Treat warnings as failures in `dgarden lint`
    strict: bool = Field(
        default_factory=lambda: _env_flag("DGARDEN_STRICT", "false")
    )
    # Warn when a published note links to a note that is not published
    check_unpublished_links: bool = Field(
        default_factory=lambda: _env_flag("DGARDEN_CHECK_UNPUBLISHED_LINKS", "true")
    )
    # Warn when a published note has no explicit permalink
    require_permalink: bool = Field(
        default_factory=lambda: _env_flag("DGARDEN_REQUIRE_PERMALINK", "true")
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Reject log levels the logging module does not know."""
        if v not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return v

    def check(self) -> None:
        """Validate the current settings, including values assigned after creation.

        Raises:
            ConfigurationError: If a setting is invalid.
        """
        try:
            type(self).model_validate(self.model_dump())
        except ValidationError as e:
            error = e.errors()[0]
            key = ".".join(str(part) for part in error["loc"]) or None
            raise ConfigurationError(
                f"Invalid configuration for {key}: {error['msg']}",
                config_key=key,
            ) from e

    def get_vault_path(self) -> Path:
        """Get the absolute, resolved path of the vault root."""
        return self.vault_dir.expanduser().resolve()

    def get_log_dir(self) -> Optional[Path]:
        """Get the log directory, or None when file logging is disabled."""
        if self.log_dir is None:
            return None
        return self.log_dir.expanduser()


# Global config instance. Environment values are validated by
# GardenConfig.check() when the CLI starts, so a bad DGARDEN_* value is
# reported as a configuration error instead of failing the import.
config = GardenConfig.model_construct()
