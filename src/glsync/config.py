"""
Configuration management for glsync.

Loads configuration from TOML files in the following priority:
1. Path specified via --config flag
2. .glsync.toml in current directory
3. ~/.config/glsync/config.toml
4. ~/.glsync.toml

Values from the file can be overridden by GLS_* environment variables,
which in turn are overridden by command line flags.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

import toml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "GLS"


class ConfigError(Exception):
    """Raised when the configuration is incomplete or invalid."""


class CloneProtocol(str, Enum):
    """Which clone URL of a GitLab project is used."""

    SSH = "ssh"
    HTTP = "http"


class GitlabConfig(BaseModel):
    """Connection settings for the GitLab API."""

    url: str = Field(
        default="https://gitlab.com",
        description="GitLab URL",
    )
    token: str | None = Field(
        default=None,
        description="GitLab token for authentication",
    )
    timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for a single API request",
    )
    per_page: int = Field(
        default=100,
        description="Page size used when listing projects and subgroups",
    )
    max_concurrency: int = Field(
        default=8,
        description="Maximum number of concurrent API requests while walking the group tree",
    )
    clone_protocol: CloneProtocol = Field(
        default=CloneProtocol.SSH,
        description="Clone over ssh or http",
    )


class PathConfig(BaseModel):
    """Remote group and local directory to keep in sync."""

    gitlab: str | None = Field(
        default=None,
        description="GitLab group to clone recursively",
    )
    local: str | None = Field(
        default=None,
        description="Local path to clone to",
    )


class SyncConfig(BaseModel):
    """Configuration for sync runs."""

    workers: int = Field(
        default=5,
        description="Number of clone/pull/delete operations running in parallel",
    )
    confirm_delete: bool = Field(
        default=True,
        description="Ask before deleting local projects that no longer exist remotely",
    )


class Config(BaseModel):
    """Main configuration model for glsync."""

    gitlab: GitlabConfig = Field(default_factory=GitlabConfig)
    path: PathConfig = Field(default_factory=PathConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    def validate_for_sync(self) -> None:
        """
        Check that everything needed for a sync run is present.

        Raises:
            ConfigError: Listing every missing or invalid value.
        """
        problems = []

        if not self.gitlab.token:
            problems.append("gitlab token is required (--token or GLS_GITLAB_TOKEN)")
        if not self.path.gitlab:
            problems.append("gitlab group is required (--group or GLS_PATH_GITLAB)")
        if not self.path.local:
            problems.append("local path is required (--local or GLS_PATH_LOCAL)")
        if self.sync.workers < 1:
            problems.append("workers must be at least 1")
        if self.gitlab.max_concurrency < 1:
            problems.append("max_concurrency must be at least 1")

        if problems:
            raise ConfigError("; ".join(problems))


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Optional explicit path to config file.

    Returns:
        Config instance with loaded or default values.
    """
    search_paths = [
        Path(config_path) if config_path else None,
        Path.cwd() / ".glsync.toml",
        Path.home() / ".config" / "glsync" / "config.toml",
        Path.home() / ".glsync.toml",
    ]

    for path in search_paths:
        if path and path.exists():
            try:
                data = toml.load(path)
                logger.debug(f"Loaded configuration from {path}")
                return Config(**data)
            except (OSError, toml.TomlDecodeError, ValidationError) as e:
                logger.warning(f"Ignoring invalid config file {path}: {e}")
                continue

    return Config()


def apply_env_overrides(
    config: Config, environ: Optional[Mapping[str, str]] = None
) -> Config:
    """
    Overlay GLS_* environment variables onto a configuration.

    Recognised variables are GLS_GITLAB_URL, GLS_GITLAB_TOKEN,
    GLS_PATH_GITLAB, GLS_PATH_LOCAL and GLS_SYNC_WORKERS.

    Args:
        config: Configuration loaded from file.
        environ: Environment mapping, defaults to os.environ.

    Returns:
        A new Config with the overrides applied.
    """
    env = os.environ if environ is None else environ
    data = config.model_dump()

    overrides = {
        ("gitlab", "url"): f"{ENV_PREFIX}_GITLAB_URL",
        ("gitlab", "token"): f"{ENV_PREFIX}_GITLAB_TOKEN",
        ("path", "gitlab"): f"{ENV_PREFIX}_PATH_GITLAB",
        ("path", "local"): f"{ENV_PREFIX}_PATH_LOCAL",
        ("sync", "workers"): f"{ENV_PREFIX}_SYNC_WORKERS",
    }

    for (section, key), variable in overrides.items():
        value = env.get(variable)
        if value:
            data[section][key] = value

    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid value in environment: {e}") from e


def save_config(config: Config, path: Path) -> None:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save.
        path: Path to save the config file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude_none=True)
    with open(path, "w") as f:
        toml.dump(data, f)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "glsync" / "config.toml"
