"""Configuration management for the mention watcher."""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError

from .errors import ErrorCode, WatchError

REPO_PATTERN = r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$"


class GitHubConfig(BaseModel):
    """GitHub API connection settings."""

    token: Optional[SecretStr] = Field(default=None, description="Personal access token")
    api_base: str = "https://api.github.com"
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")


class WatchConfig(BaseModel):
    """Poll loop behavior settings."""

    repo: Optional[str] = Field(default=None, description="Target repository (owner/repo)")
    poll_interval: int = Field(default=300, ge=1, description="Seconds between notification checks")
    reasons: list[str] = Field(default_factory=lambda: ["mention"])
    state_file: str = Field(default=".hivemoot-watch.json", description="Path to watch state file")
    once: bool = False


class Config(BaseModel):
    """Root configuration model."""

    github: GitHubConfig = GitHubConfig()
    watch: WatchConfig = WatchConfig()


def validate_repo(repo: Optional[str]) -> str:
    """Return the repo if it looks like ``owner/repo``.

    Raises:
        WatchError: If the repo is missing or malformed.
    """
    if not repo or not re.match(REPO_PATTERN, repo):
        raise WatchError(
            "Invalid or missing --repo. Expected format: owner/repo",
            ErrorCode.GH_ERROR,
            1,
        )
    return repo


def parse_reasons(raw: str) -> list[str]:
    """Split a comma-separated reason list, dropping blanks."""
    return [reason.strip() for reason in raw.split(",") if reason.strip()]


def load_config(config_path: Optional[str | Path] = None) -> Config:
    """Load and validate configuration from a YAML file.

    Supports ${VAR_NAME} syntax for environment variable expansion. With no
    path, returns the defaults.

    Args:
        config_path: Path to the configuration file, or None.

    Returns:
        Validated Config object.

    Raises:
        WatchError: If the file doesn't exist, is invalid, or references an
            unset environment variable.
    """
    if config_path is None:
        return Config()

    path = Path(config_path)
    if not path.exists():
        raise WatchError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values.",
            ErrorCode.CONFIG_NOT_FOUND,
            1,
        )

    try:
        with path.open() as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise WatchError(f"Invalid YAML in {path}: {e}", ErrorCode.INVALID_CONFIG, 1) from e

    if not isinstance(raw_config, dict):
        raise WatchError(f"Invalid config {path}: expected a mapping", ErrorCode.INVALID_CONFIG, 1)

    # Expand environment variables in the format ${VAR_NAME}
    def expand_env_vars(obj):
        if isinstance(obj, dict):
            return {k: expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [expand_env_vars(item) for item in obj]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            value = os.getenv(env_var)
            if value is None:
                raise WatchError(
                    f"Environment variable '{env_var}' is not set",
                    ErrorCode.INVALID_CONFIG,
                    1,
                )
            return value
        return obj

    raw_config = expand_env_vars(raw_config)

    try:
        return Config(**raw_config)
    except ValidationError as e:
        raise WatchError(f"Invalid config {path}: {e}", ErrorCode.INVALID_CONFIG, 1) from e
