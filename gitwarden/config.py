"""
gitwarden configuration management.

Handles loading, saving, and validating configuration from various sources:
- Default values
- Configuration file (TOML)
- Environment variables

The fetch loop never caches these values: the daemon re-loads them at the
start of every cycle through FetchSettings.from_config().
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, List, Optional

import tomli_w
import yaml

from gitwarden.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_DIR = Path.home() / ".config" / "gitwarden"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "gitwarden"
DEFAULT_REPOS_BASE_PATH = "/git-repos"

ENV_PREFIX = "GITWARDEN_"

_TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass
class ValidationError:
    """Validation problem found in a configuration."""
    field: str
    message: str
    severity: str  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.field}: {self.message}"


@dataclass
class FetchConfig:
    """Configuration for the periodic auto-fetch loop."""

    enabled: bool = False
    interval_minutes: int = 5
    warmup_seconds: float = 60.0

    # Command run inside each repository's working directory
    git_executable: str = "git"
    fetch_args: list[str] = field(default_factory=lambda: ["fetch", "--all", "--prune"])

    # What happens to a running git process when shutdown is requested
    terminate_on_cancel: bool = True
    terminate_timeout: float = 5.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None
    max_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class GitwardenConfig:
    """Main configuration container for gitwarden."""

    # Paths
    config_dir: Path = DEFAULT_CONFIG_DIR
    data_dir: Path = DEFAULT_DATA_DIR
    repos_base_path: str = DEFAULT_REPOS_BASE_PATH

    # Sub-configurations
    fetch: FetchConfig = field(default_factory=FetchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Database; empty means a SQLite file inside data_dir
    database_url: str = ""

    @property
    def db_url(self) -> str:
        """Effective database URL."""
        return self.database_url or f"sqlite:///{self.data_dir}/gitwarden.db"

    @property
    def pid_file(self) -> Path:
        return self.data_dir / "gitwarden.pid"


def default_config_path() -> Path:
    """Resolve the config file path, honouring GITWARDEN_CONFIG_DIR."""
    env_config_dir = os.environ.get(f"{ENV_PREFIX}CONFIG_DIR")
    if env_config_dir:
        return Path(env_config_dir) / DEFAULT_CONFIG_FILE
    return DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = ENV_PREFIX,
) -> GitwardenConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/gitwarden/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration
    """
    config = GitwardenConfig()

    if config_path is None:
        config_path = default_config_path()

    if config_path.exists():
        config = _load_from_file(config_path, config)

    return _load_from_env(config, env_prefix)


def _load_from_file(path: Path, config: GitwardenConfig) -> GitwardenConfig:
    """Load configuration from a TOML file.

    A malformed file is logged and ignored so that a running daemon keeps
    its defaults instead of crashing between cycles.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return config

    if "fetch" in data:
        for key, value in data["fetch"].items():
            if hasattr(config.fetch, key):
                setattr(config.fetch, key, value)

    if "logging" in data:
        for key, value in data["logging"].items():
            if key == "file":
                config.logging.file = Path(value) if value else None
            elif hasattr(config.logging, key):
                setattr(config.logging, key, value)

    if "config_dir" in data:
        config.config_dir = Path(data["config_dir"])
    if "data_dir" in data:
        config.data_dir = Path(data["data_dir"])
    if "repos_base_path" in data:
        config.repos_base_path = str(data["repos_base_path"])
    if "database_url" in data:
        config.database_url = data["database_url"]

    return config


def _load_from_env(config: GitwardenConfig, prefix: str) -> GitwardenConfig:
    """Load configuration from environment variables."""

    if env_val := os.environ.get(f"{prefix}FETCH_ENABLED"):
        config.fetch.enabled = env_val.lower() in _TRUE_VALUES
    if env_val := os.environ.get(f"{prefix}FETCH_INTERVAL_MINUTES"):
        try:
            config.fetch.interval_minutes = int(env_val)
        except ValueError:
            logger.warning(f"Ignoring non-integer {prefix}FETCH_INTERVAL_MINUTES={env_val!r}")
    if env_val := os.environ.get(f"{prefix}FETCH_WARMUP_SECONDS"):
        try:
            config.fetch.warmup_seconds = float(env_val)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {prefix}FETCH_WARMUP_SECONDS={env_val!r}")
    if env_val := os.environ.get(f"{prefix}GIT_EXECUTABLE"):
        config.fetch.git_executable = env_val

    if env_val := os.environ.get(f"{prefix}REPOS_BASE_PATH"):
        config.repos_base_path = env_val

    if env_val := os.environ.get(f"{prefix}LOG_LEVEL"):
        config.logging.level = env_val.upper()

    if env_val := os.environ.get(f"{prefix}CONFIG_DIR"):
        config.config_dir = Path(env_val)
    if env_val := os.environ.get(f"{prefix}DATA_DIR"):
        config.data_dir = Path(env_val)
    if env_val := os.environ.get(f"{prefix}DATABASE_URL"):
        config.database_url = env_val

    return config


def _config_to_dict(config: GitwardenConfig) -> dict[str, Any]:
    """Convert configuration to a plain dictionary (paths as strings)."""
    return {
        "config_dir": str(config.config_dir),
        "data_dir": str(config.data_dir),
        "repos_base_path": config.repos_base_path,
        "database_url": config.database_url,
        "fetch": {
            "enabled": config.fetch.enabled,
            "interval_minutes": config.fetch.interval_minutes,
            "warmup_seconds": config.fetch.warmup_seconds,
            "git_executable": config.fetch.git_executable,
            "fetch_args": list(config.fetch.fetch_args),
            "terminate_on_cancel": config.fetch.terminate_on_cancel,
            "terminate_timeout": config.fetch.terminate_timeout,
        },
        "logging": {
            "level": config.logging.level,
            "format": config.logging.format,
            "file": str(config.logging.file) if config.logging.file else "",
            "max_size": config.logging.max_size,
            "backup_count": config.logging.backup_count,
        },
    }


def save_config(config: GitwardenConfig, path: Optional[Path] = None) -> Path:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save
        path: Path to save to (default: config.config_dir / config.toml)

    Returns:
        The path written
    """
    if path is None:
        path = config.config_dir / DEFAULT_CONFIG_FILE

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "wb") as f:
        tomli_w.dump(_config_to_dict(config), f)

    return path


def ensure_directories(config: GitwardenConfig) -> None:
    """Ensure config and data directories exist."""
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.data_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance (lazy-loaded)
_global_config: Optional[GitwardenConfig] = None


def get_config() -> GitwardenConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def clear_config_cache() -> None:
    """Clear the global configuration cache."""
    global _global_config
    _global_config = None


def set_config_value(
    section: str,
    key: str,
    value: str,
    config_path: Optional[Path] = None,
) -> GitwardenConfig:
    """
    Set a single configuration value and persist it to file.

    Args:
        section: "fetch", "logging", or "general" for top-level keys
        key: Configuration key within the section
        value: Raw string value, converted to the type of the current value
        config_path: Path to config file (default: resolved config path)

    Returns:
        The updated configuration

    Raises:
        ConfigurationError: If the section/key is unknown or the value
            cannot be converted
    """
    if config_path is None:
        config_path = default_config_path()

    config = load_config(config_path)

    target: Any = config if section == "general" else getattr(config, section, None)
    if target is None or section not in ("general", "fetch", "logging"):
        raise ConfigurationError(f"Unknown configuration section: {section}")

    if key not in {f.name for f in fields(target)} or key in ("fetch", "logging"):
        raise ConfigurationError(f"Unknown configuration key: {section}.{key}")

    current_value = getattr(target, key)

    try:
        if isinstance(current_value, bool):
            converted: Any = value.lower() in _TRUE_VALUES
        elif isinstance(current_value, int):
            converted = int(value)
        elif isinstance(current_value, float):
            converted = float(value)
        elif isinstance(current_value, Path):
            converted = Path(value)
        elif isinstance(current_value, list):
            converted = value.split()
        else:
            converted = value
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {section}.{key}: {value!r}",
            details={"expected": type(current_value).__name__},
        ) from e

    setattr(target, key, converted)
    save_config(config, config_path)
    return config


def validate_config(config: Optional[GitwardenConfig] = None) -> List[ValidationError]:
    """
    Validate configuration and return a list of problems.

    Args:
        config: Configuration to validate (default: loaded from file)

    Returns:
        List of validation errors (empty if valid)
    """
    if config is None:
        config = load_config()

    errors: List[ValidationError] = []

    if config.fetch.interval_minutes < 1:
        errors.append(ValidationError(
            field="fetch.interval_minutes",
            message=f"Interval must be at least 1 minute, got {config.fetch.interval_minutes}. "
                    "The loop will use 1.",
            severity="warning",
        ))

    if config.fetch.warmup_seconds < 0:
        errors.append(ValidationError(
            field="fetch.warmup_seconds",
            message="Warm-up delay cannot be negative.",
            severity="error",
        ))

    if not config.fetch.fetch_args:
        errors.append(ValidationError(
            field="fetch.fetch_args",
            message="Fetch arguments are empty; git would be run without a subcommand.",
            severity="error",
        ))

    if not config.fetch.git_executable:
        errors.append(ValidationError(
            field="fetch.git_executable",
            message="Git executable is not set.",
            severity="error",
        ))

    if not Path(config.repos_base_path).is_dir():
        errors.append(ValidationError(
            field="repos_base_path",
            message=f"Repositories base path does not exist: {config.repos_base_path}",
            severity="warning",
        ))

    for name, directory in (("config_dir", config.config_dir), ("data_dir", config.data_dir)):
        if not directory.exists():
            errors.append(ValidationError(
                field=name,
                message=f"Directory does not exist: {directory}",
                severity="warning",
            ))
            continue
        try:
            test_file = directory / ".write_test"
            test_file.touch()
            test_file.unlink()
        except OSError:
            errors.append(ValidationError(
                field=name,
                message=f"Directory is not writable: {directory}",
                severity="error",
            ))

    return errors


def export_config_yaml(config: GitwardenConfig) -> str:
    """Export configuration as a YAML string."""
    return yaml.safe_dump(_config_to_dict(config), default_flow_style=False, sort_keys=False)


def export_config_json(config: GitwardenConfig) -> str:
    """Export configuration as a JSON string."""
    return json.dumps(_config_to_dict(config), indent=2)
