"""Configuration management for s3repo-rebuild.

Handles loading and validation of YAML configuration files, with
environment variable expansion and overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError


DEFAULT_STAGING_DIRECTORY = "target/s3repo"
DEFAULT_CREATEREPO = "createrepo"
DEFAULT_SNAPSHOT_MARKER = "SNAPSHOT"

# Environment variables consulted when a value is absent from the file
ENV_OVERRIDES = {
    "S3REPO_ACCESS_KEY": ("store", "access_key"),
    "S3REPO_SECRET_KEY": ("store", "secret_key"),
    "S3REPO_REPOSITORY_PATH": ("rebuild", "repository_path"),
    "S3REPO_STAGING_DIRECTORY": ("rebuild", "staging_directory"),
    "S3REPO_CREATEREPO": ("rebuild", "createrepo"),
}


@dataclass
class StoreConfig:
    """Credentials and endpoint for the object store."""

    access_key: str = ""
    secret_key: str = ""
    region: Optional[str] = None
    endpoint_url: Optional[str] = None


@dataclass
class RebuildOptions:
    """Options controlling a repository rebuild."""

    repository_path: str = ""
    staging_directory: str = DEFAULT_STAGING_DIRECTORY
    validate: bool = True
    remove_old_snapshots: bool = False
    upload: bool = True
    createrepo: str = DEFAULT_CREATEREPO
    createrepo_args: List[str] = field(default_factory=list)
    createrepo_timeout: int = 600
    snapshot_marker: str = DEFAULT_SNAPSHOT_MARKER
    max_workers: int = 1


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_dir: str = "/var/log/s3repo"
    file_logging: bool = False


@dataclass
class RebuildConfig:
    """Top-level configuration for s3repo-rebuild."""

    store: StoreConfig = field(default_factory=StoreConfig)
    rebuild: RebuildOptions = field(default_factory=RebuildOptions)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def parse_store_config(store_dict: Dict[str, Any]) -> StoreConfig:
    """Parse the store section.

    Args:
        store_dict: Store configuration dictionary

    Returns:
        StoreConfig instance
    """
    return StoreConfig(
        access_key=store_dict.get("access_key", ""),
        secret_key=store_dict.get("secret_key", ""),
        region=store_dict.get("region"),
        endpoint_url=store_dict.get("endpoint_url"),
    )


def parse_rebuild_options(rebuild_dict: Dict[str, Any]) -> RebuildOptions:
    """Parse the rebuild section.

    Args:
        rebuild_dict: Rebuild configuration dictionary

    Returns:
        RebuildOptions instance
    """
    return RebuildOptions(
        repository_path=rebuild_dict.get("repository_path", ""),
        staging_directory=rebuild_dict.get("staging_directory", DEFAULT_STAGING_DIRECTORY),
        validate=_as_bool(rebuild_dict.get("validate", True)),
        remove_old_snapshots=_as_bool(rebuild_dict.get("remove_old_snapshots", False)),
        upload=_as_bool(rebuild_dict.get("upload", True)),
        createrepo=rebuild_dict.get("createrepo", DEFAULT_CREATEREPO),
        createrepo_args=list(rebuild_dict.get("createrepo_args", [])),
        createrepo_timeout=int(rebuild_dict.get("createrepo_timeout", 600)),
        snapshot_marker=rebuild_dict.get("snapshot_marker", DEFAULT_SNAPSHOT_MARKER),
        max_workers=int(rebuild_dict.get("max_workers", 1)),
    )


def parse_logging_config(logging_dict: Dict[str, Any]) -> LoggingConfig:
    """Parse the logging section."""
    return LoggingConfig(
        level=logging_dict.get("level", "INFO"),
        log_dir=logging_dict.get("log_dir", "/var/log/s3repo"),
        file_logging=_as_bool(logging_dict.get("file_logging", False)),
    )


def parse_config(config_dict: Dict[str, Any]) -> RebuildConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        RebuildConfig instance
    """
    return RebuildConfig(
        store=parse_store_config(config_dict.get("store", {}) or {}),
        rebuild=parse_rebuild_options(config_dict.get("rebuild", {}) or {}),
        logging=parse_logging_config(config_dict.get("logging", {}) or {}),
    )


def apply_env_overrides(
    config_dict: Dict[str, Any], environ: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """Fill values missing from the file with S3REPO_* environment variables.

    Args:
        config_dict: Configuration dictionary (not modified)
        environ: Environment mapping, defaults to os.environ

    Returns:
        New configuration dictionary
    """
    environ = os.environ if environ is None else environ
    merged = {section: dict(values or {}) for section, values in config_dict.items()}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        target = merged.setdefault(section, {})
        if not target.get(key):
            target[key] = value
    return merged


def validate_config(config: RebuildConfig) -> None:
    """Check that the configuration can drive a rebuild.

    Raises:
        ConfigurationError: If a required value is missing or out of range
    """
    if not config.rebuild.repository_path:
        raise ConfigurationError("repository_path is required")
    if not config.store.access_key or not config.store.secret_key:
        raise ConfigurationError("store access_key and secret_key are required")
    if not config.rebuild.staging_directory:
        raise ConfigurationError("staging_directory must not be empty")
    if config.rebuild.max_workers < 1:
        raise ConfigurationError(
            f"max_workers must be at least 1, got {config.rebuild.max_workers}"
        )
    if not config.rebuild.snapshot_marker:
        raise ConfigurationError("snapshot_marker must not be empty")


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Args:
        obj: Configuration object (dict, list, str, etc.)

    Returns:
        Configuration with expanded environment variables
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def _as_bool(value: Any) -> bool:
    """Interpret YAML or environment strings as booleans."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_typed_config(
    config_path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
) -> RebuildConfig:
    """Load and parse configuration into typed dataclasses.

    Args:
        config_path: Path to configuration file, or None for env-only config
        environ: Environment mapping, defaults to os.environ

    Returns:
        RebuildConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_dict = load_config(config_path) if config_path else {}
    return parse_config(apply_env_overrides(config_dict, environ))
