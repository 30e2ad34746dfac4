#!/usr/bin/env python3

import os
import json
import logging
import sys
import tomllib
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import toml
import yaml

from .domain import RepositoryRef
from .exit_codes import ConfigError

LOG_FORMAT = "%(levelname)s: %(message)s"

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format=LOG_FORMAT,
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("repostat")

CONFIG_DIR_NAME = '.repostat'
CONFIG_FILENAMES = ['config.toml', 'config.json', 'config.yaml', 'config.yml']


def get_config_path(override: Optional[str] = None) -> Path:
    """Get the path to the configuration file.

    Checks in order:
    1. Explicit override (the --config option)
    2. REPOSTAT_CONFIG environment variable
    3. ~/.repostat/config.{toml,json,yaml,yml}, first one that exists
    4. ~/.repostat/config.toml (default path for saving)
    """
    if override:
        return Path(override).expanduser()

    # Check for environment variable override
    if 'REPOSTAT_CONFIG' in os.environ:
        return Path(os.environ['REPOSTAT_CONFIG']).expanduser()

    config_dir = Path.home() / CONFIG_DIR_NAME
    for filename in CONFIG_FILENAMES:
        path = config_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.toml'


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "general": {
            "workers": None,           # None = scale with CPU count
            "fetch": True,             # git fetch before inspecting
            "progress": True,          # Show progress on stderr
            "subject_width": 50,       # Truncate commit subjects (0 = never)
            "timeout_seconds": 30,     # Per git command
        },
        "logging": {
            "level": "WARNING",
            "format": LOG_FORMAT,
        },
        "repositories": {},
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off')


def _convert_env_value(value: str, current: Any) -> Any:
    """
    Type an environment value after the setting it replaces.

    Boolean settings accept true/false/yes/no/on/off/1/0; other settings
    become integers when the value is all digits, else stay strings.
    """
    lowered = value.lower()
    if isinstance(current, bool):
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        return value
    if value.isdigit():
        return int(value)
    if lowered in ('true', 'yes', 'on'):
        return True
    if lowered in ('false', 'no', 'off'):
        return False
    return value


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: REPOSTAT_SECTION_KEY
    For example: REPOSTAT_GENERAL_FETCH=false

    The repositories table is never overridden from the environment.
    """
    env_prefix = "REPOSTAT_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                if current_level is config and config_key == 'repositories':
                    continue
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    if not isinstance(current_level[matched_key], dict):
                        current_level[matched_key] = _convert_env_value(value, current_level[matched_key])
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ['.yaml', '.yml']:
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    # Default to JSON format
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config_file(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Read the configuration file as written, without defaults or
    environment overrides. Use this to edit and save the file.

    Args:
        path: Explicit config file (default: see get_config_path)

    Returns:
        File contents, or an empty dict if the file does not exist

    Raises:
        ConfigError: If the file exists but cannot be parsed
    """
    config_path = get_config_path(path)
    if not config_path.exists():
        logger.debug(f"No config file at {config_path}")
        return {}

    try:
        file_config = _read_config_file(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Error loading config from {config_path}: {e}")
        raise ConfigError(f"Cannot read config {config_path}: {e}")

    if not isinstance(file_config, dict):
        raise ConfigError(f"Config {config_path} must contain a table at the top level")
    if not isinstance(file_config.get('repositories', {}), dict):
        raise ConfigError(f"'repositories' in {config_path} must be a table of name = path")

    return file_config


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the runtime configuration.

    Args:
        path: Explicit config file (default: see get_config_path)

    Returns:
        Defaults merged with the file contents and environment overrides

    Raises:
        ConfigError: If the file exists but cannot be parsed
    """
    config = merge_configs(get_default_config(), load_config_file(path))

    # Apply environment variable overrides
    return apply_env_overrides(config)


def _without_none(value):
    """TOML has no null; drop unset values before writing."""
    if isinstance(value, dict):
        return {k: _without_none(v) for k, v in value.items() if v is not None}
    return value


def save_config(config: Dict[str, Any], path: Optional[str] = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to write
        path: Explicit config file (default: see get_config_path)

    Returns:
        Path that was written

    Raises:
        ConfigError: If the file cannot be written
    """
    config_path = get_config_path(path)

    try:
        # Create directory if it doesn't exist
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() in ['.toml']:
            with open(config_path, 'w') as f:
                toml.dump(_without_none(config), f)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            # Default to JSON format
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)
    except OSError as e:
        logger.error(f"Error saving config to {config_path}: {e}")
        raise ConfigError(f"Cannot write config {config_path}: {e}")

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def configure_logging(config: Dict[str, Any], verbose: bool = False) -> None:
    """
    Apply the [logging] section to the repostat logger.

    Args:
        config: Loaded configuration
        verbose: Force DEBUG level
    """
    log_config = config.get('logging', {})
    level_name = 'DEBUG' if verbose else str(log_config.get('level', 'WARNING')).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        logger.warning(f"Unknown log level '{level_name}', using WARNING")
        level = logging.WARNING
    logger.setLevel(level)

    log_format = log_config.get('format')
    if log_format:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(log_format))


def default_repository_name(path: str) -> str:
    """Name a repository after the last component of its path."""
    name = Path(path).expanduser().resolve().name
    if not name:
        raise ConfigError(f"Cannot derive a repository name from '{path}'")
    return name


def add_repository(config: Dict[str, Any], path: str, name: Optional[str] = None) -> str:
    """
    Track a repository.

    Args:
        config: Configuration to modify
        path: Repository path; stored as an absolute path
        name: Display name (default: last path component)

    Returns:
        Name the repository was added under

    Raises:
        ConfigError: If the name is already taken
    """
    repositories = config.setdefault('repositories', {})
    name = name or default_repository_name(path)
    if name in repositories:
        raise ConfigError(f"name '{name}' already exists")
    repositories[name] = str(Path(path).expanduser().resolve())
    return name


def remove_repository(config: Dict[str, Any], name: str) -> str:
    """
    Stop tracking a repository.

    Returns:
        Path the repository was tracked at

    Raises:
        ConfigError: If no repository has that name
    """
    repositories = config.setdefault('repositories', {})
    if name not in repositories:
        raise ConfigError(f"name '{name}' does not exist")
    return repositories.pop(name)


def rename_repository(config: Dict[str, Any], name: str, new_name: str) -> None:
    """
    Rename a tracked repository.

    Raises:
        ConfigError: If ``name`` does not exist or ``new_name`` is taken
    """
    repositories = config.setdefault('repositories', {})
    if name not in repositories:
        raise ConfigError(f"name '{name}' does not exist")
    if new_name in repositories:
        raise ConfigError(f"name '{new_name}' already exists")
    repositories[new_name] = repositories.pop(name)


def get_repository_path(config: Dict[str, Any], name: str) -> str:
    """
    Look up the path of a tracked repository.

    Raises:
        ConfigError: If no repository has that name
    """
    repositories = config.get('repositories', {})
    if name not in repositories:
        raise ConfigError(f"name '{name}' does not exist")
    return repositories[name]


def get_repository_refs(config: Dict[str, Any], names: Optional[Iterable[str]] = None) -> List[RepositoryRef]:
    """
    Tracked repositories as refs, sorted by name.

    Args:
        config: Loaded configuration
        names: Only include these names (default: all)

    Returns:
        Refs with absolute paths, in alphabetical order

    Raises:
        ConfigError: If a requested name is not tracked
    """
    repositories = config.get('repositories', {})
    selected = sorted(repositories)

    if names:
        wanted = set(names)
        unknown = sorted(wanted - set(repositories))
        if unknown:
            raise ConfigError(f"unknown repositories: {', '.join(unknown)}")
        selected = [name for name in selected if name in wanted]

    return [
        RepositoryRef(name=name, path=os.path.abspath(os.path.expanduser(str(repositories[name]))))
        for name in selected
    ]
