#!/usr/bin/env python3

import os
import json
import math
import tomllib
from pathlib import Path
from typing import Optional

import logging
import sys

import toml
import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("imageupdate")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. IMAGEUPDATE_CONFIG environment variable
    2. ~/.imageupdate/ directory
    """
    if 'IMAGEUPDATE_CONFIG' in os.environ:
        path = Path(os.environ['IMAGEUPDATE_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.imageupdate'
    for filename in CONFIG_FILENAMES:
        path = config_dir / filename
        if path.exists() and path.stat().st_size > 0:
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def read_config_file(config_path: Path) -> dict:
    """Parse a JSON, TOML or YAML config file by its suffix."""
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config(path: Optional[Path] = None):
    """
    Load configuration from file.

    Defaults are merged with the file, then IMAGEUPDATE_* environment
    variables are applied on top.

    Args:
        path: Explicit config file. Errors reading it raise ConfigError;
            errors reading the default file are only logged.
    """
    config = get_default_config()

    if path is not None:
        config_path = Path(path).expanduser()
        try:
            file_config = read_config_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e
        config = merge_configs(config, file_config)
    else:
        config_path = get_config_path()
        if config_path.exists():
            try:
                config = merge_configs(config, read_config_file(config_path))
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"Error loading config from {config_path}: {e}")

    return apply_env_overrides(config)


def save_config(config, path: Optional[Path] = None):
    """Save configuration to file."""
    config_path = Path(path) if path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    suffix = config_path.suffix.lower()
    with open(config_path, 'w') as f:
        if suffix == '.toml':
            toml.dump(config, f)
        elif suffix in ('.yaml', '.yml'):
            yaml.safe_dump(config, f, default_flow_style=False)
        else:
            json.dump(config, f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def get_default_config():
    """Get default configuration."""
    return {
        "github": {
            "token": "",
            "api_url": "https://api.github.com",
            "content_retries": 10,
            "content_retry_delay_seconds": 1.0,
            "rate_limit": {
                "max_retries": 3,
                "max_delay_seconds": 60
            }
        },
        "search": {
            "attempts": 5,
            "delay_seconds": 1.0
        },
        "forks": {
            "wait_attempts": 60,
            "wait_delay_seconds": 1.0
        },
        "store": {
            "backend": "forge"
        },
        "pull_request": {
            "default_message": "Automatic Dockerfile Image Updater",
            "body": "Automatic Dockerfile Image Updater. Please merge."
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        }
    }


def configure_logging(config, debug: bool = False) -> None:
    """Apply the ``logging`` section (or --debug) to the package logger."""
    logging_config = config.get('logging', {})
    level_name = 'DEBUG' if debug else str(logging_config.get('level', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(level)

    fmt = logging_config.get('format')
    if fmt:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(fmt))


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
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def _coerce_env_value(env_key: str, value: str, current):
    """Convert ``value`` to the type of the setting it overrides."""
    lowered = value.lower()
    if isinstance(current, str):
        return value
    if isinstance(current, bool) or current is None:
        if lowered in ('true', '1', 'yes', 'on'):
            return True
        if lowered in ('false', '0', 'no', 'off'):
            return False
        if isinstance(current, bool):
            raise ConfigError(f"{env_key} must be a boolean, got {value!r}")
        return int(value) if value.isdigit() else value
    try:
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            number = float(value)
            if not math.isfinite(number):
                raise ValueError(value)
            return number
    except ValueError:
        raise ConfigError(f"{env_key} must be a number, got {value!r}") from None
    return value


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: IMAGEUPDATE_SECTION_KEY
    For example: IMAGEUPDATE_SEARCH_ATTEMPTS=10 or IMAGEUPDATE_GITHUB_TOKEN=...
    """
    env_prefix = "IMAGEUPDATE_"

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
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                current_level[matched_key] = _coerce_env_value(
                    env_key, value, current_level[matched_key]
                )
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                # Env var is longer than the config path it matched
                break

    return config
