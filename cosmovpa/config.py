#!/usr/bin/env python3
"""
Configuration loader for cosmovpa.

Handles:
- Loading YAML configuration files
- Merging user configs with the packaged defaults
- Validation of the sections used by the analysis modules
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'configs' / 'default.yaml'

VALID_CONNECTIVITY = (6, 18, 26)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required parameters."""
    pass


def load_yaml(file_path: Path) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Parameters
    ----------
    file_path : Path
        Path to YAML file

    Returns
    -------
    dict
        Loaded configuration

    Raises
    ------
    ConfigurationError
        If file doesn't exist or YAML is invalid
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {file_path}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Top level of {file_path} must be a mapping")
    return config


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Parameters
    ----------
    base : dict
        Base configuration (defaults)
    override : dict
        Override configuration (user-specific)

    Returns
    -------
    dict
        Merged configuration (override takes precedence)
    """
    merged = base.copy()

    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate the configuration sections used by cosmovpa.

    Parameters
    ----------
    config : dict
        Configuration to validate

    Raises
    ------
    ConfigurationError
        If a parameter has an invalid value
    """
    tolerance = get_config_value(config, 'orientation.tolerance')
    if tolerance is not None:
        if not isinstance(tolerance, (int, float)) or tolerance < 0:
            raise ConfigurationError(
                f"orientation.tolerance must be a non-negative number, got {tolerance!r}"
            )

    connectivity = get_config_value(config, 'neighborhood.connectivity')
    if connectivity is not None and connectivity not in VALID_CONNECTIVITY:
        raise ConfigurationError(
            f"neighborhood.connectivity must be one of {VALID_CONNECTIVITY}, "
            f"got {connectivity!r}"
        )

    axis = get_config_value(config, 'normalization.axis')
    if axis is not None and axis not in (0, 1):
        raise ConfigurationError(f"normalization.axis must be 0 or 1, got {axis!r}")

    min_size = get_config_value(config, 'cluster_report.min_cluster_size')
    if min_size is not None:
        if not isinstance(min_size, int) or min_size < 1:
            raise ConfigurationError(
                f"cluster_report.min_cluster_size must be positive integer, got {min_size!r}"
            )

    for section in ('classification.svm', 'meeg.chantype'):
        value = get_config_value(config, section)
        if value is not None and not isinstance(value, dict):
            raise ConfigurationError(f"{section} must be a mapping, got {type(value).__name__}")


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    validate: bool = True
) -> Dict[str, Any]:
    """
    Load and process configuration.

    This is the main entry point for loading configs. It:
    1. Loads the packaged default config
    2. Loads and merges the user config, if given
    3. Validates the result

    Parameters
    ----------
    config_path : Path, optional
        Path to a user configuration file
    validate : bool
        Whether to validate the configuration

    Returns
    -------
    dict
        Processed configuration

    Raises
    ------
    ConfigurationError
        If configuration is invalid
    """
    config = load_yaml(DEFAULT_CONFIG_PATH)

    if config_path is not None:
        user_config = load_yaml(Path(config_path))
        config = merge_configs(config, user_config)

    if validate:
        validate_config(config)

    return config


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a value from config using dot notation.

    Parameters
    ----------
    config : dict
        Configuration dictionary
    key_path : str
        Dot-separated path (e.g., 'classification.svm.boxconstraint')
    default : any
        Default value if key not found

    Returns
    -------
    any
        Value at key_path, or default if not found

    Examples
    --------
    >>> get_config_value(config, 'meeg.chantype.label_threshold')
    0.25
    >>> get_config_value(config, 'missing.key', default=0.3)
    0.3
    """
    try:
        parts = key_path.split('.')
        value = config
        for part in parts:
            value = value[part]
        return value
    except (KeyError, TypeError):
        return default
