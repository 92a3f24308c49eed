"""
Config Loader — reads the relay YAML file into a validated AppConfig.
"""

import os

import yaml
from pydantic import ValidationError

from models.config import AppConfig
from models.errors import ConfigError


DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "relay.yaml")


def load_config(yaml_path: str = None) -> AppConfig:
    """
    Load relay configuration from a YAML file.

    Args:
        yaml_path: Path to the relay.yaml file (defaults to config/relay.yaml).

    Returns:
        Validated AppConfig.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or fails validation.
    """
    yaml_path = yaml_path or DEFAULT_CONFIG_PATH

    if not os.path.exists(yaml_path):
        raise ConfigError(f"Config file not found: {yaml_path}")

    try:
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {yaml_path}")

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid config {yaml_path}: {problems}") from e
