"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path

import yaml

from .schema import RelayConfig


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ValueError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def load_config(path: Path) -> RelayConfig:
    """
    Load configuration from YAML file with environment variable substitution.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated RelayConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If environment variables are missing or config is invalid
        ValidationError: If config doesn't match schema
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open() as f:
        raw_yaml = f.read()

    yaml_with_env = substitute_env_vars(raw_yaml)

    config_dict = yaml.safe_load(yaml_with_env)
    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    config = RelayConfig.model_validate(config_dict)

    validate_config(config, base_dir=path.parent)

    return config


def validate_config(config: RelayConfig, base_dir: Path | None = None) -> None:
    """
    Perform additional cross-field validation.

    A relative profile image path is resolved against ``base_dir`` (the
    directory holding the configuration file). When the image is required
    it must exist at load time.

    Args:
        config: Configuration to validate
        base_dir: Directory relative paths are resolved against

    Raises:
        ValueError: If a required profile image is missing
    """
    image = config.bot.profile_image
    if base_dir is not None and not image.path.is_absolute():
        candidate = base_dir / image.path
        if candidate.exists():
            image.path = candidate

    if image.required and not image.path.exists():
        raise ValueError(f"Profile image not found: {image.path}")
