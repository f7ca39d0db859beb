"""YAML configuration files for suites."""

from .config import Config, convert_env_value
from .constants import DEFAULT_ENV_PREFIX, MAX_CONFIG_SIZE_BYTES

__all__ = [
    "Config",
    "DEFAULT_ENV_PREFIX",
    "MAX_CONFIG_SIZE_BYTES",
    "convert_env_value",
]
