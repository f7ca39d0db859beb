"""
Configuration-related constants and resource limits.
"""

# Maximum config file size (10MB)
MAX_CONFIG_SIZE_BYTES = 10 * 1024 * 1024

DEFAULT_ENV_PREFIX = "E2E_"
