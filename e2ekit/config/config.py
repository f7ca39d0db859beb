"""
YAML configuration loading with variable substitution and env overrides.

Example file::

    namespace: e2e-${run.id}
    run:
      id: nightly
      parallel: true
    selection:
      feature: "^net"
      skip_labels:
        flaky: "true"
    logging:
      level: debug

Environment variables prefixed with ``E2E_`` override file values.
``E2E_RUN_FAIL_FAST=true`` sets ``run.fail_fast`` when that key exists in the
file: underscore-separated components are joined greedily against the loaded
tree, and unknown components become nested keys.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from ..dot_dict import DotDict
from ..exceptions import ConfigError
from .constants import DEFAULT_ENV_PREFIX, MAX_CONFIG_SIZE_BYTES

_VAR_PATTERN = re.compile(r"\$\{([a-zA-Z0-9_.]+)\}")


def _check_file_size(path: Path) -> None:
    size = path.stat().st_size
    if size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError(
            "configuration file too large",
            path=str(path),
            size=size,
            max_size=MAX_CONFIG_SIZE_BYTES,
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError("configuration file not found", path=str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", path=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping", path=str(path))
    return data


def convert_env_value(value: str) -> bool | int | float | str | list[Any] | None:
    """Convert an environment variable string to a YAML-like scalar."""
    if value.lower() in ("null", "none", ""):
        return None
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if "," in value:
        return [convert_env_value(v.strip()) for v in value.split(",")]
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _match_path(data: dict[str, Any], parts: list[str]) -> list[str]:
    """
    Map ``["run", "fail", "fast"]`` onto existing keys such as ``run.fail_fast``.

    Components are joined greedily (longest existing key first); unknown
    components are used as-is.
    """
    path: list[str] = []
    cur: Any = data
    i = 0
    while i < len(parts):
        for j in range(len(parts), i, -1):
            candidate = "_".join(parts[i:j])
            if isinstance(cur, dict) and candidate in cur:
                path.append(candidate)
                cur = cur[candidate]
                i = j
                break
        else:
            path.append(parts[i])
            cur = None
            i += 1
    return path


def _set_nested(data: dict[str, Any], path: list[str], value: Any) -> None:
    cur = data
    for part in path[:-1]:
        if not isinstance(cur.get(part), dict):
            cur[part] = {}
        cur = cur[part]
    cur[path[-1]] = value


class Config(DotDict):
    """
    Configuration loaded from a YAML file.

    Supports ``${dotted.key}`` substitution within string values and
    environment variable overrides (``E2E_`` prefix by default).

    Example:
        config = Config("etc/e2e.yaml")
        parallel = config.get("run.parallel", False)
    """

    def __init__(
        self,
        fname: str | Path,
        enable_env_overrides: bool = True,
        env_prefix: str = DEFAULT_ENV_PREFIX,
    ) -> None:
        super().__init__()
        self._enable_env_overrides = enable_env_overrides
        self._env_prefix = env_prefix
        self._config_path = Path(fname).resolve()
        self._load()

    @property
    def path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        if self._config_path.exists():
            _check_file_size(self._config_path)
        data = _load_yaml(self._config_path)

        if self._enable_env_overrides:
            data = self._apply_env_overrides(data)

        self.clear()
        self.set(**data)
        self.set(**self._resolve(self.to_dict()))

    def _resolve(self, content: Any) -> Any:
        if isinstance(content, dict):
            return {k: self._resolve(v) for k, v in content.items()}
        if isinstance(content, list):
            return [self._resolve(v) for v in content]
        if isinstance(content, str):
            return _VAR_PATTERN.sub(self._substitute_var, content)
        return content

    def _substitute_var(self, match: re.Match) -> str:
        var_name = match.group(1)
        if not self.has(var_name):
            raise ConfigError(
                "undefined variable reference",
                variable=var_name,
                path=str(self._config_path),
            )
        return str(self.get(var_name))

    def get_env_overrides(self) -> dict[str, str]:
        """Return the environment variables that would override this config."""
        if not self._enable_env_overrides:
            return {}
        return {k: v for k, v in os.environ.items() if k.startswith(self._env_prefix)}

    def _apply_env_overrides(self, data: dict[str, Any]) -> dict[str, Any]:
        for env_key, env_value in sorted(self.get_env_overrides().items()):
            parts = env_key[len(self._env_prefix) :].lower().split("_")
            if not all(parts):
                continue
            _set_nested(data, _match_path(data, parts), convert_env_value(env_value))
        return data
