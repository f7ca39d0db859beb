"""
Mapping with attribute-style access and dotted-path lookup.

Used to hold loaded configuration files, so that suites can write
``cfg.selection.labels`` or ``cfg.get("run.parallel", False)``.
"""

from collections.abc import Iterator
from typing import Any


class DotDict:
    """
    Dictionary-like object with attribute access and nested structure support.

    Nested dicts (including dicts inside lists) are converted to DotDict on
    assignment. Attributes starting with ``_`` are private and never exposed
    as keys.
    """

    _RESERVED_KEYS = frozenset({"set", "get", "has", "to_dict", "clear"})

    def __init__(self, **kwargs: Any) -> None:
        self.set(**kwargs)

    def set(self, **kwargs: Any) -> "DotDict":
        """Set multiple key-value pairs; returns self for chaining."""
        for key, val in kwargs.items():
            self._set_item(key, val)
        return self

    def _set_item(self, key: Any, val: Any) -> None:
        key = str(key)
        if key in self._RESERVED_KEYS:
            raise ValueError(
                f"Key '{key}' is reserved and cannot be used (would shadow method)"
            )
        setattr(self, key, self._wrap(val))

    @classmethod
    def _wrap(cls, val: Any) -> Any:
        if isinstance(val, dict):
            return DotDict(**{str(k): v for k, v in val.items()})
        if isinstance(val, list):
            return [cls._wrap(v) for v in val]
        return val

    def _public(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    def clear(self) -> None:
        for key in list(self._public()):
            delattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Recursively convert to plain dicts and lists."""

        def unwrap(val: Any) -> Any:
            if isinstance(val, DotDict):
                return val.to_dict()
            if isinstance(val, list):
                return [unwrap(v) for v in val]
            return val

        return {k: unwrap(v) for k, v in self._public().items()}

    def keys(self) -> list[str]:
        return list(self._public().keys())

    def items(self) -> list[tuple[str, Any]]:
        return list(self._public().items())

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._public()

    def __getitem__(self, key: str) -> Any:
        if key not in self._public():
            raise KeyError(key)
        return getattr(self, key)

    def __setitem__(self, key: str, val: Any) -> None:
        self._set_item(key, val)

    def __len__(self) -> int:
        return len(self._public())

    def __repr__(self) -> str:
        return f"DotDict({self.to_dict()!r})"

    def _walk(self, path: str) -> tuple[bool, Any]:
        cur: Any = self
        for item in (p for p in path.split(".") if p):
            if not isinstance(cur, DotDict) or item not in cur:
                return False, None
            cur = cur[item]
        return True, cur

    def has(self, path: str) -> bool:
        """Check if a dotted path (e.g. ``"run.parallel"``) exists."""
        if not path:
            return False
        return self._walk(path)[0]

    def get(self, path: str, default: Any = None) -> Any:
        """Get a value by dotted path, returning ``default`` when missing."""
        if not path:
            return default
        found, value = self._walk(path)
        return value if found else default
