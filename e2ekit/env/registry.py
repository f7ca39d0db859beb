"""
Lifecycle registry: the funcs and features one environment will run.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

from ..exceptions import LifecycleError
from ..features import Feature
from .action import EnvFunc

E = TypeVar("E")


class _Entries(Generic[E]):
    """Append-only list that refuses writes once its registry is sealed."""

    def __init__(self, registry: Registry, what: str) -> None:
        self._registry = registry
        self._what = what
        self._items: list[E] = []

    def extend(self, items: Iterable[E | None]) -> None:
        self._registry._check_open(self._what)
        self._items.extend(i for i in items if i is not None)

    def __iter__(self) -> Iterator[E]:
        return iter(tuple(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> E:
        return self._items[index]

    def __repr__(self) -> str:
        return f"{self._what}({len(self._items)})"


class Registry:
    """
    Ordered registrations owned by a single ``Environment``.

    Entries are appended in registration order. ``seal()`` is called when a
    run starts; registering anything afterwards raises ``LifecycleError``.
    ``None`` entries are ignored.
    """

    def __init__(self) -> None:
        self._sealed = False
        self.setups: _Entries[EnvFunc] = _Entries(self, "setup")
        self.before_features: _Entries[EnvFunc] = _Entries(self, "before_each_feature")
        self.after_features: _Entries[EnvFunc] = _Entries(self, "after_each_feature")
        self.features: _Entries[Feature] = _Entries(self, "test")
        self.finishes: _Entries[EnvFunc] = _Entries(self, "finish")

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        self._sealed = True

    def _check_open(self, what: str) -> None:
        if self._sealed:
            raise LifecycleError(
                "registry is sealed; the run already started", what=what
            )

    def __repr__(self) -> str:
        return (
            f"Registry(setups={len(self.setups)}, features={len(self.features)}, "
            f"finishes={len(self.finishes)}, sealed={self._sealed})"
        )
