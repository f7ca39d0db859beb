"""
Environment funcs (global setup/finish and per-feature hooks) as actions.

Every env func shares one shape, ``fn(ctx, cfg) -> Context | None``. An
``Action`` pairs a func with its role and position and turns whatever the
func does into an ``ActionResult``: the context to continue with and the
error, if the func raised one.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..context import Context
    from ..envconf import EnvConfig

EnvFunc = Callable[["Context", "EnvConfig"], "Context | None"]


class Role(enum.Enum):
    SETUP = "setup"
    BEFORE_FEATURE = "before-feature"
    AFTER_FEATURE = "after-feature"
    FINISH = "finish"


@dataclass(frozen=True)
class ActionResult:
    ctx: Context
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Action:
    """An env func bound to its role and 1-based registration index."""

    role: Role
    index: int
    func: EnvFunc

    @property
    def name(self) -> str:
        return f"{self.role.value}-{self.index}"

    def run(self, ctx: Context, cfg: EnvConfig) -> ActionResult:
        """
        Invoke the func, converting a raised exception into a result.

        A func returning ``None`` leaves the context unchanged. On error the
        incoming context is carried forward.
        """
        try:
            out = self.func(ctx, cfg)
        except Exception as e:
            return ActionResult(ctx, e)
        return ActionResult(ctx if out is None else out)


def actions(role: Role, funcs: list[EnvFunc]) -> list[Action]:
    return [Action(role, i, fn) for i, fn in enumerate(funcs, 1)]
