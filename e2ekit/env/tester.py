"""
The per-unit ``T`` handle passed to feature step funcs.

A step reports problems through its handle rather than by raising:

    def check_pods(ctx, t, cfg):
        pods = cfg.client.list_pods(cfg.namespace)
        if not pods:
            t.fatal("no pods found")
        if any(p.restarts for p in pods):
            t.error("pods restarted")
        return ctx

``fail_now``, ``fatal`` and ``skip`` stop the step immediately by raising
``FailNow`` / ``SkipNow``. Both derive from ``BaseException`` so a step's own
``except Exception`` blocks do not swallow them; the orchestrator intercepts
them and never reports them as panics.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..context import Context
    from ..log import Logger


class FailNow(BaseException):
    """Stops the current step after it was marked failed."""


class SkipNow(BaseException):
    """Stops the current step after it was marked skipped."""


class T:
    """Recorder for one setup, assessment or teardown."""

    def __init__(self, name: str, ctx: Context, lg: Logger | None = None) -> None:
        self._name = name
        self._ctx = ctx
        self._lg = lg
        self._lock = threading.Lock()
        self._failed = False
        self._skipped = False
        self._skip_reason = ""
        self._messages: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def context(self) -> Context:
        """The context the step was started with."""
        return self._ctx

    def log(self, msg: str) -> None:
        """Record a message without affecting the outcome."""
        with self._lock:
            self._messages.append(msg)
        if self._lg is not None:
            self._lg.debug(msg, extra={"unit": self._name})

    def error(self, msg: str) -> None:
        """Record ``msg`` and mark the step failed; execution continues."""
        self.log(msg)
        self.fail()

    def fail(self) -> None:
        with self._lock:
            self._failed = True

    def fail_now(self) -> None:
        self.fail()
        raise FailNow(self._name)

    def fatal(self, msg: str) -> None:
        """Record ``msg``, mark the step failed and stop it."""
        self.log(msg)
        self.fail_now()

    def skip(self, msg: str = "") -> None:
        """Mark the step skipped and stop it."""
        if msg:
            self.log(msg)
        with self._lock:
            self._skipped = True
            self._skip_reason = msg
        raise SkipNow(self._name)

    @property
    def failed(self) -> bool:
        with self._lock:
            return self._failed

    @property
    def skipped(self) -> bool:
        with self._lock:
            return self._skipped

    @property
    def skip_reason(self) -> str:
        return self._skip_reason

    @property
    def messages(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._messages)

    def __repr__(self) -> str:
        return f"<T {self._name!r} failed={self.failed} skipped={self.skipped}>"
