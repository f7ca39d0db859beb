"""
Immutable context values threaded through every lifecycle step.

A ``Context`` is a node in a lineage: ``with_value`` returns a new child and
never modifies the receiver, so a step only sees what earlier steps in its
own lineage returned. Cancellation is shared downwards: cancelling a context
cancels every context derived from it, never its ancestors.

Example:
    ctx, cancel = with_timeout(Context.background(), 600)
    ctx = ctx.with_value("cluster", "kind-e2e")

    def assess(ctx, t, cfg):
        if ctx.done():
            t.fatal(f"aborted: {ctx.err()}")
        return ctx.with_value("deployment", "nginx")
"""

from __future__ import annotations

import threading
import time
import weakref
from collections.abc import Callable
from typing import Any

from .exceptions import Cancelled, DeadlineExceeded

_MISSING = object()


class _CancelScope:
    """Cancellation state shared by all contexts between two cancel points."""

    def __init__(
        self, parent: _CancelScope | None = None, deadline: float | None = None
    ) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        # weak: a scope nobody holds a context for needs no cancelling
        self._children: weakref.WeakSet[_CancelScope] = weakref.WeakSet()
        self._error: Cancelled | None = None
        self.parent = parent

        if parent is not None and parent.deadline is not None:
            deadline = (
                parent.deadline if deadline is None else min(deadline, parent.deadline)
            )
        self.deadline = deadline

        if parent is not None:
            parent._attach(self)

    def _attach(self, child: _CancelScope) -> None:
        with self._lock:
            if self._error is None:
                self._children.add(child)
                return
            error = self._error
        child.cancel(error)

    def cancel(self, error: Cancelled | None = None) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = error or Cancelled()
            children = list(self._children)
            self._children.clear()
            error = self._error
        self._event.set()
        if self.parent is not None:
            self.parent._detach(self)
        for child in children:
            child.cancel(error)

    def _detach(self, child: _CancelScope) -> None:
        with self._lock:
            self._children.discard(child)

    def _check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.cancel(DeadlineExceeded())

    def err(self) -> Cancelled | None:
        self._check_deadline()
        return self._error

    def wait(self, timeout: float | None) -> bool:
        if self.deadline is not None:
            remaining = max(0.0, self.deadline - time.monotonic())
            timeout = remaining if timeout is None else min(timeout, remaining)
        if self._event.wait(timeout):
            return True
        return self.err() is not None


class Context:
    """
    Immutable handle carrying request-scoped values and cancellation state.

    Use ``Context.background()`` for the root of a lineage.
    """

    __slots__ = ("_parent", "_key", "_value", "_scope")

    def __init__(
        self,
        parent: Context | None = None,
        key: Any = _MISSING,
        value: Any = None,
        scope: _CancelScope | None = None,
    ) -> None:
        self._parent = parent
        self._key = key
        self._value = value
        if scope is None:
            scope = parent._scope if parent is not None else _CancelScope()
        self._scope = scope

    @classmethod
    def background(cls) -> Context:
        """Return a new empty root context that is never cancelled on its own."""
        return cls()

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context in which ``key`` maps to ``value``."""
        return Context(self, key, value)

    def value(self, key: Any, default: Any = None) -> Any:
        """Look ``key`` up through this context's lineage."""
        node: Context | None = self
        while node is not None:
            if node._key is not _MISSING and node._key == key:
                return node._value
            node = node._parent
        return default

    def fork(self) -> Context:
        """
        Return a distinct child for a parallel branch.

        The branch sees every value visible here and shares cancellation;
        values added by the branch are invisible to its siblings.
        """
        return Context(self)

    def done(self) -> bool:
        """True once the context is cancelled or its deadline has passed."""
        return self._scope.err() is not None

    def err(self) -> Cancelled | None:
        """The cancellation cause, or None while the context is live."""
        return self._scope.err()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; returns ``done()``."""
        return self._scope.wait(timeout)

    @property
    def deadline(self) -> float | None:
        """Monotonic deadline, if any."""
        return self._scope.deadline

    def __repr__(self) -> str:
        depth = 0
        node = self._parent
        while node is not None:
            depth += 1
            node = node._parent
        state = "done" if self.done() else "live"
        return f"<Context depth={depth} {state}>"


def with_cancel(parent: Context) -> tuple[Context, Callable[[], None]]:
    """
    Derive a cancellable context.

    Returns:
        The child context and a ``cancel()`` function. Calling ``cancel``
        more than once is harmless.
    """
    scope = _CancelScope(parent._scope)
    ctx = Context(parent, scope=scope)
    return ctx, scope.cancel


def with_deadline(
    parent: Context, deadline: float
) -> tuple[Context, Callable[[], None]]:
    """Derive a context cancelled at the monotonic time ``deadline``."""
    scope = _CancelScope(parent._scope, deadline=deadline)
    ctx = Context(parent, scope=scope)
    return ctx, scope.cancel


def with_timeout(
    parent: Context, seconds: float
) -> tuple[Context, Callable[[], None]]:
    """Derive a context cancelled ``seconds`` from now."""
    return with_deadline(parent, time.monotonic() + seconds)
