"""
Unified exception hierarchy for the e2ekit framework.

Two families live here. Configuration-level errors (``ConfigError``,
``SelectionError``, ``LifecycleError``) are raised to the caller and stop a
run before it starts. Unit-level failures (``SetupFailure``,
``AssessmentFailure``, ``TeardownFailure``, ``FinishFailure``) are never
raised past the feature boundary; the orchestrator attaches them to the
reported unit so the summary can show what went wrong.
"""

from typing import Any


class E2EError(Exception):
    """
    Base exception for all e2ekit errors.

    Example:
        try:
            env.run()
        except E2EError as e:
            lg.error("suite aborted", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(E2EError):
    """
    Environment configuration errors.

    Examples:
        - Config file not found or not valid YAML
        - Malformed ``key=value`` label list
        - Writing to the shared config while it is read-only
    """

    pass


class SelectionError(ConfigError):
    """
    Malformed selection filter (for example an invalid regular expression).

    Always fatal, raised before any setup func runs.
    """

    pass


class LifecycleError(E2EError):
    """
    Misuse of the environment lifecycle.

    Examples:
        - Registering a feature after the run started
        - Running the same environment twice
    """

    pass


class UnitFailure(E2EError):
    """Base class for failures attributed to a single reported unit."""

    pass


class SetupFailure(UnitFailure):
    """A global or feature setup func failed."""

    pass


class AssessmentFailure(UnitFailure):
    """An assessment reported failure."""

    pass


class TeardownFailure(UnitFailure):
    """A feature teardown func failed."""

    pass


class FinishFailure(UnitFailure):
    """A global finish func failed."""

    pass


class Cancelled(E2EError):
    """The context was cancelled by its owner."""

    def __init__(self, message: str = "context canceled", **context: Any) -> None:
        super().__init__(message, **context)


class DeadlineExceeded(Cancelled):
    """The context deadline passed."""

    def __init__(
        self, message: str = "context deadline exceeded", **context: Any
    ) -> None:
        super().__init__(message, **context)
