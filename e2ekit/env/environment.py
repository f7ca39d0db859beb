"""
Environment orchestrator.

An ``Environment`` owns one registry of global setup and finish funcs,
per-feature hooks and features, and runs them exactly once through the
states ``CREATED -> SETTING_UP -> RUNNING -> FINISHING_UP -> DONE``.

Example:
    env = Environment(EnvConfig().with_random_namespace())
    env.setup(create_cluster).finish(destroy_cluster)
    env.test(
        features.new("deployments")
        .setup(apply_manifest)
        .assess("becomes ready", wait_ready)
        .teardown(delete_manifest)
        .feature()
    )
    sys.exit(env.run(LogReporter(lg)))

Failures of individual funcs never escape ``execute()``: they are attached
to the unit that produced them. Only an invalid selection filter, a second
run of the same environment, and (with graceful teardown disabled) a step
that raised are propagated to the caller. Reporter errors are logged and
dropped. Anything else that escapes a feature, including a
``KeyboardInterrupt``, still runs its teardowns, after-hooks and every
finish func first.
"""

from __future__ import annotations

import enum
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..context import Context
from ..envconf import EnvConfig
from ..exceptions import (
    AssessmentFailure,
    LifecycleError,
    SetupFailure,
    TeardownFailure,
    UnitFailure,
)
from ..features import Feature, FeatureBuilder, Step, describe
from ..log import Logger, LoggerFactory, create_root_lg
from ..time import since, start, time_it_lg
from .action import Action, EnvFunc, Role, actions
from .matcher import Selection, should_run_assessment, should_run_feature
from .outcome import (
    DRY_RUN_REASON,
    FailureKind,
    Outcome,
    RunResult,
    UnitKind,
    UnitResult,
)
from .registry import Registry
from .tester import FailNow, SkipNow, T

if TYPE_CHECKING:
    from .reporter import Reporter


class EnvState(enum.Enum):
    CREATED = "created"
    SETTING_UP = "setting-up"
    RUNNING = "running"
    FINISHING_UP = "finishing-up"
    DONE = "done"


_STEP_FAILURES = {
    UnitKind.FEATURE_SETUP: (SetupFailure, FailureKind.SETUP),
    UnitKind.ASSESSMENT: (AssessmentFailure, FailureKind.ASSESSMENT),
    UnitKind.TEARDOWN: (TeardownFailure, FailureKind.TEARDOWN),
}

_ACTION_FAILURES = {
    UnitKind.SETUP: FailureKind.SETUP,
    UnitKind.BEFORE_FEATURE: FailureKind.SETUP,
    UnitKind.AFTER_FEATURE: FailureKind.TEARDOWN,
    UnitKind.FINISH: FailureKind.FINISH,
}

REASON_NOT_SELECTED = "not selected"
REASON_FAIL_FAST = "fail-fast: a previous unit failed"
REASON_INTERRUPTED = "run interrupted"
REASON_SETUP_FAILED = "global setup failed"


@dataclass(frozen=True)
class _StepRun:
    ctx: Context
    unit: UnitResult
    panic: BaseException | None = None


class Environment:
    """
    Registers lifecycle funcs and features, then runs them once.

    Args:
        config: Shared config handed to every func (a fresh ``EnvConfig``
            when omitted)
        ctx: Root context of the run (``Context.background()`` when omitted)
        registry: Registrations to run (a new empty ``Registry`` when omitted)
        lg: Logger for lifecycle messages; a ``/env`` logger is derived
            from it
    """

    def __init__(
        self,
        config: EnvConfig | None = None,
        ctx: Context | None = None,
        registry: Registry | None = None,
        lg: Logger | None = None,
    ) -> None:
        self._cfg = config if config is not None else EnvConfig()
        self._ctx = ctx if ctx is not None else Context.background()
        self._registry = registry if registry is not None else Registry()
        if lg is None:
            lg = create_root_lg("warning")
        self._lg = LoggerFactory.derive(lg, "env")

        self._lock = threading.Lock()
        self._state = EnvState.CREATED
        self._reporter: Reporter | None = None
        self._units: list[UnitResult] = []
        self._halt_reason = ""
        self._interrupt: BaseException | None = None
        self._aborted = False

    @classmethod
    def from_flags(
        cls, argv: list[str] | None = None, lg: Logger | None = None
    ) -> Environment:
        """Create an environment whose config comes from command-line flags."""
        return cls(EnvConfig.from_flags(argv), lg=lg)

    # -- accessors ----------------------------------------------------------

    @property
    def config(self) -> EnvConfig:
        return self._cfg

    @property
    def context(self) -> Context:
        return self._ctx

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def state(self) -> EnvState:
        return self._state

    # -- registration -------------------------------------------------------

    def setup(self, *fns: EnvFunc | None) -> Environment:
        """Register global setup funcs, run in order before any feature."""
        self._registry.setups.extend(fns)
        return self

    def before_each_feature(self, *fns: EnvFunc | None) -> Environment:
        self._registry.before_features.extend(fns)
        return self

    def after_each_feature(self, *fns: EnvFunc | None) -> Environment:
        self._registry.after_features.extend(fns)
        return self

    def finish(self, *fns: EnvFunc | None) -> Environment:
        """Register global finish funcs, run in order at the end of every run."""
        self._registry.finishes.extend(fns)
        return self

    def test(self, *feats: Feature | FeatureBuilder | None) -> Environment:
        """Register features; a builder is snapshotted at registration."""
        self._registry.features.extend(
            f.feature() if isinstance(f, FeatureBuilder) else f for f in feats
        )
        return self

    # -- execution ----------------------------------------------------------

    def run(self, reporter: Reporter | None = None) -> int:
        """Execute the run and return its process exit code."""
        return self.execute(reporter).exit_code

    def execute(self, reporter: Reporter | None = None) -> RunResult:
        """
        Execute every registered func and feature once.

        Raises:
            SelectionError: If a selection filter is invalid (nothing runs)
            LifecycleError: If this environment already ran
            KeyboardInterrupt, SystemExit: Raised by a step; re-raised once
                teardowns and finish funcs have run
        """
        with self._lock:
            if self._state is not EnvState.CREATED:
                raise LifecycleError(
                    "environment can only run once", state=self._state.value
                )
            selection = self._cfg.selection()
            self._registry.seal()
            self._transition(EnvState.SETTING_UP)

        self._reporter = reporter
        t0 = start()
        ctx, setup_error = self._ctx, None
        try:
            try:
                with time_it_lg(self._lg.debug, "global setup done"):
                    ctx, setup_error = self._setting_up(ctx)
                if setup_error is None:
                    self._transition(EnvState.RUNNING)
                    for feature in self._registry.features:
                        self._run_feature(ctx, feature, selection)
                else:
                    for feature in self._registry.features:
                        self._skip(UnitKind.FEATURE, feature.name, REASON_SETUP_FAILED)
            finally:
                # entered from any state unless graceful teardown was disabled
                if not self._aborted:
                    self._transition(EnvState.FINISHING_UP)
                    with time_it_lg(self._lg.debug, "global finish done"):
                        self._finishing_up(ctx)
            if self._interrupt is not None:
                raise self._interrupt
        except BaseException:
            self._transition(EnvState.DONE)
            raise

        result = RunResult(
            units=tuple(self._units),
            setup_error=setup_error,
            duration=since(t0),
            dry_run=self._cfg.dry_run_mode,
        )
        self._transition(EnvState.DONE)
        if reporter is not None:
            try:
                reporter.summary(result)
            except Exception:
                self._lg.exception(
                    "reporter failed", extra={"units": len(result.units)}
                )
        return result

    def _actions(self, role: Role) -> list[Action]:
        entries = {
            Role.SETUP: self._registry.setups,
            Role.BEFORE_FEATURE: self._registry.before_features,
            Role.AFTER_FEATURE: self._registry.after_features,
            Role.FINISH: self._registry.finishes,
        }[role]
        return actions(role, list(entries))

    def _transition(self, state: EnvState) -> None:
        self._lg.debug(
            "state change", extra={"from": self._state.value, "to": state.value}
        )
        self._state = state

    # -- phases -------------------------------------------------------------

    def _setting_up(self, ctx: Context) -> tuple[Context, BaseException | None]:
        error: BaseException | None = None
        for action in self._actions(Role.SETUP):
            if self._cfg.dry_run_mode:
                self._skip(UnitKind.SETUP, action.name, DRY_RUN_REASON)
                continue
            cancelled = ctx.err()
            if cancelled is not None:
                self._emit(self._cancelled(UnitKind.SETUP, action.name, ctx))
                error = error or cancelled
                continue
            if error is not None:
                self._skip(UnitKind.SETUP, action.name, "a previous setup failed")
                continue

            ctx, unit = self._run_action(action, UnitKind.SETUP, ctx)
            self._emit(unit)
            if unit.failed:
                error = unit.error
        return ctx, error

    def _finishing_up(self, ctx: Context) -> None:
        # best effort: every finish func runs regardless of earlier failures
        for action in self._actions(Role.FINISH):
            if self._cfg.dry_run_mode:
                self._skip(UnitKind.FINISH, action.name, DRY_RUN_REASON)
                continue
            ctx, unit = self._run_action(action, UnitKind.FINISH, ctx)
            self._emit(unit)

    def _run_feature(self, ctx: Context, feature: Feature, sel: Selection) -> None:
        if not should_run_feature(feature, sel):
            self._skip(UnitKind.FEATURE, feature.name, REASON_NOT_SELECTED)
            return
        if self._cfg.dry_run_mode:
            self._dry_run_feature(feature, sel)
            return
        if self._halt_reason:
            self._skip(UnitKind.FEATURE, feature.name, self._halt_reason)
            return

        self._lg.debug("feature started", extra=describe(feature))
        t0 = start()
        first = len(self._units)

        try:
            ctx, blocked = self._before_feature(ctx, feature)
            ctx, blocked = self._feature_setups(ctx, feature, blocked)
            ctx = self._assessments(ctx, feature, sel, blocked)
        finally:
            if not self._aborted:
                ctx = self._teardowns(ctx, feature)
                self._after_feature(ctx, feature)

        failed = [u for u in self._units[first:] if u.failed]
        if failed:
            unit = UnitResult(
                UnitKind.FEATURE,
                feature.name,
                Outcome.FAILED,
                duration=since(t0),
                error=UnitFailure(
                    f"{len(failed)} unit(s) failed",
                    units=",".join(u.name for u in failed),
                ),
                failure=failed[0].failure,
                feature=feature.name,
            )
        else:
            unit = UnitResult(
                UnitKind.FEATURE,
                feature.name,
                Outcome.PASSED,
                duration=since(t0),
                feature=feature.name,
            )
        self._emit(unit)

    def _before_feature(self, ctx: Context, feature: Feature) -> tuple[Context, str]:
        blocked = ""
        for action in self._actions(Role.BEFORE_FEATURE):
            if ctx.err() is not None:
                self._emit(
                    self._cancelled(UnitKind.BEFORE_FEATURE, action.name, ctx, feature)
                )
                continue
            if blocked:
                self._skip(UnitKind.BEFORE_FEATURE, action.name, blocked, feature)
                continue
            ctx, unit = self._run_action(
                action, UnitKind.BEFORE_FEATURE, ctx, feature.name
            )
            self._emit(unit)
            if unit.failed:
                blocked = f"{action.name} failed"
        return ctx, blocked

    def _feature_setups(
        self, ctx: Context, feature: Feature, blocked: str
    ) -> tuple[Context, str]:
        for step in feature.setups:
            if ctx.err() is not None:
                unit = self._cancelled(UnitKind.FEATURE_SETUP, step.name, ctx, feature)
                self._emit(unit)
                continue
            if blocked:
                self._skip(UnitKind.FEATURE_SETUP, step.name, blocked, feature)
                continue
            run = self._run_step(UnitKind.FEATURE_SETUP, feature, step, ctx)
            ctx = self._settle(run)
            if run.unit.failed:
                blocked = f"{step.name} failed"
        return ctx, blocked

    def _assessments(
        self, ctx: Context, feature: Feature, sel: Selection, blocked: str
    ) -> Context:
        plan = [
            (step, self._skip_reason(feature, step, sel, blocked))
            for step in feature.assessments
        ]
        if self._cfg.parallel_test_enabled:
            self._assess_parallel(ctx, feature, plan)
            return ctx

        for step, reason in plan:
            if reason:
                self._skip(UnitKind.ASSESSMENT, step.name, reason, feature)
            elif self._halt_reason:
                self._skip(UnitKind.ASSESSMENT, step.name, self._halt_reason, feature)
            elif ctx.err() is not None:
                unit = self._cancelled(UnitKind.ASSESSMENT, step.name, ctx, feature)
                self._emit(unit)
            else:
                run = self._run_step(UnitKind.ASSESSMENT, feature, step, ctx)
                ctx = self._settle(run)
        return ctx

    def _assess_parallel(
        self, ctx: Context, feature: Feature, plan: list[tuple[Step, str]]
    ) -> None:
        runnable = [step for step, reason in plan if not reason]
        futures: dict[str, Future[_StepRun]] = {}
        if runnable:
            self._lg.debug(
                "dispatching assessments",
                extra={"feature": feature.name, "workers": len(runnable)},
            )
            with self._cfg.read_only():
                with ThreadPoolExecutor(
                    max_workers=len(runnable), thread_name_prefix="e2e-assess"
                ) as pool:
                    for step in runnable:
                        futures[step.name] = pool.submit(
                            self._run_forked, feature, step, ctx
                        )

        # all workers joined; report in registration order
        panic: BaseException | None = None
        for step, reason in plan:
            if reason:
                self._skip(UnitKind.ASSESSMENT, step.name, reason, feature)
                continue
            run = futures[step.name].result()
            self._emit(run.unit)
            panic = panic or run.panic
        if panic is not None and self._cfg.disable_graceful_teardown:
            self._abort(panic)

    def _run_forked(self, feature: Feature, step: Step, ctx: Context) -> _StepRun:
        branch = ctx.fork()
        if branch.err() is not None:
            return _StepRun(
                branch, self._cancelled(UnitKind.ASSESSMENT, step.name, branch, feature)
            )
        return self._run_step(UnitKind.ASSESSMENT, feature, step, branch)

    def _teardowns(self, ctx: Context, feature: Feature) -> Context:
        for step in feature.teardowns:
            ctx = self._settle(self._run_step(UnitKind.TEARDOWN, feature, step, ctx))
        return ctx

    def _after_feature(self, ctx: Context, feature: Feature) -> None:
        for action in self._actions(Role.AFTER_FEATURE):
            ctx, unit = self._run_action(
                action, UnitKind.AFTER_FEATURE, ctx, feature.name
            )
            self._emit(unit)

    def _dry_run_feature(self, feature: Feature, sel: Selection) -> None:
        for action in self._actions(Role.BEFORE_FEATURE):
            self._skip(UnitKind.BEFORE_FEATURE, action.name, DRY_RUN_REASON, feature)
        for step in feature.setups:
            self._skip(UnitKind.FEATURE_SETUP, step.name, DRY_RUN_REASON, feature)
        for step in feature.assessments:
            reason = (
                DRY_RUN_REASON
                if should_run_assessment(feature, step, sel)
                else REASON_NOT_SELECTED
            )
            self._skip(UnitKind.ASSESSMENT, step.name, reason, feature)
        for step in feature.teardowns:
            self._skip(UnitKind.TEARDOWN, step.name, DRY_RUN_REASON, feature)
        for action in self._actions(Role.AFTER_FEATURE):
            self._skip(UnitKind.AFTER_FEATURE, action.name, DRY_RUN_REASON, feature)
        self._skip(UnitKind.FEATURE, feature.name, DRY_RUN_REASON, feature)

    def _skip_reason(
        self, feature: Feature, step: Step, sel: Selection, blocked: str
    ) -> str:
        if not should_run_assessment(feature, step, sel):
            return REASON_NOT_SELECTED
        if blocked:
            return blocked
        if self._halt_reason:
            return self._halt_reason
        return ""

    # -- unit execution -----------------------------------------------------

    def _run_action(
        self, action: Action, kind: UnitKind, ctx: Context, feature: str = ""
    ) -> tuple[Context, UnitResult]:
        t0 = start()
        res = action.run(ctx, self._cfg)
        if res.ok:
            unit = UnitResult(
                kind, action.name, Outcome.PASSED, since(t0), feature=feature
            )
        else:
            unit = UnitResult(
                kind,
                action.name,
                Outcome.FAILED,
                since(t0),
                error=res.error,
                failure=_ACTION_FAILURES[kind],
                feature=feature,
            )
        return res.ctx, unit

    def _run_step(
        self, kind: UnitKind, feature: Feature, step: Step, ctx: Context
    ) -> _StepRun:
        """
        Run one step func; anything it raises is recorded as a panic.

        A ``KeyboardInterrupt`` or ``SystemExit`` also halts the run: later
        units are skipped, cleanup still runs, and ``execute()`` re-raises it
        once finish funcs are done.
        """
        t = T(step.name, ctx, self._lg)
        out: Context | None = None
        panic: BaseException | None = None
        t0 = start()
        try:
            out = step.func(ctx, t, self._cfg)
        except (FailNow, SkipNow):
            pass
        except BaseException as e:
            panic = e
            if isinstance(e, (KeyboardInterrupt, SystemExit)):
                self._interrupted(e, step)
        duration = since(t0)

        common = {"duration": duration, "messages": t.messages, "feature": feature.name}
        if panic is not None:
            unit = UnitResult(
                kind,
                step.name,
                Outcome.FAILED,
                error=panic,
                failure=FailureKind.PANIC,
                **common,
            )
        elif t.failed:
            error_cls, failure = _STEP_FAILURES[kind]
            text = "; ".join(t.messages) or f"{step.name} failed"
            unit = UnitResult(
                kind,
                step.name,
                Outcome.FAILED,
                error=error_cls(text, feature=feature.name, unit=step.name),
                failure=failure,
                **common,
            )
        elif t.skipped:
            unit = UnitResult(
                kind, step.name, Outcome.SKIPPED, reason=t.skip_reason, **common
            )
        else:
            unit = UnitResult(kind, step.name, Outcome.PASSED, **common)
        return _StepRun(ctx if out is None else out, unit, panic)

    def _settle(self, run: _StepRun) -> Context:
        """Report a serial step and re-raise its panic if graceful teardown is off."""
        self._emit(run.unit)
        if run.panic is not None and self._cfg.disable_graceful_teardown:
            self._abort(run.panic)
        return run.ctx

    def _abort(self, panic: BaseException) -> None:
        # graceful teardown disabled: no further teardowns or finish funcs
        self._aborted = True
        raise panic

    def _interrupted(self, error: BaseException, step: Step) -> None:
        with self._lock:
            if self._interrupt is not None:
                return
            self._interrupt = error
            self._halt_reason = REASON_INTERRUPTED
        self._lg.warning(
            "run interrupted",
            extra={"unit": step.name, "error": type(error).__name__},
        )

    def _cancelled(
        self,
        kind: UnitKind,
        name: str,
        ctx: Context,
        feature: Feature | None = None,
    ) -> UnitResult:
        return UnitResult(
            kind,
            name,
            Outcome.FAILED,
            error=ctx.err(),
            failure=FailureKind.CANCELLED,
            reason="not started: context is done",
            feature=feature.name if feature else "",
        )

    def _skip(
        self,
        kind: UnitKind,
        name: str,
        reason: str,
        feature: Feature | None = None,
    ) -> None:
        fname = feature.name if feature else (name if kind is UnitKind.FEATURE else "")
        self._emit(
            UnitResult(kind, name, Outcome.SKIPPED, reason=reason, feature=fname)
        )

    def _emit(self, unit: UnitResult) -> None:
        self._units.append(unit)
        if unit.failed and self._cfg.fail_fast and not self._cfg.dry_run_mode:
            if not self._halt_reason:
                self._lg.debug("fail-fast triggered", extra={"unit": unit.path})
                self._halt_reason = REASON_FAIL_FAST
        if self._reporter is None:
            return
        try:
            self._reporter.report(unit)
        except Exception:
            self._lg.exception("reporter failed", extra={"unit": unit.path})
