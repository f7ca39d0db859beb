"""Environment orchestration: selection, registry, execution and reporting."""

from .action import Action, ActionResult, EnvFunc, Role
from .environment import Environment, EnvState
from .matcher import (
    MatchLevel,
    Selection,
    labels_match,
    should_run,
    should_run_assessment,
    should_run_feature,
)
from .outcome import (
    DRY_RUN_REASON,
    EXIT_FAILED,
    EXIT_FINISH_FAILED,
    EXIT_OK,
    EXIT_SETUP_FAILED,
    FailureKind,
    Outcome,
    RunResult,
    UnitKind,
    UnitResult,
)
from .registry import Registry
from .reporter import (
    ConsoleReporter,
    LogReporter,
    MemoryReporter,
    MultiReporter,
    Reporter,
)
from .tester import FailNow, SkipNow, T

__all__ = [
    "Action",
    "ActionResult",
    "ConsoleReporter",
    "DRY_RUN_REASON",
    "EXIT_FAILED",
    "EXIT_FINISH_FAILED",
    "EXIT_OK",
    "EXIT_SETUP_FAILED",
    "EnvFunc",
    "EnvState",
    "Environment",
    "FailNow",
    "FailureKind",
    "LogReporter",
    "MatchLevel",
    "MemoryReporter",
    "MultiReporter",
    "Outcome",
    "Registry",
    "Reporter",
    "Role",
    "RunResult",
    "Selection",
    "SkipNow",
    "T",
    "UnitKind",
    "UnitResult",
    "labels_match",
    "should_run",
    "should_run_assessment",
    "should_run_feature",
]
