from importlib.metadata import PackageNotFoundError, version

from . import features
from .config import Config
from .context import Context, with_cancel, with_deadline, with_timeout
from .dot_dict import DotDict
from .env import (
    ConsoleReporter,
    Environment,
    EnvState,
    FailureKind,
    LogReporter,
    MemoryReporter,
    MultiReporter,
    Outcome,
    Registry,
    RunResult,
    Selection,
    T,
    UnitKind,
    UnitResult,
)
from .envconf import EnvConfig, random_name
from .exceptions import (
    AssessmentFailure,
    Cancelled,
    ConfigError,
    DeadlineExceeded,
    E2EError,
    FinishFailure,
    LifecycleError,
    SelectionError,
    SetupFailure,
    TeardownFailure,
    UnitFailure,
)
from .features import Feature, FeatureBuilder, Level, Step, Table, TableRow

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("e2ekit")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

__all__ = [
    "__version__",
    # Modules
    "features",
    # Context
    "Context",
    "with_cancel",
    "with_deadline",
    "with_timeout",
    # Configuration
    "Config",
    "DotDict",
    "EnvConfig",
    "random_name",
    # Features
    "Feature",
    "FeatureBuilder",
    "Level",
    "Step",
    "Table",
    "TableRow",
    # Orchestration
    "EnvState",
    "Environment",
    "Registry",
    "Selection",
    "T",
    # Outcomes and reporting
    "ConsoleReporter",
    "FailureKind",
    "LogReporter",
    "MemoryReporter",
    "MultiReporter",
    "Outcome",
    "RunResult",
    "UnitKind",
    "UnitResult",
    # Exceptions
    "AssessmentFailure",
    "Cancelled",
    "ConfigError",
    "DeadlineExceeded",
    "E2EError",
    "FinishFailure",
    "LifecycleError",
    "SelectionError",
    "SetupFailure",
    "TeardownFailure",
    "UnitFailure",
]
