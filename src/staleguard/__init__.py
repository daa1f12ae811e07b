"""Skip tests whose recorded source files have not changed since they last passed."""

from .adapters import BackgroundAdapter, ScenarioAdapter, StepAdapter, Watchable
from .cache import Cache, SourceFileCache, StatusCache, cache_folder, iter_cached_identifiers
from .config import CoverageSettings, MissingFilePolicy, StaleguardConfig, find_config, load_config
from .errors import ConfigurationError, MissingSourceFileError, NoCurrentTestError, StaleguardError
from .executor import Executor
from .identity import TestIdentifier
from .monitor import LoggingVisitor, TestMonitor, Visitor
from .recording import CoverageAnalyzer, CoveragePyAnalyzer, CoverageRecording
from .schema import RunStatus
from .session import (
    Session,
    can_skip,
    current_session,
    fail_current_test,
    record,
    reset_session,
    start_test,
)

__all__ = [
    "BackgroundAdapter",
    "Cache",
    "ConfigurationError",
    "CoverageAnalyzer",
    "CoveragePyAnalyzer",
    "CoverageRecording",
    "CoverageSettings",
    "Executor",
    "LoggingVisitor",
    "MissingFilePolicy",
    "MissingSourceFileError",
    "NoCurrentTestError",
    "RunStatus",
    "ScenarioAdapter",
    "Session",
    "SourceFileCache",
    "StaleguardConfig",
    "StaleguardError",
    "StatusCache",
    "StepAdapter",
    "TestIdentifier",
    "TestMonitor",
    "Visitor",
    "Watchable",
    "cache_folder",
    "can_skip",
    "current_session",
    "fail_current_test",
    "find_config",
    "iter_cached_identifiers",
    "load_config",
    "record",
    "reset_session",
    "start_test",
]
