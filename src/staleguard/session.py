"""Session state tying framework hooks to the test that is currently executing.

Hosts that can thread an object through their execution chain should create a
:class:`Session` and pass it around.  Hosts that only get ambient callbacks
(hooks fired from deep inside a test) use the module-level helpers, which
forward to a process-wide default session.

Tests run strictly one at a time; the current-test slot carries no locking.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Set, TypeVar

from .config import StaleguardConfig
from .errors import NoCurrentTestError
from .executor import Executor
from .identity import TestIdentifier
from .monitor import TestMonitor, Visitor
from .recording import CoverageAnalyzer

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "Session",
    "can_skip",
    "current_session",
    "fail_current_test",
    "record",
    "reset_session",
    "start_test",
]


class Session:
    """Tracks the current test monitor and the identifiers forced to run."""

    def __init__(
        self,
        config: StaleguardConfig | None = None,
        *,
        analyzer_factory: Callable[[], CoverageAnalyzer] | None = None,
    ) -> None:
        self.config = config or StaleguardConfig()
        self._analyzer_factory = analyzer_factory
        self._current: Optional[TestMonitor] = None
        self._required: Set[TestIdentifier] = set()

    @property
    def current_test(self) -> TestMonitor:
        if self._current is None:
            raise NoCurrentTestError()
        return self._current

    @property
    def required(self) -> frozenset[TestIdentifier]:
        return frozenset(self._required)

    def executor_for(self, identifier: TestIdentifier) -> Executor:
        return Executor(identifier, self.config, forced=identifier in self._required)

    def should_execute(self, identifier: TestIdentifier) -> bool:
        """Verdict for ``identifier`` without starting a test."""
        return self.executor_for(identifier).should_execute()

    def require(self, identifier: TestIdentifier) -> None:
        """Force ``identifier`` and everything it depends on to run this session.

        Only verdicts asked about a required identifier itself change; tests
        that merely depend on it keep their own verdict.
        """
        for entry in (identifier, *identifier.chain()):
            if entry not in self._required:
                LOGGER.debug("Requiring %s to run", entry)
                self._required.add(entry)

    def _begin(self, identifier: TestIdentifier, visitor: Visitor) -> TestMonitor:
        analyzer = self._analyzer_factory() if self._analyzer_factory else None
        monitor = TestMonitor(
            identifier,
            visitor,
            self.config,
            executor=self.executor_for(identifier),
            analyzer=analyzer,
        )
        self._current = monitor
        if identifier.depends_on is not None and monitor.should_execute():
            self.require(identifier.depends_on)
        return monitor

    @contextmanager
    def started(self, identifier: TestIdentifier, visitor: Visitor) -> Iterator[TestMonitor]:
        """Make ``identifier`` the current test and watch the enclosed block."""
        monitor = self._begin(identifier, visitor)
        with monitor.watching():
            yield monitor

    def start_test(self, identifier: TestIdentifier, visitor: Visitor, block: Callable[[], T]) -> T:
        monitor = self._begin(identifier, visitor)
        return monitor.watch(block)

    def fail_current_test(self) -> None:
        self.current_test.fail()

    def record(self, source_file: str) -> None:
        self.current_test.record(source_file)

    def can_skip(self) -> bool:
        return not self.current_test.should_execute()


_DEFAULT_SESSION: Optional[Session] = None


def current_session() -> Session:
    """Return the process-wide default session, creating it on first use."""
    global _DEFAULT_SESSION
    if _DEFAULT_SESSION is None:
        _DEFAULT_SESSION = Session()
    return _DEFAULT_SESSION


def reset_session(session: Session | None = None) -> Session:
    """Replace the process-wide default session."""
    global _DEFAULT_SESSION
    _DEFAULT_SESSION = session or Session()
    return _DEFAULT_SESSION


def start_test(identifier: TestIdentifier, visitor: Visitor, block: Callable[[], T]) -> T:
    return current_session().start_test(identifier, visitor, block)


def fail_current_test() -> None:
    current_session().fail_current_test()


def record(source_file: str) -> None:
    current_session().record(source_file)


def can_skip() -> bool:
    return current_session().can_skip()
