"""Per-test orchestration of recording, deciding and persisting."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Protocol, TypeVar

from .cache import StatusCache
from .config import StaleguardConfig
from .executor import Executor
from .identity import TestIdentifier
from .recording import CoverageAnalyzer, CoverageRecording
from .schema import RunStatus

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["LoggingVisitor", "TestMonitor", "Visitor"]


class Visitor(Protocol):
    """Result-reporting surface provided by the host framework."""

    def announce(self, message: str) -> None:  # pragma: no cover - protocol
        ...


class LoggingVisitor:
    """Visitor that routes announcements to the ``staleguard`` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER

    def announce(self, message: str) -> None:
        self._logger.info(message)


class TestMonitor:
    """Watch one execution of a test and persist what it touched.

    A clean verdict only triggers an announcement through the visitor.  The
    block always runs under coverage so the records are refreshed with what the
    execution actually touched; acting on the announcement is up to the host.
    """

    __test__ = False

    def __init__(
        self,
        identifier: TestIdentifier,
        visitor: Visitor,
        config: StaleguardConfig | None = None,
        *,
        executor: Executor | None = None,
        analyzer: CoverageAnalyzer | None = None,
    ) -> None:
        self.config = config or StaleguardConfig()
        self.identifier = identifier
        self._visitor = visitor
        self._coverage_recording = CoverageRecording(identifier, self.config, analyzer=analyzer)
        self._status_cache = StatusCache(identifier, self.config)
        self._executor = executor or Executor(identifier, self.config)
        self._failed = False

    @property
    def failed(self) -> bool:
        return self._failed

    @property
    def status(self) -> RunStatus:
        return RunStatus.FAILED if self._failed else RunStatus.PASSED

    @property
    def covered_files(self) -> tuple[str, ...]:
        return self._coverage_recording.covered_files

    def record(self, source_file: str) -> None:
        self._coverage_recording.record_file(source_file)

    def fail(self) -> None:
        """Mark the current execution as failed; execution carries on."""
        self._failed = True

    def should_execute(self) -> bool:
        return self._executor.should_execute()

    @contextmanager
    def watching(self) -> Iterator["TestMonitor"]:
        if not self.should_execute():
            self._announce_skip()

        self._coverage_recording.record_file(self.identifier.file)
        with self._coverage_recording.recording():
            yield self

        self._coverage_recording.save()
        self._status_cache.record(self.status)
        LOGGER.debug("Recorded %s for %s", self.status.value, self.identifier)

    def watch(self, block: Callable[[], T]) -> T:
        with self.watching():
            return block()

    def _announce_skip(self) -> None:
        self._visitor.announce(self.config.skip_announcement)
