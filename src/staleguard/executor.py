"""Run/skip verdict for a single test."""

from __future__ import annotations

import logging

from .cache import SourceFileCache, StatusCache
from .config import StaleguardConfig
from .identity import TestIdentifier
from .schema import RunStatus

LOGGER = logging.getLogger(__name__)

__all__ = ["Executor"]


class Executor:
    """Decide whether a test must run again.

    A test must run when its touched-files record is missing or dirty, when it
    failed on its last recorded run, or when anything on its dependency chain
    must run.  ``forced`` only applies to the identifier this executor was
    built for; executors created for dependencies are never forced.
    """

    def __init__(
        self,
        identifier: TestIdentifier,
        config: StaleguardConfig | None = None,
        *,
        forced: bool = False,
    ) -> None:
        self.config = config or StaleguardConfig()
        self._identifier = identifier
        self._forced = forced
        self._source_files_cache = SourceFileCache(identifier, self.config)
        self._status_cache = StatusCache(identifier, self.config)
        self._dependency = identifier.depends_on

    def should_execute(self) -> bool:
        verdict = (
            self._forced
            or self.dirty()
            or self.failed_on_last_run()
            or self.dependency_should_execute()
        )
        LOGGER.debug("Verdict for %s: %s", self._identifier, "run" if verdict else "skip")
        return verdict

    def dirty(self) -> bool:
        if not self._source_files_cache.exists():
            LOGGER.debug("No touched-files record for %s", self._identifier)
            return True
        return self._source_files_cache.any_dirty_files()

    def failed_on_last_run(self) -> bool:
        if not self._status_cache.exists():
            return False
        return self._status_cache.last_run_status() is RunStatus.FAILED

    def dependency_should_execute(self) -> bool:
        if self._dependency is None:
            return False
        return Executor(self._dependency, self.config).should_execute()
