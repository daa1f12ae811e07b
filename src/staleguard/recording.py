"""Coverage-driven recording of the source files a test touches.

The recording drives a coverage collaborator around the execution of a test
and accumulates a de-duplicated list of touched files.  The default
collaborator is backed by coverage.py; tests and hosts may supply any object
implementing :class:`CoverageAnalyzer`.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, ContextManager, Iterator, List, Protocol, Sequence, TypeVar

import coverage

from .cache import SourceFileCache
from .config import CoverageSettings, StaleguardConfig
from .identity import TestIdentifier

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_PACKAGE_PATTERN = os.path.join(os.path.dirname(os.path.abspath(__file__)), "*")

__all__ = ["CoverageAnalyzer", "CoveragePyAnalyzer", "CoverageRecording", "relative_to_cwd"]


def relative_to_cwd(source_file: str | Path, cwd: Path | None = None) -> str:
    """Return ``source_file`` relative to the working directory when it lives below it."""
    base = cwd or Path.cwd()
    absolute = Path(os.path.abspath(os.path.expanduser(str(source_file))))
    try:
        return absolute.relative_to(base).as_posix()
    except ValueError:
        return absolute.as_posix()


class CoverageAnalyzer(Protocol):
    """Collaborator reporting which files were executed while hooked."""

    def hooked(self) -> ContextManager[None]:  # pragma: no cover - protocol
        ...

    def analyzed_files(self) -> Sequence[str]:  # pragma: no cover - protocol
        ...


class CoveragePyAnalyzer:
    """Coverage collaborator built on :class:`coverage.Coverage`.

    Each hooked block runs under a fresh in-memory measurement; files measured
    across all blocks are accumulated in discovery order.
    """

    def __init__(self, settings: CoverageSettings | None = None) -> None:
        self._settings = settings or CoverageSettings()
        self._files: List[str] = []

    def _build(self) -> coverage.Coverage:
        # staleguard itself runs inside the hook; keep it out of the records.
        omit = [*self._settings.omit, _PACKAGE_PATTERN]
        return coverage.Coverage(
            data_file=None,
            config_file=False,
            include=list(self._settings.include) or None,
            omit=omit,
        )

    @contextmanager
    def hooked(self) -> Iterator[None]:
        measurement = self._build()
        measurement.start()
        try:
            yield
        finally:
            measurement.stop()
            measured = sorted(measurement.get_data().measured_files())
            for filename in measured:
                if filename not in self._files:
                    self._files.append(filename)
            LOGGER.debug("coverage.py measured %d file(s)", len(measured))

    def run_hooked(self, block: Callable[[], T]) -> T:
        with self.hooked():
            return block()

    def analyzed_files(self) -> List[str]:
        return list(self._files)


class CoverageRecording:
    """Touched-file bookkeeping for a single watched test execution."""

    def __init__(
        self,
        identifier: TestIdentifier,
        config: StaleguardConfig | None = None,
        *,
        analyzer: CoverageAnalyzer | None = None,
    ) -> None:
        self.config = config or StaleguardConfig()
        self._identifier = identifier
        self._analyzer = analyzer if analyzer is not None else CoveragePyAnalyzer(self.config.coverage)
        self._cache = SourceFileCache(identifier, self.config)
        self._covered_files: List[str] = []

    @property
    def covered_files(self) -> tuple[str, ...]:
        return tuple(self._covered_files)

    def record_file(self, source_file: str | Path) -> None:
        """Add ``source_file`` unless the exact same path is already recorded."""
        entry = source_file.as_posix() if isinstance(source_file, Path) else str(source_file)
        if entry not in self._covered_files:
            self._covered_files.append(entry)

    @contextmanager
    def recording(self) -> Iterator[None]:
        """Keep the coverage hook attached for the duration of the block."""
        try:
            with self._analyzer.hooked():
                yield
        finally:
            for source_file in self._analyzer.analyzed_files():
                self.record_file(source_file)

    def record_coverage(self, block: Callable[[], T]) -> T:
        with self.recording():
            return block()

    def normalized_files(self) -> List[str]:
        """Return recorded paths relative to the working directory, de-duplicated."""

        cwd = Path.cwd()
        normalized: List[str] = []
        for source_file in self._covered_files:
            entry = relative_to_cwd(source_file, cwd)
            if entry not in normalized:
                normalized.append(entry)
        return normalized

    def save(self) -> None:
        files = self.normalized_files()
        self._cache.save(files)
        LOGGER.debug("Recorded %d touched file(s) for %s", len(files), self._identifier)
