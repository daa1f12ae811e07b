"""Durable per-test cache records.

Every test identifier owns a small directory next to the file that defines the
test::

    <test file directory>/.coverage/<test file name>/<line>/
        last_run_status        single token, ``passed`` or ``failed``
        covered_source_files   one path per line

The location only depends on the identifier's ``(file, line)`` so a fresh
process finds the records written by a previous one.  Records are overwritten
at the end of every watched execution and never deleted by the engine.
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, ClassVar, Iterable, Iterator, List, Optional, TextIO

from .config import DEFAULT_CACHE_DIRNAME, MissingFilePolicy, StaleguardConfig
from .errors import MissingSourceFileError
from .identity import TestIdentifier
from .schema import RunStatus

LOGGER = logging.getLogger(__name__)

STATUS_FILENAME = "last_run_status"
SOURCE_FILES_FILENAME = "covered_source_files"

__all__ = [
    "Cache",
    "SOURCE_FILES_FILENAME",
    "STATUS_FILENAME",
    "SourceFileCache",
    "StatusCache",
    "cache_folder",
    "iter_cached_identifiers",
]


def cache_folder(identifier: TestIdentifier, dirname: str = DEFAULT_CACHE_DIRNAME) -> Path:
    """Return the directory holding the records for ``identifier``."""
    test_file = Path(identifier.file)
    return test_file.parent / dirname / test_file.name / str(identifier.line)


def iter_cached_identifiers(
    root: Path | str, dirname: str = DEFAULT_CACHE_DIRNAME
) -> Iterator[TestIdentifier]:
    """Yield identifiers for every cache record stored below ``root``."""

    root_path = Path(root)
    candidates = [root_path] if root_path.name == dirname else []
    candidates.extend(sorted(root_path.rglob(dirname)))
    for cache_root in candidates:
        if not cache_root.is_dir():
            continue
        for file_dir in sorted(cache_root.iterdir()):
            if not file_dir.is_dir():
                continue
            line_dirs = [entry for entry in file_dir.iterdir() if entry.is_dir() and entry.name.isdigit()]
            for line_dir in sorted(line_dirs, key=lambda entry: int(entry.name)):
                yield TestIdentifier(
                    (cache_root.parent / file_dir.name).as_posix(),
                    int(line_dir.name),
                )


class Cache:
    """One record kind stored for a single test identifier."""

    filename: ClassVar[str] = ""

    def __init__(self, identifier: TestIdentifier, config: StaleguardConfig | None = None) -> None:
        if not self.filename:
            raise TypeError(f"{type(self).__name__} does not define a cache filename")
        self.identifier = identifier
        self.config = config or StaleguardConfig()

    @property
    def folder(self) -> Path:
        return cache_folder(self.identifier, self.config.cache_dirname)

    @property
    def path(self) -> Path:
        return self.folder / self.filename

    def exists(self) -> bool:
        return self.path.is_file()

    def last_modified_time(self) -> float:
        return self.path.stat().st_mtime

    def read_lines(self) -> List[str]:
        """Return the stored lines without their line terminators."""
        with self.path.open("r", encoding="utf-8") as handle:
            return handle.read().splitlines()

    @contextmanager
    def scoped_write(self) -> Iterator[TextIO]:
        """Expose a write handle that replaces the record once the block succeeds.

        Content goes to a temporary sibling file first.  The record is swapped
        in only when the block exits normally; on any exception the temporary
        file is removed and the previous record stays untouched.
        """

        folder = self.folder
        folder.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=folder,
            prefix=f".{self.filename}.",
            suffix=".tmp",
            delete=False,
        )
        temp_path = Path(handle.name)
        try:
            with handle:
                yield handle
            os.replace(temp_path, self.path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        LOGGER.debug("Wrote %s", self.path)

    def write(self, writer: Callable[[TextIO], None]) -> None:
        """Run ``writer`` against a scoped write handle."""
        with self.scoped_write() as handle:
            writer(handle)


class StatusCache(Cache):
    """Last pass/fail outcome of a test."""

    filename: ClassVar[str] = STATUS_FILENAME

    def last_run_status(self) -> Optional[RunStatus]:
        """Return the stored status; callers check :meth:`exists` first."""
        return RunStatus.parse("".join(self.read_lines()))

    def record(self, status: RunStatus | str) -> None:
        value = RunStatus(status)
        self.write(lambda handle: handle.write(f"{value.value}\n"))


class SourceFileCache(Cache):
    """Source files observed to affect a test."""

    filename: ClassVar[str] = SOURCE_FILES_FILENAME

    def save(self, files: Iterable[str | Path]) -> None:
        entries = [Path(entry).as_posix() if isinstance(entry, Path) else str(entry) for entry in files]

        def _dump(handle: TextIO) -> None:
            for entry in entries:
                handle.write(f"{entry}\n")

        self.write(_dump)
        LOGGER.debug("Cached %d source file(s) for %s", len(entries), self.identifier)

    def source_files(self) -> List[str]:
        return [line.strip() for line in self.read_lines() if line.strip()]

    def dirty_files(self) -> List[str]:
        """Return recorded files modified at or after the record was written."""

        written_at = self.last_modified_time()
        dirty: List[str] = []
        for source_file in self.source_files():
            try:
                modified_at = os.stat(source_file).st_mtime
            except FileNotFoundError:
                if self.config.missing_files is MissingFilePolicy.ERROR:
                    raise MissingSourceFileError(source_file, self.path) from None
                LOGGER.warning(
                    "Recorded source file %s for %s no longer exists; treating it as changed",
                    source_file,
                    self.identifier,
                )
                dirty.append(source_file)
                continue
            if modified_at >= written_at:
                dirty.append(source_file)
        return dirty

    def any_dirty_files(self) -> bool:
        dirty = self.dirty_files()
        if dirty:
            LOGGER.debug("Dirty files for %s: %s", self.identifier, ", ".join(dirty))
        return bool(dirty)
