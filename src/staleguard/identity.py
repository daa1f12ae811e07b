"""Stable identifiers for executable tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

__all__ = ["TestIdentifier"]


@dataclass(frozen=True, slots=True)
class TestIdentifier:
    """Immutable ``(file, line)`` key naming one executable test.

    ``depends_on`` points at another identifier (a shared fixture or
    background) whose staleness also forces this test to run.  Dependencies
    form a single-parent chain; cycles are not supported.  Equality and
    hashing only consider the location.
    """

    __test__ = False

    file: str
    line: int
    depends_on: Optional["TestIdentifier"] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.file, Path):
            object.__setattr__(self, "file", self.file.as_posix())
        if not self.file:
            raise ValueError("TestIdentifier requires a file")
        if int(self.line) < 0:
            raise ValueError(f"TestIdentifier line must be non-negative, got {self.line}")
        object.__setattr__(self, "line", int(self.line))

    @property
    def location(self) -> tuple[str, int]:
        return (self.file, self.line)

    def chain(self) -> Iterator["TestIdentifier"]:
        """Yield the identifiers this test depends on, nearest first."""
        dependency = self.depends_on
        while dependency is not None:
            yield dependency
            dependency = dependency.depends_on

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"
