"""Adapters binding host test constructs to a staleguard session.

A host exposes three kinds of construct: backgrounds (shared setup that
several scenarios depend on), scenarios (the executable tests) and steps
(individual invocations inside a scenario or background).  Each adapter
implements :class:`Watchable` so the host can drive them uniformly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Protocol, TypeVar

from .identity import TestIdentifier
from .monitor import Visitor
from .session import Session

T = TypeVar("T")

__all__ = ["BackgroundAdapter", "ScenarioAdapter", "StepAdapter", "Watchable"]


class Watchable(Protocol):
    """Capability set staleguard needs from a host construct."""

    def identity(self) -> TestIdentifier:  # pragma: no cover - protocol
        ...

    def execution_hook(self, block: Callable[[], T]) -> T:  # pragma: no cover - protocol
        ...

    def on_file_touched(self, path: str) -> None:  # pragma: no cover - protocol
        ...


def _as_file(value: str | Path) -> str:
    return value.as_posix() if isinstance(value, Path) else str(value)


class BackgroundAdapter:
    """Shared setup executed ahead of the scenarios that depend on it."""

    def __init__(self, session: Session, file: str | Path, line: int, visitor: Visitor) -> None:
        self.session = session
        self._identifier = TestIdentifier(_as_file(file), line)
        self._visitor = visitor

    def identity(self) -> TestIdentifier:
        return self._identifier

    def can_skip(self) -> bool:
        return not self.session.should_execute(self._identifier)

    def execution_hook(self, block: Callable[[], T]) -> T:
        return self.session.start_test(self._identifier, self._visitor, block)

    def on_file_touched(self, path: str) -> None:
        self.session.record(path)


class ScenarioAdapter:
    """Executable test, optionally depending on a background."""

    def __init__(
        self,
        session: Session,
        file: str | Path,
        line: int,
        visitor: Visitor,
        *,
        background: Optional[BackgroundAdapter] = None,
    ) -> None:
        self.session = session
        self.background = background
        depends_on = background.identity() if background is not None else None
        self._identifier = TestIdentifier(_as_file(file), line, depends_on)
        self._visitor = visitor

    def identity(self) -> TestIdentifier:
        return self._identifier

    def can_skip(self) -> bool:
        """Return the advisory verdict; a scenario that must run pins its background."""
        if self.session.should_execute(self._identifier):
            if self.background is not None:
                self.session.require(self.background.identity())
            return False
        return True

    def execution_hook(self, block: Callable[[], T]) -> T:
        return self.session.start_test(self._identifier, self._visitor, block)

    def on_file_touched(self, path: str) -> None:
        self.session.record(path)


class StepAdapter:
    """Single step invocation; attributes its definition file to the current test."""

    def __init__(self, session: Session, file: str | Path, line: int, definition_file: str | Path) -> None:
        self.session = session
        self._identifier = TestIdentifier(_as_file(file), line)
        self.definition_file = _as_file(definition_file)

    def identity(self) -> TestIdentifier:
        return self._identifier

    def execution_hook(self, block: Callable[[], T]) -> T:
        self.session.record(self.definition_file)
        try:
            return block()
        except Exception:
            self.session.fail_current_test()
            raise

    def on_file_touched(self, path: str) -> None:
        self.session.record(path)
