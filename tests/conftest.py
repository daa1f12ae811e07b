from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from staleguard.identity import TestIdentifier  # noqa: E402


class FakeAnalyzer:
    """Coverage collaborator reporting a fixed list of files."""

    def __init__(self, files: List[str] | None = None) -> None:
        self.files = list(files or [])
        self.active = False
        self.hook_count = 0

    @contextmanager
    def hooked(self) -> Iterator[None]:
        self.active = True
        self.hook_count += 1
        try:
            yield
        finally:
            self.active = False

    def analyzed_files(self) -> List[str]:
        return list(self.files)


@dataclass(slots=True)
class RecordingVisitor:
    """Visitor capturing announcements for assertions."""

    messages: List[str] = field(default_factory=list)

    def announce(self, message: str) -> None:
        self.messages.append(message)


def set_mtime(path: Path, when: float) -> None:
    os.utime(path, (when, when))


def age_sources(paths: List[Path], reference: Path, seconds: float = 60.0) -> None:
    """Move ``paths`` strictly before the modification time of ``reference``."""
    written_at = reference.stat().st_mtime
    for path in paths:
        set_mtime(path, written_at - seconds)


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary project root used as the working directory."""

    monkeypatch.chdir(tmp_path)
    (tmp_path / "features").mkdir()
    (tmp_path / "features" / "login.feature").write_text("Feature: login\n", encoding="utf-8")
    (tmp_path / "lib").mkdir()
    (tmp_path / "lib" / "auth.py").write_text("def login():\n    return True\n", encoding="utf-8")
    (tmp_path / "lib" / "session.py").write_text("TOKEN = 'abc'\n", encoding="utf-8")
    return tmp_path


@pytest.fixture()
def scenario_id() -> TestIdentifier:
    return TestIdentifier("features/login.feature", 12)


@pytest.fixture()
def visitor() -> RecordingVisitor:
    return RecordingVisitor()
