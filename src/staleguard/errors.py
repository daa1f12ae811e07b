"""Exception hierarchy raised by the staleguard engine."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "ConfigurationError",
    "MissingSourceFileError",
    "NoCurrentTestError",
    "StaleguardError",
]


class StaleguardError(RuntimeError):
    """Base class for every error raised by staleguard."""


class ConfigurationError(StaleguardError, ValueError):
    """Raised when a configuration file cannot be loaded or validated."""


class NoCurrentTestError(StaleguardError):
    """Raised when a current-test operation runs before any test was started."""

    def __init__(self, message: str = "You need to start a test first") -> None:
        super().__init__(message)


class MissingSourceFileError(StaleguardError, FileNotFoundError):
    """Raised when a recorded source file disappeared and staleness cannot be decided."""

    def __init__(self, path: str | Path, cache_file: str | Path) -> None:
        self.path = Path(path)
        self.cache_file = Path(cache_file)
        super().__init__(
            f"Recorded source file {self.path.as_posix()} no longer exists "
            f"(listed in {self.cache_file.as_posix()})"
        )
