"""Typed records persisted by the staleguard caches."""

from __future__ import annotations

from enum import Enum


class RunStatus(str, Enum):
    """Outcome of the last recorded execution of a test."""

    PASSED = "passed"
    FAILED = "failed"

    @classmethod
    def parse(cls, token: str) -> "RunStatus | None":
        """Return the status named by ``token`` or ``None`` for unknown tokens."""
        try:
            return cls(token.strip())
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


__all__ = ["RunStatus"]
