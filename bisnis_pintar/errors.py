"""
Exception hierarchy shared across the package.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class BisnisPintarError(Exception):
    """Base class for every error raised on purpose by this package."""


class PersistenceError(BisnisPintarError):
    """The snapshot slot could not be written; in-memory state is still valid."""


class AdvisorBusyError(BisnisPintarError):
    """A question is already waiting for the advisor in this chat session."""


@dataclass
class AdvisorError(BisnisPintarError):
    message: str
    status_code: int = 0
    response_text: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        parts = [self.message]
        if self.status_code:
            parts.insert(0, f"HTTP {self.status_code}")
        return "; ".join(parts)


__all__ = [
    "AdvisorBusyError",
    "AdvisorError",
    "BisnisPintarError",
    "PersistenceError",
]
