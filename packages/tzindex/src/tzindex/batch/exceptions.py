"""Structured errors for the batch lookup runner."""

from __future__ import annotations

from dataclasses import dataclass

from tzindex.core.errors import TzIndexError


@dataclass(eq=False)
class BatchLookupError(TzIndexError):
    """Raised when a batch lookup cannot complete."""

    code: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.detail}"


def err(code: str, detail: str) -> BatchLookupError:
    """Factory to create a :class:`BatchLookupError` with consistent formatting."""

    return BatchLookupError(code=code, detail=detail)


__all__ = ["BatchLookupError", "err"]
