"""Batch annotation of coordinate tables with time-zone identifiers."""

from .exceptions import BatchLookupError
from .runner import BatchLookupInputs, BatchLookupResult, BatchLookupRunner

__all__ = [
    "BatchLookupError",
    "BatchLookupInputs",
    "BatchLookupResult",
    "BatchLookupRunner",
]
