# smartsupply/core/results.py
"""
Explicit result type for cache operations that must never raise.

A search, balance lookup or refresh always hands back a value. When the
operation had to fall back (remote down, storage broken) the result is
flagged as degraded and carries the error text instead of raising.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from .constants import ResultSource

T = TypeVar("T")


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    value: T
    source: ResultSource
    degraded: bool = False
    error: str | None = None

    @classmethod
    def ok(cls, value: T, source: ResultSource) -> "CacheResult[T]":
        return cls(value=value, source=source)

    @classmethod
    def fallback(cls, value: T, error: str) -> "CacheResult[T]":
        """Degraded result built from cached data (or an empty default)."""
        return cls(value=value, source=ResultSource.CACHED, degraded=True, error=error)
