"""
Cache Statistics

Process-lifetime counters for cache operations. Increments are plain
integer additions; exactness under concurrent updates is not guaranteed.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time snapshot of cache counters."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        """hits / (hits + misses), 0.0 when nothing has been read."""
        reads = self.hits + self.misses
        return self.hits / reads if reads else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "hit_rate": round(self.hit_rate, 3)}


class StatsTracker:
    """
    Mutable counter aggregate behind ``CacheManager.get_stats()``.

    Reset only by explicit ``reset()``.
    """

    def __init__(self):
        self.reset()

    def record_hit(self) -> None:
        self._hits += 1

    def record_miss(self) -> None:
        self._misses += 1

    def record_set(self) -> None:
        self._sets += 1

    def record_delete(self, count: int = 1) -> None:
        self._deletes += count

    def record_error(self) -> None:
        self._errors += 1

    def snapshot(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            sets=self._sets,
            deletes=self._deletes,
            errors=self._errors,
        )

    def reset(self) -> None:
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._errors = 0
