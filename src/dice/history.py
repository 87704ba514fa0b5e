"""Bounded roll history with aggregate statistics.

The history keeps the most recent results until:
1. The buffer is full and a newer result arrives (strict FIFO eviction)
2. It is cleared explicitly

Thread-safe via threading.Lock for concurrent rolls on one engine.
"""

import logging
import statistics as stats
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator

from src.dice.types import RollResult

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAPACITY = 1000


@dataclass(frozen=True)
class RollHistoryEntry:
    """A recorded roll.

    Attributes:
        index: Sequence number, starting at 0 for the first append.
        result: The roll that was recorded.
    """

    index: int
    result: RollResult


@dataclass(frozen=True)
class HistoryStatistics:
    """Aggregates over the current history window."""

    count: int
    mean: float | None
    variance: float | None
    minimum: int | None
    maximum: int | None
    dice_by_sides: dict[int, int] = field(default_factory=dict)
    natural_twenties: int = 0
    natural_ones: int = 0


class RollHistory:
    """Fixed-capacity ring buffer of roll results."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        """Initialize the history.

        Args:
            capacity: Maximum entries kept before the oldest is evicted.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: deque[RollHistoryEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._next_index = 0

    def append(self, result: RollResult) -> RollHistoryEntry:
        """Record a result, evicting the oldest entry when full."""
        with self._lock:
            entry = RollHistoryEntry(index=self._next_index, result=result)
            self._next_index += 1
            if len(self._entries) == self.capacity:
                logger.debug(f"History full, evicting entry {self._entries[0].index}")
            self._entries.append(entry)
            return entry

    def iterate(self) -> list[RollHistoryEntry]:
        """Snapshot of entries, most recent first."""
        with self._lock:
            return list(reversed(self._entries))

    def __iter__(self) -> Iterator[RollHistoryEntry]:
        return iter(self.iterate())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def total_appended(self) -> int:
        """Number of entries ever appended, including evicted ones."""
        with self._lock:
            return self._next_index

    def recent(self, limit: int = 10) -> list[RollHistoryEntry]:
        """Up to `limit` most recent entries, newest first."""
        return self.iterate()[: max(limit, 0)]

    def find(self, roll_id: str) -> RollHistoryEntry | None:
        """Look up a recorded roll by its id."""
        for entry in self.iterate():
            if entry.result.roll_id == roll_id:
                return entry
        return None

    def clear(self) -> None:
        """Drop every entry. Sequence numbering continues."""
        with self._lock:
            self._entries.clear()

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def _totals(self) -> list[int]:
        with self._lock:
            return [entry.result.total for entry in self._entries]

    def frequency_table(self, sides: int) -> dict[int, int]:
        """Occurrences of each face across every recorded die of one size.

        Args:
            sides: Die size to count (e.g., 6 for d6).

        Returns:
            Mapping of face to count for faces 1..sides, zeros included.
        """
        if sides < 1:
            raise ValueError(f"Die size must be at least 1, got {sides}")

        table = {face: 0 for face in range(1, sides + 1)}
        for entry in self.iterate():
            for die in entry.result.per_die_results:
                if die.sides == sides:
                    table[die.value] += 1
        return table

    def mean(self) -> float | None:
        """Mean of recorded totals, or None when empty."""
        totals = self._totals()
        return stats.fmean(totals) if totals else None

    def variance(self) -> float | None:
        """Population variance of recorded totals, or None when empty."""
        totals = self._totals()
        return float(stats.pvariance(totals)) if totals else None

    def statistics(self) -> HistoryStatistics:
        """All aggregates over the current window in one pass."""
        entries = self.iterate()
        totals = [entry.result.total for entry in entries]

        dice_by_sides: dict[int, int] = {}
        twenties = 0
        ones = 0
        for entry in entries:
            for die in entry.result.per_die_results:
                dice_by_sides[die.sides] = dice_by_sides.get(die.sides, 0) + 1
                if die.sides == 20:
                    if die.value == 20:
                        twenties += 1
                    elif die.value == 1:
                        ones += 1

        return HistoryStatistics(
            count=len(totals),
            mean=stats.fmean(totals) if totals else None,
            variance=float(stats.pvariance(totals)) if totals else None,
            minimum=min(totals) if totals else None,
            maximum=max(totals) if totals else None,
            dice_by_sides=dice_by_sides,
            natural_twenties=twenties,
            natural_ones=ones,
        )
