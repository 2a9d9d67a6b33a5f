"""Validated range tables for first-match-wins interval scoring.

Tables are checked for overlapping rows when they are built, so an
authoring mistake fails at import time instead of silently depending on
declaration order.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RangeRow:
    """One scored interval. ``None`` bounds are unbounded."""

    low: float | None
    high: float | None
    points: int
    low_inclusive: bool = True
    high_inclusive: bool = True

    def __post_init__(self) -> None:
        if self.low is not None and self.high is not None:
            if self.low > self.high:
                raise ValueError(f"Range row has low > high: {self}")
            if self.low == self.high and not (self.low_inclusive and self.high_inclusive):
                raise ValueError(f"Range row is empty: {self}")

    def contains(self, value: float) -> bool:
        if self.low is not None:
            if value < self.low or (value == self.low and not self.low_inclusive):
                return False
        if self.high is not None:
            if value > self.high or (value == self.high and not self.high_inclusive):
                return False
        return True

    @property
    def _lo(self) -> float:
        return -math.inf if self.low is None else self.low

    @property
    def _hi(self) -> float:
        return math.inf if self.high is None else self.high


def _overlaps(a: RangeRow, b: RangeRow) -> bool:
    if a._hi < b._lo or b._hi < a._lo:
        return False
    if a._hi == b._lo:
        return a.high_inclusive and b.low_inclusive
    if b._hi == a._lo:
        return b.high_inclusive and a.low_inclusive
    return True


class RangeTable:
    """Ordered, non-overlapping intervals mapped to points.

    Usage::

        heart_rate = RangeTable.at_least([(180, 4), (140, 3), (110, 2), (70, 0),
                                          (55, 2), (40, 3)], below=4)
        heart_rate.score(125)  # -> 2
    """

    def __init__(self, rows: Sequence[RangeRow], *, default: int = 0) -> None:
        rows = tuple(rows)
        for i, row in enumerate(rows):
            for other in rows[i + 1:]:
                if _overlaps(row, other):
                    raise ValueError(f"Overlapping range rows: {row} and {other}")
        self.rows = rows
        self.default = default

    @classmethod
    def at_least(
        cls,
        ladder: Sequence[tuple[float, int]],
        *,
        below: int = 0,
    ) -> RangeTable:
        """Build a ``value >= threshold`` ladder.

        ``ladder`` must list thresholds in strictly descending order; values
        under the last threshold score ``below``.
        """
        thresholds = [t for t, _ in ladder]
        if any(a <= b for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError(f"Thresholds must be strictly descending: {thresholds}")
        rows: list[RangeRow] = []
        upper: float | None = None
        for threshold, points in ladder:
            rows.append(RangeRow(threshold, upper, points, high_inclusive=False))
            upper = threshold
        rows.append(RangeRow(None, upper, below, high_inclusive=False))
        return cls(rows)

    def score(self, value: float) -> int:
        """Points for the first row containing ``value``; ``default`` if none."""
        for row in self.rows:
            if row.contains(value):
                return row.points
        return self.default


class Cutoffs(Generic[T]):
    """Map a score onto a band: first ``score >= threshold`` wins."""

    def __init__(self, cutoffs: Sequence[tuple[float, T]], *, default: T) -> None:
        thresholds = [t for t, _ in cutoffs]
        if any(a <= b for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError(f"Cutoffs must be strictly descending: {thresholds}")
        self.cutoffs = tuple(cutoffs)
        self.default = default

    def band(self, score: float) -> T:
        for threshold, label in self.cutoffs:
            if score >= threshold:
                return label
        return self.default
