"""Feature, rule and domain-result models for longitudinal risk scoring."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal

Direction = Literal["positive", "negative"]
RiskLabel = Literal["Low", "Moderate", "High", "Unknown"]


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

class WindowKey(str, Enum):
    """Fixed trailing windows, named by their length in days."""

    DAYS7 = "days7"
    DAYS30 = "days30"
    DAYS90 = "days90"
    DAYS365 = "days365"

    @property
    def days(self) -> int:
        return WINDOW_DAYS[self]


WINDOW_DAYS: dict[WindowKey, int] = {
    WindowKey.DAYS7: 7,
    WindowKey.DAYS30: 30,
    WindowKey.DAYS90: 90,
    WindowKey.DAYS365: 365,
}


# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Observation:
    """One time-stamped measurement, already in canonical units."""

    metric: str
    value: float
    observed_at: datetime


@dataclass(frozen=True)
class LatestValue:
    value: float
    observed_at: datetime


@dataclass(frozen=True)
class MetricWindowStats:
    """Summary of one metric over one window.

    ``count == 0`` means the window holds no data: every statistic is None
    (unknown), never zero.
    """

    count: int = 0
    mean: float | None = None
    latest: LatestValue | None = None
    min: float | None = None
    max: float | None = None
    std: float | None = None          # population standard deviation
    slope_per_day: float | None = None  # (last - first) / max(1, span in days)

    @property
    def has_data(self) -> bool:
        return self.count > 0

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.latest is not None:
            data["latest"] = {
                "value": self.latest.value,
                "observed_at": self.latest.observed_at.isoformat(),
            }
        return data


EMPTY_STATS = MetricWindowStats()


@dataclass(frozen=True)
class Demographics:
    age: float | None = None
    sex: str | None = None


@dataclass(frozen=True)
class EngineeredFeatures:
    """Immutable snapshot of windowed statistics for one evaluation."""

    reference_time: datetime
    windows: Mapping[WindowKey, Mapping[str, MetricWindowStats]]
    demographics: Demographics = field(default_factory=Demographics)

    def __post_init__(self) -> None:
        frozen = {
            key: MappingProxyType(dict(self.windows.get(key, {})))
            for key in WindowKey
        }
        object.__setattr__(self, "windows", MappingProxyType(frozen))

    def stat(self, metric: str, window: WindowKey | str) -> MetricWindowStats:
        """Stats for a metric in a window; an empty record when absent."""
        return self.windows[WindowKey(window)].get(metric, EMPTY_STATS)

    @property
    def metrics(self) -> list[str]:
        seen: dict[str, None] = {}
        for metrics in self.windows.values():
            seen.update(dict.fromkeys(metrics))
        return sorted(seen)

    def as_dict(self) -> dict[str, Any]:
        return {
            "reference_time": self.reference_time.isoformat(),
            "demographics": asdict(self.demographics),
            "windows": {
                key.value: {metric: stats.as_dict() for metric, stats in metrics.items()}
                for key, metrics in self.windows.items()
            },
        }


# ---------------------------------------------------------------------------
# Rule evaluation and domain results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RiskFactor:
    name: str
    impact: float
    detail: str | None = None
    direction: Direction = "positive"


@dataclass(frozen=True)
class RuleEvaluation:
    """Outcome of evaluating a rule list against one feature snapshot."""

    score: float
    factors: tuple[RiskFactor, ...]   # triggered rules, impact descending
    max_score: float                  # sum of positive weights over all rules
    triggered_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class DomainResult:
    condition: str
    risk_score: float
    risk_label: RiskLabel
    top_factors: tuple[RiskFactor, ...]
    generated_at: datetime
    raw_score: float = 0.0
    max_score: float = 0.0
    insufficient_data: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "condition": self.condition,
            "risk_score": self.risk_score,
            "risk_label": self.risk_label,
            "top_factors": [asdict(f) for f in self.top_factors],
            "generated_at": self.generated_at.isoformat(),
            "raw_score": self.raw_score,
            "max_score": self.max_score,
            "insufficient_data": self.insufficient_data,
        }
