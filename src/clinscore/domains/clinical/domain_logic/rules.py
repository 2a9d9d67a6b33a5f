"""Weighted rule evaluation over engineered features.

Every rule is evaluated against the same snapshot; there is no
short-circuiting, so the evaluation always reflects the full rule list.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Union

from clinscore.domains.clinical.domain_logic.models import (
    Direction,
    EngineeredFeatures,
    RiskFactor,
    RuleEvaluation,
    WindowKey,
)

COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "gt": operator.gt,
    "ge": operator.ge,
    "lt": operator.lt,
    "le": operator.le,
    "eq": operator.eq,
    "ne": operator.ne,
}

STATS = ("count", "mean", "latest", "min", "max", "std", "slope_per_day")

DEMOGRAPHIC_FIELDS = ("age", "sex")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetricThreshold:
    """``stat(metric, window) <op> value``; false when the window is empty."""

    metric: str
    window: WindowKey
    stat: str
    op: str
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "window", WindowKey(self.window))
        if self.stat not in STATS:
            raise ValueError(f"Unknown statistic: {self.stat!r}")
        if self.op not in COMPARISONS:
            raise ValueError(f"Unknown comparison operator: {self.op!r}")

    def observed(self, features: EngineeredFeatures) -> float | None:
        stats = features.stat(self.metric, self.window)
        if not stats.has_data:
            return None
        if self.stat == "latest":
            return stats.latest.value
        return getattr(stats, self.stat)

    def __call__(self, features: EngineeredFeatures) -> bool:
        observed = self.observed(features)
        return observed is not None and COMPARISONS[self.op](observed, self.value)

    def context(self, features: EngineeredFeatures) -> dict[str, Any]:
        stats = features.stat(self.metric, self.window)
        return {"value": self.observed(features), "count": stats.count, "metric": self.metric}


@dataclass(frozen=True)
class DemographicThreshold:
    """``demographics.<field> <op> value``; false when the field is unknown."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.field not in DEMOGRAPHIC_FIELDS:
            raise ValueError(f"Unknown demographic field: {self.field!r}")
        if self.op not in COMPARISONS:
            raise ValueError(f"Unknown comparison operator: {self.op!r}")

    def __call__(self, features: EngineeredFeatures) -> bool:
        observed = getattr(features.demographics, self.field)
        if observed is None:
            return False
        try:
            return bool(COMPARISONS[self.op](observed, self.value))
        except TypeError:
            return False

    def context(self, features: EngineeredFeatures) -> dict[str, Any]:
        return {"value": getattr(features.demographics, self.field)}


@dataclass(frozen=True)
class MetricsMissing:
    """True when any listed metric has no observations in the window."""

    metrics: tuple[str, ...]
    window: WindowKey

    def __post_init__(self) -> None:
        object.__setattr__(self, "metrics", tuple(self.metrics))
        object.__setattr__(self, "window", WindowKey(self.window))

    def missing(self, features: EngineeredFeatures) -> list[str]:
        return [m for m in self.metrics if not features.stat(m, self.window).has_data]

    def __call__(self, features: EngineeredFeatures) -> bool:
        return bool(self.missing(features))

    def context(self, features: EngineeredFeatures) -> dict[str, Any]:
        missing = self.missing(features)
        return {"value": len(missing), "metrics": ", ".join(missing)}


Predicate = Callable[[EngineeredFeatures], bool]
Detail = Union[str, Callable[[EngineeredFeatures], Union[str, None]], None]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    """A weighted predicate.

    ``detail`` is either a callable or a format string filled from the
    predicate's ``context()`` (e.g. ``"{value:.0f} mg/dL"``).
    """

    id: str
    label: str
    weight: float
    predicate: Predicate
    direction: Direction | None = None
    detail: Detail = None

    @property
    def impact_direction(self) -> Direction:
        if self.direction is not None:
            return self.direction
        return "positive" if self.weight >= 0 else "negative"

    def describe(self, features: EngineeredFeatures) -> str | None:
        if self.detail is None:
            return None
        if callable(self.detail):
            return self.detail(features)
        context = getattr(self.predicate, "context", None)
        if context is None:
            return self.detail
        values = context(features)
        if values.get("value") is None:
            return None
        try:
            return self.detail.format(**values)
        except (KeyError, ValueError, TypeError):
            return None


def evaluate_rules(features: EngineeredFeatures, rules: Iterable[Rule]) -> RuleEvaluation:
    """Evaluate every rule against the same feature snapshot.

    ``score`` sums the weights of triggered rules. ``max_score`` sums the
    positive weights of all rules, triggered or not. Factors are ordered by
    impact descending; ties keep rule order.
    """
    score = 0.0
    max_score = 0.0
    factors: list[RiskFactor] = []
    triggered: list[str] = []
    for rule in rules:
        if rule.weight > 0:
            max_score += rule.weight
        if not rule.predicate(features):
            continue
        score += rule.weight
        triggered.append(rule.id)
        factors.append(RiskFactor(
            name=rule.label,
            impact=rule.weight,
            detail=rule.describe(features),
            direction=rule.impact_direction,
        ))
    return RuleEvaluation(
        score=score,
        factors=tuple(sorted(factors, key=lambda f: -f.impact)),
        max_score=max_score,
        triggered_ids=tuple(triggered),
    )
