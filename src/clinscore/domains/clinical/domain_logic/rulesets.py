"""Ruleset loader: reads declarative per-condition rule sets from YAML.

Each file describes one condition::

    condition: Cardiovascular
    bands: {moderate: 0.33, high: 0.66}
    top_factors: 5
    insufficient_data:
      metrics: [ldl, sbp]
      window: days365
    rules:
      - id: ldl_high_mean_90d
        label: LDL high (90d mean)
        weight: 0.22
        when: {metric: ldl, window: days90, stat: mean, op: gt, value: 130}
        detail: "{value:.0f} mg/dL"
      - id: age_elderly
        label: Age >= 65
        weight: 0.10
        when: {demographic: age, op: ge, value: 65}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from clinscore.domains.clinical.domain_logic.models import RiskLabel, WindowKey
from clinscore.domains.clinical.domain_logic.rules import (
    DemographicThreshold,
    MetricsMissing,
    MetricThreshold,
    Rule,
)

logger = logging.getLogger(__name__)

DEFAULT_RULESET_DIR = Path(__file__).resolve().parent.parent / "rulesets"

INSUFFICIENT_DATA_RULE_ID = "insufficient_data"


class RulesetError(ValueError):
    """Raised when a ruleset definition is malformed."""


@dataclass(frozen=True)
class BandCutoffs:
    """Label cutoffs on the normalised score (score / max_score)."""

    moderate: float = 0.33
    high: float = 0.66

    def __post_init__(self) -> None:
        if not 0 <= self.moderate < self.high <= 1:
            raise RulesetError(
                f"Band cutoffs must satisfy 0 <= moderate < high <= 1, "
                f"got moderate={self.moderate}, high={self.high}"
            )

    def label(self, risk_score: float) -> RiskLabel:
        if risk_score < self.moderate:
            return "Low"
        if risk_score < self.high:
            return "Moderate"
        return "High"


@dataclass(frozen=True)
class Ruleset:
    """Rules and labelling policy for one clinical condition."""

    condition: str
    rules: tuple[Rule, ...]
    bands: BandCutoffs = BandCutoffs()
    top_factors: int = 5
    sentinel_id: str | None = None

    @property
    def rule_ids(self) -> list[str]:
        return [rule.id for rule in self.rules]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise RulesetError(f"{where}: missing required key {key!r}")
    return data[key]


def _number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RulesetError(f"{where}: expected a number, got {value!r}")
    return float(value)


def _window(value: Any, where: str) -> WindowKey:
    try:
        return WindowKey(value)
    except ValueError:
        choices = ", ".join(k.value for k in WindowKey)
        raise RulesetError(f"{where}: unknown window {value!r} (expected one of {choices})") from None


def parse_predicate(when: Any, where: str):
    """Build a predicate object from a ``when`` mapping."""
    if not isinstance(when, Mapping):
        raise RulesetError(f"{where}: 'when' must be a mapping")
    try:
        if "metric" in when:
            return MetricThreshold(
                metric=str(when["metric"]),
                window=_window(_require(when, "window", where), where),
                stat=str(when.get("stat", "mean")),
                op=str(_require(when, "op", where)),
                value=_number(_require(when, "value", where), where),
            )
        if "demographic" in when:
            return DemographicThreshold(
                field=str(when["demographic"]),
                op=str(_require(when, "op", where)),
                value=_require(when, "value", where),
            )
        if "missing" in when:
            return MetricsMissing(
                metrics=tuple(str(m) for m in when["missing"]),
                window=_window(_require(when, "window", where), where),
            )
    except ValueError as exc:
        if isinstance(exc, RulesetError):
            raise
        raise RulesetError(f"{where}: {exc}") from exc
    raise RulesetError(f"{where}: 'when' needs one of 'metric', 'demographic' or 'missing'")


def _parse_rule(data: Any, where: str) -> Rule:
    if not isinstance(data, Mapping):
        raise RulesetError(f"{where}: rule must be a mapping")
    rule_id = str(_require(data, "id", where))
    where = f"{where} ({rule_id})"
    direction = data.get("direction")
    if direction not in (None, "positive", "negative"):
        raise RulesetError(f"{where}: direction must be 'positive' or 'negative'")
    detail = data.get("detail")
    if detail is not None and not isinstance(detail, str):
        raise RulesetError(f"{where}: detail must be a format string")
    return Rule(
        id=rule_id,
        label=str(data.get("label", rule_id)),
        weight=_number(_require(data, "weight", where), where),
        predicate=parse_predicate(_require(data, "when", where), where),
        direction=direction,
        detail=detail,
    )


def _sentinel_rule(data: Any, where: str) -> Rule:
    if not isinstance(data, Mapping):
        raise RulesetError(f"{where}: insufficient_data must be a mapping")
    metrics = _require(data, "metrics", where)
    if not metrics:
        raise RulesetError(f"{where}: insufficient_data.metrics is empty")
    return Rule(
        id=INSUFFICIENT_DATA_RULE_ID,
        label=str(data.get("label", "Data stale/insufficient")),
        weight=0.0,
        predicate=MetricsMissing(
            metrics=tuple(str(m) for m in metrics),
            window=_window(data.get("window", WindowKey.DAYS365.value), where),
        ),
        detail="missing: {metrics}",
    )


def parse_ruleset(data: Any, source: str = "<ruleset>") -> Ruleset:
    """Validate a decoded YAML document and build a Ruleset."""
    if not isinstance(data, Mapping):
        raise RulesetError(f"{source}: top level must be a mapping")
    condition = str(_require(data, "condition", source))

    bands_data = data.get("bands", {})
    if not isinstance(bands_data, Mapping):
        raise RulesetError(f"{source}: bands must be a mapping")
    bands = BandCutoffs(
        moderate=_number(bands_data.get("moderate", 0.33), f"{source} bands.moderate"),
        high=_number(bands_data.get("high", 0.66), f"{source} bands.high"),
    )

    top_factors = data.get("top_factors", 5)
    if isinstance(top_factors, bool) or not isinstance(top_factors, int) or top_factors < 1:
        raise RulesetError(f"{source}: top_factors must be a positive integer")

    raw_rules = _require(data, "rules", source)
    if not isinstance(raw_rules, list) or not raw_rules:
        raise RulesetError(f"{source}: rules must be a non-empty list")
    rules = [_parse_rule(item, f"{source} rules[{i}]") for i, item in enumerate(raw_rules)]

    sentinel_id = None
    if data.get("insufficient_data") is not None:
        rules.append(_sentinel_rule(data["insufficient_data"], f"{source} insufficient_data"))
        sentinel_id = INSUFFICIENT_DATA_RULE_ID

    seen: set[str] = set()
    for rule in rules:
        if rule.id in seen:
            raise RulesetError(f"{source}: duplicate rule id {rule.id!r}")
        seen.add(rule.id)

    return Ruleset(
        condition=condition,
        rules=tuple(rules),
        bands=bands,
        top_factors=top_factors,
        sentinel_id=sentinel_id,
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_ruleset_file(path: str | Path) -> Ruleset:
    """Parse one YAML ruleset file."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise RulesetError(f"{path}: invalid YAML: {exc}") from exc
    return parse_ruleset(data, source=path.name)


def load_ruleset_directory(directory: str | Path) -> dict[str, Ruleset]:
    """Load every ``*.yaml`` ruleset in a directory, keyed by condition.

    Files starting with an underscore are skipped.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise RulesetError(f"Ruleset directory does not exist: {directory}")

    rulesets: dict[str, Ruleset] = {}
    for path in sorted(directory.glob("*.yaml")):
        if path.name.startswith("_"):
            continue
        ruleset = load_ruleset_file(path)
        if ruleset.condition in rulesets:
            raise RulesetError(f"{path.name}: duplicate condition {ruleset.condition!r}")
        rulesets[ruleset.condition] = ruleset
        logger.info("Loaded ruleset: %s (%d rules)", ruleset.condition, len(ruleset.rules))
    return rulesets


def load_default_rulesets(directory: str | Path | None = None) -> dict[str, Ruleset]:
    """Load the packaged rulesets, or those in ``directory`` when given."""
    return load_ruleset_directory(directory or DEFAULT_RULESET_DIR)
