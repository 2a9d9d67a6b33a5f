"""Domain risk aggregation.

Turns a rule evaluation into a labelled ``DomainResult``. When the only
rule that fired is the ruleset's insufficient-data sentinel the result is
labelled ``Unknown`` rather than reported as a false "Low".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from clinscore.core.scoring.numeric import clamp, safe_div
from clinscore.domains.clinical.domain_logic.features import as_utc, build_features
from clinscore.domains.clinical.domain_logic.models import (
    Demographics,
    DomainResult,
    Observation,
    RuleEvaluation,
)
from clinscore.domains.clinical.domain_logic.rules import evaluate_rules
from clinscore.domains.clinical.domain_logic.rulesets import Ruleset


def aggregate(
    ruleset: Ruleset,
    evaluation: RuleEvaluation,
    reference_time: datetime,
) -> DomainResult:
    """Label one condition's evaluation.

    ``risk_score = clamp(score / max_score, 0, 1)``, or 0 when ``max_score``
    is not positive. ``generated_at`` is the reference time.
    """
    triggered = set(evaluation.triggered_ids)
    sentinel = ruleset.sentinel_id
    if sentinel is not None and triggered == {sentinel}:
        return DomainResult(
            condition=ruleset.condition,
            risk_score=0.0,
            risk_label="Unknown",
            top_factors=evaluation.factors[: ruleset.top_factors],
            generated_at=reference_time,
            raw_score=evaluation.score,
            max_score=evaluation.max_score,
            insufficient_data=True,
        )

    ratio = safe_div(evaluation.score, evaluation.max_score)
    risk_score = clamp(ratio) if ratio is not None else 0.0
    return DomainResult(
        condition=ruleset.condition,
        risk_score=risk_score,
        risk_label=ruleset.bands.label(risk_score),
        top_factors=evaluation.factors[: ruleset.top_factors],
        generated_at=reference_time,
        raw_score=evaluation.score,
        max_score=evaluation.max_score,
        insufficient_data=False,
    )


def assess_domains(
    observations: Iterable[Observation | Mapping[str, Any]],
    reference_time: datetime | str,
    demographics: Demographics | None,
    rulesets: Mapping[str, Ruleset] | Iterable[Ruleset],
) -> list[DomainResult]:
    """Features -> rule evaluation -> labelled result, for every ruleset."""
    features = build_features(observations, as_utc(reference_time), demographics)
    if isinstance(rulesets, Mapping):
        rulesets = rulesets.values()
    return [
        aggregate(ruleset, evaluate_rules(features, ruleset.rules), features.reference_time)
        for ruleset in rulesets
    ]
