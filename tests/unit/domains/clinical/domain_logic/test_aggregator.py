"""Tests for domain risk aggregation."""

from __future__ import annotations

import pytest
from conftest import REFERENCE_TIME, obs

from clinscore.domains.clinical.domain_logic.aggregator import aggregate, assess_domains
from clinscore.domains.clinical.domain_logic.models import (
    Demographics,
    RiskFactor,
    RuleEvaluation,
)
from clinscore.domains.clinical.domain_logic.rulesets import BandCutoffs, Ruleset


def _by_condition(results):
    return {result.condition: result for result in results}


def _ruleset(**kwargs) -> Ruleset:
    return Ruleset(condition="Demo", rules=(), sentinel_id="insufficient_data", **kwargs)


class TestAggregate:
    def test_score_normalised_and_labelled(self):
        evaluation = RuleEvaluation(
            score=0.5,
            factors=(RiskFactor("a", 0.5),),
            max_score=1.0,
            triggered_ids=("a",),
        )
        result = aggregate(_ruleset(), evaluation, REFERENCE_TIME)
        assert result.risk_score == 0.5
        assert result.risk_label == "Moderate"
        assert result.insufficient_data is False
        assert result.generated_at == REFERENCE_TIME

    def test_only_sentinel_fired_is_unknown(self):
        evaluation = RuleEvaluation(
            score=0.0,
            factors=(RiskFactor("Data stale/insufficient", 0.0, "missing: ldl"),),
            max_score=1.0,
            triggered_ids=("insufficient_data",),
        )
        result = aggregate(_ruleset(), evaluation, REFERENCE_TIME)
        assert result.risk_label == "Unknown"
        assert result.risk_score == 0.0
        assert result.insufficient_data is True
        assert result.top_factors[0].detail == "missing: ldl"

    def test_sentinel_with_other_rules_is_scored(self):
        evaluation = RuleEvaluation(
            score=0.7,
            factors=(RiskFactor("a", 0.7), RiskFactor("Data stale/insufficient", 0.0)),
            max_score=1.0,
            triggered_ids=("a", "insufficient_data"),
        )
        result = aggregate(_ruleset(), evaluation, REFERENCE_TIME)
        assert result.risk_label == "High"
        assert result.insufficient_data is False

    def test_nothing_fired_is_low(self):
        evaluation = RuleEvaluation(score=0.0, factors=(), max_score=1.0)
        assert aggregate(_ruleset(), evaluation, REFERENCE_TIME).risk_label == "Low"

    def test_zero_max_score(self):
        evaluation = RuleEvaluation(score=0.0, factors=(), max_score=0.0)
        result = aggregate(_ruleset(), evaluation, REFERENCE_TIME)
        assert result.risk_score == 0.0
        assert result.risk_label == "Low"

    def test_score_clamped(self):
        high = RuleEvaluation(score=1.4, factors=(), max_score=1.0, triggered_ids=("a",))
        low = RuleEvaluation(score=-0.3, factors=(), max_score=1.0, triggered_ids=("a",))
        assert aggregate(_ruleset(), high, REFERENCE_TIME).risk_score == 1.0
        assert aggregate(_ruleset(), low, REFERENCE_TIME).risk_score == 0.0

    def test_top_factors_truncated(self):
        factors = tuple(RiskFactor(f"f{i}", 0.1) for i in range(8))
        evaluation = RuleEvaluation(score=0.8, factors=factors, max_score=1.0, triggered_ids=("a",))
        result = aggregate(_ruleset(top_factors=3), evaluation, REFERENCE_TIME)
        assert [f.name for f in result.top_factors] == ["f0", "f1", "f2"]

    def test_custom_bands(self):
        evaluation = RuleEvaluation(score=0.25, factors=(), max_score=1.0, triggered_ids=("a",))
        result = aggregate(_ruleset(bands=BandCutoffs(0.2, 0.3)), evaluation, REFERENCE_TIME)
        assert result.risk_label == "Moderate"


class TestAssessDomains:
    def test_no_observations_all_unknown(self, rulesets):
        results = assess_domains([], REFERENCE_TIME, None, rulesets)
        assert len(results) == 3
        for result in results:
            assert result.risk_label == "Unknown"
            assert result.insufficient_data is True

    def test_cardiovascular_high_risk(self, rulesets):
        observations = [
            obs("LDL Cholesterol", 175, 30),
            obs("LDL Cholesterol", 165, 60),
            obs("Triglycerides", 220, 45),
            obs("Hemoglobin A1c", 7.2, 100),
            obs("Systolic BP", 152, 10),
            obs("Systolic BP", 148, 50),
            obs("BMI", 31, 120),
        ]
        results = _by_condition(
            assess_domains(observations, REFERENCE_TIME, Demographics(age=70), rulesets)
        )
        cardio = results["Cardiovascular"]
        # Everything but recurrent visits fires: 1.0 - 0.06
        assert cardio.risk_score == pytest.approx(0.94)
        assert cardio.risk_label == "High"
        assert cardio.insufficient_data is False
        assert len(cardio.top_factors) == 5
        assert cardio.top_factors[0].name == "LDL high (90d mean)"
        assert cardio.top_factors[0].detail == "170 mg/dL"

    def test_healthy_values_low_not_unknown(self, rulesets):
        observations = [
            obs("ldl", 95, 30),
            obs("sbp", 118, 30),
            obs("hba1c", 5.2, 60),
            obs("bmi", 23, 60),
            obs("egfr", 98, 60),
            obs("creatinine", 0.9, 60),
        ]
        results = assess_domains(observations, REFERENCE_TIME, Demographics(age=40), rulesets)
        for result in results:
            assert result.risk_label == "Low", result.condition
            assert result.risk_score == 0.0
            assert result.insufficient_data is False

    def test_renal_ladder(self, rulesets):
        observations = [
            obs("eGFR", 40, 20),
            obs("creatinine", 1.8, 20),
            obs("sbp", 145, 20),
        ]
        renal = _by_condition(
            assess_domains(observations, REFERENCE_TIME, None, rulesets)
        )["Renal"]
        # egfr < 90, 60, 45 (.40) + creatinine > 1.2, 1.6 (.17) + sbp > 129, 139 (.10)
        assert renal.risk_score == pytest.approx(0.67)
        assert renal.risk_label == "High"

    def test_accepts_iterable_of_rulesets(self, rulesets):
        results = assess_domains([], REFERENCE_TIME, None, [rulesets["Renal"]])
        assert [r.condition for r in results] == ["Renal"]

    def test_as_dict(self, rulesets):
        results = assess_domains([obs("ldl", 140, 5)], "2026-03-01T12:00:00Z", None, rulesets)
        data = _by_condition(results)["Cardiovascular"].as_dict()
        assert data["generated_at"] == "2026-03-01T12:00:00+00:00"
        assert data["top_factors"][0]["name"] == "LDL high (90d mean)"
        assert set(data) == {
            "condition", "risk_score", "risk_label", "top_factors", "generated_at",
            "raw_score", "max_score", "insufficient_data",
        }
