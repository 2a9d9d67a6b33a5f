"""Tests for the YAML ruleset loader."""

from __future__ import annotations

import textwrap

import pytest

from clinscore.domains.clinical.domain_logic.rules import (
    DemographicThreshold,
    MetricsMissing,
    MetricThreshold,
)
from clinscore.domains.clinical.domain_logic.rulesets import (
    INSUFFICIENT_DATA_RULE_ID,
    BandCutoffs,
    RulesetError,
    load_ruleset_directory,
    load_ruleset_file,
    parse_predicate,
    parse_ruleset,
)


def _minimal(**overrides) -> dict:
    data = {
        "condition": "Demo",
        "rules": [
            {
                "id": "ldl_high",
                "label": "LDL high",
                "weight": 0.5,
                "when": {"metric": "ldl", "window": "days90", "stat": "mean", "op": "gt", "value": 130},
            },
        ],
    }
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Packaged rulesets
# ---------------------------------------------------------------------------

class TestPackagedRulesets:
    def test_three_conditions_load(self, rulesets):
        assert set(rulesets) == {"Cardiovascular", "Metabolic", "Renal"}

    def test_each_has_insufficient_data_sentinel(self, rulesets):
        for ruleset in rulesets.values():
            assert ruleset.sentinel_id == INSUFFICIENT_DATA_RULE_ID
            sentinel = ruleset.rules[-1]
            assert sentinel.id == INSUFFICIENT_DATA_RULE_ID
            assert sentinel.weight == 0.0
            assert isinstance(sentinel.predicate, MetricsMissing)

    def test_positive_weights_sum_to_one(self, rulesets):
        for ruleset in rulesets.values():
            total = sum(rule.weight for rule in ruleset.rules if rule.weight > 0)
            assert total == pytest.approx(1.0), ruleset.condition

    def test_cardiovascular_rules(self, rulesets):
        cardio = rulesets["Cardiovascular"]
        assert cardio.rule_ids == [
            "ldl_high_mean_90d",
            "triglycerides_high_mean_90d",
            "hba1c_elevated_chronic",
            "sbp_high_mean_90d",
            "bmi_obesity_mean_365d",
            "age_elderly",
            "encounter_frequent_recent",
            INSUFFICIENT_DATA_RULE_ID,
        ]
        age_rule = cardio.rules[5]
        assert isinstance(age_rule.predicate, DemographicThreshold)
        assert cardio.bands == BandCutoffs(0.33, 0.66)
        assert cardio.top_factors == 5


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseRuleset:
    def test_minimal(self):
        ruleset = parse_ruleset(_minimal())
        assert ruleset.condition == "Demo"
        assert ruleset.sentinel_id is None
        assert isinstance(ruleset.rules[0].predicate, MetricThreshold)
        assert ruleset.bands == BandCutoffs()

    def test_stat_defaults_to_mean(self):
        predicate = parse_predicate(
            {"metric": "sbp", "window": "days30", "op": "ge", "value": 140}, "test"
        )
        assert predicate.stat == "mean"

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"rules": []}, "non-empty"),
            ({"bands": {"moderate": 0.7, "high": 0.5}}, "Band cutoffs"),
            ({"bands": {"moderate": "low"}}, "expected a number"),
            ({"top_factors": 0}, "top_factors"),
            ({"insufficient_data": {"metrics": []}}, "empty"),
        ],
    )
    def test_malformed_rejected(self, overrides, message):
        with pytest.raises(RulesetError, match=message):
            parse_ruleset(_minimal(**overrides))

    def test_missing_condition_rejected(self):
        data = _minimal()
        del data["condition"]
        with pytest.raises(RulesetError, match="condition"):
            parse_ruleset(data)

    def test_duplicate_rule_ids_rejected(self):
        data = _minimal()
        data["rules"] = data["rules"] * 2
        with pytest.raises(RulesetError, match="duplicate rule id"):
            parse_ruleset(data)

    @pytest.mark.parametrize(
        "when",
        [
            {"metric": "ldl", "window": "days14", "op": "gt", "value": 1},
            {"metric": "ldl", "window": "days90", "op": "approx", "value": 1},
            {"metric": "ldl", "window": "days90", "stat": "median", "op": "gt", "value": 1},
            {"metric": "ldl", "window": "days90", "op": "gt", "value": "high"},
            {"demographic": "height", "op": "gt", "value": 1},
            {"weather": "rain"},
            "ldl > 130",
        ],
    )
    def test_bad_predicates_rejected(self, when):
        with pytest.raises(RulesetError):
            parse_predicate(when, "test")

    def test_bad_direction_rejected(self):
        data = _minimal()
        data["rules"][0]["direction"] = "sideways"
        with pytest.raises(RulesetError, match="direction"):
            parse_ruleset(data)

    def test_not_a_mapping(self):
        with pytest.raises(RulesetError, match="top level"):
            parse_ruleset(["condition", "Demo"])


# ---------------------------------------------------------------------------
# Files and directories
# ---------------------------------------------------------------------------

_DEMO_YAML = textwrap.dedent("""\
    condition: Demo
    insufficient_data:
      metrics: [ldl]
    rules:
      - id: ldl_high
        weight: 1.0
        when: {metric: ldl, window: days90, op: gt, value: 130}
""")


class TestLoading:
    def test_load_file(self, tmp_path):
        path = tmp_path / "demo.yaml"
        path.write_text(_DEMO_YAML)
        ruleset = load_ruleset_file(path)
        assert ruleset.rule_ids == ["ldl_high", INSUFFICIENT_DATA_RULE_ID]
        assert ruleset.rules[0].label == "ldl_high"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("condition: [unterminated\n")
        with pytest.raises(RulesetError, match="invalid YAML"):
            load_ruleset_file(path)

    def test_directory_skips_underscore_files(self, tmp_path):
        (tmp_path / "demo.yaml").write_text(_DEMO_YAML)
        (tmp_path / "_draft.yaml").write_text("not: [valid")
        assert set(load_ruleset_directory(tmp_path)) == {"Demo"}

    def test_duplicate_condition_rejected(self, tmp_path):
        (tmp_path / "a.yaml").write_text(_DEMO_YAML)
        (tmp_path / "b.yaml").write_text(_DEMO_YAML)
        with pytest.raises(RulesetError, match="duplicate condition"):
            load_ruleset_directory(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(RulesetError, match="does not exist"):
            load_ruleset_directory(tmp_path / "nope")
