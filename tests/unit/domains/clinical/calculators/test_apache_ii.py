"""Tests for APACHE II."""

from __future__ import annotations

import pytest
from conftest import VALID_INPUTS

from clinscore.core.registry.models import NeedsInputs
from clinscore.domains.clinical.calculators.apache_ii import (
    INPUTS,
    calc_apache_ii,
    score_chronic_health,
    score_creatinine,
    score_gcs,
    score_oxygenation,
)

BASE = VALID_INPUTS["apache_ii"]


class TestApacheTotal:
    def test_reference_patient(self):
        result = calc_apache_ii(BASE)
        assert result["aps_points"] == 19
        assert result["age_points"] == 5
        assert result["chronic_health_points"] == 0
        assert result["total_points"] == 24

    def test_total_is_sum_of_parts(self):
        result = calc_apache_ii({**BASE, "chronic_severe_org_insuff_or_immunocomp": True,
                                 "admission_category": "nonoperative"})
        assert result["aps_points"] == sum(result["components"].values())
        assert result["total_points"] == (
            result["aps_points"] + result["age_points"] + result["chronic_health_points"]
        )

    def test_normal_physiology_scores_zero_aps(self):
        normal = {
            **BASE, "temp_c": 37, "map_mmHg": 90, "hr_bpm": 80, "rr_bpm": 14,
            "pao2_mmHg": 95, "arterial_pH": 7.4, "sodium_mEq_L": 140,
            "potassium_mEq_L": 4.0, "creatinine_mg_dL": 1.0, "hematocrit_pct": 40,
            "wbc_k_per_uL": 8, "gcs": 15, "age_years": 30,
        }
        result = calc_apache_ii(normal)
        assert result["aps_points"] == 0
        assert result["total_points"] == 0


class TestOxygenation:
    def test_gradient_preferred_over_pao2(self):
        assert score_oxygenation(360, 50) == (3, "aa_gradient")

    def test_pao2_used_without_gradient(self):
        assert score_oxygenation(None, 50) == (4, "pao2")
        assert score_oxygenation(None, 55) == (3, "pao2")
        assert score_oxygenation(None, 60) == (3, "pao2")
        assert score_oxygenation(None, 70) == (1, "pao2")
        assert score_oxygenation(None, 71) == (0, "pao2")

    def test_neither_supplied_needs_inputs(self):
        inputs = dict(BASE)
        del inputs["pao2_mmHg"]
        result = calc_apache_ii(inputs)
        assert isinstance(result, NeedsInputs)
        assert result.needs == ("aa_gradient_mmHg or pao2_mmHg",)

    def test_branch_follows_gradient_presence_not_fio2(self):
        result = calc_apache_ii({**BASE, "pao2_mmHg": 50, "fio2_frac": 0.6})
        assert result["oxygenation_source"] == "pao2"
        assert result["components"]["oxygenation"] == 4
        assert "fio2_frac" not in [spec.key for spec in INPUTS]


class TestComponents:
    def test_acute_renal_failure_doubles_creatinine(self):
        assert score_creatinine(1.8, False) == 2
        assert score_creatinine(1.8, True) == 4

    @pytest.mark.parametrize(("gcs", "points"), [(15, 0), (3, 12), (1, 12), (20, 0), (12.6, 2)])
    def test_gcs_complement_clamped(self, gcs, points):
        assert score_gcs(gcs) == points

    def test_chronic_health_by_admission(self):
        assert score_chronic_health(False, "nonoperative") == 0
        assert score_chronic_health(True, "elective_postop") == 2
        assert score_chronic_health(True, "emergency_postop") == 5
        assert score_chronic_health(True, "nonoperative") == 5

    def test_chronic_without_admission_category_needs_it(self):
        result = calc_apache_ii({**BASE, "chronic_severe_org_insuff_or_immunocomp": True})
        assert isinstance(result, NeedsInputs)
        assert "admission_category" in result.needs

    def test_unknown_admission_category_rejected(self):
        result = calc_apache_ii({**BASE, "admission_category": "walk_in"})
        assert isinstance(result, NeedsInputs)
        assert "admission_category" in result.needs
