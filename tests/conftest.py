"""Shared test fixtures for ClinScore tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RULESET_DIR", "")
    monkeypatch.setenv("CLINSCORE_HOST", "127.0.0.1")
    monkeypatch.setenv("CLINSCORE_ALLOW_INSECURE_BIND", "false")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from clinscore.core.registry.registry import CalculatorRegistry  # noqa: E402
from clinscore.domains.clinical.calculators import build_default_registry  # noqa: E402
from clinscore.domains.clinical.domain_logic.rulesets import (  # noqa: E402
    Ruleset,
    load_default_rulesets,
)

REFERENCE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Registry and rulesets
# ---------------------------------------------------------------------------

@pytest.fixture
def calculator_registry() -> CalculatorRegistry:
    """A frozen registry holding every builtin calculator."""
    return build_default_registry()


@pytest.fixture
def rulesets() -> dict[str, Ruleset]:
    """The packaged cardiovascular, metabolic and renal rulesets."""
    return load_default_rulesets()


@pytest.fixture
def reference_time() -> datetime:
    return REFERENCE_TIME


# ---------------------------------------------------------------------------
# Observation builders
# ---------------------------------------------------------------------------

def obs(metric: str, value: Any, days_ago: float, ref: datetime = REFERENCE_TIME) -> dict[str, Any]:
    """Observation record ``days_ago`` days before the reference time."""
    return {
        "metric": metric,
        "value": value,
        "observed_at": (ref - timedelta(days=days_ago)).isoformat(),
    }


# ---------------------------------------------------------------------------
# Complete input sets for every builtin calculator
# ---------------------------------------------------------------------------

VALID_INPUTS: dict[str, dict[str, Any]] = {
    "apache_ii": {
        "temp_c": 38.7, "map_mmHg": 65, "hr_bpm": 125, "rr_bpm": 28,
        "pao2_mmHg": 65, "arterial_pH": 7.30, "sodium_mEq_L": 128,
        "potassium_mEq_L": 3.2, "creatinine_mg_dL": 1.8, "hematocrit_pct": 28,
        "wbc_k_per_uL": 16, "gcs": 13, "age_years": 67,
        "chronic_severe_org_insuff_or_immunocomp": False,
    },
    "sofa": {
        "pao2_fio2": 250, "platelets_10e9_l": 90, "bilirubin_mg_dl": 2.5,
        "map_mm_hg": 65, "gcs": 14, "creatinine_mg_dl": 1.5,
    },
    "sofa_full": {
        "PaO2_mmHg": 80, "FiO2": 0.4, "platelets_k_uL": 120,
        "bilirubin_mg_dL": 1.0, "map_mmHg": 72, "gcs_total": 15, "creat_mg_dL": 0.9,
    },
    "sofa_surrogate": {"Platelets_k": 120, "GCS": 15},
    "kdigo_aki_stage": {"creatinine_mg_dL": 2.2, "baseline_creatinine_mg_dL": 1.0},
    "caprini_vte": {
        "age_years": 55,
        **{key: False for key in (
            "bmi_ge30", "swollen_legs", "varicose_veins", "pregnant_or_postpartum",
            "ocp_or_hormone", "sepsis", "serious_lung_disease", "abnormal_pft",
            "acute_mi", "congestive_hf", "bedrest_gt72h", "prior_vte",
            "family_history_vte", "factor_v_leiden_or_thrombophilia", "cancer",
            "chemo", "major_surgery_gt45min", "arthroplasty_or_hip_fracture",
            "stroke_with_paralysis",
        )},
    },
    "wells_pe": {
        "signs_dvt": False, "alt_dx_less_likely": True, "hr_gt100": True,
        "immob_surg_4w": False, "prev_dvt_pe": False, "hemoptysis": False,
        "malignancy": False,
    },
    "wells_dvt": {
        "active_cancer": False, "paralysis_recent_immob": False,
        "bedridden_3d_major_surg_12w": True, "localized_tenderness": True,
        "leg_swelling": False, "calf_swelling_ge3cm": False,
        "pitting_edema_symptomatic_leg": False, "collateral_nonvaricose_veins": False,
        "alt_dx_at_least_likely": False,
    },
    "revised_geneva": {
        "age_years": 70, "heart_rate_bpm": 80, "previous_dvt_pe": False,
        "surgery_fracture_recent": False, "active_malignancy": False,
        "unilateral_leg_pain": False, "hemoptysis": False,
        "pain_on_deep_palpation_unilateral_edema": False,
    },
    "pesi": {
        "age_years": 70, "male": True, "cancer": False, "heart_failure": False,
        "chronic_lung_disease": False, "altered_mental_status": False,
        "hr_bpm": 90, "sbp_mmHg": 120, "rr_bpm": 18, "temp_c": 37.0, "SaO2_pct": 95,
    },
    "spesi": {
        "age_gt80": False, "cancer": False, "heart_failure_or_pulm_disease": False,
        "hr_ge110": False, "sbp_lt100": False, "SaO2_lt90": False,
    },
    "dka_severity": {"pH": 7.2, "HCO3": 12},
    "ards_severity": {"PaO2": 80, "FiO2": 0.5, "PEEP_cmH2O": 8},
    "sepsis_bundle_flag": {"SBP": 85},
    "shock_index_bands": {"HR": 110, "SBP": 100},
    "map_calc": {"SBP": 90, "DBP": 60},
    "modified_shock_index": {"HR": 120, "MAP": 60},
    "rate_pressure_product": {"HR": 80, "SBP": 120},
    "pulse_pressure_band": {"SBP": 120, "DBP": 80},
    "sv_from_lvot": {"lvot_d_cm": 2.0, "lvot_vti_cm": 20},
    "co_from_sv_hr": {"stroke_volume_mL": 70, "HR": 80},
    "ci_from_co_bsa": {"cardiac_output_L_min": 5.6, "BSA_m2": 1.9},
    "svr_dyn": {"MAP": 85, "RAP_mmHg": 5, "CO_L_min": 5},
    "pvr_dyn": {"mPAP_mmHg": 25, "PCWP_mmHg": 12, "CO_L_min": 5},
    "fio2_from_nasal_cannula": {"flow_L_min": 3},
    "minute_ventilation": {"tidal_volume_mL": 450, "RR": 16},
    "static_compliance": {"tidal_volume_mL": 450, "plateau_cmH2O": 25, "PEEP_cmH2O": 10},
    "dynamic_compliance": {"tidal_volume_mL": 450, "peak_cmH2O": 30, "PEEP_cmH2O": 10},
    "ventilatory_ratio": {"VE_measured_L_min": 10, "PaCO2_mmHg": 48, "VE_pred_L_min": 7},
    "pf_ratio": {"PaO2_mmHg": 90, "FiO2": 0.3},
    "aa_gradient": {"pao2_mmHg": 85, "paco2_mmHg": 40, "fio2_frac": 0.21, "age_years": 40},
}
