"""Pulmonary embolism and DVT decision tools.

Wells PE, Wells DVT, simplified revised Geneva, PESI and sPESI. All are
weighted sums of yes/no findings; PESI and Geneva also band continuous
vitals.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from clinscore.core.registry.models import (
    CalculatorDefinition,
    CalculatorResult,
    InputSpec,
    NeedsInputs,
)
from clinscore.core.registry.registry import CalculatorRegistry
from clinscore.core.scoring.numeric import flag_points, missing_inputs
from clinscore.core.scoring.ranges import Cutoffs, RangeRow, RangeTable


def _boolean_inputs(weights: Mapping[str, float]) -> tuple[InputSpec, ...]:
    return tuple(InputSpec(key, required=True, kind="boolean") for key in weights)


# ---------------------------------------------------------------------------
# Wells
# ---------------------------------------------------------------------------

WELLS_PE_POINTS = {
    "signs_dvt": 3,
    "alt_dx_less_likely": 3,
    "hr_gt100": 1.5,
    "immob_surg_4w": 1.5,
    "prev_dvt_pe": 1.5,
    "hemoptysis": 1,
    "malignancy": 1,
}
WELLS_PE_INPUTS = _boolean_inputs(WELLS_PE_POINTS)

WELLS_DVT_POINTS = {
    "active_cancer": 1,
    "paralysis_recent_immob": 1,
    "bedridden_3d_major_surg_12w": 1,
    "localized_tenderness": 1,
    "leg_swelling": 1,
    "calf_swelling_ge3cm": 1,
    "pitting_edema_symptomatic_leg": 1,
    "collateral_nonvaricose_veins": 1,
    "alt_dx_at_least_likely": -2,
}
WELLS_DVT_INPUTS = _boolean_inputs(WELLS_DVT_POINTS)


def wells_pe_band(points: float) -> str:
    if points < 2:
        return "low"
    if points <= 6:
        return "moderate"
    return "high"


def wells_dvt_band(points: float) -> str:
    if points <= 0:
        return "low"
    if points <= 2:
        return "moderate"
    return "high"


def calc_wells_pe(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, WELLS_PE_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    points, _ = flag_points(inputs, WELLS_PE_POINTS)
    return {"Wells_PE": points, "band": wells_pe_band(points)}


def calc_wells_dvt(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, WELLS_DVT_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    points, _ = flag_points(inputs, WELLS_DVT_POINTS)
    return {"Wells_DVT": points, "band": wells_dvt_band(points)}


# ---------------------------------------------------------------------------
# Simplified revised Geneva
# ---------------------------------------------------------------------------

GENEVA_POINTS = {
    "previous_dvt_pe": 1,
    "surgery_fracture_recent": 1,
    "active_malignancy": 1,
    "unilateral_leg_pain": 1,
    "hemoptysis": 1,
    "pain_on_deep_palpation_unilateral_edema": 1,
}
GENEVA_HEART_RATE = RangeTable([
    RangeRow(None, 75, 0, high_inclusive=False),
    RangeRow(75, 94, 1),
    RangeRow(95, None, 2),
])
GENEVA_BANDS = Cutoffs([(5, "high"), (2, "intermediate")], default="low")
GENEVA_INPUTS = (
    InputSpec("age_years", required=True, unit="years"),
    InputSpec("heart_rate_bpm", required=True, unit="bpm"),
    *_boolean_inputs(GENEVA_POINTS),
)


def calc_revised_geneva(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, GENEVA_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    flags, _ = flag_points(inputs, GENEVA_POINTS)
    age_points = 1 if inputs["age_years"] > 65 else 0
    heart_rate_points = GENEVA_HEART_RATE.score(inputs["heart_rate_bpm"])
    points = flags + age_points + heart_rate_points
    return {
        "revised_geneva_points": points,
        "risk_band": GENEVA_BANDS.band(points),
        "heart_rate_points": heart_rate_points,
    }


# ---------------------------------------------------------------------------
# PESI / sPESI
# ---------------------------------------------------------------------------

PESI_FLAG_POINTS = {
    "male": 10,
    "cancer": 30,
    "heart_failure": 10,
    "chronic_lung_disease": 10,
    "altered_mental_status": 60,
}
PESI_INPUTS = (
    InputSpec("age_years", required=True, unit="years"),
    *_boolean_inputs(PESI_FLAG_POINTS),
    InputSpec("hr_bpm", required=True, unit="bpm"),
    InputSpec("sbp_mmHg", required=True, unit="mmHg"),
    InputSpec("rr_bpm", required=True, unit="breaths/min"),
    InputSpec("temp_c", required=True, unit="°C"),
    InputSpec("SaO2_pct", required=True, unit="%"),
)


def pesi_class(score: float) -> str:
    if score <= 65:
        return "I"
    if score <= 85:
        return "II"
    if score <= 105:
        return "III"
    if score <= 125:
        return "IV"
    return "V"


def calc_pesi(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, PESI_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    flags, _ = flag_points(inputs, PESI_FLAG_POINTS)
    vitals = {
        "hr_gt109": 20 if inputs["hr_bpm"] > 109 else 0,
        "sbp_lt100": 30 if inputs["sbp_mmHg"] < 100 else 0,
        "rr_gt29": 20 if inputs["rr_bpm"] > 29 else 0,
        "temp_lt36": 20 if inputs["temp_c"] < 36 else 0,
        "sao2_lt90": 20 if inputs["SaO2_pct"] < 90 else 0,
    }
    score = inputs["age_years"] + flags + sum(vitals.values())
    return {"PESI": score, "risk_class": pesi_class(score)}


SPESI_POINTS = {
    "age_gt80": 1,
    "cancer": 1,
    "heart_failure_or_pulm_disease": 1,
    "hr_ge110": 1,
    "sbp_lt100": 1,
    "SaO2_lt90": 1,
}
SPESI_INPUTS = _boolean_inputs(SPESI_POINTS)


def calc_spesi(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, SPESI_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    points, _ = flag_points(inputs, SPESI_POINTS)
    return {"sPESI": points, "low_risk": points == 0}


def register_pe_vte_calculators(registry: CalculatorRegistry) -> None:
    """Register Wells PE/DVT, revised Geneva, PESI and sPESI."""
    for definition in (
        CalculatorDefinition(
            id="wells_pe", label="Wells (PE)", inputs=WELLS_PE_INPUTS,
            run=calc_wells_pe, value_key="Wells_PE", unit="points", precision=1,
            tags=("vte",),
        ),
        CalculatorDefinition(
            id="wells_dvt", label="Wells (DVT)", inputs=WELLS_DVT_INPUTS,
            run=calc_wells_dvt, value_key="Wells_DVT", unit="points",
            tags=("vte",),
        ),
        CalculatorDefinition(
            id="revised_geneva", label="Revised Geneva (simplified, PE)",
            inputs=GENEVA_INPUTS, run=calc_revised_geneva,
            value_key="revised_geneva_points", unit="points", tags=("vte",),
        ),
        CalculatorDefinition(
            id="pesi", label="PESI (full)", inputs=PESI_INPUTS,
            run=calc_pesi, value_key="PESI", unit="points", tags=("vte", "prognosis"),
        ),
        CalculatorDefinition(
            id="spesi", label="sPESI", inputs=SPESI_INPUTS,
            run=calc_spesi, value_key="sPESI", unit="points", tags=("vte", "prognosis"),
        ),
    ):
        registry.register(definition)
