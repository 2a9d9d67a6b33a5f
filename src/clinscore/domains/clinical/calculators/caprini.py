"""Caprini surgical VTE risk score."""

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
from clinscore.core.scoring.numeric import flag_points, missing_inputs, optional_number
from clinscore.core.scoring.ranges import Cutoffs, RangeRow, RangeTable

RISK_FACTOR_POINTS: dict[str, int] = {
    "bmi_ge30": 1,
    "swollen_legs": 1,
    "varicose_veins": 1,
    "pregnant_or_postpartum": 1,
    "ocp_or_hormone": 1,
    "sepsis": 1,
    "serious_lung_disease": 1,
    "abnormal_pft": 1,
    "acute_mi": 1,
    "congestive_hf": 1,
    "bedrest_gt72h": 1,
    "prior_vte": 3,
    "family_history_vte": 2,
    "factor_v_leiden_or_thrombophilia": 3,
    "cancer": 2,
    "chemo": 2,
    "major_surgery_gt45min": 2,
    "arthroplasty_or_hip_fracture": 5,
    "stroke_with_paralysis": 5,
}

# Ages between bands (e.g. 60.5) score nothing.
AGE = RangeTable([
    RangeRow(41, 60, 1),
    RangeRow(61, 74, 2),
    RangeRow(75, None, 3),
])

RISK_BANDS = Cutoffs([(8, "very high"), (5, "high"), (3, "moderate")], default="low")

INPUTS = (
    InputSpec("age_years", required=True, unit="years"),
    *(InputSpec(key, required=True, kind="boolean") for key in RISK_FACTOR_POINTS),
    InputSpec("other_points", unit="points"),
)


def calc_caprini(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))

    factor_points, components = flag_points(inputs, RISK_FACTOR_POINTS)
    age_points = AGE.score(inputs["age_years"])
    other = optional_number(inputs, "other_points") or 0
    total = age_points + factor_points + other
    return {
        "Caprini": total,
        "risk_band": RISK_BANDS.band(total),
        "age_points": age_points,
        "components": {key: pts for key, pts in components.items() if pts},
    }


def register_caprini_calculators(registry: CalculatorRegistry) -> None:
    registry.register(CalculatorDefinition(
        id="caprini_vte",
        label="Caprini (surgical VTE)",
        inputs=INPUTS,
        run=calc_caprini,
        value_key="Caprini",
        unit="points",
        tags=("vte", "risk"),
    ))
