"""KDIGO acute kidney injury staging.

Stage is the maximum of the creatinine rule and the urine output rule.
Starting renal replacement therapy forces stage 3 regardless of labs.
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
from clinscore.core.scoring.numeric import (
    missing_inputs,
    optional_number,
    round_to,
    safe_div,
)

INPUTS = (
    InputSpec("creatinine_mg_dL", unit="mg/dL"),
    InputSpec("baseline_creatinine_mg_dL", unit="mg/dL"),
    InputSpec("creatinine_delta_48h_mg_dL", unit="mg/dL"),
    InputSpec("urine_output_mL_kg_h", unit="mL/kg/h"),
    InputSpec("urine_output_hours", unit="h"),
    InputSpec("rrt_initiated", kind="boolean"),
)


def creatinine_stage(
    current: float, ratio: float | None, delta_48h: float | None
) -> int:
    if ratio is not None and ratio >= 3:
        return 3
    if current >= 4.0:
        return 3
    if ratio is not None and ratio >= 2:
        return 2
    if ratio is not None and ratio >= 1.5:
        return 1
    if delta_48h is not None and delta_48h >= 0.3:
        return 1
    return 0


def urine_output_stage(rate_mL_kg_h: float, hours: float) -> int:
    if rate_mL_kg_h < 0.3 and hours >= 24:
        return 3
    if rate_mL_kg_h < 0.5 and hours >= 12:
        return 2
    if rate_mL_kg_h < 0.5 and hours >= 6:
        return 1
    return 0


def calc_kdigo_aki_stage(inputs: Mapping[str, Any]) -> CalculatorResult:
    """Stage AKI from whichever criterion sets are complete.

    A criterion set is creatinine plus a baseline or a 48h delta, or urine
    output rate plus its observation period. RRT alone is sufficient.
    """
    invalid = missing_inputs(inputs, INPUTS)
    if invalid:
        return NeedsInputs(tuple(invalid))

    current = optional_number(inputs, "creatinine_mg_dL")
    baseline = optional_number(inputs, "baseline_creatinine_mg_dL")
    delta = optional_number(inputs, "creatinine_delta_48h_mg_dL")
    urine = optional_number(inputs, "urine_output_mL_kg_h")
    hours = optional_number(inputs, "urine_output_hours")
    rrt = inputs.get("rrt_initiated") is True

    has_creatinine = current is not None and (baseline is not None or delta is not None)
    has_urine = urine is not None and hours is not None
    if not (has_creatinine or has_urine or rrt):
        needs = []
        if current is None:
            needs.append("creatinine_mg_dL")
        if current is None or (baseline is None and delta is None):
            needs.append("baseline_creatinine_mg_dL or creatinine_delta_48h_mg_dL")
        needs.append("urine_output_mL_kg_h + urine_output_hours")
        return NeedsInputs(tuple(needs))

    ratio = None
    if has_creatinine and baseline is not None:
        ratio = safe_div(current, baseline)
        if ratio is None:
            return None
    if has_urine and (urine < 0 or hours < 0):
        return None

    by_creatinine = creatinine_stage(current, ratio, delta) if has_creatinine else None
    by_urine = urine_output_stage(urine, hours) if has_urine else None
    stage = max(s for s in (by_creatinine, by_urine, 0) if s is not None)
    if rrt:
        stage = 3

    return {
        "stage": stage,
        "creatinine_ratio": round_to(ratio, 2) if ratio is not None else None,
        "creatinine_stage": by_creatinine,
        "urine_output_stage": by_urine,
        "rrt_initiated": rrt,
    }


def register_kdigo_calculators(registry: CalculatorRegistry) -> None:
    registry.register(CalculatorDefinition(
        id="kdigo_aki_stage",
        label="KDIGO AKI stage",
        inputs=INPUTS,
        run=calc_kdigo_aki_stage,
        value_key="stage",
        unit="stage",
        tags=("renal", "staging"),
    ))
