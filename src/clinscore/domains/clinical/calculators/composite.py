"""Composite threshold classifiers.

DKA severity, Berlin ARDS severity, the sepsis bundle screen and shock
index bands. Each maps a handful of inputs straight to a label.
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

MENTAL_STATUS = ("alert", "drowsy", "stupor/coma")

DKA_INPUTS = (
    InputSpec("pH", required=True),
    InputSpec("HCO3", required=True, unit="mEq/L"),
    InputSpec("mental_status", kind="choice", choices=MENTAL_STATUS),
)


def calc_dka_severity(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, DKA_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    ph, bicarbonate = inputs["pH"], inputs["HCO3"]
    mental_status = inputs.get("mental_status") or "alert"
    if ph < 7.0 or bicarbonate < 10 or mental_status == "stupor/coma":
        severity = "severe"
    elif ph < 7.25 or bicarbonate < 15 or mental_status == "drowsy":
        severity = "moderate"
    else:
        severity = "mild"
    return {"severity": severity}


SEPSIS_INPUTS = (
    InputSpec("SBP", unit="mmHg"),
    InputSpec("MAP", unit="mmHg"),
    InputSpec("Lactate", unit="mmol/L"),
)


def calc_sepsis_bundle_flag(inputs: Mapping[str, Any]) -> CalculatorResult:
    """Screen for the sepsis bundle: hypotension or lactate >= 4.

    Needs at least one of SBP, MAP or lactate; an empty input set cannot be
    reported as a negative screen.
    """
    invalid = missing_inputs(inputs, SEPSIS_INPUTS)
    if invalid:
        return NeedsInputs(tuple(invalid))
    sbp = optional_number(inputs, "SBP")
    mean_pressure = optional_number(inputs, "MAP")
    lactate = optional_number(inputs, "Lactate")
    if sbp is None and mean_pressure is None and lactate is None:
        return NeedsInputs(("SBP or MAP or Lactate",))

    hypotension = (mean_pressure is not None and mean_pressure < 65) or (
        sbp is not None and sbp < 90
    )
    high_lactate = lactate is not None and lactate >= 4
    return {
        "bundle_flag": hypotension or high_lactate,
        "reasons": {"hypotension": hypotension, "lactate_ge_4": high_lactate},
    }


ARDS_INPUTS = (
    InputSpec("PaO2", required=True, unit="mmHg"),
    InputSpec("FiO2", required=True),
    InputSpec("ventilatory_support", kind="boolean"),
    InputSpec("PEEP_cmH2O", unit="cmH2O"),
)


def ards_severity(pf_ratio: float, supported: bool) -> str:
    """Berlin grading; without PEEP >= 5 or ventilation the grade is none."""
    if not supported:
        return "none"
    if pf_ratio < 100:
        return "severe"
    if pf_ratio < 200:
        return "moderate"
    if pf_ratio <= 300:
        return "mild"
    return "none"


def calc_ards_severity(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, ARDS_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    pf_ratio = safe_div(inputs["PaO2"], inputs["FiO2"])
    if pf_ratio is None:
        return None
    peep = optional_number(inputs, "PEEP_cmH2O")
    supported = inputs.get("ventilatory_support") is True or (peep is not None and peep >= 5)
    return {"PF": round_to(pf_ratio), "severity": ards_severity(pf_ratio, supported)}


SHOCK_INDEX_INPUTS = (
    InputSpec("HR", required=True, unit="bpm"),
    InputSpec("SBP", required=True, unit="mmHg"),
)


def calc_shock_index_bands(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, SHOCK_INDEX_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    if inputs["HR"] <= 0:
        return None
    value = safe_div(inputs["HR"], inputs["SBP"])
    if value is None:
        return None
    if value >= 1.3:
        band = "critical"
    elif value >= 0.9:
        band = "elevated"
    else:
        band = "normal"
    return {"value": round_to(value, 2), "band": band}


def register_composite_calculators(registry: CalculatorRegistry) -> None:
    registry.register(CalculatorDefinition(
        id="dka_severity", label="DKA severity", inputs=DKA_INPUTS,
        run=calc_dka_severity, value_key="severity", tags=("metabolic",),
    ))
    registry.register(CalculatorDefinition(
        id="sepsis_bundle_flag", label="Sepsis bundle flag", inputs=SEPSIS_INPUTS,
        run=calc_sepsis_bundle_flag, value_key="bundle_flag", tags=("sepsis",),
    ))
    registry.register(CalculatorDefinition(
        id="ards_severity", label="ARDS severity (Berlin)", inputs=ARDS_INPUTS,
        run=calc_ards_severity, value_key="severity", tags=("respiratory",),
    ))
    registry.register(CalculatorDefinition(
        id="shock_index_bands", label="Shock index bands", inputs=SHOCK_INDEX_INPUTS,
        run=calc_shock_index_bands, value_key="value", precision=2,
        tags=("hemodynamics",),
    ))
