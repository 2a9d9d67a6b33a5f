"""Ventilator mechanics and oxygen delivery estimates."""

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
from clinscore.core.scoring.numeric import missing_inputs, round_to, safe_div

# Approximate FiO2 per whole L/min of nasal cannula flow.
NASAL_CANNULA_FIO2 = {1: 0.24, 2: 0.28, 3: 0.32, 4: 0.36, 5: 0.40, 6: 0.44}

# Reference PaCO2 used by the ventilatory ratio.
REFERENCE_PACO2_MMHG = 40

TIDAL_VOLUME = InputSpec("tidal_volume_mL", required=True, unit="mL")
PEEP = InputSpec("PEEP_cmH2O", required=True, unit="cmH2O")


def _needs(inputs: Mapping[str, Any], specs: tuple[InputSpec, ...]) -> NeedsInputs | None:
    missing = missing_inputs(inputs, specs)
    return NeedsInputs(tuple(missing)) if missing else None


NASAL_CANNULA_INPUTS = (InputSpec("flow_L_min", required=True, unit="L/min"),)


def calc_fio2_from_nasal_cannula(inputs: Mapping[str, Any]) -> CalculatorResult:
    """Flow is rounded to whole L/min and clamped to 1-6 before lookup."""
    needs = _needs(inputs, NASAL_CANNULA_INPUTS)
    if needs:
        return needs
    flow = inputs["flow_L_min"]
    if flow <= 0:
        return None
    rounded = max(1, min(6, round_to(flow)))
    return {"FiO2": NASAL_CANNULA_FIO2[rounded], "flow_used_L_min": rounded, "note": "approximation"}


MINUTE_VENTILATION_INPUTS = (TIDAL_VOLUME, InputSpec("RR", required=True, unit="breaths/min"))


def calc_minute_ventilation(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, MINUTE_VENTILATION_INPUTS)
    if needs:
        return needs
    return {"VE_L_min": round_to(inputs["tidal_volume_mL"] * inputs["RR"] / 1000, 2)}


STATIC_COMPLIANCE_INPUTS = (
    TIDAL_VOLUME,
    InputSpec("plateau_cmH2O", required=True, unit="cmH2O"),
    PEEP,
)


def compliance(tidal_volume: float, pressure: float, peep: float) -> float | None:
    """Tidal volume over the driving pressure; None when it is not positive."""
    return safe_div(tidal_volume, pressure - peep)


def calc_static_compliance(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, STATIC_COMPLIANCE_INPUTS)
    if needs:
        return needs
    value = compliance(inputs["tidal_volume_mL"], inputs["plateau_cmH2O"], inputs["PEEP_cmH2O"])
    if value is None:
        return None
    return {"Cstat_mL_cmH2O": round_to(value, 1)}


DYNAMIC_COMPLIANCE_INPUTS = (
    TIDAL_VOLUME,
    InputSpec("peak_cmH2O", required=True, unit="cmH2O"),
    PEEP,
)


def calc_dynamic_compliance(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, DYNAMIC_COMPLIANCE_INPUTS)
    if needs:
        return needs
    value = compliance(inputs["tidal_volume_mL"], inputs["peak_cmH2O"], inputs["PEEP_cmH2O"])
    if value is None:
        return None
    return {"Cdyn_mL_cmH2O": round_to(value, 1)}


VENTILATORY_RATIO_INPUTS = (
    InputSpec("VE_measured_L_min", required=True, unit="L/min"),
    InputSpec("PaCO2_mmHg", required=True, unit="mmHg"),
    InputSpec("VE_pred_L_min", required=True, unit="L/min"),
)


def calc_ventilatory_ratio(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, VENTILATORY_RATIO_INPUTS)
    if needs:
        return needs
    ratio = safe_div(
        inputs["VE_measured_L_min"] * inputs["PaCO2_mmHg"],
        inputs["VE_pred_L_min"] * REFERENCE_PACO2_MMHG,
    )
    if ratio is None:
        return None
    return {"ventilatory_ratio": round_to(ratio, 2)}


def register_ventilation_calculators(registry: CalculatorRegistry) -> None:
    definitions = [
        ("fio2_from_nasal_cannula", "FiO2 estimate (nasal cannula)", NASAL_CANNULA_INPUTS,
         calc_fio2_from_nasal_cannula, "FiO2", "", 2),
        ("minute_ventilation", "Minute ventilation", MINUTE_VENTILATION_INPUTS,
         calc_minute_ventilation, "VE_L_min", "L/min", 2),
        ("static_compliance", "Static compliance (Cstat)", STATIC_COMPLIANCE_INPUTS,
         calc_static_compliance, "Cstat_mL_cmH2O", "mL/cmH2O", 1),
        ("dynamic_compliance", "Dynamic compliance (Cdyn)", DYNAMIC_COMPLIANCE_INPUTS,
         calc_dynamic_compliance, "Cdyn_mL_cmH2O", "mL/cmH2O", 1),
        ("ventilatory_ratio", "Ventilatory ratio", VENTILATORY_RATIO_INPUTS,
         calc_ventilatory_ratio, "ventilatory_ratio", "", 2),
    ]
    for calc_id, label, specs, run, value_key, unit, precision in definitions:
        registry.register(CalculatorDefinition(
            id=calc_id,
            label=label,
            inputs=specs,
            run=run,
            value_key=value_key,
            unit=unit,
            precision=precision,
            tags=("ventilation",),
        ))
