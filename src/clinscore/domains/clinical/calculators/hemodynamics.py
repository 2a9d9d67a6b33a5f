"""Closed-form hemodynamic formulas.

MAP, shock indices, pressure products, echo-derived stroke volume and
the cardiac output chain (CO -> CI, SVR, PVR). Any denominator <= 0
yields None.
"""

from __future__ import annotations

import math
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

SBP = InputSpec("SBP", required=True, unit="mmHg")
DBP = InputSpec("DBP", required=True, unit="mmHg")
HR = InputSpec("HR", required=True, unit="bpm")
MAP = InputSpec("MAP", required=True, unit="mmHg")
CO = InputSpec("CO_L_min", required=True, unit="L/min")


def _needs(inputs: Mapping[str, Any], specs: tuple[InputSpec, ...]) -> NeedsInputs | None:
    missing = missing_inputs(inputs, specs)
    return NeedsInputs(tuple(missing)) if missing else None


# ---------------------------------------------------------------------------
# Pressures and indices
# ---------------------------------------------------------------------------

MAP_INPUTS = (SBP, DBP)


def mean_arterial_pressure(sbp: float, dbp: float) -> float:
    return dbp + (sbp - dbp) / 3


def calc_map(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, MAP_INPUTS)
    if needs:
        return needs
    return {"MAP_mmHg": round_to(mean_arterial_pressure(inputs["SBP"], inputs["DBP"]))}


MSI_INPUTS = (HR, MAP)


def calc_modified_shock_index(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, MSI_INPUTS)
    if needs:
        return needs
    if inputs["HR"] <= 0:
        return None
    msi = safe_div(inputs["HR"], inputs["MAP"])
    if msi is None:
        return None
    return {"modified_shock_index": round_to(msi, 2)}


RPP_INPUTS = (HR, SBP)


def calc_rate_pressure_product(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, RPP_INPUTS)
    if needs:
        return needs
    return {"rpp_bpm_mmHg": round_to(inputs["HR"] * inputs["SBP"])}


PULSE_PRESSURE_INPUTS = (SBP, DBP)


def calc_pulse_pressure_band(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, PULSE_PRESSURE_INPUTS)
    if needs:
        return needs
    pulse_pressure = inputs["SBP"] - inputs["DBP"]
    if pulse_pressure < 30:
        band = "narrow"
    elif pulse_pressure > 60:
        band = "wide"
    else:
        band = "normal"
    return {"pulse_pressure_mmHg": round_to(pulse_pressure, 1), "band": band}


# ---------------------------------------------------------------------------
# Flow chain
# ---------------------------------------------------------------------------

SV_INPUTS = (
    InputSpec("lvot_d_cm", required=True, unit="cm"),
    InputSpec("lvot_vti_cm", required=True, unit="cm"),
)


def calc_sv_from_lvot(inputs: Mapping[str, Any]) -> CalculatorResult:
    """Stroke volume = LVOT area x VTI; cm^2 x cm is mL directly."""
    needs = _needs(inputs, SV_INPUTS)
    if needs:
        return needs
    diameter, vti = inputs["lvot_d_cm"], inputs["lvot_vti_cm"]
    if diameter <= 0 or vti <= 0:
        return None
    area = math.pi * (diameter / 2) ** 2
    return {"stroke_volume_mL": round_to(area * vti, 1)}


CO_INPUTS = (
    InputSpec("stroke_volume_mL", required=True, unit="mL"),
    HR,
)


def calc_co_from_sv_hr(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, CO_INPUTS)
    if needs:
        return needs
    cardiac_output = inputs["stroke_volume_mL"] * inputs["HR"] / 1000
    return {"cardiac_output_L_min": round_to(cardiac_output, 2)}


CI_INPUTS = (
    InputSpec("cardiac_output_L_min", required=True, unit="L/min"),
    InputSpec("BSA_m2", required=True, unit="m²"),
)


def calc_ci_from_co_bsa(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, CI_INPUTS)
    if needs:
        return needs
    if inputs["cardiac_output_L_min"] <= 0:
        return None
    index = safe_div(inputs["cardiac_output_L_min"], inputs["BSA_m2"])
    if index is None:
        return None
    return {"cardiac_index_L_min_m2": round_to(index, 2)}


def vascular_resistance(upstream: float, downstream: float, cardiac_output: float) -> float | None:
    """Resistance in dyn·s·cm⁻⁵: 80 x pressure drop / CO."""
    return safe_div(80 * (upstream - downstream), cardiac_output)


SVR_INPUTS = (MAP, InputSpec("RAP_mmHg", required=True, unit="mmHg"), CO)


def calc_svr(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, SVR_INPUTS)
    if needs:
        return needs
    svr = vascular_resistance(inputs["MAP"], inputs["RAP_mmHg"], inputs["CO_L_min"])
    if svr is None:
        return None
    return {"SVR_dyn_s_cm5": round_to(svr)}


PVR_INPUTS = (
    InputSpec("mPAP_mmHg", required=True, unit="mmHg"),
    InputSpec("PCWP_mmHg", required=True, unit="mmHg"),
    CO,
)


def calc_pvr(inputs: Mapping[str, Any]) -> CalculatorResult:
    needs = _needs(inputs, PVR_INPUTS)
    if needs:
        return needs
    pvr = vascular_resistance(inputs["mPAP_mmHg"], inputs["PCWP_mmHg"], inputs["CO_L_min"])
    if pvr is None:
        return None
    return {"PVR_dyn_s_cm5": round_to(pvr)}


def register_hemodynamic_calculators(registry: CalculatorRegistry) -> None:
    """Register the hemodynamic formula calculators."""
    definitions = [
        ("map_calc", "Mean arterial pressure (MAP)", MAP_INPUTS, calc_map,
         "MAP_mmHg", "mmHg", 0),
        ("modified_shock_index", "Modified shock index (HR/MAP)", MSI_INPUTS,
         calc_modified_shock_index, "modified_shock_index", "", 2),
        ("rate_pressure_product", "Rate-pressure product", RPP_INPUTS,
         calc_rate_pressure_product, "rpp_bpm_mmHg", "bpm·mmHg", 0),
        ("pulse_pressure_band", "Pulse pressure band", PULSE_PRESSURE_INPUTS,
         calc_pulse_pressure_band, "pulse_pressure_mmHg", "mmHg", 1),
        ("sv_from_lvot", "Stroke volume from LVOT", SV_INPUTS, calc_sv_from_lvot,
         "stroke_volume_mL", "mL", 1),
        ("co_from_sv_hr", "Cardiac output from SV & HR", CO_INPUTS,
         calc_co_from_sv_hr, "cardiac_output_L_min", "L/min", 2),
        ("ci_from_co_bsa", "Cardiac index from CO & BSA", CI_INPUTS,
         calc_ci_from_co_bsa, "cardiac_index_L_min_m2", "L/min/m²", 2),
        ("svr_dyn", "Systemic vascular resistance (SVR)", SVR_INPUTS, calc_svr,
         "SVR_dyn_s_cm5", "dyn·s·cm⁻⁵", 0),
        ("pvr_dyn", "Pulmonary vascular resistance (PVR)", PVR_INPUTS, calc_pvr,
         "PVR_dyn_s_cm5", "dyn·s·cm⁻⁵", 0),
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
            tags=("hemodynamics",),
        ))
