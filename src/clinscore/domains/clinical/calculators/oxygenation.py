"""Oxygenation: PaO2/FiO2 ratio and the alveolar-arterial gradient.

FiO2 is accepted as a fraction (0.21) or a percent (21); values above 1
are treated as percent.
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

BAROMETRIC_PRESSURE_MMHG = 760
WATER_VAPOUR_PRESSURE_MMHG = 47
RESPIRATORY_QUOTIENT = 0.8


def fio2_fraction(value: float) -> float:
    return value / 100 if value > 1 else value


PF_INPUTS = (
    InputSpec("PaO2_mmHg", required=True, unit="mmHg"),
    InputSpec("FiO2", required=True),
)


def calc_pf_ratio(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, PF_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))
    ratio = safe_div(inputs["PaO2_mmHg"], fio2_fraction(inputs["FiO2"]))
    if ratio is None:
        return None
    return {"PF_ratio": round_to(ratio)}


AA_INPUTS = (
    InputSpec("pao2_mmHg", required=True, unit="mmHg"),
    InputSpec("paco2_mmHg", required=True, unit="mmHg"),
    InputSpec("fio2_frac", required=True),
    InputSpec("baro_mmHg", unit="mmHg"),
    InputSpec("ph2o_mmHg", unit="mmHg"),
    InputSpec("R"),
    InputSpec("age_years", unit="years"),
)


def alveolar_po2(fio2: float, paco2: float, barometric: float, water_vapour: float,
                 quotient: float) -> float | None:
    """Alveolar gas equation: PAO2 = FiO2 (PB - PH2O) - PaCO2 / R."""
    carbon_dioxide_term = safe_div(paco2, quotient)
    if carbon_dioxide_term is None:
        return None
    return fio2 * (barometric - water_vapour) - carbon_dioxide_term


def calc_aa_gradient(inputs: Mapping[str, Any]) -> CalculatorResult:
    """A-a gradient; near room air also reports the age-expected normal."""
    missing = missing_inputs(inputs, AA_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))

    fio2 = fio2_fraction(inputs["fio2_frac"])
    if fio2 <= 0:
        return None
    barometric = optional_number(inputs, "baro_mmHg") or BAROMETRIC_PRESSURE_MMHG
    water_vapour = optional_number(inputs, "ph2o_mmHg")
    if water_vapour is None:
        water_vapour = WATER_VAPOUR_PRESSURE_MMHG
    quotient = optional_number(inputs, "R") or RESPIRATORY_QUOTIENT

    alveolar = alveolar_po2(fio2, inputs["paco2_mmHg"], barometric, water_vapour, quotient)
    if alveolar is None:
        return None

    age = optional_number(inputs, "age_years")
    expected = None
    if age is not None and 0.19 <= fio2 <= 0.23:
        expected = round_to(age / 4 + 4, 1)
    return {
        "PAO2_mmHg": round_to(alveolar, 1),
        "A_a_gradient_mmHg": round_to(alveolar - inputs["pao2_mmHg"], 1),
        "expected_normal_mmHg": expected,
    }


def register_oxygenation_calculators(registry: CalculatorRegistry) -> None:
    registry.register(CalculatorDefinition(
        id="pf_ratio",
        label="PaO2/FiO2 ratio",
        inputs=PF_INPUTS,
        run=calc_pf_ratio,
        value_key="PF_ratio",
        tags=("respiratory",),
    ))
    registry.register(CalculatorDefinition(
        id="aa_gradient",
        label="A-a gradient",
        inputs=AA_INPUTS,
        run=calc_aa_gradient,
        value_key="A_a_gradient_mmHg",
        unit="mmHg",
        precision=1,
        tags=("respiratory",),
    ))
