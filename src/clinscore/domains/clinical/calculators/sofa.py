"""Sequential Organ Failure Assessment (SOFA) variants.

Three calculators share the organ tables below:

- ``sofa``: PF ratio supplied directly, vasopressor use as a tier choice.
- ``sofa_full``: PaO2/FiO2 with a SaO2/FiO2 fallback, dose-based
  vasopressor tiers, urine output in mL/kg/h.
- ``sofa_surrogate``: every organ optional; reports a partial total and
  ``components_counted``.

The variants keep their own cardiovascular and CNS tiering; they are not
reconciled with each other.
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
from clinscore.core.scoring.numeric import missing_inputs, optional_number, safe_div
from clinscore.core.scoring.ranges import RangeRow, RangeTable

VASOPRESSOR_TIERS = (
    "none",
    "dopamine_le_5",
    "dopamine_5_15",
    "dopamine_gt_15",
    "epi_any",
    "norepi_any",
)

# ---------------------------------------------------------------------------
# Organ tables
# ---------------------------------------------------------------------------

PF_RATIO = RangeTable.at_least([(400, 0), (300, 1), (200, 2), (100, 3)], below=4)
SF_RATIO = RangeTable.at_least([(315, 0), (235, 1), (147, 2), (89, 3)], below=4)
PLATELETS = RangeTable.at_least([(150, 0), (100, 1), (50, 2), (20, 3)], below=4)
BILIRUBIN = RangeTable.at_least([(12, 4), (6, 3), (2, 2), (1.2, 1)], below=0)
GCS = RangeTable.at_least([(15, 0), (13, 1), (10, 2), (6, 3)], below=4)
CREATININE = RangeTable.at_least([(5.0, 4), (3.5, 3), (2.0, 2), (1.2, 1)], below=0)
URINE_PER_DAY = RangeTable.at_least([(500, 0), (200, 3)], below=4)

# sofa_full bands GCS on closed upper bounds (GCS 6 scores 4 here, 3 above).
GCS_FULL = RangeTable([
    RangeRow(None, 6, 4),
    RangeRow(6, 9, 3, low_inclusive=False),
    RangeRow(9, 12, 2, low_inclusive=False),
    RangeRow(12, 14, 1, low_inclusive=False),
    RangeRow(14, None, 0, low_inclusive=False),
])

# Surrogate tables use the "<= upper" cutoffs of the bedside chart.
BILIRUBIN_SURROGATE = RangeTable([
    RangeRow(None, 1.2, 0, high_inclusive=False),
    RangeRow(1.2, 1.9, 1),
    RangeRow(1.9, 5.9, 2, low_inclusive=False),
    RangeRow(5.9, 11.9, 3, low_inclusive=False),
    RangeRow(11.9, None, 4, low_inclusive=False),
])
CREATININE_SURROGATE = RangeTable([
    RangeRow(None, 1.2, 0, high_inclusive=False),
    RangeRow(1.2, 1.9, 1),
    RangeRow(1.9, 3.4, 2, low_inclusive=False),
    RangeRow(3.4, 4.9, 3, low_inclusive=False),
    RangeRow(4.9, None, 4, low_inclusive=False),
])
# Supported PF <= 200 scores 3; the bedside chart checks that before its
# PF <= 100 tier, so the surrogate respiratory score tops out at 3.
# Unsupported PF <= 200 is unscored.
PF_RATIO_SUPPORTED = RangeTable([
    RangeRow(None, 200, 3),
    RangeRow(200, 300, 2, low_inclusive=False),
    RangeRow(300, 400, 1, low_inclusive=False),
    RangeRow(400, None, 0, low_inclusive=False),
])

_VASOPRESSOR_POINTS = {
    "dopamine_le_5": 2,
    "dopamine_5_15": 3,
    "dopamine_gt_15": 4,
    "epi_any": 4,
    "norepi_any": 4,
}


def _total(subscores: Mapping[str, int]) -> int:
    return sum(subscores.values())


# ---------------------------------------------------------------------------
# sofa
# ---------------------------------------------------------------------------

SOFA_INPUTS = (
    InputSpec("pao2_fio2", required=True),
    InputSpec("platelets_10e9_l", required=True, unit="10⁹/L"),
    InputSpec("bilirubin_mg_dl", required=True, unit="mg/dL"),
    InputSpec("map_mm_hg", required=True, unit="mmHg"),
    InputSpec("vasopressors", kind="choice", choices=VASOPRESSOR_TIERS),
    InputSpec("gcs", required=True),
    InputSpec("creatinine_mg_dl", required=True, unit="mg/dL"),
    InputSpec("urine_ml_day", unit="mL/day"),
)


def score_cardiovascular_tier(map_mm_hg: float, vasopressors: str | None) -> int:
    if vasopressors in _VASOPRESSOR_POINTS:
        return _VASOPRESSOR_POINTS[vasopressors]
    return 1 if map_mm_hg < 70 else 0


def score_renal(creatinine_tier: int, urine_tier: int | None) -> int:
    """Renal subscore is the worse of the creatinine and urine output tiers."""
    if urine_tier is None:
        return creatinine_tier
    return max(creatinine_tier, urine_tier)


def calc_sofa(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, SOFA_INPUTS)
    if missing:
        return NeedsInputs(tuple(missing))

    urine = optional_number(inputs, "urine_ml_day")
    subscores = {
        "resp": PF_RATIO.score(inputs["pao2_fio2"]),
        "coag": PLATELETS.score(inputs["platelets_10e9_l"]),
        "liver": BILIRUBIN.score(inputs["bilirubin_mg_dl"]),
        "cardio": score_cardiovascular_tier(inputs["map_mm_hg"], inputs.get("vasopressors")),
        "cns": GCS.score(inputs["gcs"]),
        "renal": score_renal(
            CREATININE.score(inputs["creatinine_mg_dl"]),
            URINE_PER_DAY.score(urine) if urine is not None else None,
        ),
    }
    return {"total": _total(subscores), "subscores": subscores}


# ---------------------------------------------------------------------------
# sofa_full
# ---------------------------------------------------------------------------

SOFA_FULL_INPUTS = (
    InputSpec("PaO2_mmHg", unit="mmHg"),
    InputSpec("FiO2"),
    InputSpec("SaO2_pct", unit="%"),
    InputSpec("platelets_k_uL", required=True, unit="10³/µL"),
    InputSpec("bilirubin_mg_dL", required=True, unit="mg/dL"),
    InputSpec("map_mmHg", unit="mmHg"),
    InputSpec("norepi_ug_kg_min", unit="µg/kg/min"),
    InputSpec("epi_ug_kg_min", unit="µg/kg/min"),
    InputSpec("dopa_ug_kg_min", unit="µg/kg/min"),
    InputSpec("vasopressin_u_min", unit="U/min"),
    InputSpec("gcs_total", required=True),
    InputSpec("creat_mg_dL", required=True, unit="mg/dL"),
    InputSpec("urine_mL_per_kg_h", unit="mL/kg/h"),
)


def score_dose_cardiovascular(
    map_mmHg: float | None,
    norepi: float = 0.0,
    epi: float = 0.0,
    dopamine: float = 0.0,
    vasopressin: float = 0.0,
) -> int:
    """Dose-based cardiovascular tier; the highest qualifying tier wins."""
    if norepi > 0.1 or epi > 0.1 or vasopressin > 0:
        return 4
    if 0 < norepi <= 0.1 or 0 < epi <= 0.1 or 5 <= dopamine <= 15:
        return 3
    if dopamine > 15:
        return 4
    if map_mmHg is not None and map_mmHg < 70:
        return 1
    return 0


def score_renal_hourly(creatinine: float, urine_per_kg_h: float | None) -> int:
    points = CREATININE.score(creatinine)
    if urine_per_kg_h is None:
        return points
    if urine_per_kg_h < 0.3:
        return max(points, 4)
    if urine_per_kg_h < 0.5:
        return max(points, 3)
    return points


def calc_sofa_full(inputs: Mapping[str, Any]) -> CalculatorResult:
    missing = missing_inputs(inputs, SOFA_FULL_INPUTS)
    pao2 = optional_number(inputs, "PaO2_mmHg")
    sao2 = optional_number(inputs, "SaO2_pct")
    fio2 = optional_number(inputs, "FiO2")
    if fio2 is None or (pao2 is None and sao2 is None):
        missing.append("PaO2_mmHg/FiO2 or SaO2_pct/FiO2")
    if missing:
        return NeedsInputs(tuple(dict.fromkeys(missing)))

    if pao2 is not None:
        ratio = safe_div(pao2, fio2)
        table = PF_RATIO
    else:
        ratio = safe_div(sao2, fio2)
        table = SF_RATIO
    if ratio is None:
        return None

    def dose(key: str) -> float:
        return optional_number(inputs, key) or 0.0

    subscores = {
        "resp": table.score(ratio),
        "coag": PLATELETS.score(inputs["platelets_k_uL"]),
        "liver": BILIRUBIN.score(inputs["bilirubin_mg_dL"]),
        "cardio": score_dose_cardiovascular(
            optional_number(inputs, "map_mmHg"),
            norepi=dose("norepi_ug_kg_min"),
            epi=dose("epi_ug_kg_min"),
            dopamine=dose("dopa_ug_kg_min"),
            vasopressin=dose("vasopressin_u_min"),
        ),
        "cns": GCS_FULL.score(inputs["gcs_total"]),
        "renal": score_renal_hourly(
            inputs["creat_mg_dL"], optional_number(inputs, "urine_mL_per_kg_h")
        ),
    }
    return {"SOFA_total": _total(subscores), "subscores": subscores}


# ---------------------------------------------------------------------------
# sofa_surrogate
# ---------------------------------------------------------------------------

SOFA_SURROGATE_INPUTS = (
    InputSpec("PaO2", unit="mmHg"),
    InputSpec("FiO2"),
    InputSpec("ventilatory_support", kind="boolean"),
    InputSpec("Platelets_k", unit="10³/µL"),
    InputSpec("Bilirubin_mg_dL", unit="mg/dL"),
    InputSpec("MAP", unit="mmHg"),
    InputSpec("dopamine_ug_kg_min", unit="µg/kg/min"),
    InputSpec("dobutamine", kind="boolean"),
    InputSpec("norepi_ug_kg_min", unit="µg/kg/min"),
    InputSpec("epi_ug_kg_min", unit="µg/kg/min"),
    InputSpec("GCS"),
    InputSpec("Creatinine_mg_dL", unit="mg/dL"),
    InputSpec("Urine_mL_day", unit="mL/day"),
)


def _surrogate_respiratory(pao2: float | None, fio2: float | None, supported: bool) -> int | None:
    if pao2 is None or fio2 is None:
        return None
    ratio = safe_div(pao2, fio2)
    if ratio is None:
        return None
    if ratio <= 200 and not supported:
        return None
    return PF_RATIO_SUPPORTED.score(ratio)


def _surrogate_cardiovascular(
    map_mmHg: float | None,
    dopamine: float | None,
    norepi: float | None,
    epi: float | None,
    dobutamine: bool,
) -> int | None:
    dopamine = dopamine or 0.0
    norepi = norepi or 0.0
    epi = epi or 0.0
    if dopamine > 15 or norepi > 0.1 or epi > 0.1:
        return 4
    if dopamine > 5 or 0 < norepi <= 0.1 or 0 < epi <= 0.1:
        return 3
    if 0 < dopamine <= 5 or dobutamine:
        return 2
    if map_mmHg is None:
        return None
    return 1 if map_mmHg < 70 else 0


def _optional_score(table: RangeTable, value: float | None) -> int | None:
    return None if value is None else table.score(value)


def calc_sofa_surrogate(inputs: Mapping[str, Any]) -> CalculatorResult:
    """Partial SOFA: organs without data are reported as None and not counted."""
    invalid = missing_inputs(inputs, SOFA_SURROGATE_INPUTS)
    if invalid:
        return NeedsInputs(tuple(invalid))

    creatinine = _optional_score(
        CREATININE_SURROGATE, optional_number(inputs, "Creatinine_mg_dL")
    )
    urine = _optional_score(URINE_PER_DAY, optional_number(inputs, "Urine_mL_day"))
    if creatinine is None or urine is None:
        renal = creatinine if urine is None else urine
    else:
        renal = max(creatinine, urine)

    subscores = {
        "respiratory": _surrogate_respiratory(
            optional_number(inputs, "PaO2"),
            optional_number(inputs, "FiO2"),
            inputs.get("ventilatory_support") is True,
        ),
        "coagulation": _optional_score(PLATELETS, optional_number(inputs, "Platelets_k")),
        "liver": _optional_score(
            BILIRUBIN_SURROGATE, optional_number(inputs, "Bilirubin_mg_dL")
        ),
        "cardiovascular": _surrogate_cardiovascular(
            optional_number(inputs, "MAP"),
            optional_number(inputs, "dopamine_ug_kg_min"),
            optional_number(inputs, "norepi_ug_kg_min"),
            optional_number(inputs, "epi_ug_kg_min"),
            inputs.get("dobutamine") is True,
        ),
        "cns": _optional_score(GCS, optional_number(inputs, "GCS")),
        "renal": renal,
    }
    present = [value for value in subscores.values() if value is not None]
    if not present:
        return NeedsInputs(("PaO2/FiO2", "Platelets_k", "Bilirubin_mg_dL",
                            "MAP", "GCS", "Creatinine_mg_dL or Urine_mL_day"))
    return {
        "subscores": subscores,
        "total": sum(present),
        "components_counted": len(present),
    }


def register_sofa_calculators(registry: CalculatorRegistry) -> None:
    """Register the three SOFA variants."""
    registry.register(CalculatorDefinition(
        id="sofa",
        label="SOFA (total)",
        inputs=SOFA_INPUTS,
        run=calc_sofa,
        value_key="total",
        unit="points",
        tags=("critical_care", "sofa"),
    ))
    registry.register(CalculatorDefinition(
        id="sofa_full",
        label="SOFA (full)",
        inputs=SOFA_FULL_INPUTS,
        run=calc_sofa_full,
        value_key="SOFA_total",
        unit="points",
        tags=("critical_care", "sofa"),
    ))
    registry.register(CalculatorDefinition(
        id="sofa_surrogate",
        label="SOFA surrogate (partial total)",
        inputs=SOFA_SURROGATE_INPUTS,
        run=calc_sofa_surrogate,
        value_key="total",
        unit="points",
        tags=("critical_care", "sofa"),
    ))
