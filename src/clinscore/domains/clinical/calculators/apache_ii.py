"""APACHE II severity score.

Acute physiology (worst value in the first 24h) + age points + chronic
health points. Each physiologic variable is scored from its own range
table; oxygenation uses the A-a gradient when one is supplied and PaO2
otherwise, never both.
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
from clinscore.core.scoring.numeric import missing_inputs, optional_number, round_to
from clinscore.core.scoring.ranges import RangeRow, RangeTable

ADMISSION_CATEGORIES = ("nonoperative", "emergency_postop", "elective_postop")

INPUTS = (
    InputSpec("temp_c", required=True, unit="°C"),
    InputSpec("map_mmHg", required=True, unit="mmHg"),
    InputSpec("hr_bpm", required=True, unit="bpm"),
    InputSpec("rr_bpm", required=True, unit="breaths/min"),
    InputSpec("aa_gradient_mmHg", unit="mmHg"),
    InputSpec("pao2_mmHg", unit="mmHg"),
    InputSpec("arterial_pH", required=True),
    InputSpec("sodium_mEq_L", required=True, unit="mEq/L"),
    InputSpec("potassium_mEq_L", required=True, unit="mEq/L"),
    InputSpec("creatinine_mg_dL", required=True, unit="mg/dL"),
    InputSpec("acute_renal_failure", kind="boolean"),
    InputSpec("hematocrit_pct", required=True, unit="%"),
    InputSpec("wbc_k_per_uL", required=True, unit="10³/µL"),
    InputSpec("gcs", required=True),
    InputSpec("age_years", required=True, unit="years"),
    InputSpec("chronic_severe_org_insuff_or_immunocomp", required=True, kind="boolean"),
    InputSpec("admission_category", kind="choice", choices=ADMISSION_CATEGORIES),
)

# ---------------------------------------------------------------------------
# Physiologic range tables
# ---------------------------------------------------------------------------

TEMPERATURE = RangeTable.at_least(
    [(41, 4), (39, 3), (38.5, 1), (36, 0), (34, 1), (32, 2), (30, 3)], below=4
)
MEAN_ARTERIAL_PRESSURE = RangeTable.at_least(
    [(160, 4), (130, 3), (110, 2), (70, 0), (50, 2)], below=4
)
HEART_RATE = RangeTable.at_least(
    [(180, 4), (140, 3), (110, 2), (70, 0), (55, 2), (40, 3)], below=4
)
RESPIRATORY_RATE = RangeTable.at_least(
    [(50, 4), (35, 3), (25, 1), (12, 0), (10, 1), (6, 2)], below=4
)
AA_GRADIENT = RangeTable.at_least([(500, 4), (350, 3), (200, 2)], below=0)
PAO2 = RangeTable([
    RangeRow(None, 55, 4, high_inclusive=False),
    RangeRow(55, 60, 3),
    RangeRow(60, 70, 1, low_inclusive=False),
    RangeRow(70, None, 0, low_inclusive=False),
])
ARTERIAL_PH = RangeTable.at_least(
    [(7.7, 4), (7.6, 3), (7.5, 1), (7.33, 0), (7.25, 2), (7.15, 3)], below=4
)
SODIUM = RangeTable.at_least(
    [(180, 4), (160, 3), (155, 2), (150, 1), (130, 0), (120, 2), (111, 3)], below=4
)
POTASSIUM = RangeTable.at_least(
    [(7.0, 4), (6.0, 3), (5.5, 1), (3.5, 0), (3.0, 1), (2.5, 2)], below=4
)
CREATININE = RangeTable.at_least([(3.5, 4), (2.0, 3), (1.5, 2), (0.6, 0)], below=2)
HEMATOCRIT = RangeTable.at_least([(60, 4), (50, 2), (46, 1), (30, 0), (20, 2)], below=4)
WBC = RangeTable.at_least([(40, 4), (20, 2), (15, 1), (3, 0), (1, 2)], below=4)
AGE = RangeTable.at_least([(75, 6), (65, 5), (55, 3), (45, 2)], below=0)


def score_oxygenation(aa_gradient: float | None, pao2: float | None) -> tuple[int, str]:
    """Score oxygenation; returns (points, branch used)."""
    if aa_gradient is not None:
        return AA_GRADIENT.score(aa_gradient), "aa_gradient"
    return PAO2.score(pao2), "pao2"


def score_creatinine(creatinine: float, acute_renal_failure: bool) -> int:
    points = CREATININE.score(creatinine)
    return points * 2 if acute_renal_failure else points


def score_gcs(gcs: float) -> int:
    """GCS complement ``15 - GCS`` with GCS clamped to 3..15."""
    value = max(3, min(15, round_to(gcs)))
    return 15 - value


def score_chronic_health(chronic: bool, admission_category: str) -> int:
    if not chronic:
        return 0
    if admission_category == "elective_postop":
        return 2
    return 5


def calc_apache_ii(inputs: Mapping[str, Any]) -> CalculatorResult:
    """Compute APACHE II.

    Returns the total with ``aps_points``, ``age_points``,
    ``chronic_health_points`` and the twelve physiologic ``components``.
    """
    missing = missing_inputs(inputs, INPUTS)
    aa_gradient = optional_number(inputs, "aa_gradient_mmHg")
    pao2 = optional_number(inputs, "pao2_mmHg")
    if aa_gradient is None and pao2 is None:
        missing.append("aa_gradient_mmHg or pao2_mmHg")
    chronic = inputs.get("chronic_severe_org_insuff_or_immunocomp")
    if chronic is True and inputs.get("admission_category") is None:
        missing.append("admission_category")
    if missing:
        return NeedsInputs(tuple(dict.fromkeys(missing)))

    oxygenation, oxygenation_source = score_oxygenation(aa_gradient, pao2)
    components = {
        "temp": TEMPERATURE.score(inputs["temp_c"]),
        "map": MEAN_ARTERIAL_PRESSURE.score(inputs["map_mmHg"]),
        "hr": HEART_RATE.score(inputs["hr_bpm"]),
        "rr": RESPIRATORY_RATE.score(inputs["rr_bpm"]),
        "oxygenation": oxygenation,
        "ph": ARTERIAL_PH.score(inputs["arterial_pH"]),
        "na": SODIUM.score(inputs["sodium_mEq_L"]),
        "k": POTASSIUM.score(inputs["potassium_mEq_L"]),
        "creatinine": score_creatinine(
            inputs["creatinine_mg_dL"], inputs.get("acute_renal_failure") is True
        ),
        "hct": HEMATOCRIT.score(inputs["hematocrit_pct"]),
        "wbc": WBC.score(inputs["wbc_k_per_uL"]),
        "gcs": score_gcs(inputs["gcs"]),
    }

    aps = sum(components.values())
    age_points = AGE.score(inputs["age_years"])
    chronic_points = score_chronic_health(
        chronic, inputs.get("admission_category") or "nonoperative"
    )
    return {
        "total_points": aps + age_points + chronic_points,
        "aps_points": aps,
        "age_points": age_points,
        "chronic_health_points": chronic_points,
        "oxygenation_source": oxygenation_source,
        "components": components,
    }


def register_apache_calculators(registry: CalculatorRegistry) -> None:
    """Register the APACHE II calculator."""
    registry.register(CalculatorDefinition(
        id="apache_ii",
        label="APACHE II",
        inputs=INPUTS,
        run=calc_apache_ii,
        value_key="total_points",
        unit="points",
        tags=("critical_care", "severity"),
    ))
