"""Clinical calculators and the default registry builder.

Each calculator module exposes a ``register_*_calculators(registry)``
function; nothing is registered at import time.
"""

from __future__ import annotations

from enum import Enum

from clinscore.core.registry.registry import CalculatorRegistry
from clinscore.domains.clinical.calculators.apache_ii import register_apache_calculators
from clinscore.domains.clinical.calculators.caprini import register_caprini_calculators
from clinscore.domains.clinical.calculators.composite import register_composite_calculators
from clinscore.domains.clinical.calculators.hemodynamics import (
    register_hemodynamic_calculators,
)
from clinscore.domains.clinical.calculators.kdigo import register_kdigo_calculators
from clinscore.domains.clinical.calculators.oxygenation import (
    register_oxygenation_calculators,
)
from clinscore.domains.clinical.calculators.pe_vte import register_pe_vte_calculators
from clinscore.domains.clinical.calculators.sofa import register_sofa_calculators
from clinscore.domains.clinical.calculators.ventilation import (
    register_ventilation_calculators,
)


class BuiltinCalculator(str, Enum):
    """Ids of the calculators shipped with the package."""

    APACHE_II = "apache_ii"
    SOFA = "sofa"
    SOFA_FULL = "sofa_full"
    SOFA_SURROGATE = "sofa_surrogate"
    KDIGO_AKI_STAGE = "kdigo_aki_stage"
    CAPRINI_VTE = "caprini_vte"
    WELLS_PE = "wells_pe"
    WELLS_DVT = "wells_dvt"
    REVISED_GENEVA = "revised_geneva"
    PESI = "pesi"
    SPESI = "spesi"
    DKA_SEVERITY = "dka_severity"
    ARDS_SEVERITY = "ards_severity"
    SEPSIS_BUNDLE_FLAG = "sepsis_bundle_flag"
    SHOCK_INDEX_BANDS = "shock_index_bands"
    MAP_CALC = "map_calc"
    MODIFIED_SHOCK_INDEX = "modified_shock_index"
    RATE_PRESSURE_PRODUCT = "rate_pressure_product"
    PULSE_PRESSURE_BAND = "pulse_pressure_band"
    SV_FROM_LVOT = "sv_from_lvot"
    CO_FROM_SV_HR = "co_from_sv_hr"
    CI_FROM_CO_BSA = "ci_from_co_bsa"
    SVR_DYN = "svr_dyn"
    PVR_DYN = "pvr_dyn"
    FIO2_FROM_NASAL_CANNULA = "fio2_from_nasal_cannula"
    MINUTE_VENTILATION = "minute_ventilation"
    STATIC_COMPLIANCE = "static_compliance"
    DYNAMIC_COMPLIANCE = "dynamic_compliance"
    VENTILATORY_RATIO = "ventilatory_ratio"
    PF_RATIO = "pf_ratio"
    AA_GRADIENT = "aa_gradient"


REGISTRARS = (
    register_apache_calculators,
    register_sofa_calculators,
    register_kdigo_calculators,
    register_caprini_calculators,
    register_pe_vte_calculators,
    register_composite_calculators,
    register_hemodynamic_calculators,
    register_ventilation_calculators,
    register_oxygenation_calculators,
)


def build_default_registry(*, freeze: bool = True) -> CalculatorRegistry:
    """Build a registry holding every builtin calculator.

    Pass ``freeze=False`` to register late-bound calculators before
    freezing the registry yourself.
    """
    registry = CalculatorRegistry()
    for register in REGISTRARS:
        register(registry)
    if freeze:
        registry.freeze()
    return registry
