"""Tests for the hemodynamic formulas."""

from __future__ import annotations

import pytest

from clinscore.domains.clinical.calculators.hemodynamics import (
    calc_ci_from_co_bsa,
    calc_co_from_sv_hr,
    calc_map,
    calc_modified_shock_index,
    calc_pulse_pressure_band,
    calc_pvr,
    calc_rate_pressure_product,
    calc_sv_from_lvot,
    calc_svr,
)


class TestPressures:
    def test_map(self):
        assert calc_map({"SBP": 90, "DBP": 60}) == {"MAP_mmHg": 70}

    def test_map_rounds_half_up(self):
        # 80 + 40 / 3 = 93.33
        assert calc_map({"SBP": 120, "DBP": 80}) == {"MAP_mmHg": 93}

    def test_modified_shock_index(self):
        assert calc_modified_shock_index({"HR": 120, "MAP": 60}) == {"modified_shock_index": 2.0}

    @pytest.mark.parametrize(("hr", "mean_pressure"), [(0, 60), (120, 0)])
    def test_modified_shock_index_invalid(self, hr, mean_pressure):
        assert calc_modified_shock_index({"HR": hr, "MAP": mean_pressure}) is None

    def test_rate_pressure_product(self):
        assert calc_rate_pressure_product({"HR": 80, "SBP": 120}) == {"rpp_bpm_mmHg": 9600}

    @pytest.mark.parametrize(
        ("sbp", "dbp", "band"),
        [(100, 80, "narrow"), (120, 80, "normal"), (120, 90, "normal"), (170, 80, "wide")],
    )
    def test_pulse_pressure_band(self, sbp, dbp, band):
        result = calc_pulse_pressure_band({"SBP": sbp, "DBP": dbp})
        assert result["band"] == band
        assert result["pulse_pressure_mmHg"] == sbp - dbp


class TestFlowChain:
    def test_stroke_volume_from_lvot(self):
        # pi * 1^2 * 20 = 62.83
        assert calc_sv_from_lvot({"lvot_d_cm": 2.0, "lvot_vti_cm": 20}) == {"stroke_volume_mL": 62.8}

    def test_stroke_volume_rejects_zero_diameter(self):
        assert calc_sv_from_lvot({"lvot_d_cm": 0, "lvot_vti_cm": 20}) is None

    def test_cardiac_output(self):
        assert calc_co_from_sv_hr({"stroke_volume_mL": 70, "HR": 80}) == {"cardiac_output_L_min": 5.6}

    def test_cardiac_index(self):
        result = calc_ci_from_co_bsa({"cardiac_output_L_min": 5.6, "BSA_m2": 1.9})
        assert result == {"cardiac_index_L_min_m2": 2.95}

    def test_cardiac_index_rejects_zero_bsa(self):
        assert calc_ci_from_co_bsa({"cardiac_output_L_min": 5.6, "BSA_m2": 0}) is None

    def test_svr(self):
        assert calc_svr({"MAP": 85, "RAP_mmHg": 5, "CO_L_min": 5}) == {"SVR_dyn_s_cm5": 1280}

    def test_pvr(self):
        assert calc_pvr({"mPAP_mmHg": 25, "PCWP_mmHg": 12, "CO_L_min": 5}) == {"PVR_dyn_s_cm5": 208}

    @pytest.mark.parametrize("cardiac_output", [0, -2])
    def test_resistance_rejects_non_positive_output(self, cardiac_output):
        assert calc_svr({"MAP": 85, "RAP_mmHg": 5, "CO_L_min": cardiac_output}) is None
        assert calc_pvr({"mPAP_mmHg": 25, "PCWP_mmHg": 12, "CO_L_min": cardiac_output}) is None
