"""Windowed feature engineering over time-stamped observations.

Observations are grouped by canonical metric name and summarised over the
fixed trailing windows in ``WindowKey``. No interpolation and no unit
conversion happen here; values must already be in canonical units.
"""

from __future__ import annotations

import math
import re
import statistics
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any

from clinscore.domains.clinical.domain_logic.models import (
    EMPTY_STATS,
    Demographics,
    EngineeredFeatures,
    LatestValue,
    MetricWindowStats,
    Observation,
    WindowKey,
)

# ---------------------------------------------------------------------------
# Metric names
# ---------------------------------------------------------------------------

METRIC_ALIASES: dict[str, str] = {
    "ldl_c": "ldl",
    "ldl_cholesterol": "ldl",
    "low_density_lipoprotein": "ldl",
    "triglyceride": "triglycerides",
    "triacylglycerol": "triglycerides",
    "tg": "triglycerides",
    "hb_a1c": "hba1c",
    "hemoglobin_a1c": "hba1c",
    "glycated_hemoglobin": "hba1c",
    "glycosylated_hemoglobin": "hba1c",
    "glycohemoglobin": "hba1c",
    "systolic": "sbp",
    "systolic_bp": "sbp",
    "systolic_blood_pressure": "sbp",
    "systolic_pressure": "sbp",
    "bp_systolic": "sbp",
    "diastolic": "dbp",
    "diastolic_bp": "dbp",
    "diastolic_blood_pressure": "dbp",
    "bp_diastolic": "dbp",
    "pulse_pressure": "pulse_pressure",
    "body_mass_index": "bmi",
    "heart_rate": "hr",
    "pulse": "hr",
    "bpm": "hr",
    "temperature": "temp",
    "body_temperature": "temp",
    "oxygen_saturation": "spo2",
    "o2_saturation": "spo2",
    "weight_kg": "weight",
    "body_weight": "weight",
    "body_height": "height",
    "stature": "height",
    "encounter": "visits",
    "encounters": "visits",
    "visit": "visits",
    "fasting_glucose": "glucose",
    "blood_glucose": "glucose",
    "fbg": "glucose",
    "serum_creatinine": "creatinine",
    "creat": "creatinine",
    "scr": "creatinine",
    "gfr": "egfr",
    "estimated_gfr": "egfr",
}

# Checked in order against names that have no exact alias. A fragment must
# start a token, and names carrying a neighbouring specimen or analyte token
# are kept under their own cleaned name.
_METRIC_FRAGMENTS: tuple[tuple[str, str], ...] = (
    ("ldl", "ldl"),
    ("triglycer", "triglycerides"),
    ("hba1c", "hba1c"),
    ("a1c", "hba1c"),
    ("glycat", "hba1c"),
    ("systolic", "sbp"),
    ("diastolic", "dbp"),
    ("bmi", "bmi"),
    ("heart_rate", "hr"),
    ("pulse", "hr"),
    ("glucose", "glucose"),
    ("creatinine", "creatinine"),
    ("egfr", "egfr"),
    ("encounter", "visits"),
    ("visit", "visits"),
)

_UNRELATED_TOKENS = frozenset({
    "urine", "ur", "urinary", "vldl", "csf", "fluid", "clearance", "ratio",
})

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_metric(name: str) -> str | None:
    """Canonical metric name, or None for a blank name."""
    cleaned = _NON_ALNUM.sub("_", str(name).strip().lower()).strip("_")
    if not cleaned:
        return None
    if cleaned in METRIC_ALIASES:
        return METRIC_ALIASES[cleaned]
    if _UNRELATED_TOKENS.isdisjoint(cleaned.split("_")):
        for fragment, metric in _METRIC_FRAGMENTS:
            if cleaned.startswith(fragment) or f"_{fragment}" in cleaned:
                return metric
    return cleaned


# ---------------------------------------------------------------------------
# Timestamps and observations
# ---------------------------------------------------------------------------

def as_utc(value: datetime | str) -> datetime:
    """Parse ISO strings and treat naive datetimes as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        raise TypeError(f"Expected a datetime or ISO string, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_observation(raw: Observation | Mapping[str, Any]) -> Observation | None:
    """Build an Observation from a record; None when it is unusable."""
    if isinstance(raw, Observation):
        metric, value, observed_at = raw.metric, raw.value, raw.observed_at
    else:
        metric = raw.get("metric")
        value = raw.get("value")
        observed_at = raw.get("observed_at")
    if metric is None or observed_at is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    canonical = normalize_metric(metric)
    if canonical is None:
        return None
    try:
        timestamp = as_utc(observed_at)
    except (TypeError, ValueError):
        return None
    return Observation(canonical, float(value), timestamp)


def age_from_birth_date(birth_date: date, reference_time: datetime) -> int:
    """Completed years of age at the reference time."""
    ref = reference_time.date()
    years = ref.year - birth_date.year
    if (ref.month, ref.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


# ---------------------------------------------------------------------------
# Window statistics
# ---------------------------------------------------------------------------

def window_stats(points: list[Observation]) -> MetricWindowStats:
    """Summarise a time-ordered list of observations for one metric."""
    if not points:
        return EMPTY_STATS
    values = [p.value for p in points]
    first, last = points[0], points[-1]
    if len(points) > 1:
        span_days = (last.observed_at - first.observed_at) / timedelta(days=1)
        slope = (last.value - first.value) / max(1.0, span_days)
    else:
        slope = 0.0
    return MetricWindowStats(
        count=len(values),
        mean=statistics.fmean(values),
        latest=LatestValue(last.value, last.observed_at),
        min=min(values),
        max=max(values),
        std=statistics.pstdev(values),
        slope_per_day=slope,
    )


def build_features(
    observations: Iterable[Observation | Mapping[str, Any]],
    reference_time: datetime | str,
    demographics: Demographics | None = None,
) -> EngineeredFeatures:
    """Compute per-window statistics for every metric in ``observations``.

    An observation is inside a window when
    ``reference_time - days <= observed_at <= reference_time``. Records with
    non-finite values or timestamps after the reference time are dropped.
    Every metric seen appears in every window, with ``count == 0`` where
    the window holds nothing.
    """
    reference = as_utc(reference_time)
    series: dict[str, list[Observation]] = {}
    for raw in observations:
        observation = coerce_observation(raw)
        if observation is None or observation.observed_at > reference:
            continue
        series.setdefault(observation.metric, []).append(observation)

    windows: dict[WindowKey, dict[str, MetricWindowStats]] = {}
    for key in WindowKey:
        cutoff = reference - timedelta(days=key.days)
        per_metric: dict[str, MetricWindowStats] = {}
        for metric in sorted(series):
            points = sorted(
                (p for p in series[metric] if p.observed_at >= cutoff),
                key=lambda p: p.observed_at,
            )
            per_metric[metric] = window_stats(points)
        windows[key] = per_metric

    return EngineeredFeatures(
        reference_time=reference,
        windows=windows,
        demographics=demographics or Demographics(),
    )
