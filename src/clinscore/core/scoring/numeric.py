"""Numeric guards shared by every calculator.

Presence/finiteness checks, guarded division and the one rounding helper
used for all reported output fields.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from clinscore.core.registry.models import InputSpec


def is_finite_number(value: Any) -> bool:
    """True for real ints/floats that are finite. Booleans are not numbers here."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_present(value: Any, kind: str = "number", choices: Iterable[str] = ()) -> bool:
    """Check a single input value against its declared kind."""
    if kind == "number":
        return is_finite_number(value)
    if kind == "boolean":
        return isinstance(value, bool)
    if kind == "choice":
        return isinstance(value, str) and value in tuple(choices)
    raise ValueError(f"Unknown input kind: {kind!r}")


def missing_inputs(inputs: Mapping[str, Any], specs: Iterable[InputSpec]) -> list[str]:
    """Return the keys of required inputs that are absent or invalid.

    Optional inputs are only reported when supplied with the wrong shape
    (e.g. a non-finite number or an unknown choice).
    """
    missing: list[str] = []
    for spec in specs:
        value = inputs.get(spec.key)
        if value is None and not spec.required:
            continue
        if not is_present(value, spec.kind, spec.choices):
            missing.append(spec.key)
    return missing


def optional_number(inputs: Mapping[str, Any], key: str) -> float | None:
    """Return a finite numeric input or None."""
    value = inputs.get(key)
    return float(value) if is_finite_number(value) else None


def safe_div(numerator: float, denominator: float) -> float | None:
    """Divide, returning None when the denominator is <= 0 or non-finite."""
    if not is_finite_number(numerator) or not is_finite_number(denominator):
        return None
    if denominator <= 0:
        return None
    return numerator / denominator


def round_to(value: float, precision: int = 0) -> float | int:
    """Round half-up on the decimal representation.

    ``precision == 0`` returns an int so integer-valued outputs serialise
    without a trailing ``.0``.
    """
    quantum = Decimal(1).scaleb(-precision)
    rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    if precision == 0:
        return int(rounded)
    return float(rounded)


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def flag_points(
    inputs: Mapping[str, Any], weights: Mapping[str, float]
) -> tuple[float, dict[str, float]]:
    """Sum the weights of boolean flags that are True.

    Returns ``(total, components)`` where ``components`` holds the points each
    flag contributed (0 when False).
    """
    components = {key: (weight if inputs.get(key) is True else 0) for key, weight in weights.items()}
    return sum(components.values()), components
