"""Uniform result envelope for integrations that expect one shape.

Raw calculator results stay calculator-specific; this adapter wraps them
without dropping any field (the full raw result travels in ``extra``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from clinscore.core.registry.models import (
    CalculatorDefinition,
    CalculatorResult,
    NeedsInputs,
)


@dataclass
class ResultEnvelope:
    """``{id, label, value, unit, precision, notes[]}`` plus the raw result."""

    id: str
    label: str
    value: float | int | str | bool | None
    unit: str
    precision: int
    notes: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.value is not None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _subscore_notes(result: dict[str, Any]) -> list[str]:
    for key in ("subscores", "components"):
        parts = result.get(key)
        if isinstance(parts, dict):
            return [f"{name}: {value}" for name, value in parts.items()]
    return []


def to_envelope(definition: CalculatorDefinition, result: CalculatorResult) -> ResultEnvelope:
    """Wrap a raw calculator result in the uniform envelope."""
    base = {
        "id": definition.id,
        "label": definition.label,
        "unit": definition.unit,
        "precision": definition.precision,
    }
    if isinstance(result, NeedsInputs):
        return ResultEnvelope(
            value=None,
            notes=[f"needs: {', '.join(result.needs)}"],
            extra=result.as_dict(),
            **base,
        )
    if result is None:
        return ResultEnvelope(value=None, notes=["invalid input domain"], **base)

    value = result.get(definition.value_key) if definition.value_key else None
    notes = _subscore_notes(result)
    for key in ("band", "risk_band", "severity", "stage", "risk_class"):
        if key in result and key != definition.value_key:
            notes.append(f"{key}: {result[key]}")
    return ResultEnvelope(value=value, notes=notes, extra=dict(result), **base)
