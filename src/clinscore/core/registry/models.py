"""Data models for the calculator registry."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union

InputKind = Literal["number", "boolean", "choice"]


@dataclass(frozen=True)
class InputSpec:
    """Declares one input field a calculator expects."""

    key: str
    required: bool = False
    unit: str | None = None
    kind: InputKind = "number"
    choices: tuple[str, ...] = ()


@dataclass(frozen=True)
class NeedsInputs:
    """Insufficient-input result: the listed fields are missing or invalid."""

    needs: tuple[str, ...]

    def as_dict(self) -> dict[str, list[str]]:
        return {"needs": list(self.needs)}


# dict -> scored, NeedsInputs -> supply more data, None -> invalid numeric domain
CalculatorResult = Union[dict[str, Any], NeedsInputs, None]


@dataclass(frozen=True)
class CalculatorDefinition:
    """A registered calculator: identity, input contract and entry point."""

    id: str
    label: str
    inputs: tuple[InputSpec, ...]
    run: Callable[[Mapping[str, Any]], CalculatorResult]
    value_key: str | None = None     # headline output field for the envelope
    unit: str = ""
    precision: int = 0
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def required_keys(self) -> list[str]:
        return [spec.key for spec in self.inputs if spec.required]

    def describe(self) -> dict[str, Any]:
        """Plain-dict description for listings."""
        return {
            "id": self.id,
            "label": self.label,
            "unit": self.unit,
            "tags": list(self.tags),
            "inputs": [
                {
                    "key": spec.key,
                    "required": spec.required,
                    "unit": spec.unit,
                    "kind": spec.kind,
                    **({"choices": list(spec.choices)} if spec.choices else {}),
                }
                for spec in self.inputs
            ],
        }


class CalculatorNotFoundError(KeyError):
    """Raised when a calculator id is not registered."""

    def __init__(self, calculator_id: str) -> None:
        super().__init__(calculator_id)
        self.calculator_id = calculator_id

    def __str__(self) -> str:
        return f"Calculator not found: {self.calculator_id!r}"
