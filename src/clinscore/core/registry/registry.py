"""Calculator registry: in-memory index of calculator definitions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from clinscore.core.registry.models import (
    CalculatorDefinition,
    CalculatorNotFoundError,
    CalculatorResult,
)

logger = logging.getLogger(__name__)


def _key(calculator_id: object) -> object:
    # str-valued enums hash by member name, so look up by value
    return calculator_id.value if isinstance(calculator_id, Enum) else calculator_id


class CalculatorRegistry:
    """Registry of calculator definitions keyed by id.

    Registering an id that already exists replaces the earlier definition
    (last writer wins). Once ``freeze()`` is called the registry is read-only
    and can be shared between concurrent callers.
    """

    def __init__(self) -> None:
        self._calculators: dict[str, CalculatorDefinition] = {}
        self._frozen = False

    def register(self, definition: CalculatorDefinition) -> None:
        """Add a definition, replacing any previous one with the same id."""
        if self._frozen:
            raise RuntimeError(
                f"Registry is frozen; cannot register {definition.id!r}"
            )
        if definition.id in self._calculators:
            logger.info("Replacing calculator definition: %s", definition.id)
        self._calculators[definition.id] = definition

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, calculator_id: str | Enum) -> CalculatorDefinition:
        """Look up a definition; raises CalculatorNotFoundError."""
        key = _key(calculator_id)
        try:
            return self._calculators[key]
        except (KeyError, TypeError):
            raise CalculatorNotFoundError(str(key)) from None

    def run(self, calculator_id: str | Enum, inputs: Mapping[str, Any]) -> CalculatorResult:
        """Look up and invoke a calculator."""
        return self.get(calculator_id).run(inputs)

    def ids(self) -> list[str]:
        return sorted(self._calculators)

    def all(self) -> list[CalculatorDefinition]:
        """Return all definitions in id order."""
        return [self._calculators[cid] for cid in self.ids()]

    def find_by_tag(self, tag: str) -> list[CalculatorDefinition]:
        """Find calculators with a given tag."""
        return [definition for definition in self.all() if tag in definition.tags]

    def __contains__(self, calculator_id: object) -> bool:
        try:
            return _key(calculator_id) in self._calculators
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._calculators)
