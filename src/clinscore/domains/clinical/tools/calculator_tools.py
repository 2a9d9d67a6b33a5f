"""MCP tools for listing and running clinical calculators.

The tools wrap the calculator registry: results are returned as the
uniform envelope, with missing inputs and unknown ids reported as
structured payloads instead of errors.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from clinscore.core.registry.envelope import to_envelope
from clinscore.core.registry.models import CalculatorNotFoundError, NeedsInputs

if TYPE_CHECKING:
    from clinscore.core.registry.registry import CalculatorRegistry

logger = logging.getLogger(__name__)


def register_calculator_tools(mcp: FastMCP, registry: CalculatorRegistry) -> None:
    """Register calculator tools on the MCP server."""

    @mcp.tool
    async def list_calculators(tag: str | None = None) -> str:
        """List available calculators and the inputs each one expects.

        Args:
            tag: Optional tag filter (e.g. 'sofa', 'vte', 'hemodynamics').
        """
        definitions = registry.find_by_tag(tag) if tag else registry.all()
        return json.dumps({
            "status": "ok",
            "count": len(definitions),
            "calculators": [d.describe() for d in definitions],
        }, indent=2)

    @mcp.tool
    async def run_calculator(calculator_id: str, inputs: dict[str, Any]) -> str:
        """Run one calculator by id.

        Args:
            calculator_id: Calculator id from list_calculators (e.g. 'apache_ii').
            inputs: Field values keyed by input name.
        """
        try:
            definition = registry.get(calculator_id)
        except CalculatorNotFoundError as exc:
            logger.warning("Unknown calculator requested: %s", exc.calculator_id)
            return json.dumps({
                "status": "not_found",
                "calculator_id": exc.calculator_id,
                "message": str(exc),
                "available": registry.ids(),
            }, indent=2)

        result = definition.run(inputs or {})
        envelope = to_envelope(definition, result)

        if isinstance(result, NeedsInputs):
            status = "needs_inputs"
            logger.info("Calculator %s needs inputs: %s", definition.id, ", ".join(result.needs))
        elif result is None:
            status = "invalid_input"
            logger.info("Calculator %s rejected inputs outside its numeric domain", definition.id)
        else:
            status = "ok"

        payload: dict[str, Any] = {"status": status, "result": envelope.as_dict()}
        if isinstance(result, NeedsInputs):
            payload["needs"] = list(result.needs)
        return json.dumps(payload, indent=2)
