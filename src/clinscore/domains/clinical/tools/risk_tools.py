"""MCP tool for longitudinal domain risk assessment.

Takes raw time-stamped observations, builds windowed features and
evaluates every loaded ruleset against them.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from clinscore.domains.clinical.domain_logic.aggregator import assess_domains
from clinscore.domains.clinical.domain_logic.features import age_from_birth_date, as_utc
from clinscore.domains.clinical.domain_logic.models import Demographics

if TYPE_CHECKING:
    from clinscore.domains.clinical.domain_logic.rulesets import Ruleset

logger = logging.getLogger(__name__)


def register_risk_tools(mcp: FastMCP, rulesets: dict[str, Ruleset]) -> None:
    """Register the domain risk tool on the MCP server."""

    @mcp.tool
    async def assess_domain_risk(
        observations: list[dict[str, Any]],
        reference_time: str,
        age: float | None = None,
        sex: str | None = None,
        birth_date: str | None = None,
        conditions: list[str] | None = None,
    ) -> str:
        """Score cardiovascular, metabolic and renal risk from observations.

        Args:
            observations: Records of {metric, value, observed_at (ISO 8601)}.
            reference_time: ISO 8601 "now" the trailing windows end at.
            age: Age in years (ignored when birth_date is given).
            sex: Optional sex label.
            birth_date: Optional ISO date of birth.
            conditions: Optional subset of conditions to assess (default: all).
        """
        try:
            reference = as_utc(reference_time)
            if birth_date:
                age = age_from_birth_date(date.fromisoformat(birth_date), reference)
        except (TypeError, ValueError) as exc:
            logger.warning("Rejected risk assessment request: %s", exc)
            return json.dumps({"status": "error", "message": str(exc)}, indent=2)

        selected = list(rulesets.values())
        if conditions:
            unknown = sorted(set(conditions) - set(rulesets))
            if unknown:
                return json.dumps({
                    "status": "error",
                    "message": f"Unknown conditions: {', '.join(unknown)}",
                    "available": sorted(rulesets),
                }, indent=2)
            selected = [rulesets[name] for name in conditions]

        results = assess_domains(observations, reference, Demographics(age=age, sex=sex), selected)
        return json.dumps({
            "status": "ok",
            "reference_time": reference.isoformat(),
            "observations_received": len(observations),
            "domains": [result.as_dict() for result in results],
        }, indent=2)
