"""ClinScore MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from clinscore.core.config.settings import get_settings
from clinscore.core.registry.registry import CalculatorRegistry
from clinscore.domains.clinical.calculators import build_default_registry
from clinscore.domains.clinical.domain_logic.rulesets import (
    DEFAULT_RULESET_DIR,
    Ruleset,
    load_default_rulesets,
)
from clinscore.domains.clinical.tools.calculator_tools import register_calculator_tools
from clinscore.domains.clinical.tools.risk_tools import register_risk_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    registry_override: CalculatorRegistry | None = None,
    rulesets_override: dict[str, Ruleset] | None = None,
) -> FastMCP:
    """Create and configure the ClinScore MCP server.

    Builds the calculator registry and loads the rulesets once; both are
    read-only for the lifetime of the server.
    """
    settings = get_settings()

    server = FastMCP(
        "ClinScore",
        instructions=(
            "Clinical scoring server. Runs bedside severity scores and "
            "hemodynamic/ventilator formulas by id, and scores longitudinal "
            "cardiovascular, metabolic and renal risk from time-stamped "
            "observations. Missing inputs are reported, never guessed."
        ),
    )

    # --- Calculator registry ---
    registry = registry_override if registry_override is not None else build_default_registry()
    logger.info("Calculator registry ready: %d calculators", len(registry))

    # --- Rulesets ---
    if rulesets_override is not None:
        rulesets = rulesets_override
        ruleset_source = "override"
    else:
        ruleset_source = settings.ruleset_dir or str(DEFAULT_RULESET_DIR)
        rulesets = load_default_rulesets(settings.ruleset_dir or None)
    logger.info("Loaded %d rulesets from %s", len(rulesets), ruleset_source)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "ClinScore",
            "version": VERSION,
            "calculators_loaded": len(registry),
            "rulesets_loaded": sorted(rulesets),
        }

    register_calculator_tools(server, registry)
    register_risk_tools(server, rulesets)
    logger.info("Calculator and risk tools registered")

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
