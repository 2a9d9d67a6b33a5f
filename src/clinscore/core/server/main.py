"""Run the ClinScore MCP server.

Serves the calculator catalog (``list_calculators``, ``run_calculator``) and
domain risk assessment (``assess_domain_risk``) over Streamable HTTP::

    clinscore-server
    python -m clinscore.core.server.main

The tools carry patient observations and have no auth layer, so the server
only binds loopback addresses unless ``CLINSCORE_ALLOW_INSECURE_BIND`` is set.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from clinscore.core.config.settings import Settings, get_settings
from clinscore.core.server.app import create_app

logger = logging.getLogger(__name__)

_LOOPBACK_NAMES = frozenset({"localhost"})


def _is_loopback_host(host: str) -> bool:
    if host in _LOOPBACK_NAMES:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _check_bind(settings: Settings) -> None:
    """Raise RuntimeError for a public bind that was not explicitly allowed."""
    if _is_loopback_host(settings.clinscore_host):
        return
    if not settings.clinscore_allow_insecure_bind:
        raise RuntimeError(
            "Refusing to bind ClinScore to a non-loopback host without an auth layer. "
            "Set CLINSCORE_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.warning(
        "Serving clinical scoring tools on non-loopback host %s without auth",
        settings.clinscore_host,
    )


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.clinscore_log_level.upper(), logging.INFO)
    )
    _check_bind(settings)

    mcp = create_app()
    logger.info(
        "Serving ClinScore calculators and domain risk tools at http://%s:%d",
        settings.clinscore_host,
        settings.clinscore_port,
    )
    mcp.run(
        transport="streamable-http",
        host=settings.clinscore_host,
        port=settings.clinscore_port,
    )


if __name__ == "__main__":
    run()
