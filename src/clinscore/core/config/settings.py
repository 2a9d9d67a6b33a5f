"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """ClinScore server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; there is no auth layer in front of the tools.
    clinscore_host: str = "127.0.0.1"
    clinscore_port: int = 8001
    clinscore_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    clinscore_allow_insecure_bind: bool = False

    # Rulesets (empty = packaged YAML under domains/clinical/rulesets/)
    ruleset_dir: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
