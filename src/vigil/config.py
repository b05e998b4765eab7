"""
Vigil Configuration

Runtime configuration read from environment variables. Every value has a
default so the core runs with no environment at all (in-memory stores,
per-risk approval TTLs, 30s tool timeout).
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field


def _env_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class VigilConfig(BaseModel):
    """Process-wide settings for wiring the orchestrator."""

    database_url: str = "vigil.db"
    approval_ttl_seconds: float | None = Field(None, gt=0)
    execution_timeout_seconds: float = Field(30.0, gt=0)
    log_level: str = "INFO"
    log_json: bool = False
    otlp_endpoint: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> VigilConfig:
        """Build a config from ``VIGIL_*`` environment variables."""
        env = os.environ if environ is None else environ
        ttl = env.get("VIGIL_APPROVAL_TTL_SECONDS")
        return cls(
            database_url=env.get("VIGIL_DATABASE_URL", "vigil.db"),
            approval_ttl_seconds=float(ttl) if ttl else None,
            execution_timeout_seconds=float(env.get("VIGIL_EXECUTION_TIMEOUT_SECONDS", "30")),
            log_level=env.get("VIGIL_LOG_LEVEL", "INFO"),
            log_json=_env_bool(env.get("VIGIL_LOG_JSON")),
            otlp_endpoint=env.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
        )
