"""Configuration management for the payroll review pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class PipelinePolicy:
    """
    Approval pipeline policy switches.

    Attributes:
        enforce_sequential_approval: If True, a reviewer level may only act
            once every lower level is fully approved. Default False, which
            keeps level order advisory.
        gate_next_stage_on_approval: If True, the continue-to-disbursement
            action is only enabled once the run is fully approved. Default
            False; the action is always reachable.
    """

    enforce_sequential_approval: bool = False
    gate_next_stage_on_approval: bool = False


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    api_base_url: str
    company_id: str | None
    api_token: str | None
    http_timeout_seconds: float
    enforce_sequential_approval: bool
    gate_next_stage_on_approval: bool
    host: str
    port: int
    debug: bool
    log_level: str

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.api_base_url:
            raise ValueError("api_base_url is required")
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be positive")

    @property
    def policy(self) -> PipelinePolicy:
        """Pipeline policy derived from settings."""
        return PipelinePolicy(
            enforce_sequential_approval=self.enforce_sequential_approval,
            gate_next_stage_on_approval=self.gate_next_stage_on_approval,
        )

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            api_base_url=os.getenv("PAYROLL_API_BASE_URL", "http://localhost:4000/api"),
            company_id=os.getenv("PAYROLL_COMPANY_ID") or None,
            api_token=os.getenv("PAYROLL_API_TOKEN") or None,
            http_timeout_seconds=float(os.getenv("PAYROLL_HTTP_TIMEOUT_SECONDS", "30")),
            enforce_sequential_approval=_env_flag("ENFORCE_SEQUENTIAL_APPROVAL"),
            gate_next_stage_on_approval=_env_flag("GATE_NEXT_STAGE_ON_APPROVAL"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=_env_flag("DEBUG"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
