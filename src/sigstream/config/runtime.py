"""Pydantic-based runtime settings for the synthesis engine and its surfaces.

Loads from environment variables (prefix ``SIGSTREAM_``, optional .env file).
Invalid values fail fast at first access.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..domain.assignments import ScriptType
from ..domain.rule_semantics import DEFAULT_MANAGED_NAME_PATTERNS


class RuntimeSettings(BaseSettings):
    """All configuration for synthesis, validated at startup."""

    model_config = {"env_prefix": "SIGSTREAM_", "env_file": ".env", "env_file_encoding": "utf-8"}

    # --- Tracking ---
    tracking_click_endpoint: str = Field(
        default="http://localhost:54321/functions/v1/track-banner-click",
        description="Click-redirect endpoint that banner anchors are rewritten to",
    )
    per_recipient_analytics: bool = Field(
        default=True,
        description="Group per sender address when a banner has a click URL",
    )

    # --- Platform priorities ---
    priority_min: int = Field(default=0, ge=0, description="Lowest (first evaluated) rule priority")
    priority_max: int = Field(default=5, ge=1, description="Highest (last evaluated) rule priority")

    # --- Defaults ---
    default_script_type: ScriptType = Field(default=ScriptType.both, description="Script type when unspecified")

    # --- Cleanup ---
    managed_name_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MANAGED_NAME_PATTERNS),
        description="Wildcard name patterns that identify managed rules",
    )
    propagation_wait_seconds: int = Field(default=10, gt=0, le=300, description="Wait after each removal pass")
    cleanup_max_passes: int = Field(default=2, ge=1, le=5, description="Removal passes before warning")
    cleanup_require_confirmation: bool = Field(
        default=True, description="Standalone cleanup script asks the operator to type YES"
    )

    # --- MCP auth (optional: require key for production) ---
    require_mcp_key: bool = Field(default=False, description="If True, MCP server requires SIGSTREAM_MCP_KEY env")

    @field_validator("tracking_click_endpoint")
    @classmethod
    def _endpoint_scheme(cls, v: str) -> str:
        v = v.strip().rstrip("?")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"tracking_click_endpoint must be an http(s) URL, got {v!r}")
        return v

    @field_validator("managed_name_patterns")
    @classmethod
    def _patterns_not_blank(cls, v: list[str]) -> list[str]:
        return [p.strip() for p in v if p and p.strip()]

    @model_validator(mode="after")
    def _priority_order(self) -> "RuntimeSettings":
        if self.priority_min >= self.priority_max:
            raise ValueError(
                f"priority_min must be below priority_max, got {self.priority_min} >= {self.priority_max}"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Return the singleton RuntimeSettings (cached after first call)."""
    return RuntimeSettings()
