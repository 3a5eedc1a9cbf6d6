"""Request DTOs for synthesis runs."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from ..domain.assignments import Assignment, GroupingStrategy, ScriptType

_DOMAIN_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$")


class DomainWideOptions(BaseModel):
    """Organization-wide banner parameters; overrides per-user grouping."""

    domain_name: str = Field(..., description="Sender domain, e.g. 'example.com'")
    banner_html: str = Field(..., min_length=1, description="Banner HTML")
    banner_id: str | None = Field(default=None, description="Banner identifier (enables tracking)")
    banner_click_url: str | None = Field(default=None, description="Banner click-through URL")
    banner_name: str | None = Field(default=None, description="Banner display name")

    @field_validator("domain_name")
    @classmethod
    def _domain_shape(cls, v: str) -> str:
        v = v.strip().lstrip("@").lower()
        if not _DOMAIN_RE.match(v):
            raise ValueError(f"domain_name is not a valid domain: {v!r}")
        return v

    @field_validator("banner_html")
    @classmethod
    def _banner_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("banner_html must not be empty")
        return v


class SynthesisRequest(BaseModel):
    """Input for one synthesis run."""

    assignments: list[Assignment] = Field(default_factory=list, description="Active assignments snapshot")
    script_type: ScriptType = Field(default=ScriptType.both, description="signature, banner or both")
    strategy: GroupingStrategy | None = Field(
        default=None,
        description="Grouping strategy; None selects it from per_recipient_analytics",
    )
    per_recipient_analytics: bool | None = Field(
        default=None,
        description="Override RuntimeSettings.per_recipient_analytics for auto selection",
    )
    selected_user_ids: list[str] | None = Field(
        default=None, description="Restrict the run to these users (None = all)"
    )
    available_banner_ids: list[str] | None = Field(
        default=None, description="Banner ids that still exist (None = skip the check)"
    )
    available_signature_ids: list[str] | None = Field(
        default=None, description="Signature ids that still exist (None = skip the check)"
    )
    domain_wide: DomainWideOptions | None = Field(
        default=None, description="When set, emit a single domain-wide banner rule instead"
    )
