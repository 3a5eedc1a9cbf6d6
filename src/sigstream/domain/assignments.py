"""Assignment, content group and rule models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ScriptType(str, Enum):
    """Which injected content a synthesis run produces rules for."""

    signature = "signature"
    banner = "banner"
    both = "both"


class GroupingStrategy(str, Enum):
    """How assignments are partitioned into content groups."""

    content = "content"                # one group per (signature, banner, banner_id)
    per_principal = "per_principal"    # one group per member address


class ContentKind(str, Enum):
    """Role of an injected fragment."""

    signature = "signature"
    banner = "banner"


class RuleLocation(str, Enum):
    """Where the platform injects content relative to the message body."""

    prepend = "Prepend"
    append = "Append"


class SkipReason(str, Enum):
    """Why a group (or a selected user) produced no rule."""

    no_banner = "no_banner"
    banner_not_found = "banner_not_found"
    banner_content_missing = "banner_content_missing"
    signature_not_found = "signature_not_found"
    user_not_found = "user_not_found"


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value if value.strip() else None


class Assignment(BaseModel):
    """One user's resolved content state for a single synthesis run."""

    model_config = {"frozen": True}

    user_id: str = Field(..., description="User identifier")
    email: str = Field(..., min_length=3, description="Sender address")
    display_name: str = Field(default="", description="Human-readable name")
    signature_html: str = Field(..., description="Signature HTML (never empty)")
    signature_id: str | None = Field(default=None, description="Signature row identifier")
    banner_html: str | None = Field(default=None, description="Optional banner HTML")
    banner_id: str | None = Field(default=None, description="Banner row identifier")
    banner_click_url: str | None = Field(default=None, description="Banner click-through URL")

    @field_validator("signature_html")
    @classmethod
    def _signature_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("signature_html must not be empty")
        return v

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError(f"email must contain '@', got {v!r}")
        return v

    @field_validator("banner_html", "banner_id", "banner_click_url", "signature_id")
    @classmethod
    def _optional_blank(cls, v: str | None) -> str | None:
        return _blank_to_none(v)

    @property
    def label(self) -> str:
        """Display name, falling back to the local part of the address."""
        return self.display_name.strip() or self.email.split("@")[0]


class ContentGroup(BaseModel):
    """Assignments sharing one rendered content identity."""

    identity: tuple[str | None, ...] = Field(..., description="Canonical grouping key")
    members: list[Assignment] = Field(..., min_length=1, description="Members in first-seen order")
    signature_html: str
    banner_html: str | None = None
    banner_id: str | None = None
    banner_click_url: str | None = None

    @property
    def has_banner(self) -> bool:
        return self.banner_html is not None

    @property
    def addresses(self) -> list[str]:
        return [m.email for m in self.members]

    @property
    def representative(self) -> Assignment:
        return self.members[0]


class RuleScope(BaseModel):
    """Sender scope: an explicit address set or a whole sender domain."""

    addresses: list[str] = Field(default_factory=list, description="From-address set")
    sender_domain: str | None = Field(default=None, description="Organization-wide sender domain")

    @property
    def is_domain_wide(self) -> bool:
        return self.sender_domain is not None


class RuleSpec(BaseModel):
    """One emittable transport rule."""

    name: str
    kind: ContentKind
    group_id: str
    scope: RuleScope
    location: RuleLocation
    content: str = Field(..., description="Rendered HTML, unescaped")
    exception_marker: str
    priority: int = Field(..., ge=0)
    enabled: bool = True
    comment: str = ""
    members: list[str] = Field(default_factory=list, description="'Name (address)' lines for the header")


class SkippedGroup(BaseModel):
    """Diagnostic for a group or selection that produced no rule."""

    reason: SkipReason
    addresses: list[str] = Field(default_factory=list)
    detail: str = ""


class CleanupPredicate(BaseModel):
    """Discovery predicate for every rule a prior run may have left behind."""

    match_disclaimer_text: bool = Field(
        default=True, description="Match any rule whose injected-content attribute is set"
    )
    name_patterns: list[str] = Field(default_factory=list, description="Wildcard name patterns")
    propagation_wait_seconds: int = Field(default=10, gt=0)
    max_passes: int = Field(default=2, ge=1)


class SynthesisPlan(BaseModel):
    """Ordered rules plus the cleanup predicate and run diagnostics."""

    run_id: str
    script_type: ScriptType
    strategy: GroupingStrategy | None = Field(
        default=None, description="None for domain-wide plans"
    )
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    rules: list[RuleSpec] = Field(default_factory=list)
    cleanup: CleanupPredicate
    group_count: int = 0
    skipped: list[SkippedGroup] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rules

    def summary(self) -> dict[str, int]:
        """Counts for operator display."""
        return {
            "rules": len(self.rules),
            "groups": self.group_count,
            "banner_rules": sum(1 for r in self.rules if r.kind == ContentKind.banner),
            "signature_rules": sum(1 for r in self.rules if r.kind == ContentKind.signature),
            "skipped": len(self.skipped),
        }
