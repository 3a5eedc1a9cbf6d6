"""Response DTOs for synthesis runs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..domain.assignments import SkippedGroup, SynthesisPlan


class RuleSummary(BaseModel):
    """Operator-facing view of one planned rule (content omitted)."""

    name: str
    kind: str
    location: str
    priority: int
    exception_marker: str
    scope: list[str] = Field(default_factory=list, description="From addresses or '@domain'")


class SynthesisResponse(BaseModel):
    """Rendered scripts plus the plan summary and diagnostics."""

    run_id: str
    status: str = Field(..., description="'ok' or 'nothing_to_synthesize'")
    rules_script: str = Field(default="", description="Rule creation script (empty when nothing to do)")
    cleanup_script: str = Field(..., description="Discovery/delete/verify/retry script")
    rules: list[RuleSummary] = Field(default_factory=list)
    summary: dict[str, int] = Field(default_factory=dict)
    skipped: list[SkippedGroup] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_plan(cls, plan: SynthesisPlan, rules_script: str, cleanup_script: str) -> "SynthesisResponse":
        rules = [
            RuleSummary(
                name=r.name,
                kind=r.kind.value,
                location=r.location.value,
                priority=r.priority,
                exception_marker=r.exception_marker,
                scope=(
                    [f"@{r.scope.sender_domain}"] if r.scope.is_domain_wide else list(r.scope.addresses)
                ),
            )
            for r in plan.rules
        ]
        return cls(
            run_id=plan.run_id,
            status="nothing_to_synthesize" if plan.is_empty else "ok",
            rules_script=rules_script,
            cleanup_script=cleanup_script,
            rules=rules,
            summary=plan.summary(),
            skipped=plan.skipped,
            warnings=plan.warnings,
        )
