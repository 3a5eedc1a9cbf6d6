"""Pre-flight validation for synthesis requests.

Reports structural errors and soft warnings before any rule is planned.
"""

from __future__ import annotations

from typing import Any

from ..domain.assignments import GroupingStrategy, ScriptType
from ..domain.canonicalizer import content_identity
from ..models.requests import SynthesisRequest

# Exchange Online caps transport rules per tenant at 300.
_PLATFORM_RULE_LIMIT = 300


class ValidationResult:
    """Result of request validation."""

    def __init__(self, is_valid: bool = True, errors: list[str] | None = None, warnings: list[str] | None = None):
        self.is_valid = is_valid
        self.errors = errors or []
        self.warnings = warnings or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON response."""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
        }

    def add_error(self, error: str) -> ValidationResult:
        """Add an error and return self for chaining."""
        self.errors.append(error)
        self.is_valid = False
        return self

    def add_warning(self, warning: str) -> ValidationResult:
        """Add a warning and return self for chaining."""
        self.warnings.append(warning)
        return self


def estimate_rule_count(request: SynthesisRequest, strategy: GroupingStrategy) -> int:
    """Upper bound on emitted rules, before reference checks."""
    if request.domain_wide is not None:
        return 1
    seen: dict[tuple, bool] = {}
    for a in request.assignments:
        key = content_identity(a, strategy)
        seen[key] = a.banner_html is not None
    if request.script_type == ScriptType.signature:
        return len(seen)
    if request.script_type == ScriptType.banner:
        return sum(1 for has_banner in seen.values() if has_banner)
    return sum(2 if has_banner else 1 for has_banner in seen.values())


def validate_synthesis_request(
    request: SynthesisRequest, strategy: GroupingStrategy = GroupingStrategy.content
) -> ValidationResult:
    """Validate a SynthesisRequest for safety and correctness."""
    result = ValidationResult(is_valid=True)

    if request.domain_wide is not None:
        if request.assignments:
            result.add_warning("domain_wide is set; per-user assignments will be ignored")
        dw = request.domain_wide
        if dw.banner_click_url and not dw.banner_id:
            result.add_warning("banner_click_url without banner_id; banner will not be tracked")
        return result

    if not request.assignments:
        result.add_error("no assignments supplied; nothing to synthesize")
        return result

    user_ids = [a.user_id for a in request.assignments]
    if len(set(user_ids)) != len(user_ids):
        result.add_warning("duplicate user_id values; each is synthesized as a separate assignment")

    emails = [a.email.lower() for a in request.assignments]
    if len(set(emails)) != len(emails):
        result.add_warning("duplicate sender addresses; the same sender may receive content twice")

    if request.selected_user_ids is not None:
        if not request.selected_user_ids:
            result.add_error("selected_user_ids is empty; select at least one user")
        else:
            missing = set(request.selected_user_ids) - set(user_ids)
            if missing:
                result.add_warning(f"{len(missing)} selected user(s) have no active assignment")

    if request.script_type == ScriptType.banner and not any(a.banner_html for a in request.assignments):
        result.add_error("script_type 'banner' but no assignment carries a banner")

    for a in request.assignments:
        if a.banner_click_url and not a.banner_id:
            result.add_warning(f"{a.email}: banner_click_url without banner_id; banner will not be tracked")

    estimate = estimate_rule_count(request, strategy)
    if estimate > _PLATFORM_RULE_LIMIT:
        result.add_error(f"plan needs ~{estimate} rules; the platform allows {_PLATFORM_RULE_LIMIT}")
    elif estimate > _PLATFORM_RULE_LIMIT // 2:
        result.add_warning(f"plan needs ~{estimate} rules; consider content grouping")

    return result
