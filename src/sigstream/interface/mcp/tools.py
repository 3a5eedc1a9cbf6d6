"""Tool registry for the MCP server.

Strict JSON schemas via Pydantic; response allowlists (field-level).
"""

from __future__ import annotations

import json
import time
from typing import Any

from pydantic import ValidationError

from .observability import log_tool_invocation, metrics_snapshot, record_synthesis
from ...config.runtime import get_settings
from ...domain.assignments import GroupingStrategy, ScriptType
from ...domain.grouping_engine import select_strategy
from ...models.requests import DomainWideOptions, SynthesisRequest
from ..validation import validate_synthesis_request

# ---------------------------------------------------------------------------
# Response allowlists (field-level)
# ---------------------------------------------------------------------------
ALLOWED_SYNTHESIS_RESPONSE_KEYS = frozenset({
    "run_id",
    "status",
    "rules_script",
    "cleanup_script",
    "rules",
    "summary",
    "skipped",
    "warnings",
})
ALLOWED_RULE_SUMMARY_KEYS = frozenset({
    "name",
    "kind",
    "location",
    "priority",
    "exception_marker",
    "scope",
})

ALLOWED_TOOLS = frozenset({
    "rules_synthesize",
    "rules_domain_wide",
    "rules_cleanup_script",
    "rules_validate",
    "rules_capabilities",
})


def _shape_synthesis_response(response: Any) -> dict:
    """Return only allowed fields for a synthesis response."""
    d = response.model_dump(mode="json") if hasattr(response, "model_dump") else response
    out: dict = {k: d[k] for k in ALLOWED_SYNTHESIS_RESPONSE_KEYS if k in d}
    if "rules" in out:
        out["rules"] = [
            {k: r.get(k) for k in ALLOWED_RULE_SUMMARY_KEYS if k in r}
            for r in out["rules"]
        ]
    return out


def _get_synthesis_service(stable_ids: bool = False):
    from ...wiring import build_synthesis_service
    return build_synthesis_service(stable_ids=stable_ids)


def _error(tool: str, t0: float, message: str) -> str:
    log_tool_invocation(tool, None, (time.monotonic() - t0) * 1000, error=message)
    return json.dumps({"error": message})


def register_rule_tools(mcp):
    """Register the rule synthesis tools."""

    @mcp.tool()
    def rules_synthesize(
        assignments: list[dict],
        script_type: str | None = None,
        strategy: str | None = None,
        selected_user_ids: list[str] | None = None,
        available_banner_ids: list[str] | None = None,
        available_signature_ids: list[str] | None = None,
        redeploy: bool = False,
        stable_ids: bool = False,
    ) -> str:
        """Synthesize transport rules for per-user signature/banner assignments.

        Args:
            assignments: Assignment objects (user_id, email, display_name, signature_html,
                signature_id, banner_html, banner_id, banner_click_url)
            script_type: 'signature', 'banner' or 'both' (default: from settings)
            strategy: 'content' or 'per_principal' (default: chosen from settings)
            selected_user_ids: Restrict the run to these users
            available_banner_ids: Banner ids that still exist; groups referencing others are skipped
            available_signature_ids: Signature ids that still exist
            redeploy: Prefix the rules script with a full cleanup
            stable_ids: Derive names and markers from content hashes

        Returns:
            JSON with run_id, status, rules_script, cleanup_script, rules, summary, skipped, warnings
        """
        t0 = time.monotonic()
        try:
            request = SynthesisRequest(
                assignments=assignments,
                script_type=ScriptType(script_type or get_settings().default_script_type),
                strategy=GroupingStrategy(strategy) if strategy else None,
                selected_user_ids=selected_user_ids,
                available_banner_ids=available_banner_ids,
                available_signature_ids=available_signature_ids,
            )
        except (ValidationError, ValueError) as e:
            return _error("rules_synthesize", t0, str(e))
        response = _get_synthesis_service(stable_ids).synthesize(request, redeploy=redeploy)
        latency_ms = (time.monotonic() - t0) * 1000
        record_synthesis("rules_synthesize", response, latency_ms)
        return json.dumps(_shape_synthesis_response(response), indent=2)

    @mcp.tool()
    def rules_domain_wide(
        domain_name: str,
        banner_html: str,
        banner_id: str | None = None,
        banner_click_url: str | None = None,
        banner_name: str | None = None,
    ) -> str:
        """Synthesize one banner rule for every sender in a domain.

        Args:
            domain_name: Sender domain, e.g. 'example.com'
            banner_html: Banner HTML
            banner_id: Banner id (enables click tracking together with banner_click_url)
            banner_click_url: Banner click-through URL
            banner_name: Display name used in the rule comment

        Returns:
            JSON with run_id, status, rules_script, cleanup_script, rules, summary
        """
        t0 = time.monotonic()
        try:
            options = DomainWideOptions(
                domain_name=domain_name,
                banner_html=banner_html,
                banner_id=banner_id,
                banner_click_url=banner_click_url,
                banner_name=banner_name,
            )
        except ValidationError as e:
            return _error("rules_domain_wide", t0, str(e))
        response = _get_synthesis_service().synthesize(SynthesisRequest(domain_wide=options))
        latency_ms = (time.monotonic() - t0) * 1000
        record_synthesis("rules_domain_wide", response, latency_ms)
        return json.dumps(_shape_synthesis_response(response), indent=2)

    @mcp.tool()
    def rules_cleanup_script(confirm: bool = True) -> str:
        """Script that discovers, removes and verifies removal of all managed rules.

        Args:
            confirm: Ask the operator to type YES before deleting

        Returns:
            JSON with cleanup_script
        """
        t0 = time.monotonic()
        script = _get_synthesis_service().cleanup_script(confirm=confirm)
        log_tool_invocation("rules_cleanup_script", None, (time.monotonic() - t0) * 1000)
        return json.dumps({"cleanup_script": script})

    @mcp.tool()
    def rules_validate(
        assignments: list[dict],
        script_type: str | None = None,
        strategy: str | None = None,
    ) -> str:
        """Pre-flight check of an assignment set without planning rules.

        Returns:
            JSON with is_valid, errors, warnings, strategy
        """
        t0 = time.monotonic()
        try:
            request = SynthesisRequest(
                assignments=assignments,
                script_type=ScriptType(script_type or get_settings().default_script_type),
                strategy=GroupingStrategy(strategy) if strategy else None,
            )
        except (ValidationError, ValueError) as e:
            return json.dumps({"is_valid": False, "errors": [str(e)], "warnings": []})
        chosen = request.strategy or select_strategy(
            request.assignments, get_settings().per_recipient_analytics
        )
        result = validate_synthesis_request(request, chosen)
        log_tool_invocation("rules_validate", None, (time.monotonic() - t0) * 1000)
        return json.dumps({**result.to_dict(), "strategy": chosen.value})

    @mcp.tool()
    def rules_capabilities() -> str:
        """Supported script types, strategies, priority range and cleanup settings."""
        settings = get_settings()
        return json.dumps({
            "script_types": [t.value for t in ScriptType],
            "strategies": [s.value for s in GroupingStrategy],
            "priority_range": [settings.priority_min, settings.priority_max],
            "managed_name_patterns": settings.managed_name_patterns,
            "propagation_wait_seconds": settings.propagation_wait_seconds,
            "cleanup_max_passes": settings.cleanup_max_passes,
            "tracking_click_endpoint": settings.tracking_click_endpoint,
            "metrics": metrics_snapshot(),
        })
