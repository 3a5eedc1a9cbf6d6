"""SynthesisService: assignments in, transport-rule plan and scripts out."""

from __future__ import annotations

import logging
from typing import Any

from ..config.runtime import RuntimeSettings
from ..domain.assignments import (
    Assignment,
    CleanupPredicate,
    SkippedGroup,
    SkipReason,
    SynthesisPlan,
)
from ..domain.grouping_engine import GroupingEngine, select_strategy
from ..domain.rule_planner import PriorityRange, RulePlanner
from ..models.requests import SynthesisRequest
from ..models.responses import SynthesisResponse
from ..modules.emitter.powershell import PowerShellEmitter
from ..ports.id_gen import GroupIdProvider, RunScopedGroupIdProvider

_LOGGER = logging.getLogger("sigstream.synthesis")


def _frozen(values: list[str] | None) -> frozenset[str] | None:
    return None if values is None else frozenset(values)


class SynthesisService:
    """Orchestrates grouping, planning and rendering for one run."""

    def __init__(
        self,
        settings: RuntimeSettings,
        grouping_engine: GroupingEngine | None = None,
        rule_planner: RulePlanner | None = None,
        emitter: PowerShellEmitter | None = None,
        id_provider: GroupIdProvider | None = None,
        logger: Any = None,
    ) -> None:
        self._settings = settings
        self._ids = id_provider or RunScopedGroupIdProvider()
        self._grouping = grouping_engine or GroupingEngine()
        self._planner = rule_planner or RulePlanner(
            tracking_endpoint=settings.tracking_click_endpoint,
            priorities=PriorityRange(settings.priority_min, settings.priority_max),
            id_provider=self._ids,
        )
        self._emitter = emitter or PowerShellEmitter()
        self._logger = logger or _LOGGER

    def cleanup_predicate(self) -> CleanupPredicate:
        return CleanupPredicate(
            match_disclaimer_text=True,
            name_patterns=list(self._settings.managed_name_patterns),
            propagation_wait_seconds=self._settings.propagation_wait_seconds,
            max_passes=self._settings.cleanup_max_passes,
        )

    def cleanup_script(self, confirm: bool | None = None) -> str:
        """Standalone "Step 1: Cleanup" script."""
        if confirm is None:
            confirm = self._settings.cleanup_require_confirmation
        return self._emitter.render_cleanup_script(self.cleanup_predicate(), confirm=confirm)

    def plan(self, request: SynthesisRequest) -> SynthesisPlan:
        run_id = self._ids.new_run_id()
        self._logger.info(
            "synthesis_start",
            extra={
                "trace_id": run_id,
                "script_type": request.script_type.value,
                "assignments_count": len(request.assignments),
                "domain_wide": request.domain_wide is not None,
            },
        )
        if request.domain_wide is not None:
            plan = self._plan_domain_wide(request, run_id)
        else:
            plan = self._plan_assignments(request, run_id)
        for skipped in plan.skipped:
            self._logger.warning(
                "group_skipped",
                extra={
                    "trace_id": run_id,
                    "reason": skipped.reason.value,
                    "addresses": skipped.addresses,
                    "detail": skipped.detail,
                },
            )
        self._logger.info("synthesis_done", extra={"trace_id": run_id, **plan.summary()})
        return plan

    def synthesize(self, request: SynthesisRequest, redeploy: bool = False) -> SynthesisResponse:
        """Plan and render; ``redeploy`` prefixes the rules with a full cleanup."""
        plan = self.plan(request)
        cleanup = self.cleanup_script()
        if plan.is_empty:
            rules_script = ""
        elif redeploy:
            rules_script = self._emitter.render_redeploy_script(plan)
        else:
            rules_script = self._emitter.render_rules_script(plan)
        return SynthesisResponse.from_plan(plan, rules_script, cleanup)

    def _plan_domain_wide(self, request: SynthesisRequest, run_id: str) -> SynthesisPlan:
        options = request.domain_wide
        rule = self._planner.plan_domain_wide(
            domain_name=options.domain_name,
            banner_html=options.banner_html,
            run_id=run_id,
            banner_id=options.banner_id,
            banner_click_url=options.banner_click_url,
            banner_name=options.banner_name,
        )
        warnings: list[str] = []
        if request.assignments:
            warnings.append("domain-wide mode ignores per-user assignments")
        return SynthesisPlan(
            run_id=run_id,
            script_type=request.script_type,
            strategy=None,
            rules=[rule],
            cleanup=self.cleanup_predicate(),
            group_count=1,
            warnings=warnings,
        )

    def _plan_assignments(self, request: SynthesisRequest, run_id: str) -> SynthesisPlan:
        assignments, skipped = self._select(request)
        analytics = request.per_recipient_analytics
        if analytics is None:
            analytics = self._settings.per_recipient_analytics
        strategy = request.strategy or select_strategy(assignments, analytics)

        warnings: list[str] = []
        if not assignments:
            warnings.append("nothing to synthesize: no users selected")
            return SynthesisPlan(
                run_id=run_id,
                script_type=request.script_type,
                strategy=strategy,
                cleanup=self.cleanup_predicate(),
                skipped=skipped,
                warnings=warnings,
            )

        groups = self._grouping.group(assignments, strategy)
        result = self._planner.plan(
            groups,
            request.script_type,
            strategy,
            run_id,
            available_banner_ids=_frozen(request.available_banner_ids),
            available_signature_ids=_frozen(request.available_signature_ids),
        )
        if not result.rules:
            warnings.append(
                f"nothing to synthesize: script type '{request.script_type.value}' "
                f"yields zero eligible groups out of {len(groups)}"
            )
        return SynthesisPlan(
            run_id=run_id,
            script_type=request.script_type,
            strategy=strategy,
            rules=result.rules,
            cleanup=self.cleanup_predicate(),
            group_count=result.planned_groups,
            skipped=skipped + result.skipped,
            warnings=warnings,
        )

    def _select(self, request: SynthesisRequest) -> tuple[list[Assignment], list[SkippedGroup]]:
        if request.selected_user_ids is None:
            return list(request.assignments), []
        wanted = set(request.selected_user_ids)
        selected = [a for a in request.assignments if a.user_id in wanted]
        present = {a.user_id for a in selected}
        skipped = [
            SkippedGroup(reason=SkipReason.user_not_found, detail=f"user {uid} has no active assignment")
            for uid in dict.fromkeys(request.selected_user_ids)
            if uid not in present
        ]
        return selected, skipped
