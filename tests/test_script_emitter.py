"""PowerShellEmitter tests — rule invocations, escaping, cleanup passes."""

from datetime import datetime, timezone

import pytest

from sigstream.domain.assignments import (
    Assignment,
    CleanupPredicate,
    GroupingStrategy,
    ScriptType,
    SynthesisPlan,
)
from sigstream.domain.grouping_engine import GroupingEngine
from sigstream.domain.rule_planner import RulePlanner
from sigstream.modules.emitter.powershell import PowerShellEmitter, managed_filter

RUN_ID = "20260101_12345678"
FIXED_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FixedGroupIdProvider:
    def new_run_id(self) -> str:
        return RUN_ID

    def group_id(self, run_id, ordinal, group=None) -> str:
        return f"{run_id}_G{ordinal}"


def _emitter() -> PowerShellEmitter:
    return PowerShellEmitter(clock=lambda: FIXED_NOW)


def _make_assignment(name: str, **overrides) -> Assignment:
    defaults = {
        "user_id": f"u-{name}",
        "email": f"{name}@example.com",
        "display_name": name.title(),
        "signature_html": "<p>Regards</p>",
    }
    defaults.update(overrides)
    return Assignment(**defaults)


def _predicate(**overrides) -> CleanupPredicate:
    defaults = {"name_patterns": ["*Signature*", "*Banner*"], "propagation_wait_seconds": 10, "max_passes": 2}
    defaults.update(overrides)
    return CleanupPredicate(**defaults)


def _make_plan(assignments, script_type=ScriptType.both) -> SynthesisPlan:
    planner = RulePlanner("https://t.example/click", id_provider=FixedGroupIdProvider())
    groups = GroupingEngine().group(assignments, GroupingStrategy.content)
    result = planner.plan(groups, script_type, GroupingStrategy.content, RUN_ID)
    return SynthesisPlan(
        run_id=RUN_ID,
        script_type=script_type,
        strategy=GroupingStrategy.content,
        rules=result.rules,
        cleanup=_predicate(),
        group_count=result.planned_groups,
        skipped=result.skipped,
    )


def _braces_balanced(script: str) -> bool:
    return script.count("{") == script.count("}")


class TestRenderRule:
    def test_signature_rule_fields(self):
        plan = _make_plan([_make_assignment("ann"), _make_assignment("bob")], ScriptType.signature)
        text = "\n".join(_emitter().render_rule(plan.rules[0]))
        assert f"New-TransportRule -Name 'SIGNATURE_MultiUser_Ann_{RUN_ID}_G1'" in text
        assert "-FromScope InOrganization" in text
        assert "-From 'ann@example.com', 'bob@example.com'" in text
        assert "-ApplyHtmlDisclaimerLocation Append" in text
        assert f"-ExceptIfSubjectOrBodyContainsWords 'SIG_MARKER_{RUN_ID}_G1'" in text
        assert "-ApplyHtmlDisclaimerFallbackAction Wrap" in text
        assert "-Enabled $true" in text
        assert "-Priority 5" in text
        assert "-Comments 'Signature for Ann'" in text

    def test_banner_rule_is_prepend_priority_zero(self):
        plan = _make_plan([_make_assignment("ann", banner_html="<p>Sale</p>", banner_id="b1")])
        banner = plan.rules[0]
        text = "\n".join(_emitter().render_rule(banner))
        assert "-ApplyHtmlDisclaimerLocation Prepend" in text
        assert "-Priority 0" in text
        assert "ABOVE body" in text

    def test_content_single_quotes_doubled(self):
        plan = _make_plan([_make_assignment("ann", signature_html="<p>O'Neil &amp; Co</p>")])
        text = "\n".join(_emitter().render_rule(plan.rules[0]))
        assert "O''Neil" in text
        assert "O'Neil" not in text.replace("O''Neil", "")

    def test_arguments_use_backtick_continuation(self):
        plan = _make_plan([_make_assignment("ann")])
        lines = _emitter().render_rule(plan.rules[0])
        invocation = [line for line in lines if "New-TransportRule" in line][0]
        assert " `\n    -FromScope InOrganization" in invocation

    def test_domain_wide_rule_uses_sender_domain(self):
        planner = RulePlanner("https://t.example/click", id_provider=FixedGroupIdProvider())
        rule = planner.plan_domain_wide("example.com", "<p>All hands</p>", RUN_ID)
        text = "\n".join(_emitter().render_rule(rule))
        assert "-SenderDomainIs 'example.com'" in text
        assert "-From '" not in text
        assert "-Priority 0" in text


class TestRulesScript:
    def test_header_and_session(self):
        plan = _make_plan([_make_assignment("ann", banner_html="<p>Sale</p>", banner_id="b1")])
        script = _emitter().render_rules_script(plan)
        assert script.startswith("# Exchange Online Transport Rules - Auto-generated (Signature + Banner)")
        assert f"# Generated: {FIXED_NOW.isoformat()}" in script
        assert f"# Run: {RUN_ID}" in script
        assert "# Rule Groups: 1" in script
        assert "# Total Rules: 2" in script
        assert "# Grouping: content" in script
        assert script.index("Connect-ExchangeOnline") < script.index("New-TransportRule")
        assert script.rstrip().endswith("Disconnect-ExchangeOnline -Confirm:$false")

    def test_rules_emitted_in_plan_order(self):
        plan = _make_plan([_make_assignment("ann", banner_html="<p>Sale</p>", banner_id="b1")])
        script = _emitter().render_rules_script(plan)
        assert script.index("'BANNER_Ann_") < script.index("'SIGNATURE_Ann_")

    def test_group_header_lists_members(self):
        plan = _make_plan([_make_assignment("ann"), _make_assignment("bob")], ScriptType.signature)
        script = _emitter().render_rules_script(plan)
        assert f"# RULE GROUP {RUN_ID}_G1: 2 member(s)" in script
        assert "# - Ann (ann@example.com)" in script
        assert "# - Bob (bob@example.com)" in script

    def test_skipped_groups_reported_in_header(self):
        plan = _make_plan(
            [_make_assignment("ann", banner_html="<p>Sale</p>", banner_id="b1"), _make_assignment("bob", signature_html="<p>B</p>")],
            ScriptType.banner,
        )
        script = _emitter().render_rules_script(plan)
        assert "# Skipped (no_banner): bob@example.com" in script

    def test_verification_uses_managed_filter(self):
        plan = _make_plan([_make_assignment("ann")])
        script = _emitter().render_rules_script(plan)
        assert "Get-TransportRule | Where-Object {" in script
        assert "Total Rules Created: 1" in script
        assert _braces_balanced(script)


class TestManagedFilter:
    def test_matches_disclaimer_text_and_patterns(self):
        where = managed_filter(_predicate())
        assert "$_.ApplyHtmlDisclaimerText -ne $null" in where
        assert "$_.Name -like '*Signature*'" in where
        assert "$_.Name -like '*Banner*'" in where
        assert " -or" in where

    def test_empty_predicate_rejected(self):
        with pytest.raises(ValueError):
            managed_filter(CleanupPredicate(match_disclaimer_text=False, name_patterns=[]))


class TestCleanupScript:
    def test_two_passes_with_wait_and_warning(self):
        script = _emitter().render_cleanup_script(_predicate(), confirm=False)
        assert script.count("Remove-TransportRule") == 2
        assert script.count("Start-Sleep -Seconds 10") == 2
        assert "Removal pass 2 of 2" in script
        assert "Write-Warning" in script
        assert "Read-Host" not in script

    def test_removal_re_enumerates_after_each_pass(self):
        script = _emitter().render_cleanup_script(_predicate(max_passes=2), confirm=False)
        # initial scan plus one rescan per pass
        assert script.count("$managedRules = @(Get-TransportRule") == 3

    def test_confirmation_prompt_guards_removal(self):
        script = _emitter().render_cleanup_script(_predicate(), confirm=True)
        assert 'Read-Host "Remove ALL these rules? (type YES to proceed)"' in script
        assert script.index('if ($confirm -eq "YES")') < script.index("Remove-TransportRule")
        assert "Cancelled - no changes made" in script

    @pytest.mark.parametrize("passes", [1, 2, 3])
    @pytest.mark.parametrize("confirm", [True, False])
    def test_blocks_balanced(self, passes, confirm):
        script = _emitter().render_cleanup_script(_predicate(max_passes=passes), confirm=confirm)
        assert script.count("Remove-TransportRule") == passes
        assert _braces_balanced(script)

    def test_custom_wait(self):
        script = _emitter().render_cleanup_script(_predicate(propagation_wait_seconds=45), confirm=False)
        assert "Start-Sleep -Seconds 45" in script


class TestRedeployScript:
    def test_cleanup_precedes_creation_without_prompt(self):
        plan = _make_plan([_make_assignment("ann")])
        script = _emitter().render_redeploy_script(plan)
        assert script.index("Remove-TransportRule") < script.index("New-TransportRule")
        assert script.count("Connect-ExchangeOnline") == 1
        assert "Read-Host" not in script
        assert _braces_balanced(script)
