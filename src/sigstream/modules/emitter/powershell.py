"""Exchange Online PowerShell rendering for synthesis plans."""

from __future__ import annotations

from datetime import datetime, timezone

from ...domain.assignments import (
    CleanupPredicate,
    ContentKind,
    RuleSpec,
    ScriptType,
    SynthesisPlan,
)
from ...domain.canonicalizer import escape

_SCRIPT_TYPE_LABELS = {
    ScriptType.signature: "Signature Only",
    ScriptType.banner: "Banner Only",
    ScriptType.both: "Signature + Banner",
}

_MANAGED_RULES_VAR = "$managedRules"


def _comment_safe(value: str) -> str:
    return " ".join(value.splitlines())


def _quote(value: str) -> str:
    return f"'{escape(value)}'"


def managed_filter(predicate: CleanupPredicate) -> str:
    """``Where-Object`` script block selecting every managed rule."""
    clauses: list[str] = []
    if predicate.match_disclaimer_text:
        clauses.append("$_.ApplyHtmlDisclaimerText -ne $null")
    clauses.extend(f"$_.Name -like {_quote(p)}" for p in predicate.name_patterns)
    if not clauses:
        raise ValueError("cleanup predicate matches nothing")
    body = " -or\n    ".join(clauses)
    return "{\n    " + body + "\n}"


class PowerShellEmitter:
    """Render rule specifications and cleanup plans as PowerShell scripts."""

    def __init__(self, clock=None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def render_rules_script(self, plan: SynthesisPlan) -> str:
        lines = self._rules_header(plan)
        lines += ["Connect-ExchangeOnline", ""]
        lines += self._rules_body(plan)
        lines.append("Disconnect-ExchangeOnline -Confirm:$false")
        return "\n".join(lines) + "\n"

    def render_redeploy_script(self, plan: SynthesisPlan) -> str:
        """Cleanup (no prompt) followed by the plan, in one session."""
        lines = self._rules_header(plan)
        lines.append("# Full redeploy: ALL managed rules are removed before new rules are created")
        lines += ["", "Connect-ExchangeOnline", ""]
        lines += self._cleanup_body(plan.cleanup, confirm=False)
        lines.append("")
        lines += self._rules_body(plan)
        lines.append("Disconnect-ExchangeOnline -Confirm:$false")
        return "\n".join(lines) + "\n"

    def _rules_header(self, plan: SynthesisPlan) -> list[str]:
        summary = plan.summary()
        label = "Domain-Wide Banner" if plan.strategy is None else _SCRIPT_TYPE_LABELS[plan.script_type]
        header = [
            f"# Exchange Online Transport Rules - Auto-generated ({label})",
            f"# Generated: {self._clock().isoformat()}",
            f"# Run: {plan.run_id}",
            f"# Rule Groups: {plan.group_count}",
            f"# Total Rules: {summary['rules']}",
        ]
        if plan.strategy is not None:
            header.append(f"# Grouping: {plan.strategy.value}")
        for skipped in plan.skipped:
            who = ", ".join(skipped.addresses) or "-"
            header.append(f"# Skipped ({skipped.reason.value}): {_comment_safe(who)}")
        header.append("")
        return header

    def _rules_body(self, plan: SynthesisPlan) -> list[str]:
        lines = [
            'Write-Host "=== Creating Transport Rules ===" -ForegroundColor Cyan',
            'Write-Host ""',
            "",
        ]
        current_group = None
        for rule in plan.rules:
            if rule.group_id != current_group:
                current_group = rule.group_id
                lines += self._group_header(rule)
            lines += self.render_rule(rule)
        lines += self._verification_block(plan)
        return lines

    def _group_header(self, rule: RuleSpec) -> list[str]:
        lines = [
            "# ========================================",
            f"# RULE GROUP {rule.group_id}: {len(rule.members)} member(s)",
            "# ========================================",
        ]
        lines += [f"# - {_comment_safe(m)}" for m in rule.members]
        lines.append("")
        return lines

    def render_rule(self, rule: RuleSpec) -> list[str]:
        """``New-TransportRule`` invocation for one rule, with a status line."""
        args = [f"New-TransportRule -Name {_quote(rule.name)}", "-FromScope InOrganization"]
        if rule.scope.is_domain_wide:
            args += [
                "-SenderAddressLocation HeaderOrEnvelope",
                f"-SenderDomainIs {_quote(rule.scope.sender_domain)}",
            ]
        else:
            args.append("-From " + ", ".join(_quote(a) for a in rule.scope.addresses))
        args += [
            f"-ApplyHtmlDisclaimerLocation {rule.location.value}",
            f"-ApplyHtmlDisclaimerText {_quote(rule.content)}",
            f"-ExceptIfSubjectOrBodyContainsWords {_quote(rule.exception_marker)}",
            "-ApplyHtmlDisclaimerFallbackAction Wrap",
            f"-Enabled ${'true' if rule.enabled else 'false'}",
            f"-Priority {rule.priority}",
            f"-Comments {_quote(rule.comment)}",
        ]
        where = "ABOVE body" if rule.kind == ContentKind.banner else "BELOW body"
        lines = [f"# {rule.kind.value} rule, {rule.location.value} ({where}), exception marker {rule.exception_marker}"]
        lines.append(" `\n    ".join(args))
        lines += [
            "",
            f"Write-Host \"  Created {_comment_safe(rule.name)} - Priority {rule.priority} ({where})\" -ForegroundColor Green",
            'Write-Host ""',
            "",
        ]
        return lines

    def _verification_block(self, plan: SynthesisPlan) -> list[str]:
        return [
            'Write-Host "=== Verifying Managed Rules ===" -ForegroundColor Cyan',
            f"Get-TransportRule | Where-Object {managed_filter(plan.cleanup)} | "
            "Format-Table Name, State, Priority, ApplyHtmlDisclaimerLocation -AutoSize",
            "",
            f'Write-Host "Total Rules Created: {len(plan.rules)}" -ForegroundColor White',
            'Write-Host ""',
        ]

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def render_cleanup_script(self, predicate: CleanupPredicate, confirm: bool = True) -> str:
        lines = [
            "# Cleanup - remove ALL managed signature/banner transport rules",
            f"# Generated: {self._clock().isoformat()}",
            "",
            "Connect-ExchangeOnline",
            "",
        ]
        lines += self._cleanup_body(predicate, confirm=confirm)
        lines.append("Disconnect-ExchangeOnline -Confirm:$false")
        return "\n".join(lines) + "\n"

    def _cleanup_body(self, predicate: CleanupPredicate, confirm: bool) -> list[str]:
        where = managed_filter(predicate)
        indent = "    " if confirm else ""
        lines = [
            'Write-Host "=== Scanning Transport Rules ===" -ForegroundColor Cyan',
            f"{_MANAGED_RULES_VAR} = @(Get-TransportRule | Where-Object {where})",
            "",
            f"if ({_MANAGED_RULES_VAR}.Count -eq 0) {{",
            '    Write-Host "No managed rules found" -ForegroundColor Green',
            "} else {",
            f'    Write-Host "Found $({_MANAGED_RULES_VAR}.Count) managed rule(s)" -ForegroundColor Yellow',
            f"    {_MANAGED_RULES_VAR} | Format-Table Name, State, Priority, ApplyHtmlDisclaimerLocation -AutoSize",
        ]
        removal: list[str] = []
        for attempt in range(1, predicate.max_passes + 1):
            pad = "    " * (attempt - 1)
            step = [
                f'Write-Host "Removal pass {attempt} of {predicate.max_passes}..." -ForegroundColor Yellow',
                f"{_MANAGED_RULES_VAR} | ForEach-Object {{",
                "    Remove-TransportRule -Identity $_.Identity -Confirm:$false -ErrorAction SilentlyContinue",
                "}",
                f"Start-Sleep -Seconds {predicate.propagation_wait_seconds}",
                f"{_MANAGED_RULES_VAR} = @(Get-TransportRule | Where-Object {where})",
            ]
            if attempt < predicate.max_passes:
                step += [
                    f"if ({_MANAGED_RULES_VAR}.Count -gt 0) {{",
                    f'    Write-Host "$({_MANAGED_RULES_VAR}.Count) rule(s) remain, retrying" -ForegroundColor Yellow',
                ]
            removal += [pad + line for line in step]
        for depth in range(predicate.max_passes - 2, -1, -1):
            removal.append("    " * depth + "}")
        removal += [
            f"if ({_MANAGED_RULES_VAR}.Count -gt 0) {{",
            f'    Write-Warning "$({_MANAGED_RULES_VAR}.Count) managed rule(s) still exist; new rules may coexist with stale ones"',
            f"    {_MANAGED_RULES_VAR} | Format-Table Name, State -AutoSize",
            "} else {",
            '    Write-Host "All managed rules removed" -ForegroundColor Green',
            "}",
        ]
        if confirm:
            lines += [
                '    $confirm = Read-Host "Remove ALL these rules? (type YES to proceed)"',
                '    if ($confirm -eq "YES") {',
            ]
            lines += [f"{indent}    {line}" for line in removal]
            lines += [
                "    } else {",
                '        Write-Host "Cancelled - no changes made" -ForegroundColor Yellow',
                "    }",
            ]
        else:
            lines += [f"    {line}" for line in removal]
        lines += ["}", ""]
        return lines
