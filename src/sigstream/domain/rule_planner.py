"""RulePlanner: expand content groups into ordered rule specifications."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from . import canonicalizer
from .assignments import (
    Assignment,
    ContentGroup,
    ContentKind,
    GroupingStrategy,
    RuleLocation,
    RuleScope,
    RuleSpec,
    ScriptType,
    SkippedGroup,
    SkipReason,
)
from .rule_semantics import (
    BANNER_MARKER_PREFIX,
    BANNER_ROLE,
    DOMAIN_WIDE_SUFFIX,
    DOMAIN_WIDE_TRACKING_EMAIL,
    MULTI_USER_PREFIX,
    SIGNATURE_MARKER_PREFIX,
    SIGNATURE_ROLE,
)
from ..ports.id_gen import GroupIdProvider, RunScopedGroupIdProvider

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9]")


def sanitize_name(value: str) -> str:
    """Replace every non-alphanumeric character with ``_``."""
    return _UNSAFE_NAME_RE.sub("_", value)


@dataclass(frozen=True)
class PriorityRange:
    """Inclusive platform priority range; lower values are evaluated first."""

    minimum: int = 0
    maximum: int = 5

    def __post_init__(self) -> None:
        if self.minimum < 0 or self.minimum >= self.maximum:
            raise ValueError(
                f"priority range must satisfy 0 <= minimum < maximum, got {self.minimum}..{self.maximum}"
            )

    @property
    def prepend(self) -> int:
        return self.minimum

    @property
    def append(self) -> int:
        return self.maximum


@dataclass
class PlanningResult:
    """Rules and diagnostics produced from one list of groups."""

    rules: list[RuleSpec] = field(default_factory=list)
    skipped: list[SkippedGroup] = field(default_factory=list)
    planned_groups: int = 0


class RulePlanner:
    """Assign names, markers, priorities and exception predicates."""

    def __init__(
        self,
        tracking_endpoint: str,
        priorities: PriorityRange | None = None,
        id_provider: GroupIdProvider | None = None,
    ) -> None:
        self._tracking_endpoint = tracking_endpoint
        self._priorities = priorities or PriorityRange()
        self._ids = id_provider or RunScopedGroupIdProvider()

    @property
    def priorities(self) -> PriorityRange:
        return self._priorities

    def plan(
        self,
        groups: list[ContentGroup],
        script_type: ScriptType,
        strategy: GroupingStrategy,
        run_id: str,
        available_banner_ids: frozenset[str] | None = None,
        available_signature_ids: frozenset[str] | None = None,
    ) -> PlanningResult:
        result = PlanningResult()
        for group in groups:
            group, dangling = _split_dangling_signatures(group, available_signature_ids)
            if dangling is not None:
                result.skipped.append(dangling)
            if group is None:
                continue
            skip = self._skip_reason(group, script_type, available_banner_ids)
            if skip is not None:
                result.skipped.append(skip)
                continue
            result.planned_groups += 1
            group_id = self._ids.group_id(run_id, result.planned_groups, group)
            result.rules.extend(self._expand(group, group_id, script_type, strategy))
        return result

    def plan_domain_wide(
        self,
        domain_name: str,
        banner_html: str,
        run_id: str,
        banner_id: str | None = None,
        banner_click_url: str | None = None,
        banner_name: str | None = None,
    ) -> RuleSpec:
        """Single organization-scoped banner rule, evaluated before any per-user rule."""
        domain = domain_name.strip().lstrip("@")
        if not domain:
            raise ValueError("domain_name must not be empty")
        if not banner_html or not banner_html.strip():
            raise ValueError("banner_html must not be empty")
        group_id = f"{run_id}_{DOMAIN_WIDE_SUFFIX}"
        marker = f"{BANNER_MARKER_PREFIX}{group_id}"
        tracking_url = None
        if banner_click_url and banner_id:
            tracking_url = canonicalizer.build_tracking_url(
                self._tracking_endpoint, banner_id, DOMAIN_WIDE_TRACKING_EMAIL
            )
        label = f" ({banner_name})" if banner_name else ""
        return RuleSpec(
            name=f"{BANNER_ROLE}_{group_id}_{domain}",
            kind=ContentKind.banner,
            group_id=group_id,
            scope=RuleScope(sender_domain=domain),
            location=RuleLocation.prepend,
            content=canonicalizer.render(ContentKind.banner, banner_html, marker, tracking_url),
            exception_marker=marker,
            priority=self._priorities.prepend,
            comment=f"Domain-wide banner{label} for all users @{domain}",
            members=[f"All senders @{domain}"],
        )

    def _skip_reason(
        self,
        group: ContentGroup,
        script_type: ScriptType,
        available_banner_ids: frozenset[str] | None,
    ) -> SkippedGroup | None:
        addresses = group.addresses
        if group.banner_id is not None and script_type != ScriptType.signature:
            if available_banner_ids is not None and group.banner_id not in available_banner_ids:
                return SkippedGroup(
                    reason=SkipReason.banner_not_found,
                    addresses=addresses,
                    detail=f"banner {group.banner_id} no longer exists",
                )
            if not group.has_banner:
                return SkippedGroup(
                    reason=SkipReason.banner_content_missing,
                    addresses=addresses,
                    detail=f"banner {group.banner_id} has no content",
                )
        if script_type == ScriptType.banner and not group.has_banner:
            return SkippedGroup(reason=SkipReason.no_banner, addresses=addresses)
        return None

    def _expand(
        self,
        group: ContentGroup,
        group_id: str,
        script_type: ScriptType,
        strategy: GroupingStrategy,
    ) -> list[RuleSpec]:
        if script_type == ScriptType.signature:
            return [self._signature_rule(group, group_id)]
        if script_type == ScriptType.banner:
            return [self._banner_rule(group, group_id, strategy)]
        if group.has_banner:
            return [
                self._banner_rule(group, group_id, strategy),
                self._signature_rule(group, group_id),
            ]
        return [self._signature_rule(group, group_id)]

    def _rule_prefix(self, group: ContentGroup) -> str:
        name = sanitize_name(group.representative.label)
        if len(group.members) > 1:
            return f"{MULTI_USER_PREFIX}_{name}"
        return name

    def _tracking_url(self, group: ContentGroup, strategy: GroupingStrategy) -> str | None:
        if not (group.banner_click_url and group.banner_id):
            return None
        email = None
        if strategy == GroupingStrategy.per_principal:
            email = group.representative.email
        return canonicalizer.build_tracking_url(self._tracking_endpoint, group.banner_id, email)

    def _banner_rule(
        self, group: ContentGroup, group_id: str, strategy: GroupingStrategy
    ) -> RuleSpec:
        marker = f"{BANNER_MARKER_PREFIX}{group_id}"
        content = canonicalizer.render(
            ContentKind.banner,
            group.banner_html or "",
            marker,
            self._tracking_url(group, strategy),
        )
        return RuleSpec(
            name=f"{BANNER_ROLE}_{self._rule_prefix(group)}_{group_id}",
            kind=ContentKind.banner,
            group_id=group_id,
            scope=RuleScope(addresses=group.addresses),
            location=RuleLocation.prepend,
            content=content,
            exception_marker=marker,
            priority=self._priorities.prepend,
            comment=f"Banner for {group.representative.label}",
            members=_member_lines(group),
        )

    def _signature_rule(self, group: ContentGroup, group_id: str) -> RuleSpec:
        marker = f"{SIGNATURE_MARKER_PREFIX}{group_id}"
        content = canonicalizer.render(ContentKind.signature, group.signature_html, marker)
        return RuleSpec(
            name=f"{SIGNATURE_ROLE}_{self._rule_prefix(group)}_{group_id}",
            kind=ContentKind.signature,
            group_id=group_id,
            scope=RuleScope(addresses=group.addresses),
            location=RuleLocation.append,
            content=content,
            exception_marker=marker,
            priority=self._priorities.append,
            comment=f"Signature for {group.representative.label}",
            members=_member_lines(group),
        )


def _split_dangling_signatures(
    group: ContentGroup, available_signature_ids: frozenset[str] | None
) -> tuple[ContentGroup | None, SkippedGroup | None]:
    """Drop members whose signature row no longer exists.

    Content grouping ignores ``signature_id``, so one group may mix live and
    deleted signature rows with identical HTML. Only the dangling members are
    excluded; the rest of the group is still planned.
    """
    if available_signature_ids is None:
        return group, None
    live: list[Assignment] = []
    dangling: list[Assignment] = []
    for member in group.members:
        if member.signature_id is None or member.signature_id in available_signature_ids:
            live.append(member)
        else:
            dangling.append(member)
    if not dangling:
        return group, None
    missing = sorted({m.signature_id for m in dangling})
    skipped = SkippedGroup(
        reason=SkipReason.signature_not_found,
        addresses=[m.email for m in dangling],
        detail=f"signature {', '.join(missing)} no longer exists",
    )
    if not live:
        return None, skipped
    return group.model_copy(update={"members": live}), skipped


def _member_lines(group: ContentGroup) -> list[str]:
    return [f"{m.label} ({m.email})" for m in group.members]
