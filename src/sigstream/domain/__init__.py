"""Domain layer: the rule synthesis engine."""

from .assignments import (
    Assignment,
    CleanupPredicate,
    ContentGroup,
    ContentKind,
    GroupingStrategy,
    RuleLocation,
    RuleScope,
    RuleSpec,
    ScriptType,
    SkippedGroup,
    SkipReason,
    SynthesisPlan,
)
from .grouping_engine import GroupingEngine, select_strategy
from .rule_planner import PriorityRange, RulePlanner
from .rule_semantics import (
    RULE_BANNER_ONLY_DROPS_BANNERLESS,
    RULE_BANNER_PREPEND_MIN_PRIORITY,
    RULE_DOMAIN_WIDE_FIRST,
    RULE_MARKER_SELF_EXCEPTION,
    RULE_SIGNATURE_APPEND_MAX_PRIORITY,
)

__all__ = [
    "Assignment",
    "CleanupPredicate",
    "ContentGroup",
    "ContentKind",
    "GroupingEngine",
    "GroupingStrategy",
    "PriorityRange",
    "RuleLocation",
    "RulePlanner",
    "RuleScope",
    "RuleSpec",
    "ScriptType",
    "SkippedGroup",
    "SkipReason",
    "SynthesisPlan",
    "select_strategy",
    "RULE_BANNER_ONLY_DROPS_BANNERLESS",
    "RULE_BANNER_PREPEND_MIN_PRIORITY",
    "RULE_DOMAIN_WIDE_FIRST",
    "RULE_MARKER_SELF_EXCEPTION",
    "RULE_SIGNATURE_APPEND_MAX_PRIORITY",
]
