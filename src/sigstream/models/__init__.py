"""Domain and request/response models."""

from ..domain.assignments import (
    Assignment,
    CleanupPredicate,
    ContentGroup,
    RuleSpec,
    SkippedGroup,
    SynthesisPlan,
)
from .requests import DomainWideOptions, SynthesisRequest
from .responses import RuleSummary, SynthesisResponse

__all__ = [
    # Domain
    "Assignment",
    "CleanupPredicate",
    "ContentGroup",
    "RuleSpec",
    "SkippedGroup",
    "SynthesisPlan",
    # Requests
    "DomainWideOptions",
    "SynthesisRequest",
    # Responses
    "RuleSummary",
    "SynthesisResponse",
]
