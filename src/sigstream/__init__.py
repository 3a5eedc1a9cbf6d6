"""SigStream: signature and banner transport-rule synthesis."""

from .models import (
    Assignment,
    CleanupPredicate,
    ContentGroup,
    RuleSpec,
    SkippedGroup,
    SynthesisPlan,
)

__version__ = "0.1.0"
__all__ = [
    "Assignment",
    "CleanupPredicate",
    "ContentGroup",
    "RuleSpec",
    "SkippedGroup",
    "SynthesisPlan",
]
