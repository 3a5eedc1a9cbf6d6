"""Application services."""

from .synthesis_service import SynthesisService

__all__ = ["SynthesisService"]
