"""Composition root — single place where all wiring happens.

Call ``build_synthesis_service()`` to get a fully-constructed service.
No ad-hoc construction elsewhere.
"""

from __future__ import annotations

from .config.runtime import RuntimeSettings, get_settings
from .ports.id_gen import ContentHashGroupIdProvider, RunScopedGroupIdProvider
from .services.synthesis_service import SynthesisService


def build_synthesis_service(
    settings: RuntimeSettings | None = None, stable_ids: bool = False
) -> SynthesisService:
    """Construct a SynthesisService; ``stable_ids`` derives ids from content hashes."""
    settings = settings or get_settings()
    id_provider = ContentHashGroupIdProvider() if stable_ids else RunScopedGroupIdProvider()
    return SynthesisService(settings=settings, id_provider=id_provider)
