"""Port interfaces (Protocols) and their default implementations.

Domain code depends only on these; no platform or infrastructure imports here.
"""

from .id_gen import ContentHashGroupIdProvider, GroupIdProvider, RunScopedGroupIdProvider

__all__ = [
    "ContentHashGroupIdProvider",
    "GroupIdProvider",
    "RunScopedGroupIdProvider",
]
