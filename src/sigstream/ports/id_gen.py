"""Port: group and run ID generation strategies."""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from ..domain.assignments import ContentGroup


@runtime_checkable
class GroupIdProvider(Protocol):
    """Generate run and group IDs used in rule names and markers."""

    def new_run_id(self) -> str: ...

    def group_id(self, run_id: str, ordinal: int, group: ContentGroup | None = None) -> str: ...


# ---------------------------------------------------------------------------
# Default implementations (pure stdlib, no infra deps)
# ---------------------------------------------------------------------------


class RunScopedGroupIdProvider:
    """Date stamp + random 8-hex-digit run nonce; groups append ``G<ordinal>``.

    Fresh markers every run; convergence comes from the cleanup predicate.
    """

    def new_run_id(self) -> str:
        date_stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
        nonce = uuid.uuid4().hex[:8]
        return f"{date_stamp}_{nonce}"

    def group_id(self, run_id: str, ordinal: int, group: ContentGroup | None = None) -> str:
        return f"{run_id}_G{ordinal}"


class ContentHashGroupIdProvider:
    """IDs derived from group content and scope only, stable across runs.

    Re-synthesizing an unchanged assignment set yields identical names and
    markers, so a re-apply is a no-op on the platform side.
    """

    def __init__(self, length: int = 12) -> None:
        self._length = length

    def new_run_id(self) -> str:
        return "H"

    def group_id(self, run_id: str, ordinal: int, group: ContentGroup | None = None) -> str:
        if group is None:
            return f"{run_id}_G{ordinal}"
        h = hashlib.sha256()
        for part in group.identity:
            h.update((part or "").encode("utf-8"))
            h.update(b"\x00")
        for address in sorted(a.lower() for a in group.addresses):
            h.update(address.encode("utf-8"))
            h.update(b"\x01")
        return f"{run_id}{h.hexdigest()[: self._length]}"
