"""GroupingEngine: partition assignments into content groups."""

from __future__ import annotations

from typing import Iterable

from .assignments import Assignment, ContentGroup, GroupingStrategy
from .canonicalizer import content_identity


def select_strategy(
    assignments: Iterable[Assignment], per_recipient_analytics: bool
) -> GroupingStrategy:
    """Per-principal only when analytics are wanted and some banner is clickable."""
    if per_recipient_analytics and any(
        a.banner_html and a.banner_click_url and a.banner_id for a in assignments
    ):
        return GroupingStrategy.per_principal
    return GroupingStrategy.content


class GroupingEngine:
    """Group assignments by canonical content identity, first-seen order."""

    def group(
        self,
        assignments: Iterable[Assignment],
        strategy: GroupingStrategy = GroupingStrategy.content,
    ) -> list[ContentGroup]:
        groups: dict[tuple[str | None, ...], ContentGroup] = {}
        for assignment in assignments:
            identity = content_identity(assignment, strategy)
            group = groups.get(identity)
            if group is None:
                groups[identity] = ContentGroup(
                    identity=identity,
                    members=[assignment],
                    signature_html=assignment.signature_html,
                    banner_html=assignment.banner_html,
                    banner_id=assignment.banner_id,
                    banner_click_url=assignment.banner_click_url,
                )
            else:
                group.members.append(assignment)
        return list(groups.values())
