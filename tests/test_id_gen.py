"""Group id provider tests."""

import re

from sigstream.config.runtime import RuntimeSettings
from sigstream.domain.assignments import Assignment
from sigstream.domain.grouping_engine import GroupingEngine
from sigstream.models.requests import SynthesisRequest
from sigstream.ports.id_gen import (
    ContentHashGroupIdProvider,
    GroupIdProvider,
    RunScopedGroupIdProvider,
)
from sigstream.wiring import build_synthesis_service


def _group(*emails: str, signature_html: str = "<p>Sig</p>"):
    assignments = [
        Assignment(user_id=e, email=e, signature_html=signature_html) for e in emails
    ]
    [group] = GroupingEngine().group(assignments)
    return group


def test_providers_satisfy_protocol():
    assert isinstance(RunScopedGroupIdProvider(), GroupIdProvider)
    assert isinstance(ContentHashGroupIdProvider(), GroupIdProvider)


class TestRunScoped:
    def test_run_id_shape(self):
        assert re.fullmatch(r"\d{8}_[0-9a-f]{8}", RunScopedGroupIdProvider().new_run_id())

    def test_back_to_back_runs_get_distinct_ids(self):
        first, second = RunScopedGroupIdProvider(), RunScopedGroupIdProvider()
        pairs = [(first.new_run_id(), second.new_run_id()) for _ in range(200)]
        assert all(a != b for a, b in pairs)

    def test_back_to_back_services_mint_distinct_markers(self):
        request = SynthesisRequest(
            assignments=[Assignment(user_id="u1", email="a@example.com", signature_html="<p>Sig</p>")]
        )
        settings = RuntimeSettings()
        m1 = build_synthesis_service(settings).plan(request).rules[0].exception_marker
        m2 = build_synthesis_service(settings).plan(request).rules[0].exception_marker
        assert m1 != m2

    def test_group_id_appends_ordinal(self):
        assert RunScopedGroupIdProvider().group_id("20260101_00000001", 3) == "20260101_00000001_G3"


class TestContentHash:
    def test_same_content_same_id(self):
        ids = ContentHashGroupIdProvider()
        a = ids.group_id("H", 1, _group("a@example.com", "b@example.com"))
        b = ids.group_id("H", 7, _group("b@example.com", "a@example.com"))
        assert a == b
        assert re.fullmatch(r"H[0-9a-f]{12}", a)

    def test_membership_changes_id(self):
        ids = ContentHashGroupIdProvider()
        a = ids.group_id("H", 1, _group("a@example.com"))
        b = ids.group_id("H", 1, _group("a@example.com", "b@example.com"))
        assert a != b

    def test_content_changes_id(self):
        ids = ContentHashGroupIdProvider()
        a = ids.group_id("H", 1, _group("a@example.com"))
        b = ids.group_id("H", 1, _group("a@example.com", signature_html="<p>Other</p>"))
        assert a != b
