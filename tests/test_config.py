"""RuntimeSettings tests: defaults, env loading, validation."""

import pytest
from pydantic import ValidationError

from sigstream.config.runtime import RuntimeSettings, get_settings
from sigstream.domain.assignments import ScriptType


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    s = RuntimeSettings()
    assert (s.priority_min, s.priority_max) == (0, 5)
    assert s.per_recipient_analytics is True
    assert s.default_script_type == ScriptType.both
    assert s.propagation_wait_seconds == 10
    assert s.cleanup_max_passes == 2
    assert "*Signature*" in s.managed_name_patterns


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("SIGSTREAM_PROPAGATION_WAIT_SECONDS", "30")
    monkeypatch.setenv("SIGSTREAM_PER_RECIPIENT_ANALYTICS", "false")
    s = get_settings()
    assert s.propagation_wait_seconds == 30
    assert s.per_recipient_analytics is False


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_priority_order_enforced():
    with pytest.raises(ValidationError):
        RuntimeSettings(priority_min=5, priority_max=5)


def test_endpoint_must_be_http():
    with pytest.raises(ValidationError):
        RuntimeSettings(tracking_click_endpoint="ftp://t.example/click")


def test_endpoint_trailing_query_mark_stripped():
    s = RuntimeSettings(tracking_click_endpoint="https://t.example/click?")
    assert s.tracking_click_endpoint == "https://t.example/click"


def test_blank_name_patterns_dropped():
    s = RuntimeSettings(managed_name_patterns=["*Foo*", "  ", ""])
    assert s.managed_name_patterns == ["*Foo*"]


@pytest.mark.parametrize("field,value", [("propagation_wait_seconds", 0), ("cleanup_max_passes", 6)])
def test_cleanup_bounds(field, value):
    with pytest.raises(ValidationError):
        RuntimeSettings(**{field: value})
