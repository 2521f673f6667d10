"""
展示辅助测试
"""

from datetime import datetime, timedelta, timezone

from keyvault.plugins.api_keys import KeyRecord, describe, format_last_used, mask_secret, parse_categories

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def ago(**kwargs) -> str:
    return (NOW - timedelta(**kwargs)).isoformat()


class TestMaskSecret:

    def test_short_values_fully_masked(self):
        assert mask_secret("abc") == "•" * 8
        assert mask_secret("12345678") == "•" * 8

    def test_long_values_keep_edges(self):
        assert mask_secret("sk-abcdefghijklmnop") == "sk-a" + "•" * 8 + "mnop"


class TestParseCategories:

    def test_splits_and_strips(self):
        assert parse_categories("work, personal,, project-x ") == ["work", "personal", "project-x"]

    def test_empty(self):
        assert parse_categories("") == []
        assert parse_categories(None) == []


class TestFormatLastUsed:

    def test_never(self):
        assert format_last_used(None, NOW) == "Never"
        assert format_last_used("garbage", NOW) == "Never"

    def test_relative(self):
        assert format_last_used(ago(seconds=10), NOW) == "just now"
        assert format_last_used(ago(minutes=1), NOW) == "1 minute ago"
        assert format_last_used(ago(minutes=5), NOW) == "5 minutes ago"
        assert format_last_used(ago(hours=3), NOW) == "3 hours ago"
        assert format_last_used(ago(days=2), NOW) == "2 days ago"

    def test_old_values_show_date(self):
        assert format_last_used(ago(days=90), NOW) == "2024-03-03"


class TestDescribe:

    def test_masked_by_default(self):
        record = KeyRecord(id="1", service="OpenAI", name="prod", secret="sk-abcdefghijklmnop")
        view = describe(record)
        assert view["key"] != record.secret
        assert view["last_used"] == "Never"
        assert describe(record, reveal=True)["key"] == record.secret
