from datetime import datetime, timedelta

import pytest

from guildkeeper.utils.helpers import (
    MAX_TIMEOUT_MS,
    format_duration,
    human_join,
    parse_duration,
    ticket_channel_name,
    truncate_string
)
from guildkeeper.utils.validators import (
    DEFAULT_REASON,
    is_valid_url,
    validate_hex_color,
    validate_reason,
    validate_welcome_message
)


@pytest.mark.parametrize("raw, expected", [
    ("30s", 30_000),
    ("90m", 5_400_000),
    ("1h", 3_600_000),
    ("2D", 172_800_000),
    (" 10m ", 600_000),
])
def test_parse_duration_valid(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "10", "10x", "1.5h", "-5m", "h1"])
def test_parse_duration_invalid(raw):
    assert parse_duration(raw) is None


def test_parse_duration_does_not_cap_but_exceeds_timeout_limit():
    assert parse_duration("28d") == MAX_TIMEOUT_MS
    assert parse_duration("40d") > MAX_TIMEOUT_MS


def test_format_duration():
    assert format_duration(5_400_000) == "1 hour and 30 minutes"
    assert format_duration(86_400_000) == "1 day"
    assert format_duration(timedelta(days=2, seconds=5)) == "2 days and 5 seconds"
    assert format_duration(0) == "0 seconds"


def test_truncate_string():
    assert truncate_string("short", 10) == "short"
    truncated = truncate_string("a" * 30, 10)
    assert truncated == "aaaaaaa..."
    assert len(truncated) == 10


def test_human_join():
    assert human_join([]) == ""
    assert human_join(["a"]) == "a"
    assert human_join(["a", "b"]) == "a and b"
    assert human_join(["a", "b", "c"], "or") == "a, b, or c"


def test_ticket_channel_name_slugifies_username():
    name = ticket_channel_name("Some User!!", datetime(2024, 5, 1, 12, 0, 0))
    assert name.startswith("ticket-some-user-")
    suffix = name.rsplit("-", 1)[1]
    assert len(suffix) == 6 and suffix.isdigit()


def test_ticket_channel_name_empty_slug():
    assert ticket_channel_name("***").startswith("ticket-user-")


def test_validate_hex_color():
    assert validate_hex_color("#FF0000") == (True, 0xFF0000)
    assert validate_hex_color("#abc") == (True, 0xAABBCC)
    assert validate_hex_color("red") == (False, None)
    assert validate_hex_color("#12345") == (False, None)


def test_validate_reason():
    assert validate_reason(None) == DEFAULT_REASON
    assert validate_reason("   ") == DEFAULT_REASON
    assert validate_reason("  spam  ") == "spam"
    long_reason = validate_reason("x" * 600)
    assert len(long_reason) == 512
    assert long_reason.endswith("...")


def test_validate_welcome_message():
    assert validate_welcome_message("Hi {user}") == (True, None)
    assert validate_welcome_message("  ")[0] is False
    assert validate_welcome_message("x" * 1001)[0] is False


def test_is_valid_url():
    assert is_valid_url("https://example.com/bg.png")
    assert is_valid_url("http://example.com")
    assert not is_valid_url("ftp://example.com/file")
    assert not is_valid_url("not a url")
