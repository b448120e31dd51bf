import pytest

from guildkeeper.cogs.admin import build_custom_embed
from guildkeeper.cogs.utility import build_category_help, build_faq, build_help_overview, legacy_prefix_reply
from guildkeeper.config import FAQ_ENTRIES
from guildkeeper.registry import CATEGORIES, COMMANDS, commands_in
from guildkeeper.utils.results import RejectionReason


def test_every_command_has_a_known_category():
    assert all(spec.category in CATEGORIES for spec in COMMANDS.values())
    assert sum(len(commands_in(key)) for key in CATEGORIES) == len(COMMANDS)


def test_help_overview_lists_every_category():
    embed = build_help_overview()

    assert len(embed.fields) == len(CATEGORIES)
    overview = " ".join(field.value for field in embed.fields)
    for name in COMMANDS:
        assert f"`/{name}`" in overview


def test_category_help():
    embed = build_category_help('moderation', max_warnings=5)

    assert len(embed.fields) == len(commands_in('moderation'))
    assert "5 warnings" in embed.footer.text
    assert any("Ban Members" in field.value for field in embed.fields)


def test_category_help_unknown():
    assert build_category_help('nonsense').title == "❌ Error"


def test_faq():
    overview = build_faq()
    assert len(overview.fields) == len(FAQ_ENTRIES)

    entry = build_faq('server-rules')
    assert FAQ_ENTRIES['server-rules']['answer'] == entry.description

    assert build_faq('missing').title == "❌ Error"


@pytest.mark.parametrize("content, expected_title", [
    ("!help", "ℹ️ Bot Commands"),
    ("!ban @someone", "ℹ️ Use Slash Commands"),
    ("!TICKET", "ℹ️ Use Slash Commands"),
])
def test_legacy_prefix_reply(content, expected_title):
    assert legacy_prefix_reply(content, "!").title == expected_title


@pytest.mark.parametrize("content", ["hello", "!", "!dance", "?help"])
def test_legacy_prefix_ignored(content):
    assert legacy_prefix_reply(content, "!") is None


def test_custom_embed_requires_content():
    assert build_custom_embed().reason == RejectionReason.INVALID_INPUT


def test_custom_embed_validation():
    assert build_custom_embed(title="Hi", color="blue").reason == RejectionReason.INVALID_INPUT
    assert build_custom_embed(title="Hi", image="nope").reason == RejectionReason.INVALID_INPUT
    assert build_custom_embed(title="Hi", thumbnail="ftp://x").reason == RejectionReason.INVALID_INPUT


def test_custom_embed_built():
    result = build_custom_embed(
        title="Announcement",
        description="Server maintenance tonight",
        color="#FF0000",
        image="https://example.com/banner.png",
        footer="Staff"
    )

    assert result.ok
    embed = result.value
    assert embed.title == "Announcement"
    assert embed.color.value == 0xFF0000
    assert embed.image.url == "https://example.com/banner.png"
    assert embed.footer.text == "Staff"
