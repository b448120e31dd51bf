from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord import app_commands

from guildkeeper.dispatch import GENERIC_ERROR_MESSAGE, RATE_LIMIT_MESSAGE, CommandDispatcher, send_ephemeral
from guildkeeper.utils.cooldown import RateLimiter
from guildkeeper.utils.permissions import PermissionChecker
from guildkeeper.utils.results import RejectionReason

from tests.fakes import FakeGuild, http_response, make_interaction, make_member, make_perms, make_user


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher(clock):
    return CommandDispatcher(RateLimiter(5, 60, clock=clock), PermissionChecker())


def test_unknown_command(dispatcher):
    guild = FakeGuild()
    interaction = make_interaction("teleport", make_member(guild), guild)

    result = dispatcher.check(interaction)

    assert result.reason == RejectionReason.UNKNOWN_COMMAND


def test_rate_limit_applies_across_commands(dispatcher, clock):
    guild = FakeGuild()
    user = make_member(guild)

    for name in ("help", "ping", "faq", "help", "avatar"):
        assert dispatcher.check(make_interaction(name, user, guild)).ok
        clock.now += 1

    limited = dispatcher.check(make_interaction("ping", user, guild))
    assert limited.reason == RejectionReason.RATE_LIMITED
    assert limited.rejection.message == RATE_LIMIT_MESSAGE
    assert limited.rejection.detail == pytest.approx(55.0)

    clock.now = 60
    assert dispatcher.check(make_interaction("ping", user, guild)).ok


def test_guild_only_commands_rejected_in_dms(dispatcher):
    user = make_user()

    assert dispatcher.check(make_interaction("ban", user)).reason == RejectionReason.GUILD_ONLY
    assert dispatcher.check(make_interaction("help", user)).ok


def test_missing_permission(dispatcher):
    guild = FakeGuild()
    user = make_member(guild, permissions=make_perms('kick_members'))

    result = dispatcher.check(make_interaction("ban", user, guild))

    assert result.reason == RejectionReason.MISSING_PERMISSION
    assert '"Ban Members"' in result.rejection.message


def test_administrator_and_bot_owner_bypass(clock):
    guild = FakeGuild()
    admin = make_member(guild, permissions=make_perms(administrator=True))
    owner = make_member(guild)
    dispatcher = CommandDispatcher(RateLimiter(5, 60, clock=clock), PermissionChecker([owner.id]))

    assert dispatcher.check(make_interaction("ban", admin, guild)).ok
    assert dispatcher.check(make_interaction("ban", owner, guild)).ok


def test_subcommands_resolve_to_their_group(dispatcher):
    guild = FakeGuild()
    user = make_member(guild, permissions=make_perms('manage_roles'))

    result = dispatcher.check(make_interaction("add", user, guild, parent="autorole"))

    assert result.ok
    assert result.value.name == "autorole"

    other = make_member(guild)
    assert dispatcher.check(make_interaction("add", other, guild, parent="autorole")).reason == \
        RejectionReason.MISSING_PERMISSION


def test_rate_limit_checked_before_guild_only(clock):
    dispatcher = CommandDispatcher(RateLimiter(1, 60, clock=clock), PermissionChecker())
    user = make_user()

    dispatcher.check(make_interaction("help", user))
    assert dispatcher.check(make_interaction("ban", user)).reason == RejectionReason.RATE_LIMITED


def test_components_are_only_rate_limited(clock):
    dispatcher = CommandDispatcher(RateLimiter(1, 60, clock=clock), PermissionChecker())
    user = make_user()

    assert dispatcher.check_component(make_interaction(None, user, component=True)).ok
    assert dispatcher.check_component(make_interaction(None, user, component=True)).reason == \
        RejectionReason.RATE_LIMITED


@pytest.mark.asyncio
async def test_interaction_check_sends_rejection(dispatcher):
    interaction = make_interaction("ban", make_user())

    assert await dispatcher.interaction_check(interaction) is False

    interaction.response.send_message.assert_awaited_once()
    kwargs = interaction.response.send_message.await_args.kwargs
    assert kwargs['ephemeral'] is True
    assert kwargs['embed'].title == "❌ Server Only"


@pytest.mark.asyncio
async def test_interaction_check_passes(dispatcher):
    interaction = make_interaction("help", make_user())

    assert await dispatcher.interaction_check(interaction) is True
    interaction.response.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_error_responds_when_nothing_sent(dispatcher):
    interaction = make_interaction("ping", make_user())
    error = app_commands.CommandInvokeError(MagicMock(), RuntimeError("boom"))

    await dispatcher.handle_error(interaction, error)

    embed = interaction.response.send_message.await_args.kwargs['embed']
    assert embed.description == GENERIC_ERROR_MESSAGE
    interaction.followup.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_error_follows_up_after_deferral(dispatcher):
    interaction = make_interaction("purge", make_user())
    interaction.response.is_done.return_value = True

    await dispatcher.handle_error(interaction, RuntimeError("boom"))

    interaction.followup.send.assert_awaited_once()
    assert interaction.followup.send.await_args.kwargs['ephemeral'] is True
    interaction.response.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_send_ephemeral_swallows_delivery_failure():
    interaction = SimpleNamespace(
        id=1,
        response=SimpleNamespace(
            is_done=MagicMock(return_value=False),
            send_message=AsyncMock(side_effect=discord.HTTPException(http_response(404), "Unknown interaction"))
        ),
        followup=SimpleNamespace(send=AsyncMock())
    )

    await send_ephemeral(interaction, discord.Embed(title="x"))

    interaction.followup.send.assert_not_awaited()
