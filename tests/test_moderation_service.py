from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import discord
import pytest

from guildkeeper.models.moderation import ALL_USERS, ModerationAction
from guildkeeper.services.moderation import ModerationService, select_purgeable
from guildkeeper.utils.permissions import PermissionChecker
from guildkeeper.utils.results import RejectionReason

from tests.fakes import FakeChannel, forbidden, http_response, make_member, make_message, make_perms, make_user


@pytest.fixture
def service(db, reconciler):
    return ModerationService(db, reconciler, PermissionChecker(), max_warnings=3)


@pytest.fixture
def moderator(guild):
    return make_member(
        guild,
        "mod",
        position=5,
        permissions=make_perms('ban_members', 'kick_members', 'moderate_members', 'manage_messages', 'manage_channels')
    )


@pytest.fixture
def target(guild):
    return make_member(guild, "target", position=1)


@pytest.mark.asyncio
async def test_warnings_escalate_to_auto_mute(service, db, guild, moderator, target):
    first = await service.warn(moderator, target, "spam")
    second = await service.warn(moderator, target, "spam")

    assert first.value.warning_count == 1
    assert second.value.warning_count == 2
    assert not second.value.auto_muted
    target.timeout.assert_not_awaited()

    third = await service.warn(moderator, target, "spam")
    assert third.ok
    assert third.value.warning_count == 3
    assert third.value.auto_muted

    target.timeout.assert_awaited_once()
    assert target.timeout.await_args.args[0] == timedelta(hours=24)

    logs = await db.get_mod_logs(guild.id, user_id=target.id)
    assert [log.action for log in logs] == [ModerationAction.WARN] * 3 + [ModerationAction.AUTO_MUTE]
    assert logs[-1].moderator_id == guild.me.id
    assert logs[-1].duration == 24 * 60 * 60 * 1000


@pytest.mark.asyncio
async def test_auto_mute_failure_is_reported(db, reconciler, guild, moderator, target):
    service = ModerationService(db, reconciler, max_warnings=1)
    target.timeout.side_effect = forbidden()

    result = await service.warn(moderator, target, "spam")

    assert result.ok
    assert result.value.auto_mute_failed
    assert not result.value.auto_muted
    logs = await db.get_mod_logs(guild.id, user_id=target.id)
    assert [log.action for log in logs] == [ModerationAction.WARN]


@pytest.mark.asyncio
async def test_mute_longer_than_timeout_limit_is_rejected(service, db, guild, moderator, target):
    result = await service.mute(moderator, target, "40d")

    assert result.reason == RejectionReason.INVALID_DURATION
    target.timeout.assert_not_awaited()
    target.send.assert_not_awaited()
    assert await db.get_mod_logs(guild.id) == []


@pytest.mark.asyncio
async def test_mute_records_duration(service, db, guild, moderator, target):
    result = await service.mute(moderator, target, "90m", "flooding")

    assert result.ok
    assert result.value.duration_ms == 5_400_000
    assert result.value.duration_text == "1 hour and 30 minutes"
    target.timeout.assert_awaited_once()
    assert target.timeout.await_args.args[0] == timedelta(minutes=90)

    logs = await db.get_mod_logs(guild.id, user_id=target.id)
    assert logs[0].action == ModerationAction.MUTE
    assert logs[0].duration == 5_400_000


@pytest.mark.asyncio
async def test_mute_and_unmute_state_checks(service, guild, moderator):
    muted = make_member(guild, "muted", timed_out=True)
    free = make_member(guild, "free", timed_out=False)

    assert (await service.mute(moderator, muted, "1h")).reason == RejectionReason.ALREADY_MUTED
    assert (await service.unmute(moderator, free)).reason == RejectionReason.NOT_MUTED

    result = await service.unmute(moderator, muted)
    assert result.ok
    muted.timeout.assert_awaited_once()
    assert muted.timeout.await_args.args[0] is None


@pytest.mark.asyncio
async def test_equal_rank_is_rejected(service, guild, moderator):
    peer = make_member(guild, "peer", position=5)

    result = await service.kick(moderator, peer)

    assert result.reason == RejectionReason.HIERARCHY
    peer.kick.assert_not_awaited()


@pytest.mark.asyncio
async def test_guild_owner_cannot_be_targeted(service, guild, moderator):
    result = await service.ban(moderator, guild.owner, "nope")

    assert result.reason == RejectionReason.HIERARCHY
    guild.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_guild_owner_outranks_everyone(service, guild):
    guild.owner.top_role.position = 0
    guild.owner.guild_permissions = make_perms('kick_members')
    target = make_member(guild, "high", position=8)

    result = await service.kick(guild.owner, target)

    assert result.ok
    target.kick.assert_awaited_once()


@pytest.mark.asyncio
async def test_target_above_bot_is_rejected(service, guild):
    guild.owner.guild_permissions = make_perms('kick_members')
    target = make_member(guild, "admin", position=20)

    result = await service.kick(guild.owner, target)

    assert result.reason == RejectionReason.BOT_HIERARCHY


@pytest.mark.asyncio
async def test_self_and_bot_targets(service, guild, moderator):
    assert (await service.warn(moderator, moderator, "x")).reason == RejectionReason.SELF_TARGET
    assert (await service.warn(moderator, guild.me, "x")).reason == RejectionReason.BOT_TARGET


@pytest.mark.asyncio
async def test_permission_checks(service, guild, moderator, target):
    helper = make_member(guild, "helper", position=5)
    result = await service.kick(helper, target)
    assert result.reason == RejectionReason.MISSING_PERMISSION
    assert "Kick Members" in result.rejection.message

    guild.me.guild_permissions = make_perms()
    result = await service.kick(moderator, target)
    assert result.reason == RejectionReason.BOT_MISSING_PERMISSION


@pytest.mark.asyncio
async def test_kick_requires_membership_but_ban_does_not(service, db, guild, moderator):
    outsider = make_user()

    assert (await service.kick(moderator, outsider)).reason == RejectionReason.NOT_A_MEMBER

    result = await service.ban(moderator, outsider, "raider", delete_days=1)
    assert result.ok
    guild.ban.assert_awaited_once()
    assert guild.ban.await_args.kwargs['delete_message_seconds'] == 86400
    logs = await db.get_mod_logs(guild.id, user_id=outsider.id)
    assert logs[0].action == ModerationAction.BAN


@pytest.mark.asyncio
async def test_ban_delete_days_range(service, guild, moderator, target):
    result = await service.ban(moderator, target, delete_days=8)

    assert result.reason == RejectionReason.INVALID_AMOUNT
    guild.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_dm_failure_does_not_block_action(service, moderator, target):
    target.send.side_effect = forbidden("Cannot send messages to this user")

    result = await service.kick(moderator, target, "rude")

    assert result.ok
    assert result.value.dm_sent is False
    target.kick.assert_awaited_once()


@pytest.mark.asyncio
async def test_dm_is_sent_before_action(service, moderator, target):
    order = []
    target.send.side_effect = lambda **kwargs: order.append('dm')
    target.kick.side_effect = lambda **kwargs: order.append('kick')

    result = await service.kick(moderator, target)

    assert result.value.dm_sent
    assert order == ['dm', 'kick']


def test_select_purgeable_skips_old_messages():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    author = make_user("a")
    other = make_user("b")
    messages = [
        make_message(author, "new", now - timedelta(hours=1)),
        make_message(other, "other", now - timedelta(hours=2)),
        make_message(author, "old", now - timedelta(days=15)),
        make_message(author, "recent", now - timedelta(days=2)),
    ]

    assert [m.content for m in select_purgeable(messages, 3, None, now)] == ["new", "other"]
    assert [m.content for m in select_purgeable(messages, 10, author, now)] == ["new", "recent"]
    assert select_purgeable(messages, 1, other, now)[0].content == "other"


@pytest.mark.asyncio
async def test_purge_deletes_and_logs(service, db, guild, moderator):
    author = make_user("spammer")
    now = datetime.now(timezone.utc)
    channel = FakeChannel(guild, "general", messages=[
        make_message(author, "ancient", now - timedelta(days=20)),
        make_message(author, "one", now - timedelta(minutes=3)),
        make_message(author, "two", now - timedelta(minutes=2)),
        make_message(author, "three", now - timedelta(minutes=1)),
    ])

    result = await service.purge(moderator, channel, 10, reason="cleanup")

    assert result.ok
    assert result.value.deleted_count == 3
    deleted = channel.delete_messages.await_args.args[0]
    assert [m.content for m in deleted] == ["three", "two", "one"]

    logs = await db.get_mod_logs(guild.id, user_id=ALL_USERS)
    assert logs[0].action == ModerationAction.PURGE
    assert "Deleted 3 messages" in logs[0].reason


@pytest.mark.asyncio
async def test_purge_nothing_to_delete(service, guild, moderator):
    author = make_user("old")
    channel = FakeChannel(guild, "general", messages=[
        make_message(author, "ancient", datetime.now(timezone.utc) - timedelta(days=30))
    ])

    result = await service.purge(moderator, channel, 5)

    assert result.reason == RejectionReason.NOTHING_TO_DELETE
    channel.delete_messages.assert_not_awaited()


@pytest.mark.asyncio
async def test_purge_amount_range(service, guild, moderator):
    channel = FakeChannel(guild)
    assert (await service.purge(moderator, channel, 0)).reason == RejectionReason.INVALID_AMOUNT
    assert (await service.purge(moderator, channel, 101)).reason == RejectionReason.INVALID_AMOUNT


@pytest.mark.asyncio
async def test_slowmode(service, db, guild, moderator):
    channel = FakeChannel(guild, "chat")

    assert (await service.set_slowmode(moderator, channel, 30_000)).reason == RejectionReason.INVALID_AMOUNT

    result = await service.set_slowmode(moderator, channel, 30)
    assert result.ok
    channel.edit.assert_awaited_once()
    assert channel.edit.await_args.kwargs['slowmode_delay'] == 30

    logs = await db.get_mod_logs(guild.id, action=ModerationAction.SLOWMODE)
    assert "#chat" in logs[0].reason


@pytest.mark.asyncio
async def test_mirror_posts_to_mod_log(service, db, guild, moderator, target):
    result = await service.kick(moderator, target, "rude")
    assert await service.mirror(guild, result.value) is False

    log_channel = guild.add_channel(FakeChannel(guild, "mod-log"))
    await db.update_guild_settings(guild.id, mod_log_channel=log_channel.id)

    assert await service.mirror(guild, result.value) is True
    embed = log_channel.send.await_args.kwargs['embed']
    assert "KICK" in embed.title


@pytest.mark.asyncio
async def test_mirror_includes_auto_mute_entry(db, reconciler, guild, moderator, target):
    service = ModerationService(db, reconciler, max_warnings=1)
    log_channel = guild.add_channel(FakeChannel(guild, "mod-log"))
    await db.update_guild_settings(guild.id, mod_log_channel=log_channel.id)

    result = await service.warn(moderator, target, "spam")
    await service.mirror(guild, result.value)

    titles = [call.kwargs['embed'].title for call in log_channel.send.await_args_list]
    assert titles == ["🔨 Moderation Action: WARN", "🔨 Moderation Action: AUTO-MUTE"]


@pytest.mark.asyncio
async def test_mirror_failure_is_advisory(service, db, guild, moderator, target):
    log_channel = guild.add_channel(FakeChannel(guild, "mod-log"))
    log_channel.send = AsyncMock(side_effect=discord.HTTPException(http_response(500), "boom"))
    await db.update_guild_settings(guild.id, mod_log_channel=log_channel.id)

    result = await service.kick(moderator, target)
    assert await service.mirror(guild, result.value) is False


@pytest.mark.asyncio
async def test_rejected_ban_never_reaches_platform(service, db, guild):
    helper = make_member(guild, "helper", position=5)

    result = await service.ban(helper, helper, "self ban")

    assert not result.ok
    assert result.reason == RejectionReason.MISSING_PERMISSION
    guild.ban.assert_not_awaited()
    assert await db.get_mod_logs(guild.id, user_id=helper.id) == []
