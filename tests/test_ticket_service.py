import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from guildkeeper.models.ticket import TicketStatus
from guildkeeper.services.tickets import TicketService
from guildkeeper.utils.results import RejectionReason

from tests.fakes import FakeChannel, forbidden, make_member, make_message, make_perms, make_role


@pytest.fixture
def service(db, reconciler):
    return TicketService(db, reconciler, delete_delay=0)


@pytest.fixture
def requester(guild):
    return make_member(guild, "Alice")


async def settle(service):
    if service._pending_deletes:
        await asyncio.gather(*service._pending_deletes)


@pytest.mark.asyncio
async def test_create_ticket_channel(service, db, guild, requester):
    result = await service.create_ticket(guild, requester, "billing")

    assert result.ok
    created = result.value
    surface = created.surface
    assert surface.name.startswith("ticket-alice-")
    assert guild.get_channel(surface.id) is surface

    stored = await db.get_open_ticket(guild.id, requester.id)
    assert stored.channel_id == surface.id
    assert stored.reason == "billing"

    # category is created once and remembered
    guild.create_category.assert_awaited_once()
    settings = await db.get_guild_settings(guild.id)
    assert settings.ticket_category == surface.category.id

    overwrites = surface.overwrites
    assert overwrites[guild.default_role].view_channel is False
    assert overwrites[requester].view_channel is True

    surface.send.assert_awaited_once()
    assert surface.send.await_args.kwargs['content'] == requester.mention


@pytest.mark.asyncio
async def test_existing_open_ticket_is_reported(service, guild, requester):
    first = await service.create_ticket(guild, requester)
    second = await service.create_ticket(guild, requester)

    assert second.reason == RejectionReason.TICKET_EXISTS
    assert second.rejection.detail is first.value.surface
    assert first.value.surface.mention in second.rejection.message
    assert guild.create_text_channel.await_count == 1


@pytest.mark.asyncio
async def test_stale_ticket_is_closed_before_creating(service, db, guild, requester):
    stale = await db.create_ticket(guild.id, 999_999, requester.id, "old")

    result = await service.create_ticket(guild, requester, "new")

    assert result.ok
    old = await db.get_ticket_by_channel(999_999)
    assert old.status == TicketStatus.CLOSED
    assert old.closed_by == guild.me.id
    assert old.reason == "Ticket surface no longer exists"
    assert old.id == stale.id

    current = await db.get_open_ticket(guild.id, requester.id)
    assert current.channel_id == result.value.surface.id


@pytest.mark.asyncio
async def test_losing_creation_race_discards_surface(service, db, guild, requester):
    winner = await db.create_ticket(guild.id, 555_555, requester.id)
    db.get_open_ticket = AsyncMock(side_effect=[None, winner])

    result = await service.create_ticket(guild, requester)

    assert result.reason == RejectionReason.TICKET_EXISTS
    assert "<#555555>" in result.rejection.message
    created_surface = list(guild.channels.values())[-1]
    created_surface.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_store_failure_removes_new_surface(service, db, guild, requester):
    db.create_ticket = AsyncMock(side_effect=RuntimeError("database is locked"))

    with pytest.raises(RuntimeError):
        await service.create_ticket(guild, requester)

    created_surface = list(guild.channels.values())[-1]
    created_surface.delete.assert_awaited_once()
    created_surface.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_support_role_is_granted_access(service, db, guild, requester):
    role = guild.add_role(make_role("Helpers", position=3))
    await db.update_guild_settings(guild.id, ticket_support_role=role.id)

    result = await service.create_ticket(guild, requester)

    surface = result.value.surface
    assert result.value.support_role is role
    assert surface.overwrites[role].send_messages is True
    assert role.mention in surface.send.await_args.kwargs['content']


@pytest.mark.asyncio
async def test_thread_ticket_adds_online_support(service, guild, requester):
    role = guild.add_role(make_role("Support Team", position=3))
    online = make_member(guild, "online")
    offline = make_member(guild, "offline", status=discord.Status.offline)
    robot = make_member(guild, "robot", bot=True)
    role.members = [online, offline, robot]

    panel = guild.add_channel(FakeChannel(guild, "support"))
    result = await service.create_ticket(guild, requester, parent=panel)

    assert result.ok
    thread = result.value.surface
    panel.create_thread.assert_awaited_once()
    assert panel.create_thread.await_args.kwargs['type'] == discord.ChannelType.private_thread
    added = [call.args[0] for call in thread.add_user.await_args_list]
    assert added == [requester, online]
    guild.create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_creation_is_mirrored_to_ticket_log(service, db, guild, requester):
    log_channel = guild.add_channel(FakeChannel(guild, "ticket-log"))
    await db.update_guild_settings(guild.id, ticket_log_channel=log_channel.id)

    result = await service.create_ticket(guild, requester, "question")

    assert result.value.logged
    embed = log_channel.send.await_args.kwargs['embed']
    assert embed.title == "🎫 Ticket Created"


@pytest.mark.asyncio
async def test_close_outside_ticket(service, guild, requester):
    channel = guild.add_channel(FakeChannel(guild, "general"))

    result = await service.close_ticket(channel, requester)

    assert result.reason == RejectionReason.NOT_A_TICKET


@pytest.mark.asyncio
async def test_close_requires_owner_or_staff(service, guild, requester):
    created = await service.create_ticket(guild, requester)
    surface = created.value.surface

    stranger = make_member(guild, "stranger")
    result = await service.close_ticket(surface, stranger)
    assert result.reason == RejectionReason.MISSING_PERMISSION

    staff = make_member(guild, "staff", permissions=make_perms('manage_threads'))
    result = await service.close_ticket(surface, staff, "resolved")
    assert result.ok
    await settle(service)


@pytest.mark.asyncio
async def test_close_writes_transcript_and_cleans_up(service, db, guild, requester):
    log_channel = guild.add_channel(FakeChannel(guild, "ticket-log"))
    await db.update_guild_settings(guild.id, ticket_log_channel=log_channel.id)

    created = await service.create_ticket(guild, requester, "help")
    surface = created.value.surface
    surface.messages = [
        make_message(requester, "my order is missing"),
        make_message(guild.me, ""),
    ]

    result = await service.close_ticket(surface, requester, "solved")

    assert result.ok
    closed = result.value
    assert "Reason: solved" in closed.transcript
    assert "my order is missing" in closed.transcript
    assert "[No text content]" in closed.transcript
    assert closed.dm_sent
    assert closed.logged

    requester.send.assert_awaited_once()
    assert requester.send.await_args.kwargs['file'].filename == f"ticket-{surface.name}-transcript.txt"
    assert log_channel.send.await_args.kwargs['file'] is not None

    stored = await db.get_ticket_by_channel(surface.id)
    assert stored.status == TicketStatus.CLOSED
    assert stored.closed_by == requester.id
    assert stored.reason == "solved"

    await settle(service)
    surface.delete.assert_awaited_once()

    again = await service.close_ticket(surface, requester)
    assert again.reason == RejectionReason.TICKET_ALREADY_CLOSED


@pytest.mark.asyncio
async def test_close_survives_closed_dms(service, guild, requester):
    created = await service.create_ticket(guild, requester)
    surface = created.value.surface
    requester.send.side_effect = forbidden("DMs closed")

    result = await service.close_ticket(surface, requester)

    assert result.ok
    assert result.value.dm_sent is False
    await settle(service)


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_deletes(db, reconciler, guild, requester):
    service = TicketService(db, reconciler, delete_delay=60)
    created = await service.create_ticket(guild, requester)
    surface = created.value.surface

    await service.close_ticket(surface, requester)
    assert len(service._pending_deletes) == 1

    await service.shutdown()
    surface.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_close_without_reason_records_default(service, db, guild, requester):
    created = await service.create_ticket(guild, requester, "billing")
    surface = created.value.surface

    result = await service.close_ticket(surface, requester)

    assert result.value.ticket.reason == "No reason provided"
    stored = await db.get_ticket_by_channel(surface.id)
    assert stored.reason == "No reason provided"
    await settle(service)


@pytest.mark.asyncio
async def test_transcript_reaches_requester_who_left(db, reconciler, guild, requester):
    client = SimpleNamespace(fetch_user=AsyncMock(return_value=requester))
    service = TicketService(db, reconciler, delete_delay=0, client=client)
    created = await service.create_ticket(guild, requester)
    surface = created.value.surface
    del guild.members[requester.id]

    result = await service.close_ticket(surface, requester)

    client.fetch_user.assert_awaited_once_with(requester.id)
    assert result.value.dm_sent
    requester.send.assert_awaited_once()
    await settle(service)
