"""
Ticket Workflow
Creates ticket surfaces, writes transcripts and closes tickets
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Set

import discord

from guildkeeper.config import SUPPORT_ROLE_NAME, TICKET_CATEGORY_NAME, TICKET_DELETE_DELAY
from guildkeeper.db_manager import DatabaseManager
from guildkeeper.models.ticket import Ticket
from guildkeeper.services.reconciliation import Reconciler
from guildkeeper.utils.embed_builder import EmbedBuilder, EmbedColor
from guildkeeper.utils.helpers import ticket_channel_name
from guildkeeper.utils.notify import post_to_channel, send_dm, text_file
from guildkeeper.utils.results import RejectionReason, Result
from guildkeeper.utils.transcript import build_transcript, transcript_filename

logger = logging.getLogger('guildkeeper.tickets')

CLOSE_PERMISSIONS = ('manage_channels', 'manage_threads')


@dataclass
class TicketCreated:
    ticket: Ticket
    surface: object
    support_role: Optional[discord.Role] = None
    logged: bool = False


@dataclass
class TicketClosed:
    ticket: Ticket
    transcript: str
    dm_sent: bool = False
    logged: bool = False


class TicketService:
    def __init__(
        self,
        db: DatabaseManager,
        reconciler: Reconciler,
        view_factory=None,
        delete_delay: float = TICKET_DELETE_DELAY,
        client=None
    ):
        self.db = db
        self.reconciler = reconciler
        self.client = client
        self.view_factory = view_factory
        self.delete_delay = delete_delay
        self._pending_deletes: Set[asyncio.Task] = set()

    # Lookups

    async def _support_role(self, guild, settings) -> Optional[discord.Role]:
        role = guild.get_role(settings.ticket_support_role) if settings.ticket_support_role else None
        if role is None:
            role = discord.utils.find(lambda r: r.name.lower() == SUPPORT_ROLE_NAME.lower(), guild.roles)
        return role

    async def _requester(self, guild, user_id: int):
        member = guild.get_member(user_id)
        if member is not None or self.client is None:
            return member

        try:
            return await self.client.fetch_user(user_id)
        except discord.HTTPException as e:
            logger.warning(f"Could not fetch ticket requester {user_id}: {e}")
            return None

    async def _ticket_category(self, guild, settings):
        category = None
        if settings.ticket_category:
            category = await self.reconciler.resolve_channel(guild, settings.ticket_category)

        if category is None:
            category = discord.utils.find(
                lambda c: c.name.lower() == TICKET_CATEGORY_NAME.lower(),
                guild.categories
            )

        if category is None:
            category = await guild.create_category(
                TICKET_CATEGORY_NAME,
                overwrites={guild.default_role: discord.PermissionOverwrite(view_channel=False)},
                reason="Ticket category"
            )
            logger.info(f"Created ticket category in {guild.name}")

        if category.id != settings.ticket_category:
            await self.db.update_guild_settings(guild.id, ticket_category=category.id)

        return category

    # Surfaces

    async def _create_channel(self, guild, requester, settings, support_role):
        category = await self._ticket_category(guild, settings)

        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            requester: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                attach_files=True
            ),
            guild.me: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                manage_channels=True,
                read_message_history=True
            )
        }

        if support_role is not None:
            overwrites[support_role] = discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                attach_files=True
            )

        return await guild.create_text_channel(
            name=ticket_channel_name(requester.name),
            category=category,
            overwrites=overwrites,
            reason=f"Ticket created by {requester}"
        )

    async def _create_thread(self, parent, requester, support_role):
        thread = await parent.create_thread(
            name=ticket_channel_name(requester.name),
            type=discord.ChannelType.private_thread,
            invitable=False,
            reason=f"Ticket created by {requester}"
        )
        await thread.add_user(requester)

        if support_role is not None:
            for member in support_role.members:
                if member.bot or member.status == discord.Status.offline:
                    continue
                try:
                    await thread.add_user(member)
                except discord.HTTPException as e:
                    logger.warning(f"Could not add {member} to ticket thread {thread.id}: {e}")

        return thread

    async def _discard_surface(self, surface, reason: str):
        try:
            await surface.delete(reason=reason)
        except discord.HTTPException as e:
            logger.warning(f"Failed to delete ticket surface {surface.id}: {e}")

    # Create

    async def create_ticket(self, guild, requester, reason: Optional[str] = None, parent=None) -> Result[TicketCreated]:
        bot_id = guild.me.id
        existing = await self.db.get_open_ticket(guild.id, requester.id)

        if existing is not None:
            surface = await self.reconciler.resolve_ticket_surface(guild, existing, bot_id)
            if surface is not None:
                return Result.reject(
                    RejectionReason.TICKET_EXISTS,
                    "Ticket Already Exists",
                    f"You already have an open ticket: {surface.mention}",
                    detail=surface
                )

        settings = await self.db.get_guild_settings(guild.id)
        support_role = await self._support_role(guild, settings)

        if parent is not None:
            surface = await self._create_thread(parent, requester, support_role)
        else:
            surface = await self._create_channel(guild, requester, settings, support_role)

        try:
            ticket = await self.db.create_ticket(guild.id, surface.id, requester.id, reason)
        except Exception:
            await self._discard_surface(surface, "Ticket creation failed")
            raise

        if ticket is None:
            await self._discard_surface(surface, "Duplicate ticket")
            winner = await self.db.get_open_ticket(guild.id, requester.id)
            mention = f"<#{winner.channel_id}>" if winner else "another channel"
            return Result.reject(
                RejectionReason.TICKET_EXISTS,
                "Ticket Already Exists",
                f"You already have an open ticket: {mention}",
                detail=winner
            )

        intro = EmbedBuilder.ticket_create(requester, reason, settings.ticket_message)
        view = self.view_factory() if self.view_factory else None
        intro_kwargs = {'embed': intro}
        if view is not None:
            intro_kwargs['view'] = view
        if support_role is not None:
            intro_kwargs['content'] = f"{requester.mention} {support_role.mention}"
        else:
            intro_kwargs['content'] = requester.mention

        try:
            await surface.send(**intro_kwargs)
        except discord.HTTPException as e:
            logger.warning(f"Could not post ticket intro in {surface.id}: {e}")

        created = TicketCreated(ticket=ticket, surface=surface, support_role=support_role)
        created.logged = await self._mirror_created(guild, requester, ticket, surface, settings)

        logger.info(f"{requester} created ticket #{ticket.id} ({surface.name}) in {guild.name}")
        return Result.success(created)

    async def _mirror_created(self, guild, requester, ticket: Ticket, surface, settings) -> bool:
        channel = await self.reconciler.resolve_channel(guild, settings.ticket_log_channel)
        if channel is None:
            return False

        embed = (
            EmbedBuilder(title="🎫 Ticket Created")
            .color(EmbedColor.TICKET)
            .field("User", f"{requester.mention} ({requester.id})", True)
            .field("Ticket", surface.mention, True)
            .field("Reason", ticket.reason or "No reason provided", False)
            .footer(f"Ticket ID: {ticket.id}")
            .build()
        )
        return await post_to_channel(channel, embed=embed)

    # Close

    def _may_close(self, actor, ticket: Ticket) -> bool:
        if actor.id == ticket.user_id:
            return True

        granted = getattr(actor, 'guild_permissions', None)
        if granted is None:
            return False
        if granted.administrator:
            return True
        return any(getattr(granted, perm, False) for perm in CLOSE_PERMISSIONS)

    async def close_ticket(self, channel, actor, reason: Optional[str] = None) -> Result[TicketClosed]:
        ticket = await self.db.get_ticket_by_channel(channel.id)
        if ticket is None:
            return Result.reject(
                RejectionReason.NOT_A_TICKET,
                "Not a Ticket",
                "This command can only be used in ticket channels."
            )

        if not ticket.is_open:
            return Result.reject(
                RejectionReason.TICKET_ALREADY_CLOSED,
                "Already Closed",
                "This ticket is already closed."
            )

        if not self._may_close(actor, ticket):
            logger.info(f"{actor} ({actor.id}) denied closing ticket #{ticket.id}")
            return Result.reject(
                RejectionReason.MISSING_PERMISSION,
                "Missing Permissions",
                "Only the ticket owner or staff members can close this ticket."
            )

        closed_at = datetime.now(timezone.utc)
        messages = [message async for message in channel.history(limit=None, oldest_first=True)]
        transcript = build_transcript(channel.name, messages, actor, reason, closed_at)

        stored_reason = reason or "No reason provided"
        if not await self.db.close_ticket(ticket.id, actor.id, closed_at, stored_reason):
            return Result.reject(
                RejectionReason.TICKET_ALREADY_CLOSED,
                "Already Closed",
                "This ticket is already closed."
            )
        ticket.close(actor.id, closed_at, stored_reason)

        outcome = TicketClosed(ticket=ticket, transcript=transcript)

        try:
            await channel.send(embed=EmbedBuilder.ticket_close(actor, reason, int(self.delete_delay)))
        except discord.HTTPException as e:
            logger.warning(f"Could not post closing notice in {channel.id}: {e}")

        guild = channel.guild
        filename = transcript_filename(channel.name)

        requester = await self._requester(guild, ticket.user_id)
        if requester is not None:
            dm_embed = (
                EmbedBuilder(
                    title="🎫 Ticket Closed",
                    description=f"Your ticket **{channel.name}** in **{guild.name}** has been closed."
                )
                .color(EmbedColor.TICKET)
                .field("Closed By", str(actor), True)
                .field("Reason", reason or "No reason provided", False)
                .build()
            )
            outcome.dm_sent = await send_dm(requester, embed=dm_embed, file=text_file(transcript, filename))

        outcome.logged = await self._mirror_closed(guild, actor, ticket, channel, reason, transcript, filename)

        self._schedule_delete(channel, actor)
        logger.info(f"{actor} closed ticket #{ticket.id} ({channel.name}) in {guild.name}")
        return Result.success(outcome)

    async def _mirror_closed(self, guild, actor, ticket: Ticket, channel, reason, transcript: str, filename: str) -> bool:
        settings = await self.db.get_guild_settings(guild.id)
        log_channel = await self.reconciler.resolve_channel(guild, settings.ticket_log_channel)
        if log_channel is None:
            return False

        embed = (
            EmbedBuilder(title="🔒 Ticket Closed")
            .color(EmbedColor.ERROR)
            .field("Ticket", channel.name, True)
            .field("Opened By", f"<@{ticket.user_id}>", True)
            .field("Closed By", f"{actor.mention} ({actor.id})", True)
            .field("Reason", reason or "No reason provided", False)
            .footer(f"Ticket ID: {ticket.id}")
            .build()
        )
        return await post_to_channel(log_channel, embed=embed, file=text_file(transcript, filename))

    def _schedule_delete(self, channel, actor):
        task = asyncio.create_task(self._delete_later(channel, actor))
        self._pending_deletes.add(task)
        task.add_done_callback(self._pending_deletes.discard)

    async def _delete_later(self, channel, actor):
        await asyncio.sleep(self.delete_delay)
        try:
            await channel.delete(reason=f"Ticket closed by {actor}")
        except discord.NotFound:
            pass
        except discord.HTTPException as e:
            logger.warning(f"Failed to delete ticket surface {channel.id}: {e}")

    async def shutdown(self):
        for task in list(self._pending_deletes):
            task.cancel()
        if self._pending_deletes:
            await asyncio.gather(*self._pending_deletes, return_exceptions=True)
