"""
Reconciliation
Dereferences stored channel, role and ticket ids and repairs stale rows
"""

import logging
from typing import Optional

import discord

from guildkeeper.db_manager import DatabaseManager
from guildkeeper.models.ticket import Ticket

logger = logging.getLogger('guildkeeper.reconciliation')

STALE_TICKET_REASON = "Ticket surface no longer exists"


class Reconciler:
    """Single place where stored references are resolved against the live guild.

    A reference that no longer resolves is repaired according to its kind:
    open tickets are closed, auto-role rows are deleted, settings channels are
    reported as missing and left in place.
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def resolve_channel(self, guild, channel_id: Optional[int]):
        if not channel_id:
            return None

        channel = guild.get_channel_or_thread(channel_id)
        if channel is None:
            logger.debug(f"Configured channel {channel_id} not found in guild {guild.id}")
        return channel

    async def resolve_ticket_surface(self, guild, ticket: Ticket, bot_user_id: int):
        surface = guild.get_channel_or_thread(ticket.channel_id)
        if surface is not None:
            return surface

        try:
            surface = await guild.fetch_channel(ticket.channel_id)
        except discord.NotFound:
            surface = None
        except discord.Forbidden:
            logger.warning(f"Cannot fetch ticket surface {ticket.channel_id} in guild {guild.id}")
            return None

        if surface is not None:
            return surface

        if ticket.is_open and ticket.id is not None:
            closed = await self.db.close_ticket(ticket.id, bot_user_id, reason=STALE_TICKET_REASON)
            if closed:
                ticket.close(bot_user_id, reason=STALE_TICKET_REASON)
                logger.info(
                    f"Closed stale ticket #{ticket.id} for user {ticket.user_id} "
                    f"in guild {guild.id}: {STALE_TICKET_REASON}"
                )
        return None

    async def resolve_auto_role(self, guild, role_id: int):
        role = guild.get_role(role_id)
        if role is not None:
            return role

        logger.warning(f"Auto-role {role_id} not found in {guild.name}, removing it")
        await self.db.remove_auto_role(guild.id, role_id)
        return None
