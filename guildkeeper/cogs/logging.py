"""
Logging Cog
Log channel configuration and member/message event mirroring
"""

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from guildkeeper.models.guild import LOG_FIELDS
from guildkeeper.services.onboarding import missing_channel_permissions
from guildkeeper.utils.embed_builder import EmbedBuilder
from guildkeeper.utils.notify import post_to_channel

logger = logging.getLogger('guildkeeper.cogs.logging')

LOG_LABELS = {
    'mod_log_channel': ("Moderation Log", "Mod Log Configured", "Moderation actions"),
    'member_log_channel': ("Member Log", "Member Log Configured", "Member joins and leaves"),
    'message_log_channel': ("Message Log", "Message Log Configured", "Message edits and deletions")
}


class LoggingCog(commands.Cog, name="Logging"):
    logs = app_commands.Group(
        name="logs",
        description="Configure logging channels",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True)
    )

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def _get_log_channel(self, guild: discord.Guild, field: str):
        settings = await self.bot.db.get_guild_settings(guild.id)
        return await self.bot.reconciler.resolve_channel(guild, getattr(settings, field))

    # Listeners

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member):
        try:
            channel = await self._get_log_channel(member.guild, 'member_log_channel')
            await post_to_channel(channel, embed=EmbedBuilder.log_member_leave(member))
        except Exception as e:
            logger.error(f"Error logging member leave for {member} in {member.guild.name}: {e}", exc_info=True)

    @commands.Cog.listener()
    async def on_message_delete(self, message: discord.Message):
        if not message.guild or message.author.bot:
            return

        try:
            channel = await self._get_log_channel(message.guild, 'message_log_channel')
            await post_to_channel(channel, embed=EmbedBuilder.log_message_delete(message))
        except Exception as e:
            logger.error(f"Error logging deleted message {message.id}: {e}", exc_info=True)

    @commands.Cog.listener()
    async def on_message_edit(self, before: discord.Message, after: discord.Message):
        if not after.guild or after.author.bot:
            return

        if before.content == after.content:
            return

        try:
            channel = await self._get_log_channel(after.guild, 'message_log_channel')
            await post_to_channel(channel, embed=EmbedBuilder.log_message_edit(before, after))
        except Exception as e:
            logger.error(f"Error logging edited message {after.id}: {e}", exc_info=True)

    # Configuration

    async def _set_log_channel(self, interaction: discord.Interaction, field: str, channel: discord.TextChannel):
        if missing_channel_permissions(channel, interaction.guild.me):
            return await interaction.response.send_message(
                embed=EmbedBuilder.error(
                    "Missing Permissions",
                    "I need View Channel, Send Messages, and Embed Links permissions in that channel."
                ),
                ephemeral=True
            )

        await self.bot.db.update_guild_settings(interaction.guild.id, **{field: channel.id})

        label, title, covers = LOG_LABELS[field]
        await interaction.response.send_message(
            embed=EmbedBuilder.success(title, f"{covers} will now be logged in {channel.mention}.")
        )
        logger.info(f"{interaction.user} set {label.lower()} to #{channel.name} in {interaction.guild.name}")

    @logs.command(name="mod_log", description="Set the moderation log channel")
    @app_commands.describe(channel="Channel for moderation logs")
    async def logs_mod(self, interaction: discord.Interaction, channel: discord.TextChannel):
        await self._set_log_channel(interaction, 'mod_log_channel', channel)

    @logs.command(name="member_log", description="Set the member join/leave log channel")
    @app_commands.describe(channel="Channel for member join/leave logs")
    async def logs_member(self, interaction: discord.Interaction, channel: discord.TextChannel):
        await self._set_log_channel(interaction, 'member_log_channel', channel)

    @logs.command(name="message_log", description="Set the message edit/delete log channel")
    @app_commands.describe(channel="Channel for message logs")
    async def logs_message(self, interaction: discord.Interaction, channel: discord.TextChannel):
        await self._set_log_channel(interaction, 'message_log_channel', channel)

    @logs.command(name="disable", description="Disable all logging")
    async def logs_disable(self, interaction: discord.Interaction):
        await self.bot.db.update_guild_settings(interaction.guild.id, **{field: None for field in LOG_FIELDS})

        await interaction.response.send_message(
            embed=EmbedBuilder.success(
                "Logging Disabled",
                "All logging has been disabled. You can re-enable specific logs using `/logs` commands."
            )
        )
        logger.info(f"{interaction.user} disabled all logging in {interaction.guild.name}")

    @logs.command(name="view", description="View the current logging settings")
    async def logs_view(self, interaction: discord.Interaction):
        settings = await self.bot.db.get_guild_settings(interaction.guild.id)

        lines = []
        for field in LOG_FIELDS:
            channel_id: Optional[int] = getattr(settings, field)
            if not channel_id:
                continue
            channel = interaction.guild.get_channel(channel_id)
            lines.append(f"**{LOG_LABELS[field][0]}:** {channel.mention if channel else 'Channel not found'}")

        await interaction.response.send_message(
            embed=EmbedBuilder.info(
                "Current Logging Settings",
                "\n".join(lines) if lines else "No logging channels configured."
            ),
            ephemeral=True
        )


async def setup(bot: commands.Bot):
    await bot.add_cog(LoggingCog(bot))
