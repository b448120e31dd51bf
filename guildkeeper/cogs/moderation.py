"""
Moderation Cog
Slash commands for banning, kicking, muting, warning and channel cleanup
"""

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from guildkeeper.dispatch import send_rejection
from guildkeeper.services.moderation import ModerationOutcome
from guildkeeper.utils.embed_builder import EmbedBuilder, EmbedColor

logger = logging.getLogger('guildkeeper.cogs.moderation')


class ModerationCog(commands.Cog, name="Moderation"):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.service = bot.moderation

    async def _finish(self, interaction: discord.Interaction, result, embed_factory):
        if not result.ok:
            return await send_rejection(interaction, result.rejection)

        outcome: ModerationOutcome = result.value
        embed = embed_factory(outcome)

        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed)

        await self.service.mirror(interaction.guild, outcome)

    @staticmethod
    def _dm_field(outcome: ModerationOutcome) -> str:
        return "✅" if outcome.dm_sent else "❌"

    @app_commands.command(name="ban", description="Ban a user from the server")
    @app_commands.guild_only()
    @app_commands.default_permissions(ban_members=True)
    @app_commands.describe(
        user="The user to ban",
        reason="Reason for the ban",
        delete_days="Days of messages to delete (0-7)"
    )
    async def ban(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        reason: Optional[str] = None,
        delete_days: app_commands.Range[int, 0, 7] = 0
    ):
        result = await self.service.ban(interaction.user, user, reason, delete_days)

        def embed(outcome: ModerationOutcome) -> discord.Embed:
            return (
                EmbedBuilder(
                    title="🔨 User Banned",
                    description=f"{outcome.target.mention} has been banned from the server."
                )
                .color(EmbedColor.MODERATION)
                .field("Reason", outcome.reason, False)
                .field("Messages Deleted", f"{outcome.delete_days} day(s)", True)
                .field("DM Sent", self._dm_field(outcome), True)
                .build()
            )

        await self._finish(interaction, result, embed)

    @app_commands.command(name="kick", description="Kick a member from the server")
    @app_commands.guild_only()
    @app_commands.default_permissions(kick_members=True)
    @app_commands.describe(user="The member to kick", reason="Reason for the kick")
    async def kick(self, interaction: discord.Interaction, user: discord.User, reason: Optional[str] = None):
        result = await self.service.kick(interaction.user, user, reason)

        def embed(outcome: ModerationOutcome) -> discord.Embed:
            return (
                EmbedBuilder(
                    title="👢 Member Kicked",
                    description=f"{outcome.target.mention} has been kicked from the server."
                )
                .color(EmbedColor.MODERATION)
                .field("Reason", outcome.reason, False)
                .field("DM Sent", self._dm_field(outcome), True)
                .build()
            )

        await self._finish(interaction, result, embed)

    @app_commands.command(name="mute", description="Timeout a member")
    @app_commands.guild_only()
    @app_commands.default_permissions(moderate_members=True)
    @app_commands.describe(
        user="The member to mute",
        duration="Duration such as 10m, 1h or 2d (default 1h, max 28d)",
        reason="Reason for the mute"
    )
    async def mute(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        duration: Optional[str] = None,
        reason: Optional[str] = None
    ):
        result = await self.service.mute(interaction.user, user, duration, reason)

        def embed(outcome: ModerationOutcome) -> discord.Embed:
            return (
                EmbedBuilder(
                    title="🔇 Member Muted",
                    description=f"{outcome.target.mention} has been muted."
                )
                .color(EmbedColor.MODERATION)
                .field("Duration", outcome.duration_text, True)
                .field("DM Sent", self._dm_field(outcome), True)
                .field("Reason", outcome.reason, False)
                .build()
            )

        await self._finish(interaction, result, embed)

    @app_commands.command(name="unmute", description="Remove a timeout from a member")
    @app_commands.guild_only()
    @app_commands.default_permissions(moderate_members=True)
    @app_commands.describe(user="The member to unmute", reason="Reason for the unmute")
    async def unmute(self, interaction: discord.Interaction, user: discord.User, reason: Optional[str] = None):
        result = await self.service.unmute(interaction.user, user, reason)

        def embed(outcome: ModerationOutcome) -> discord.Embed:
            return (
                EmbedBuilder(
                    title="🔊 Member Unmuted",
                    description=f"{outcome.target.mention} has been unmuted."
                )
                .color(EmbedColor.SUCCESS)
                .field("Reason", outcome.reason, False)
                .build()
            )

        await self._finish(interaction, result, embed)

    @app_commands.command(name="warn", description="Warn a member")
    @app_commands.guild_only()
    @app_commands.default_permissions(moderate_members=True)
    @app_commands.describe(user="The member to warn", reason="Reason for the warning")
    async def warn(self, interaction: discord.Interaction, user: discord.User, reason: str):
        result = await self.service.warn(interaction.user, user, reason)

        def embed(outcome: ModerationOutcome) -> discord.Embed:
            builder = (
                EmbedBuilder(
                    title="⚠️ Member Warned",
                    description=f"{outcome.target.mention} has been warned."
                )
                .color(EmbedColor.WARNING)
                .field("Reason", outcome.reason, False)
                .field("DM Sent", self._dm_field(outcome), True)
                .field("Total Warnings", f"{outcome.warning_count}/{self.service.max_warnings}", True)
            )

            if outcome.auto_muted:
                builder.field(
                    "🤖 Automatic Punishment",
                    f"User has been muted for 24 hours after reaching {outcome.warning_count} warnings.",
                    False
                )
            elif outcome.auto_mute_failed:
                builder.field(
                    "⚠️ Automatic Punishment Failed",
                    "The warning threshold was reached but I could not mute this user.",
                    False
                )

            return builder.build()

        await self._finish(interaction, result, embed)

    @app_commands.command(name="purge", description="Bulk delete recent messages")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_messages=True)
    @app_commands.describe(
        amount="Number of messages to delete (1-100)",
        user="Only delete messages from this user",
        reason="Reason for the purge"
    )
    async def purge(
        self,
        interaction: discord.Interaction,
        amount: app_commands.Range[int, 1, 100],
        user: Optional[discord.User] = None,
        reason: Optional[str] = None
    ):
        await interaction.response.defer(ephemeral=True)
        result = await self.service.purge(interaction.user, interaction.channel, amount, user, reason)

        def embed(outcome: ModerationOutcome) -> discord.Embed:
            description = f"Deleted **{outcome.deleted_count}** message(s)"
            if outcome.target is not None:
                description += f" from {outcome.target.mention}"
            return EmbedBuilder.success("Messages Purged", description + ".")

        await self._finish(interaction, result, embed)

    @app_commands.command(name="slowmode", description="Set the channel slowmode")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_channels=True)
    @app_commands.describe(
        seconds="Slowmode delay in seconds (0 disables, max 21600)",
        channel="Channel to update (defaults to this one)",
        reason="Reason for the change"
    )
    async def slowmode(
        self,
        interaction: discord.Interaction,
        seconds: app_commands.Range[int, 0, 21600],
        channel: Optional[discord.TextChannel] = None,
        reason: Optional[str] = None
    ):
        channel = channel or interaction.channel
        result = await self.service.set_slowmode(interaction.user, channel, seconds, reason)

        def embed(outcome: ModerationOutcome) -> discord.Embed:
            if outcome.slowmode_seconds:
                return EmbedBuilder.success(
                    "Slowmode Updated",
                    f"Slowmode in {outcome.channel.mention} set to **{outcome.slowmode_seconds}** second(s)."
                )
            return EmbedBuilder.success("Slowmode Disabled", f"Slowmode in {outcome.channel.mention} has been disabled.")

        await self._finish(interaction, result, embed)


async def setup(bot: commands.Bot):
    await bot.add_cog(ModerationCog(bot))
