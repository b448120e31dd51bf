"""
Admin Cog
Custom embed announcements for server staff
"""

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from guildkeeper.dispatch import send_rejection
from guildkeeper.services.onboarding import missing_channel_permissions
from guildkeeper.utils.embed_builder import EmbedBuilder, EmbedColor
from guildkeeper.utils.results import RejectionReason, Result
from guildkeeper.utils.validators import is_valid_url, validate_hex_color

logger = logging.getLogger('guildkeeper.cogs.admin')


def build_custom_embed(
    title: Optional[str] = None,
    description: Optional[str] = None,
    color: Optional[str] = None,
    image: Optional[str] = None,
    thumbnail: Optional[str] = None,
    footer: Optional[str] = None
) -> Result[discord.Embed]:
    if not title and not description:
        return Result.reject(
            RejectionReason.INVALID_INPUT,
            "Missing Content",
            "Please provide at least a title or description for the embed."
        )

    builder = EmbedBuilder(title=title, description=description)

    if color:
        valid, value = validate_hex_color(color)
        if not valid:
            return Result.reject(
                RejectionReason.INVALID_INPUT,
                "Invalid Color",
                "Please provide a valid hex color code (e.g., #FF0000)."
            )
        builder.color(value)
    else:
        builder.color(EmbedColor.PRIMARY)

    if image:
        if not is_valid_url(image):
            return Result.reject(RejectionReason.INVALID_INPUT, "Invalid Image URL", "Please provide a valid image URL.")
        builder.image(image)

    if thumbnail:
        if not is_valid_url(thumbnail):
            return Result.reject(
                RejectionReason.INVALID_INPUT,
                "Invalid Thumbnail URL",
                "Please provide a valid thumbnail URL."
            )
        builder.thumbnail(thumbnail)

    if footer:
        builder.footer(footer)

    return Result.success(builder.build())


class AdminCog(commands.Cog, name="Admin"):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="embed", description="Send a custom embed")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_messages=True)
    @app_commands.describe(
        title="Embed title",
        description="Embed description",
        color="Hex color such as #FF0000",
        image="Image URL",
        thumbnail="Thumbnail URL",
        footer="Footer text",
        channel="Channel to send the embed to (defaults to this one)"
    )
    async def embed(
        self,
        interaction: discord.Interaction,
        title: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        image: Optional[str] = None,
        thumbnail: Optional[str] = None,
        footer: Optional[str] = None,
        channel: Optional[discord.TextChannel] = None
    ):
        result = build_custom_embed(title, description, color, image, thumbnail, footer)
        if not result.ok:
            return await send_rejection(interaction, result.rejection)

        if channel is None:
            await interaction.response.send_message(embed=result.value)
            logger.info(f"{interaction.user} created custom embed in #{interaction.channel} ({interaction.guild.name})")
            return

        if missing_channel_permissions(channel, interaction.guild.me):
            return await interaction.response.send_message(
                embed=EmbedBuilder.error(
                    "Channel Permissions",
                    "I need View Channel, Send Messages, and Embed Links permissions in that channel."
                ),
                ephemeral=True
            )

        await channel.send(embed=result.value)
        await interaction.response.send_message(
            embed=EmbedBuilder.success("Embed Sent", f"Your embed has been sent to {channel.mention}."),
            ephemeral=True
        )
        logger.info(f"{interaction.user} created custom embed in #{channel.name} ({interaction.guild.name})")


async def setup(bot: commands.Bot):
    await bot.add_cog(AdminCog(bot))
