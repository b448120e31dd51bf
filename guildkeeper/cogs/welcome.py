"""
Welcome System Cog
Welcome messages, auto-roles and the member join listener
"""

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from guildkeeper.dispatch import send_rejection
from guildkeeper.services.onboarding import render_welcome_message
from guildkeeper.utils.embed_builder import EmbedBuilder, EmbedColor

logger = logging.getLogger('guildkeeper.cogs.welcome')


class WelcomeCog(commands.Cog, name="Welcome"):
    welcome = app_commands.Group(
        name="welcome",
        description="Configure welcome message system",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True)
    )
    autorole = app_commands.Group(
        name="autorole",
        description="Configure automatic role assignment",
        guild_only=True,
        default_permissions=discord.Permissions(manage_roles=True)
    )

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.service = bot.onboarding

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member):
        try:
            await self.service.handle_member_join(member)
        except Exception as e:
            logger.error(f"Error handling new member {member} in {member.guild.name}: {e}", exc_info=True)

    # Welcome

    @welcome.command(name="set", description="Set the welcome channel and message")
    @app_commands.describe(
        channel="Channel to send welcome messages",
        message="Welcome message template (use {user} for mention)"
    )
    async def welcome_set(self, interaction: discord.Interaction, channel: discord.TextChannel, message: str):
        result = await self.service.set_welcome(interaction.guild, channel, message)
        if not result.ok:
            return await send_rejection(interaction, result.rejection)

        preview = render_welcome_message(message, interaction.user)
        embed = EmbedBuilder.success(
            "Welcome System Configured",
            f"**Channel:** {channel.mention}\n**Message:** {message}\n\n**Preview:**\n{preview}\n\n"
            "**Tips:**\n"
            "• Use `{user}` to mention the new member\n"
            "• Use `/welcome test` to test the welcome message\n"
            "• Use `/welcome disable` to disable welcome messages"
        )
        await interaction.response.send_message(embed=embed)

    @welcome.command(name="background", description="Set or clear the welcome image background")
    @app_commands.describe(url="Image URL for the welcome card background (leave empty to clear)")
    async def welcome_background(self, interaction: discord.Interaction, url: Optional[str] = None):
        result = await self.service.set_background(interaction.guild, url)
        if not result.ok:
            return await send_rejection(interaction, result.rejection)

        if url:
            embed = EmbedBuilder.success("Background Updated", f"Welcome cards will use this background:\n{url}")
        else:
            embed = EmbedBuilder.success("Background Cleared", "Welcome cards will use the default gradient.")
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @welcome.command(name="toggle_image", description="Enable or disable the welcome image")
    async def welcome_toggle_image(self, interaction: discord.Interaction):
        settings = await self.service.toggle_image(interaction.guild)
        state = "enabled" if settings.welcome_image_enabled else "disabled"
        await interaction.response.send_message(
            embed=EmbedBuilder.success("Welcome Image", f"Welcome images are now **{state}**."),
            ephemeral=True
        )

    @welcome.command(name="disable", description="Disable welcome messages")
    async def welcome_disable(self, interaction: discord.Interaction):
        result = await self.service.disable_welcome(interaction.guild)
        if not result.ok:
            return await interaction.response.send_message(
                embed=EmbedBuilder.info(result.rejection.title, result.rejection.message),
                ephemeral=True
            )

        await interaction.response.send_message(
            embed=EmbedBuilder.success(
                "Welcome System Disabled",
                "Welcome messages have been disabled. New members will no longer receive welcome messages.\n\n"
                "You can re-enable them anytime using `/welcome set`."
            )
        )

    @welcome.command(name="test", description="Send a test welcome message for yourself")
    async def welcome_test(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        result = await self.service.test_welcome(interaction.user)
        if not result.ok:
            return await send_rejection(interaction, result.rejection)

        await interaction.followup.send(
            embed=EmbedBuilder.success(
                "Test Sent",
                f"Test welcome message has been sent to {result.value.mention}!\n\nCheck the channel to see how it looks."
            ),
            ephemeral=True
        )

    @welcome.command(name="view", description="View the current welcome settings")
    async def welcome_view(self, interaction: discord.Interaction):
        settings = await self.service.view_welcome(interaction.guild)

        if not settings.welcome_configured:
            return await interaction.response.send_message(
                embed=EmbedBuilder.info(
                    "Welcome System Settings",
                    "**Status:** Disabled\n\nWelcome messages are not currently configured.\n\n"
                    "Use `/welcome set <channel> <message>` to enable welcome messages."
                ),
                ephemeral=True
            )

        channel = interaction.guild.get_channel(settings.welcome_channel)
        channel_text = channel.mention if channel else f"#deleted-channel ({settings.welcome_channel})"

        embed = (
            EmbedBuilder(title="ℹ️ Welcome System Settings")
            .color(EmbedColor.INFO)
            .field("Status", "Enabled", True)
            .field("Channel", channel_text, True)
            .field("Image", "Enabled" if settings.welcome_image_enabled else "Disabled", True)
            .field("Background", settings.background_url or "Default gradient", False)
            .field("Message", settings.welcome_message, False)
            .field("Preview", render_welcome_message(settings.welcome_message, interaction.user), False)
            .build()
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    # Auto-roles

    @autorole.command(name="add", description="Add a role given to new members")
    @app_commands.describe(role="The role to assign automatically")
    async def autorole_add(self, interaction: discord.Interaction, role: discord.Role):
        result = await self.service.add_autorole(interaction.guild, role)
        if not result.ok:
            return await send_rejection(interaction, result.rejection)

        await interaction.response.send_message(
            embed=EmbedBuilder.success(
                "Auto-Role Added",
                f"{role.mention} will now be automatically assigned to new members."
            )
        )

    @autorole.command(name="remove", description="Stop giving a role to new members")
    @app_commands.describe(role="The role to remove")
    async def autorole_remove(self, interaction: discord.Interaction, role: discord.Role):
        result = await self.service.remove_autorole(interaction.guild, role)
        if not result.ok:
            return await send_rejection(interaction, result.rejection)

        await interaction.response.send_message(
            embed=EmbedBuilder.success(
                "Auto-Role Removed",
                f"{role.mention} will no longer be automatically assigned to new members."
            )
        )

    @autorole.command(name="list", description="List the configured auto-roles")
    async def autorole_list(self, interaction: discord.Interaction):
        roles = await self.service.list_autoroles(interaction.guild)

        if not roles:
            return await interaction.response.send_message(
                embed=EmbedBuilder.info(
                    "Auto-Roles",
                    "No auto-roles are currently configured.\n\n"
                    "Use `/autorole add <role>` to add roles that will be automatically assigned to new members."
                ),
                ephemeral=True
            )

        listing = "\n".join(f"• {role.mention} ({role.name})" for role in roles)
        await interaction.response.send_message(
            embed=EmbedBuilder.info(
                "Auto-Roles Configuration",
                f"**Current Auto-Roles:**\n{listing}\n\n**Total:** {len(roles)} role(s)"
            ),
            ephemeral=True
        )


async def setup(bot: commands.Bot):
    await bot.add_cog(WelcomeCog(bot))
