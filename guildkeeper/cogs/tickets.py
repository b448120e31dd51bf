"""
Ticket System Cog
Ticket commands, the ticket panel and persistent ticket buttons
"""

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from guildkeeper.dispatch import DispatchedView, send_rejection
from guildkeeper.services.onboarding import missing_channel_permissions
from guildkeeper.utils.embed_builder import EmbedBuilder, EmbedColor
from guildkeeper.utils.permissions import missing_permissions

logger = logging.getLogger('guildkeeper.cogs.tickets')

PANEL_BOT_PERMISSIONS = ('manage_threads', 'create_private_threads', 'send_messages', 'view_channel', 'embed_links')

DEFAULT_PANEL_MESSAGE = (
    "Need help? Create a support ticket by clicking the button below!\n\n"
    "**What happens next:**\n"
    "• A private thread will be created for you\n"
    "• Our support team will be notified\n"
    "• You can discuss your issue privately\n\n"
    "**Before creating a ticket:**\n"
    "• Check our FAQ for common questions\n"
    "• Make sure your issue hasn't been resolved\n"
    "• Be ready to provide details about your problem"
)


async def open_ticket(bot, interaction: discord.Interaction, reason: Optional[str] = None, parent=None):
    result = await bot.tickets.create_ticket(interaction.guild, interaction.user, reason, parent=parent)
    if not result.ok:
        return await send_rejection(interaction, result.rejection)

    surface = result.value.surface
    await interaction.followup.send(
        embed=EmbedBuilder.success(
            "Ticket Created",
            f"Your support ticket has been created: {surface.mention}\n\n"
            "Please head over to your ticket to continue."
        ),
        ephemeral=True
    )


async def close_ticket(bot, interaction: discord.Interaction, reason: Optional[str] = None):
    result = await bot.tickets.close_ticket(interaction.channel, interaction.user, reason)
    if not result.ok:
        return await send_rejection(interaction, result.rejection)

    closed = result.value
    notes = ["The transcript was sent to the ticket owner." if closed.dm_sent else "The ticket owner could not be messaged."]
    if closed.logged:
        notes.append("A copy was posted to the ticket log.")

    await interaction.followup.send(embed=EmbedBuilder.success("Ticket Closed", " ".join(notes)), ephemeral=True)


class TicketControlsView(DispatchedView):
    def __init__(self, bot: commands.Bot):
        super().__init__(bot.dispatcher, timeout=None)
        self.bot = bot

    @discord.ui.button(label="Close Ticket", style=discord.ButtonStyle.danger, custom_id="ticket:close", emoji="🔒")
    async def close(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer(ephemeral=True)
        await close_ticket(self.bot, interaction, "Closed via button")


class TicketPanelView(DispatchedView):
    def __init__(self, bot: commands.Bot):
        super().__init__(bot.dispatcher, timeout=None)
        self.bot = bot

    @discord.ui.button(label="Create Ticket", style=discord.ButtonStyle.primary, custom_id="ticket:create", emoji="📩")
    async def create(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer(ephemeral=True, thinking=True)
        parent = interaction.channel if isinstance(interaction.channel, discord.TextChannel) else None
        await open_ticket(self.bot, interaction, parent=parent)


class TicketsCog(commands.Cog, name="Tickets"):
    setup_group = app_commands.Group(
        name="setup",
        description="Setup various bot features",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True)
    )

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.bot.tickets.view_factory = lambda: TicketControlsView(bot)
        self.bot.add_view(TicketControlsView(bot))
        self.bot.add_view(TicketPanelView(bot))

    @app_commands.command(name="ticket", description="Create a support ticket")
    @app_commands.guild_only()
    @app_commands.describe(reason="Brief description of your issue")
    async def ticket(self, interaction: discord.Interaction, reason: Optional[str] = None):
        await interaction.response.defer(ephemeral=True, thinking=True)
        await open_ticket(self.bot, interaction, reason)

    @app_commands.command(name="close", description="Close the current ticket")
    @app_commands.guild_only()
    @app_commands.describe(reason="Reason for closing the ticket")
    async def close(self, interaction: discord.Interaction, reason: Optional[str] = None):
        await interaction.response.defer(ephemeral=True)
        await close_ticket(self.bot, interaction, reason)

    @setup_group.command(name="ticket", description="Setup ticket system with button")
    @app_commands.describe(
        channel="Channel where the ticket panel will be sent",
        message="Custom message for the ticket panel",
        support_role="Role that will be pinged when tickets are created"
    )
    async def setup_ticket(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        message: Optional[str] = None,
        support_role: Optional[discord.Role] = None
    ):
        guild = interaction.guild

        if missing_permissions(guild.me, PANEL_BOT_PERMISSIONS):
            return await interaction.response.send_message(
                embed=EmbedBuilder.error(
                    "Bot Missing Permissions",
                    "I need permissions to manage threads, create private threads, send messages, "
                    "view channels, and embed links."
                ),
                ephemeral=True
            )

        if missing_channel_permissions(channel, guild.me):
            return await interaction.response.send_message(
                embed=EmbedBuilder.error(
                    "Channel Permissions",
                    "I need View Channel, Send Messages, and Embed Links permissions in the target channel."
                ),
                ephemeral=True
            )

        await self.bot.db.update_guild_settings(
            guild.id,
            ticket_channel=channel.id,
            ticket_message=message,
            ticket_support_role=support_role.id if support_role else None
        )

        panel = (
            EmbedBuilder(title="🎫 Support Tickets", description=message or DEFAULT_PANEL_MESSAGE)
            .color(EmbedColor.PRIMARY)
            .footer(f"{guild.name} Support System", icon_url=guild.icon.url if guild.icon else None)
            .build()
        )
        await channel.send(embed=panel, view=TicketPanelView(self.bot))

        summary = f"**Channel:** {channel.mention}\n"
        if support_role:
            summary += f"**Support Role:** {support_role.mention}\n"
        summary += f"\nUsers can now click the button in {channel.mention} to create support tickets."

        await interaction.response.send_message(
            embed=EmbedBuilder.success("Ticket System Setup Complete", summary),
            ephemeral=True
        )
        logger.info(f"{interaction.user} set up the ticket panel in #{channel.name} ({guild.name})")


async def setup(bot: commands.Bot):
    await bot.add_cog(TicketsCog(bot))
