"""
Utility Cog
Help, FAQ and general information commands
"""

import logging
import time
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from guildkeeper.config import FAQ_ENTRIES
from guildkeeper.dispatch import DispatchedView
from guildkeeper.health import memory_mb
from guildkeeper.registry import CATEGORIES, COMMANDS, commands_in
from guildkeeper.utils.embed_builder import EmbedBuilder, EmbedColor
from guildkeeper.utils.helpers import human_join, truncate_string
from guildkeeper.utils.permissions import format_permission

logger = logging.getLogger('guildkeeper.cogs.utility')

CATEGORY_CHOICES = [app_commands.Choice(name=c.label, value=c.key) for c in CATEGORIES.values()]
FAQ_CHOICES = [app_commands.Choice(name=entry['question'][:100], value=key) for key, entry in FAQ_ENTRIES.items()]


def build_help_overview() -> discord.Embed:
    embed = (
        EmbedBuilder(
            title="📖 Bot Help",
            description="Select a category below or use `/help <category>` for detailed information."
        )
        .color(EmbedColor.INFO)
    )

    for category in CATEGORIES.values():
        names = ", ".join(f"`/{spec.name}`" for spec in commands_in(category.key))
        embed.field(f"{category.emoji} {category.label}", f"{category.description}\n{names}", False)

    return embed.build()


def build_category_help(category_key: str, max_warnings: int = 3) -> discord.Embed:
    category = CATEGORIES.get(category_key)
    if category is None:
        return EmbedBuilder.error("Error", "Invalid category specified.")

    embed = (
        EmbedBuilder(title=f"{category.emoji} {category.label} Commands", description=category.description)
        .color(EmbedColor.INFO)
    )

    for spec in commands_in(category.key):
        lines = [spec.description]
        if spec.permissions:
            lines.append(f"Requires: {human_join([format_permission(p) for p in spec.permissions])}")
        embed.field(f"`{spec.usage}`", "\n".join(lines), False)

    if category.key == 'moderation':
        embed.footer(f"Auto-punishment after {max_warnings} warnings")

    return embed.build()


def build_faq(topic: Optional[str] = None) -> discord.Embed:
    if topic:
        entry = FAQ_ENTRIES.get(topic)
        if entry is None:
            return EmbedBuilder.error("Error", "FAQ topic not found.")
        return EmbedBuilder.info(entry['question'], entry['answer'])

    embed = EmbedBuilder(title="❓ Frequently Asked Questions").color(EmbedColor.INFO)
    for entry in FAQ_ENTRIES.values():
        embed.field(entry['question'], entry['answer'], False)
    return embed.build()


def legacy_prefix_reply(content: str, prefix: str) -> Optional[discord.Embed]:
    if not content.startswith(prefix):
        return None

    parts = content[len(prefix):].strip().split()
    if not parts:
        return None

    name = parts[0].lower()
    if name == 'help':
        return EmbedBuilder.info(
            "Bot Commands",
            "This bot primarily uses slash commands for better functionality and security.\n\n"
            "**How to use slash commands:**\n"
            "• Type `/` in the message box\n"
            "• Select a command from the list\n"
            "• Fill in the required parameters\n\n"
            "Use `/help` for the full command list, or `/ticket` to reach our support team."
        )

    if name in COMMANDS:
        return EmbedBuilder.info(
            "Use Slash Commands",
            f"Please use the slash command version: `/{name}`\n\n"
            "Slash commands provide better functionality, validation, and security."
        )

    return None


class HelpCategorySelect(discord.ui.Select):
    def __init__(self, max_warnings: int):
        self.max_warnings = max_warnings
        options = [
            discord.SelectOption(label=c.label, value=c.key, emoji=c.emoji, description=c.description[:100])
            for c in CATEGORIES.values()
        ]
        super().__init__(placeholder="Choose a category...", options=options, custom_id="help:category")

    async def callback(self, interaction: discord.Interaction):
        embed = build_category_help(self.values[0], self.max_warnings)
        await interaction.response.edit_message(embed=embed, view=None)


class FaqTopicSelect(discord.ui.Select):
    def __init__(self):
        options = [
            discord.SelectOption(label=entry['question'][:100], value=key)
            for key, entry in FAQ_ENTRIES.items()
        ]
        super().__init__(placeholder="Choose a question...", options=options, custom_id="faq:topic")

    async def callback(self, interaction: discord.Interaction):
        await interaction.response.edit_message(embed=build_faq(self.values[0]), view=None)


class HelpView(DispatchedView):
    def __init__(self, bot: commands.Bot):
        super().__init__(bot.dispatcher, timeout=180)
        self.add_item(HelpCategorySelect(bot.config.max_warnings))


class FaqView(DispatchedView):
    def __init__(self, bot: commands.Bot):
        super().__init__(bot.dispatcher, timeout=180)
        self.add_item(FaqTopicSelect())


class UtilityCog(commands.Cog, name="Utility"):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        if message.author.bot or not message.guild:
            return

        embed = legacy_prefix_reply(message.content, self.bot.config.prefix)
        if embed is None:
            return

        try:
            await message.reply(embed=embed)
        except discord.HTTPException as e:
            logger.warning(f"Error sending prefix reminder in {message.guild.name}: {e}")

    @app_commands.command(name="help", description="Show the help menu")
    @app_commands.describe(category="Command category to show")
    @app_commands.choices(category=CATEGORY_CHOICES)
    async def help_command(self, interaction: discord.Interaction, category: Optional[app_commands.Choice[str]] = None):
        if category is not None:
            embed = build_category_help(category.value, self.bot.config.max_warnings)
            return await interaction.response.send_message(embed=embed, ephemeral=True)

        await interaction.response.send_message(embed=build_help_overview(), view=HelpView(self.bot), ephemeral=True)

    @app_commands.command(name="faq", description="Frequently asked questions")
    @app_commands.describe(topic="The question to show")
    @app_commands.choices(topic=FAQ_CHOICES)
    async def faq(self, interaction: discord.Interaction, topic: Optional[app_commands.Choice[str]] = None):
        if topic is not None:
            return await interaction.response.send_message(embed=build_faq(topic.value), ephemeral=True)

        await interaction.response.send_message(embed=build_faq(), view=FaqView(self.bot), ephemeral=True)

    @app_commands.command(name="ping", description="Check bot latency")
    async def ping(self, interaction: discord.Interaction):
        started = time.perf_counter()
        await interaction.response.send_message(embed=EmbedBuilder.info("🏓 Pinging...", "Calculating latency..."))
        api_latency = round((time.perf_counter() - started) * 1000)
        ws_latency = round(self.bot.latency * 1000)

        embed = (
            EmbedBuilder(title="🏓 Pong!")
            .color(EmbedColor.SUCCESS if ws_latency < 200 else EmbedColor.WARNING)
            .field("Bot Latency", f"{ws_latency}ms", True)
            .field("API Latency", f"{api_latency}ms", True)
            .field("Uptime", f"<t:{int(self.bot.start_time.timestamp())}:R>", True)
            .field("Memory", f"{memory_mb()} MB", True)
            .build()
        )
        await interaction.edit_original_response(embed=embed)

    @app_commands.command(name="avatar", description="Show a user's avatar")
    @app_commands.describe(user="The user whose avatar to show")
    async def avatar(self, interaction: discord.Interaction, user: Optional[discord.User] = None):
        user = user or interaction.user
        avatar = user.display_avatar

        embed = (
            EmbedBuilder(title=f"🖼️ {user.display_name}'s Avatar")
            .color(user.color if getattr(user, 'color', None) and user.color.value else EmbedColor.INFO)
            .image(avatar.url)
            .field(
                "Links",
                f"[PNG]({avatar.with_format('png')}) | [JPG]({avatar.with_format('jpg')}) | [WEBP]({avatar.with_format('webp')})",
                False
            )
            .build()
        )
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="serverinfo", description="Show server information")
    @app_commands.guild_only()
    async def serverinfo(self, interaction: discord.Interaction):
        guild = interaction.guild
        created = int(guild.created_at.timestamp())
        humans = sum(1 for m in guild.members if not m.bot)
        bots = sum(1 for m in guild.members if m.bot)

        embed = (
            EmbedBuilder(title=guild.name, description=guild.description)
            .color(EmbedColor.INFO)
            .thumbnail(guild.icon.url if guild.icon else None)
            .field("🆔 Server ID", str(guild.id), True)
            .field("👑 Owner", str(guild.owner) if guild.owner else "Unknown", True)
            .field("📅 Created", f"<t:{created}:F>\n<t:{created}:R>", True)
            .field("👥 Members", f"{guild.member_count} total", True)
            .field("👤 Humans", str(humans), True)
            .field("🤖 Bots", str(bots), True)
            .field("📝 Text Channels", str(len(guild.text_channels)), True)
            .field("🔊 Voice Channels", str(len(guild.voice_channels)), True)
            .field("📁 Categories", str(len(guild.categories)), True)
            .field("🎭 Roles", str(len(guild.roles)), True)
            .field("😀 Emojis", str(len(guild.emojis)), True)
            .field("✨ Boost Level", f"Level {guild.premium_tier}", True)
            .build()
        )
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="userinfo", description="Show user information")
    @app_commands.guild_only()
    @app_commands.describe(user="The member to inspect")
    async def userinfo(self, interaction: discord.Interaction, user: Optional[discord.Member] = None):
        member = user or interaction.user
        created = int(member.created_at.timestamp())

        embed = (
            EmbedBuilder(title=str(member))
            .color(member.color if member.color.value else EmbedColor.INFO)
            .thumbnail(member.display_avatar.url)
            .field("👤 User ID", str(member.id), True)
            .field("🏷️ Username", member.name, True)
            .field("📛 Display Name", member.display_name, True)
            .field("📅 Account Created", f"<t:{created}:F>\n<t:{created}:R>", True)
        )

        if member.joined_at:
            joined = int(member.joined_at.timestamp())
            embed.field("📥 Joined Server", f"<t:{joined}:F>\n<t:{joined}:R>", True)

        embed.field("🤖 Bot", "Yes" if member.bot else "No", True)

        roles = [role.mention for role in reversed(member.roles) if not role.is_default()]
        if roles:
            embed.field(f"🎭 Roles [{len(roles)}]", truncate_string(" ".join(roles), 1024), False)
        else:
            embed.field("🎭 Roles", "No roles", False)

        await interaction.response.send_message(embed=embed.build())


async def setup(bot: commands.Bot):
    await bot.add_cog(UtilityCog(bot))
