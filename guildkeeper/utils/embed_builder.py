"""
Rich Embed Builder for GuildKeeper
Provides a fluent interface for creating Discord embeds
"""

import discord
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Union


class EmbedColor(Enum):
    PRIMARY = 0x5865F2
    SUCCESS = 0x57F287
    WARNING = 0xFEE75C
    ERROR = 0xED4245
    INFO = 0x5865F2
    MODERATION = 0xEB459E
    LOGGING = 0x3498DB
    WELCOME = 0x2ECC71
    TICKET = 0xF1C40F


class EmbedBuilder:
    def __init__(self, title: Optional[str] = None, description: Optional[str] = None):
        self._embed = discord.Embed()
        if title:
            self._embed.title = title
        if description:
            self._embed.description = description
        self._embed.timestamp = datetime.now(timezone.utc)

    def color(self, color: Union[EmbedColor, int, discord.Color]) -> 'EmbedBuilder':
        if isinstance(color, EmbedColor):
            self._embed.color = color.value
        else:
            self._embed.color = color
        return self

    def footer(
        self,
        text: str,
        icon_url: Optional[str] = None
    ) -> 'EmbedBuilder':
        self._embed.set_footer(text=text, icon_url=icon_url)
        return self

    def thumbnail(self, url: Optional[str]) -> 'EmbedBuilder':
        if url:
            self._embed.set_thumbnail(url=url)
        return self

    def image(self, url: Optional[str]) -> 'EmbedBuilder':
        if url:
            self._embed.set_image(url=url)
        return self

    def field(
        self,
        name: str,
        value: str,
        inline: bool = False
    ) -> 'EmbedBuilder':
        self._embed.add_field(name=name, value=value, inline=inline)
        return self

    def build(self) -> discord.Embed:
        return self._embed

    @classmethod
    def success(cls, title: str, description: str) -> discord.Embed:
        return (
            cls(title=f"✅ {title}", description=description)
            .color(EmbedColor.SUCCESS)
            .build()
        )

    @classmethod
    def error(cls, title: str, description: str) -> discord.Embed:
        return (
            cls(title=f"❌ {title}", description=description)
            .color(EmbedColor.ERROR)
            .build()
        )

    @classmethod
    def info(cls, title: str, description: str) -> discord.Embed:
        return (
            cls(title=f"ℹ️ {title}", description=description)
            .color(EmbedColor.INFO)
            .build()
        )

    @classmethod
    def moderation(
        cls,
        action: str,
        moderator,
        target: Optional[Union[discord.abc.User, str]] = None,
        reason: Optional[str] = None,
        duration: Optional[str] = None,
        extra: Optional[Tuple[str, str]] = None
    ) -> discord.Embed:
        embed = (
            cls(title=f"🔨 Moderation Action: {action}")
            .color(EmbedColor.MODERATION)
            .field("Moderator", f"{moderator.mention} ({moderator.id})", True)
        )

        if target is not None and not isinstance(target, str):
            embed.field("Target", f"{target.mention} ({target.id})", True)
        elif target:
            embed.field("Target", target, True)

        if duration:
            embed.field("Duration", duration, True)

        if extra:
            embed.field(extra[0], extra[1], True)

        if reason:
            embed.field("Reason", reason, False)

        if target is not None and not isinstance(target, str):
            embed.footer(f"User ID: {target.id}")

        return embed.build()

    @classmethod
    def welcome(cls, member: discord.Member, message: str) -> discord.Embed:
        return (
            cls(title="👋 Welcome!", description=message)
            .color(EmbedColor.WELCOME)
            .thumbnail(member.display_avatar.url)
            .footer(
                f"Member #{member.guild.member_count}",
                icon_url=member.guild.icon.url if member.guild.icon else None
            )
            .build()
        )

    @classmethod
    def ticket_create(
        cls,
        user: discord.abc.User,
        reason: Optional[str] = None,
        message: Optional[str] = None
    ) -> discord.Embed:
        description = message or (
            f"Hello {user.mention}! A staff member will assist you shortly.\n\n"
            "Please describe your issue in detail."
        )

        return (
            cls(title="🎫 Ticket Created", description=description)
            .color(EmbedColor.TICKET)
            .field("Created By", user.mention, True)
            .field("Reason", reason or "No reason provided", True)
            .footer("Use the button below or /close to close this ticket")
            .build()
        )

    @classmethod
    def ticket_close(
        cls,
        closed_by: discord.abc.User,
        reason: Optional[str] = None,
        delay: Optional[int] = None
    ) -> discord.Embed:
        description = f"This ticket has been closed by {closed_by.mention}."
        if delay:
            description += f"\nThis channel will be deleted in {delay} seconds."

        embed = cls(title="🔒 Ticket Closed", description=description).color(EmbedColor.ERROR)

        if reason:
            embed.field("Reason", reason, False)

        return embed.build()

    @classmethod
    def log_message_delete(cls, message: discord.Message) -> discord.Embed:
        content = message.content[:1000] + "..." if len(message.content) > 1000 else message.content

        embed = (
            cls(title="🗑️ Message Deleted")
            .color(EmbedColor.LOGGING)
            .field("Author", f"{message.author.mention} ({message.author.id})", True)
            .field("Channel", message.channel.mention, True)
        )

        if content:
            embed.field("Content", f"```{content}```", False)

        if message.attachments:
            embed.field("Attachments", "\n".join(a.url for a in message.attachments), False)

        return embed.footer(f"Message ID: {message.id}").build()

    @classmethod
    def log_message_edit(
        cls,
        before: discord.Message,
        after: discord.Message
    ) -> discord.Embed:
        before_content = before.content[:500] + "..." if len(before.content) > 500 else before.content
        after_content = after.content[:500] + "..." if len(after.content) > 500 else after.content

        return (
            cls(title="✏️ Message Edited")
            .color(EmbedColor.LOGGING)
            .field("Author", f"{after.author.mention} ({after.author.id})", True)
            .field("Channel", after.channel.mention, True)
            .field("Jump to Message", f"[Click Here]({after.jump_url})", True)
            .field("Before", f"```{before_content or 'No content'}```", False)
            .field("After", f"```{after_content or 'No content'}```", False)
            .footer(f"Message ID: {after.id}")
            .build()
        )

    @classmethod
    def log_member_join(cls, member: discord.Member) -> discord.Embed:
        account_age = datetime.now(timezone.utc) - member.created_at
        is_new = account_age.days < 7

        embed = (
            cls(
                title="📥 Member Joined",
                description=f"{member.mention} joined the server"
            )
            .color(EmbedColor.SUCCESS)
            .thumbnail(member.display_avatar.url)
            .field("Username", str(member), True)
            .field("ID", str(member.id), True)
            .field("Account Created", f"<t:{int(member.created_at.timestamp())}:R>", True)
        )

        if is_new:
            embed.field("⚠️ Warning", "New account (less than 7 days old)", False)

        return embed.footer(f"Member #{member.guild.member_count}").build()

    @classmethod
    def log_member_leave(cls, member: discord.Member) -> discord.Embed:
        roles = [r.mention for r in member.roles if not r.is_default()]
        roles_str = ", ".join(roles[:10]) if roles else "None"
        if len(roles) > 10:
            roles_str += f" and {len(roles) - 10} more..."

        return (
            cls(
                title="📤 Member Left",
                description=f"{member.mention} left the server"
            )
            .color(EmbedColor.ERROR)
            .thumbnail(member.display_avatar.url)
            .field("Username", str(member), True)
            .field("ID", str(member.id), True)
            .field("Joined", f"<t:{int(member.joined_at.timestamp())}:R>" if member.joined_at else "Unknown", True)
            .field("Roles", roles_str, False)
            .footer(f"Members: {member.guild.member_count}")
            .build()
        )
