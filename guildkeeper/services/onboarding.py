"""
Onboarding Workflow
Welcome messages, auto-role assignment and their admin settings
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import aiohttp
import discord

from guildkeeper.db_manager import DatabaseManager
from guildkeeper.models.guild import GuildSettings
from guildkeeper.services.reconciliation import Reconciler
from guildkeeper.utils.embed_builder import EmbedBuilder
from guildkeeper.utils.notify import post_to_channel
from guildkeeper.utils.permissions import PermissionChecker, rank
from guildkeeper.utils.results import RejectionReason, Result
from guildkeeper.utils.validators import is_valid_url, validate_welcome_message
from guildkeeper.utils.welcome_image import generate_welcome_image

logger = logging.getLogger('guildkeeper.onboarding')

AUTO_ROLE_REASON = "Auto-role assignment"
WELCOME_CHANNEL_PERMISSIONS = ('view_channel', 'send_messages', 'embed_links')


@dataclass
class JoinOutcome:
    welcomed: bool = False
    roles_added: List[discord.Role] = field(default_factory=list)
    logged: bool = False


def render_welcome_message(template: str, member) -> str:
    return template.replace('{user}', member.mention)


def missing_channel_permissions(channel, member, permissions=WELCOME_CHANNEL_PERMISSIONS) -> List[str]:
    granted = channel.permissions_for(member)
    return [perm for perm in permissions if not getattr(granted, perm, False)]


class OnboardingService:
    def __init__(
        self,
        db: DatabaseManager,
        reconciler: Reconciler,
        checker: Optional[PermissionChecker] = None,
        http_session: Optional[aiohttp.ClientSession] = None
    ):
        self.db = db
        self.reconciler = reconciler
        self.checker = checker or PermissionChecker()
        self.http_session = http_session

    # Member join

    async def handle_member_join(self, member) -> JoinOutcome:
        """Run welcome, auto-role and member-log steps; a failure in one never stops the others."""
        outcome = JoinOutcome()
        steps = ('welcome', 'auto-roles', 'member log')

        results = await asyncio.gather(
            self.send_welcome(member),
            self.assign_auto_roles(member),
            self.mirror_join(member),
            return_exceptions=True
        )

        for step, result in zip(steps, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Error in {step} step for {member} in {member.guild.name}",
                    exc_info=result
                )

        welcomed, roles, logged = results
        outcome.welcomed = welcomed is True
        outcome.roles_added = roles if isinstance(roles, list) else []
        outcome.logged = logged is True

        logger.info(f"New member joined {member.guild.name}: {member} ({member.id})")
        return outcome

    async def send_welcome(self, member, settings: Optional[GuildSettings] = None) -> bool:
        guild = member.guild
        settings = settings or await self.db.get_guild_settings(guild.id)

        if not settings.welcome_configured:
            return False

        channel = await self.reconciler.resolve_channel(guild, settings.welcome_channel)
        if channel is None:
            logger.warning(f"Welcome channel not found in {guild.name}")
            return False

        if missing_channel_permissions(channel, guild.me, ('view_channel', 'send_messages')):
            logger.warning(f"No permission to send welcome message in {guild.name}")
            return False

        message = render_welcome_message(settings.welcome_message, member)
        embed = EmbedBuilder.welcome(member, message)

        image = None
        if settings.welcome_image_enabled:
            image = await self._render_card(member, message, settings.background_url)
            if image is not None:
                embed.set_image(url=f"attachment://{image.filename}")

        sent = await post_to_channel(channel, embed=embed, file=image)
        if sent:
            logger.info(f"Sent welcome message for {member} in {guild.name}")
        return sent

    async def _render_card(self, member, message: str, background_url: Optional[str]) -> Optional[discord.File]:
        try:
            return await generate_welcome_image(member, message, background_url, self.http_session)
        except (OSError, ValueError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Welcome image failed for {member} in {member.guild.name}, sending text only: {e}")
            return None

    async def assign_auto_roles(self, member) -> List[discord.Role]:
        guild = member.guild
        role_ids = await self.db.get_auto_roles(guild.id)
        if not role_ids:
            return []

        bot_member = guild.me
        roles = []

        for role_id in role_ids:
            role = await self.reconciler.resolve_auto_role(guild, role_id)
            if role is None:
                continue

            if not self.checker.can_assign_role(bot_member, role):
                logger.warning(
                    f"Cannot assign auto-role {role.name} in {guild.name} - "
                    f"insufficient permissions or managed role"
                )
                continue

            roles.append(role)

        if roles:
            await member.add_roles(*roles, reason=AUTO_ROLE_REASON)
            names = ", ".join(role.name for role in roles)
            logger.info(f"Assigned auto-roles to {member} in {guild.name}: {names}")

        return roles

    async def mirror_join(self, member) -> bool:
        settings = await self.db.get_guild_settings(member.guild.id)
        channel = await self.reconciler.resolve_channel(member.guild, settings.member_log_channel)
        if channel is None:
            return False
        return await post_to_channel(channel, embed=EmbedBuilder.log_member_join(member))

    # Auto-role admin

    async def add_autorole(self, guild, role) -> Result[discord.Role]:
        if role.is_default():
            return Result.reject(RejectionReason.INVALID_ROLE, "Invalid Role", "Cannot set @everyone as an auto-role.")

        if role.managed:
            return Result.reject(
                RejectionReason.INVALID_ROLE,
                "Invalid Role",
                "Cannot set managed roles (bot roles, boost roles, etc.) as auto-roles."
            )

        if role.position >= rank(guild.me):
            return Result.reject(
                RejectionReason.BOT_HIERARCHY,
                "Role Hierarchy",
                "I cannot assign this role as it is higher than or equal to my highest role."
            )

        if not await self.db.add_auto_role(guild.id, role.id):
            return Result.reject(
                RejectionReason.ROLE_ALREADY_SET,
                "Already Configured",
                f"{role.mention} is already set as an auto-role."
            )

        logger.info(f"Added auto-role {role.name} in {guild.name}")
        return Result.success(role)

    async def remove_autorole(self, guild, role) -> Result[discord.Role]:
        if not await self.db.remove_auto_role(guild.id, role.id):
            return Result.reject(
                RejectionReason.ROLE_NOT_SET,
                "Not Configured",
                f"{role.mention} is not currently set as an auto-role."
            )

        logger.info(f"Removed auto-role {role.name} in {guild.name}")
        return Result.success(role)

    async def list_autoroles(self, guild) -> List[discord.Role]:
        roles = []
        for role_id in await self.db.get_auto_roles(guild.id):
            role = await self.reconciler.resolve_auto_role(guild, role_id)
            if role is not None:
                roles.append(role)
        return roles

    # Welcome settings

    async def set_welcome(self, guild, channel, message: str) -> Result[GuildSettings]:
        missing = missing_channel_permissions(channel, guild.me)
        if missing:
            return Result.reject(
                RejectionReason.BOT_MISSING_PERMISSION,
                "Channel Permissions",
                "I need View Channel, Send Messages, and Embed Links permissions in that channel."
            )

        valid, error = validate_welcome_message(message)
        if not valid:
            return Result.reject(RejectionReason.INVALID_INPUT, "Invalid Message", error)

        settings = await self.db.update_guild_settings(guild.id, welcome_channel=channel.id, welcome_message=message)
        logger.info(f"Configured welcome system in {guild.name} - Channel: {channel.name}")
        return Result.success(settings)

    async def set_background(self, guild, url: Optional[str]) -> Result[GuildSettings]:
        if url and not is_valid_url(url):
            return Result.reject(
                RejectionReason.INVALID_INPUT,
                "Invalid URL",
                "Please provide a valid http(s) image URL."
            )

        settings = await self.db.update_guild_settings(guild.id, background_url=url or None)
        logger.info(f"{'Set' if url else 'Cleared'} welcome background in {guild.name}")
        return Result.success(settings)

    async def toggle_image(self, guild) -> GuildSettings:
        current = await self.db.get_guild_settings(guild.id)
        settings = await self.db.update_guild_settings(
            guild.id,
            welcome_image_enabled=not current.welcome_image_enabled
        )
        logger.info(f"Welcome images {'enabled' if settings.welcome_image_enabled else 'disabled'} in {guild.name}")
        return settings

    async def disable_welcome(self, guild) -> Result[GuildSettings]:
        current = await self.db.get_guild_settings(guild.id)
        if not current.welcome_channel:
            return Result.reject(
                RejectionReason.NOT_CONFIGURED,
                "Welcome System",
                "Welcome messages are not currently enabled."
            )

        settings = await self.db.update_guild_settings(guild.id, welcome_channel=None, welcome_message=None)
        logger.info(f"Disabled welcome system in {guild.name}")
        return Result.success(settings)

    async def test_welcome(self, member) -> Result[object]:
        guild = member.guild
        settings = await self.db.get_guild_settings(guild.id)

        if not settings.welcome_configured:
            return Result.reject(
                RejectionReason.NOT_CONFIGURED,
                "Not Configured",
                "Welcome system is not configured. Use `/welcome set` to configure it first."
            )

        channel = await self.reconciler.resolve_channel(guild, settings.welcome_channel)
        if channel is None:
            return Result.reject(
                RejectionReason.NOT_CONFIGURED,
                "Channel Missing",
                "Configured welcome channel no longer exists. Please reconfigure with `/welcome set`."
            )

        if not await self.send_welcome(member, settings):
            return Result.reject(
                RejectionReason.BOT_MISSING_PERMISSION,
                "Test Failed",
                "Failed to send test message. Please check my permissions in the welcome channel."
            )

        logger.info(f"{member} tested welcome message in {guild.name}")
        return Result.success(channel)

    async def view_welcome(self, guild) -> GuildSettings:
        return await self.db.get_guild_settings(guild.id)
