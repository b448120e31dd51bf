"""
Command Dispatch
Rate limiting, guild-only and permission checks ahead of every handler
"""

import logging
from typing import Dict, Optional

import discord
from discord import app_commands

from guildkeeper.registry import COMMANDS, CommandSpec
from guildkeeper.utils.cooldown import RateLimiter
from guildkeeper.utils.embed_builder import EmbedBuilder
from guildkeeper.utils.permissions import PermissionChecker, format_permission, has_any_role, missing_permissions
from guildkeeper.utils.results import Rejection, RejectionReason, Result

logger = logging.getLogger('guildkeeper.dispatch')

UNKNOWN_COMMAND_MESSAGE = "This command is not available or has been removed."
RATE_LIMIT_MESSAGE = "You are sending commands too quickly. Please wait a moment and try again."
GENERIC_ERROR_MESSAGE = (
    "There was an error while executing this command! Please try again later "
    "or contact an administrator if the problem persists."
)


def root_command_name(interaction: discord.Interaction) -> Optional[str]:
    command = interaction.command
    if command is None:
        return None
    root = getattr(command, 'root_parent', None) or command
    return root.name


class CommandDispatcher:
    def __init__(
        self,
        rate_limiter: RateLimiter,
        checker: PermissionChecker,
        registry: Optional[Dict[str, CommandSpec]] = None
    ):
        self.rate_limiter = rate_limiter
        self.checker = checker
        self.registry = registry if registry is not None else COMMANDS

    def _rate_limited(self, user_id: int) -> Optional[Result]:
        if self.rate_limiter.try_acquire(user_id):
            return None

        retry = self.rate_limiter.retry_after(user_id)
        logger.info(f"Rate limited user {user_id} (retry in {retry:.1f}s)")
        return Result.reject(
            RejectionReason.RATE_LIMITED,
            "Rate Limited",
            RATE_LIMIT_MESSAGE,
            detail=retry
        )

    def check(self, interaction: discord.Interaction) -> Result[CommandSpec]:
        name = root_command_name(interaction)
        spec = self.registry.get(name) if name else None
        user = interaction.user

        if spec is None:
            logger.error(f"No command matching {name} was found")
            return Result.reject(RejectionReason.UNKNOWN_COMMAND, "Unknown Command", UNKNOWN_COMMAND_MESSAGE)

        limited = self._rate_limited(user.id)
        if limited is not None:
            return limited

        if spec.guild_only and interaction.guild is None:
            return Result.reject(
                RejectionReason.GUILD_ONLY,
                "Server Only",
                "This command can only be used in a server."
            )

        if self.checker.is_bot_owner(user.id):
            return Result.success(spec)

        if spec.permissions:
            missing = missing_permissions(user, spec.permissions)
            if missing:
                names = ", ".join(f'"{format_permission(p)}"' for p in missing)
                logger.info(f"{user} ({user.id}) denied /{spec.name}: missing {', '.join(missing)}")
                return Result.reject(
                    RejectionReason.MISSING_PERMISSION,
                    "Missing Permissions",
                    f"You need the {names} permission to use this command."
                )

        if spec.roles and not has_any_role(user, spec.roles):
            logger.info(f"{user} ({user.id}) denied /{spec.name}: missing required role")
            return Result.reject(
                RejectionReason.MISSING_PERMISSION,
                "Permission Denied",
                "You do not have permission to use this command."
            )

        return Result.success(spec)

    def check_component(self, interaction: discord.Interaction) -> Result[None]:
        limited = self._rate_limited(interaction.user.id)
        if limited is not None:
            return limited
        return Result.success()

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.type == discord.InteractionType.application_command:
            result = self.check(interaction)
        else:
            result = self.check_component(interaction)

        if not result.ok:
            await send_rejection(interaction, result.rejection)
            return False
        return True

    async def handle_error(self, interaction: discord.Interaction, error: Exception):
        original = getattr(error, 'original', error)
        name = root_command_name(interaction)
        if name is None and interaction.data:
            name = interaction.data.get('custom_id')

        logger.error(f"Error executing {name}: {original}", exc_info=original)

        embed = EmbedBuilder.error("Command Error", GENERIC_ERROR_MESSAGE)
        await send_ephemeral(interaction, embed)


async def send_ephemeral(interaction: discord.Interaction, embed: discord.Embed):
    try:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)
    except discord.HTTPException as e:
        logger.warning(f"Could not deliver response for interaction {interaction.id}: {e}")


async def send_rejection(interaction: discord.Interaction, rejection: Rejection):
    await send_ephemeral(interaction, EmbedBuilder.error(rejection.title, rejection.message))


class GuildKeeperTree(app_commands.CommandTree):
    """Command tree that routes every slash command through the dispatcher."""

    dispatcher: Optional[CommandDispatcher] = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if self.dispatcher is None:
            return True
        return await self.dispatcher.interaction_check(interaction)

    async def on_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        if self.dispatcher is None:
            await super().on_error(interaction, error)
            return
        await self.dispatcher.handle_error(interaction, error)


class DispatchedView(discord.ui.View):
    """Component view whose callbacks share the command rate limiter and error handling."""

    def __init__(self, dispatcher: Optional[CommandDispatcher], timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.dispatcher = dispatcher

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if self.dispatcher is None:
            return True
        return await self.dispatcher.interaction_check(interaction)

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item):
        if self.dispatcher is None:
            await super().on_error(interaction, error, item)
            return
        await self.dispatcher.handle_error(interaction, error)
