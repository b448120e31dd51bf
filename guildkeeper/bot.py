"""
GuildKeeper Bot
Client subclass wiring the store, workflows, dispatch and cogs together
"""

import logging
from datetime import datetime
from typing import Optional

import aiohttp
import discord
from discord import app_commands
from discord.ext import commands, tasks

from guildkeeper import __version__
from guildkeeper.cogs import AdminCog, LoggingCog, ModerationCog, TicketsCog, UtilityCog, WelcomeCog
from guildkeeper.config import BotConfig
from guildkeeper.db_manager import DatabaseManager
from guildkeeper.dispatch import CommandDispatcher, GuildKeeperTree
from guildkeeper.health import HealthServer
from guildkeeper.services import ModerationService, OnboardingService, Reconciler, TicketService
from guildkeeper.utils.cooldown import RateLimiter
from guildkeeper.utils.permissions import PermissionChecker

logger = logging.getLogger('guildkeeper.bot')


class GuildKeeperBot(commands.Bot):
    def __init__(self, config: BotConfig):
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True

        super().__init__(
            command_prefix=commands.when_mentioned_or(config.prefix),
            intents=intents,
            help_command=None,
            case_insensitive=True,
            tree_cls=GuildKeeperTree
        )

        self.config = config
        self.version: str = __version__
        self.start_time: datetime = datetime.now()
        self.http_session: Optional[aiohttp.ClientSession] = None

        self.db = DatabaseManager(config.db_path)
        self.checker = PermissionChecker(config.owner_ids)
        self.rate_limiter = RateLimiter(config.rate_limit_commands, config.rate_limit_window)
        self.dispatcher = CommandDispatcher(self.rate_limiter, self.checker)
        self.tree.dispatcher = self.dispatcher

        self.reconciler = Reconciler(self.db)
        self.moderation = ModerationService(self.db, self.reconciler, self.checker, config.max_warnings)
        self.tickets = TicketService(self.db, self.reconciler, client=self)
        self.onboarding = OnboardingService(self.db, self.reconciler, self.checker)

        self.health = HealthServer(self, config.health_port)

    async def setup_hook(self):
        logger.info("Initializing database connection...")
        await self.db.initialize()
        logger.info("Database connection established")

        self.http_session = aiohttp.ClientSession()
        self.onboarding.http_session = self.http_session

        await self._load_owners()

        logger.info("Loading cogs...")
        cogs = [
            ModerationCog(self),
            TicketsCog(self),
            WelcomeCog(self),
            LoggingCog(self),
            AdminCog(self),
            UtilityCog(self)
        ]

        for cog in cogs:
            await self.add_cog(cog)
            logger.info(f"Loaded cog: {cog.__class__.__name__}")

        self.prune_rate_limits.start()
        await self.health.start()
        await self._sync_commands()

    async def _load_owners(self):
        if self.config.owner_ids:
            return

        try:
            info = await self.application_info()
        except discord.HTTPException as e:
            logger.warning(f"Could not fetch application owner: {e}")
            return

        if info.team:
            owners = [member.id for member in info.team.members]
        else:
            owners = [info.owner.id]
        self.checker.set_bot_owners(owners)
        logger.info(f"Bot owners resolved from application info: {owners}")

    async def _sync_commands(self):
        logger.info("Syncing slash commands...")
        try:
            if self.config.guild_id:
                guild = discord.Object(id=self.config.guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info(f"Synced {len(synced)} slash command(s) to guild {self.config.guild_id}")
            else:
                synced = await self.tree.sync()
                logger.info(f"Synced {len(synced)} slash command(s) globally")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync commands: {e}")

    @tasks.loop(minutes=5)
    async def prune_rate_limits(self):
        self.rate_limiter.cleanup()

    async def on_ready(self):
        logger.info("Bot is ready!")
        if self.user:
            logger.info(f"Logged in as: {self.user} (ID: {self.user.id})")

        logger.info(f"Connected to {len(self.guilds)} guild(s)")
        logger.info(f"Discord.py version: {discord.__version__}")

        await self.change_presence(
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name=f"{len(self.guilds)} servers | /help"
            ),
            status=discord.Status.online
        )

    async def on_app_command_completion(self, interaction: discord.Interaction, command: app_commands.Command):
        where = interaction.guild.name if interaction.guild else "DM"
        logger.info(f"{interaction.user} used /{command.qualified_name} in {where}")

    async def on_guild_join(self, guild: discord.Guild):
        logger.info(f"Joined guild: {guild.name} (ID: {guild.id})")

    async def on_guild_remove(self, guild: discord.Guild):
        logger.info(f"Left guild: {guild.name} (ID: {guild.id})")

    async def close(self):
        logger.info("Shutting down bot...")
        self.prune_rate_limits.cancel()
        await self.tickets.shutdown()
        await self.health.stop()
        if self.http_session is not None:
            await self.http_session.close()
        await self.db.close()
        await super().close()
