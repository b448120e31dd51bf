"""
GuildKeeper Discord Bot
Main entry point for the Discord bot
"""

import os
import sys
import asyncio
import logging

import discord

from guildkeeper.bot import GuildKeeperBot
from guildkeeper.config import BotConfig

config = BotConfig.from_env()

os.makedirs('data/logs', exist_ok=True)

logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler('data/logs/bot.log', mode='a', encoding='utf-8')
    ]
)
logger = logging.getLogger('guildkeeper')


async def main():
    db_dir = os.path.dirname(config.db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    if not config.token:
        logger.error("DISCORD_TOKEN not found in environment variables!")
        logger.error("Please set your Discord bot token in the .env file.")
        sys.exit(1)

    bot = GuildKeeperBot(config)

    try:
        logger.info("Starting bot...")
        await bot.start(config.token)
    except discord.LoginFailure:
        logger.error("Invalid Discord token! Please check your DISCORD_TOKEN.")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if not bot.is_closed():
            await bot.close()


if __name__ == '__main__':
    asyncio.run(main())
