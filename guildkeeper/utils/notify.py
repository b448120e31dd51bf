"""
Advisory Notifications
Best-effort direct messages and log channel posts
"""

import io
import logging
from typing import Optional

import discord

logger = logging.getLogger('guildkeeper.notify')


def text_file(text: str, filename: str) -> discord.File:
    return discord.File(io.BytesIO(text.encode('utf-8')), filename=filename)


async def send_dm(
    user,
    embed: Optional[discord.Embed] = None,
    file: Optional[discord.File] = None
) -> bool:
    kwargs = {}
    if embed is not None:
        kwargs['embed'] = embed
    if file is not None:
        kwargs['file'] = file

    try:
        await user.send(**kwargs)
        return True
    except discord.HTTPException as e:
        logger.warning(f"Could not send DM to {user} ({user.id}): {e}")
        return False


async def post_to_channel(
    channel,
    embed: Optional[discord.Embed] = None,
    file: Optional[discord.File] = None
) -> bool:
    if channel is None:
        return False

    kwargs = {}
    if embed is not None:
        kwargs['embed'] = embed
    if file is not None:
        kwargs['file'] = file

    try:
        await channel.send(**kwargs)
        return True
    except discord.HTTPException as e:
        logger.warning(f"Could not post to channel {getattr(channel, 'id', channel)}: {e}")
        return False
