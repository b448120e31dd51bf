"""
GuildKeeper Cogs
Slash command modules for the bot
"""

from .admin import AdminCog
from .logging import LoggingCog
from .moderation import ModerationCog
from .tickets import TicketsCog
from .utility import UtilityCog
from .welcome import WelcomeCog

__all__ = [
    'AdminCog',
    'LoggingCog',
    'ModerationCog',
    'TicketsCog',
    'UtilityCog',
    'WelcomeCog'
]
