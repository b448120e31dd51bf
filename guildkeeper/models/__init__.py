"""
Data Models for GuildKeeper
Defines the data structures used throughout the bot
"""

from .guild import GuildSettings
from .moderation import ModerationAction, ModLog, Warning
from .ticket import Ticket, TicketStatus

__all__ = [
    'GuildSettings',
    'ModerationAction',
    'ModLog',
    'Warning',
    'Ticket',
    'TicketStatus'
]
