"""
Utility modules for GuildKeeper
"""

from .embed_builder import EmbedBuilder, EmbedColor
from .permissions import PermissionChecker
from .cooldown import RateLimiter
from .results import Rejection, RejectionReason, Result
from .helpers import (
    parse_duration,
    format_duration,
    truncate_string,
    human_join,
    ticket_channel_name
)
from .validators import (
    is_valid_url,
    validate_hex_color,
    validate_reason,
    validate_welcome_message
)

__all__ = [
    'EmbedBuilder',
    'EmbedColor',
    'PermissionChecker',
    'RateLimiter',
    'Rejection',
    'RejectionReason',
    'Result',
    'parse_duration',
    'format_duration',
    'truncate_string',
    'human_join',
    'ticket_channel_name',
    'is_valid_url',
    'validate_hex_color',
    'validate_reason',
    'validate_welcome_message'
]
