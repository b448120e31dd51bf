"""
Guild Configuration Models
Stores per-guild settings
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Optional


CHANNEL_FIELDS = (
    'welcome_channel',
    'mod_log_channel',
    'member_log_channel',
    'message_log_channel',
    'ticket_channel',
    'ticket_category',
    'ticket_log_channel'
)

ROLE_FIELDS = ('ticket_support_role',)

LOG_FIELDS = ('mod_log_channel', 'member_log_channel', 'message_log_channel')


@dataclass
class GuildSettings:
    guild_id: int

    welcome_channel: Optional[int] = None
    welcome_message: Optional[str] = None
    welcome_image_enabled: bool = False
    background_url: Optional[str] = None

    mod_log_channel: Optional[int] = None
    member_log_channel: Optional[int] = None
    message_log_channel: Optional[int] = None

    ticket_channel: Optional[int] = None
    ticket_category: Optional[int] = None
    ticket_message: Optional[str] = None
    ticket_support_role: Optional[int] = None
    ticket_log_channel: Optional[int] = None

    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def welcome_configured(self) -> bool:
        return bool(self.welcome_channel and self.welcome_message)

    @classmethod
    def column_names(cls) -> tuple:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def editable_fields(cls) -> tuple:
        return tuple(name for name in cls.column_names() if name not in ('guild_id', 'created_at', 'updated_at'))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GuildSettings':
        valid_fields = set(cls.column_names())
        filtered = {k: v for k, v in data.items() if k in valid_fields}

        filtered['welcome_image_enabled'] = bool(filtered.get('welcome_image_enabled', False))

        for key in ('created_at', 'updated_at'):
            value = filtered.get(key)
            if isinstance(value, str):
                filtered[key] = datetime.fromisoformat(value)
            elif value is None:
                filtered.pop(key, None)

        return cls(**filtered)
