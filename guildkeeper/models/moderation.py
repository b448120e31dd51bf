"""
Moderation Models
Data structures for the audit trail and warnings
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


ALL_USERS = "all"
CHANNEL_SCOPE = "channel"


class ModerationAction(Enum):
    BAN = "ban"
    KICK = "kick"
    MUTE = "mute"
    UNMUTE = "unmute"
    WARN = "warn"
    AUTO_MUTE = "auto-mute"
    PURGE = "purge"
    SLOWMODE = "slowmode"

    @property
    def emoji(self) -> str:
        emojis = {
            ModerationAction.BAN: "🔨",
            ModerationAction.KICK: "👢",
            ModerationAction.MUTE: "🔇",
            ModerationAction.UNMUTE: "🔊",
            ModerationAction.WARN: "⚠️",
            ModerationAction.AUTO_MUTE: "🤖",
            ModerationAction.PURGE: "🧹",
            ModerationAction.SLOWMODE: "🐌"
        }
        return emojis.get(self, "❓")

    @property
    def past_tense(self) -> str:
        past = {
            ModerationAction.BAN: "banned",
            ModerationAction.KICK: "kicked",
            ModerationAction.MUTE: "muted",
            ModerationAction.UNMUTE: "unmuted",
            ModerationAction.WARN: "warned",
            ModerationAction.AUTO_MUTE: "automatically muted",
            ModerationAction.PURGE: "purged",
            ModerationAction.SLOWMODE: "slowmode updated"
        }
        return past.get(self, self.value)


@dataclass
class ModLog:
    guild_id: int
    user_id: Union[int, str]
    moderator_id: int
    action: ModerationAction
    reason: str = "No reason provided"

    id: Optional[int] = None
    duration: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: dict) -> 'ModLog':
        user_id = data['user_id']
        if isinstance(user_id, str) and user_id.isdigit():
            user_id = int(user_id)

        log = cls(
            guild_id=data['guild_id'],
            user_id=user_id,
            moderator_id=data['moderator_id'],
            action=ModerationAction(data['action']),
            reason=data.get('reason') or 'No reason provided'
        )
        log.id = data.get('id')
        log.duration = data.get('duration')

        if data.get('created_at'):
            if isinstance(data['created_at'], str):
                log.created_at = datetime.fromisoformat(data['created_at'])
            else:
                log.created_at = data['created_at']

        return log


@dataclass
class Warning:
    guild_id: int
    user_id: int
    moderator_id: int
    reason: str

    id: Optional[int] = None
    active: bool = True
    created_at: datetime = field(default_factory=datetime.now)

