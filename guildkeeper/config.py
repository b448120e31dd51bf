"""
Bot Configuration
Environment settings and static defaults
"""

import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from dotenv import load_dotenv


DEFAULT_WELCOME_MESSAGE = "Welcome to the server, {user}! Please read the rules and enjoy your stay."
TICKET_CATEGORY_NAME = "Support Tickets"
SUPPORT_ROLE_NAME = "Support Team"
TICKET_DELETE_DELAY = 10
AUTO_MUTE_DURATION_MS = 24 * 60 * 60 * 1000

FAQ_ENTRIES: Dict[str, Dict[str, str]] = {
    'how-to-create-ticket': {
        'question': 'How do I create a support ticket?',
        'answer': 'Use the `/ticket` command to create a new support ticket. Our team will assist you shortly!'
    },
    'server-rules': {
        'question': 'What are the server rules?',
        'answer': 'Please check the #rules channel for our complete server rules and guidelines.'
    },
    'contact-staff': {
        'question': 'How do I contact staff?',
        'answer': 'You can create a ticket using `/ticket`, mention @Support Team, or DM any online moderator.'
    }
}


def _parse_ids(raw: Optional[str]) -> FrozenSet[int]:
    if not raw:
        return frozenset()
    return frozenset(int(part.strip()) for part in raw.split(',') if part.strip().isdigit())


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class BotConfig:
    token: Optional[str] = None
    client_id: Optional[int] = None
    guild_id: Optional[int] = None
    db_path: str = "data/bot.db"
    prefix: str = "!"
    owner_ids: FrozenSet[int] = field(default_factory=frozenset)
    max_warnings: int = 3
    rate_limit_commands: int = 5
    rate_limit_interval_ms: int = 60000
    health_port: int = 5000
    log_level: str = "INFO"

    @property
    def rate_limit_window(self) -> float:
        return self.rate_limit_interval_ms / 1000

    @classmethod
    def from_env(cls, dotenv: bool = True) -> 'BotConfig':
        if dotenv:
            load_dotenv()

        client_id = os.getenv('CLIENT_ID')
        guild_id = os.getenv('GUILD_ID')

        return cls(
            token=os.getenv('DISCORD_TOKEN'),
            client_id=int(client_id) if client_id and client_id.isdigit() else None,
            guild_id=int(guild_id) if guild_id and guild_id.isdigit() else None,
            db_path=os.getenv('DB_PATH', 'data/bot.db'),
            prefix=os.getenv('PREFIX', '!'),
            owner_ids=_parse_ids(os.getenv('OWNER_IDS')),
            max_warnings=_int_env('MAX_WARNINGS', 3),
            rate_limit_commands=_int_env('RATE_LIMIT_COMMANDS', 5),
            rate_limit_interval_ms=_int_env('RATE_LIMIT_INTERVAL', 60000),
            health_port=_int_env('HEALTH_PORT', 5000),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper()
        )
