"""
Helper Functions for GuildKeeper
Common utility functions used throughout the bot
"""

import re
from datetime import datetime, timedelta
from typing import List, Optional, Union


DURATION_PATTERN = re.compile(r'^(\d+)([smhd])$', re.IGNORECASE)

DURATION_MULTIPLIERS = {
    's': 1000,
    'm': 60 * 1000,
    'h': 60 * 60 * 1000,
    'd': 24 * 60 * 60 * 1000
}

MAX_TIMEOUT_MS = 28 * 24 * 60 * 60 * 1000


def parse_duration(duration_str: Optional[str]) -> Optional[int]:
    """Parse ``<number><s|m|h|d>`` into milliseconds, or None if it does not match."""
    if not duration_str:
        return None

    match = DURATION_PATTERN.match(duration_str.strip())
    if not match:
        return None

    value = int(match.group(1))
    unit = match.group(2).lower()
    return value * DURATION_MULTIPLIERS[unit]


def format_duration(value: Union[int, timedelta]) -> str:
    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds())
    else:
        total_seconds = int(value) // 1000

    if total_seconds <= 0:
        return "0 seconds"

    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days} day{'s' if days != 1 else ''}")
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes > 0:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    if seconds > 0:
        parts.append(f"{seconds} second{'s' if seconds != 1 else ''}")

    if len(parts) > 1:
        return ", ".join(parts[:-1]) + " and " + parts[-1]
    return parts[0]


def truncate_string(
    text: str,
    max_length: int,
    suffix: str = "..."
) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def human_join(items: List[str], conjunction: str = "and") -> str:
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} {conjunction} {items[1]}"
    return f"{', '.join(items[:-1])}, {conjunction} {items[-1]}"


def ticket_channel_name(username: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    suffix = str(int(now.timestamp() * 1000))[-6:]
    slug = re.sub(r'[^a-z0-9_-]+', '-', username.lower()).strip('-') or "user"
    return f"ticket-{slug}-{suffix}"
