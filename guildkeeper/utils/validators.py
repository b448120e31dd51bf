"""
Input Validators for GuildKeeper
Validates user supplied command input
"""

import re
from typing import Optional, Tuple
from urllib.parse import urlparse


HEX_COLOR_PATTERN = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')

WELCOME_MESSAGE_MAX_LENGTH = 1000

DEFAULT_REASON = "No reason provided"


def is_valid_url(url: str) -> bool:
    try:
        result = urlparse(url)
    except ValueError:
        return False
    return result.scheme in ('http', 'https') and bool(result.netloc)


def validate_hex_color(color: str) -> Tuple[bool, Optional[int]]:
    match = HEX_COLOR_PATTERN.match(color.strip())
    if not match:
        return False, None

    hex_value = match.group(1)
    if len(hex_value) == 3:
        hex_value = ''.join(c * 2 for c in hex_value)

    return True, int(hex_value, 16)


def validate_reason(reason: Optional[str], max_length: int = 512) -> str:
    if not reason or not reason.strip():
        return DEFAULT_REASON

    reason = reason.strip()

    if len(reason) > max_length:
        reason = reason[:max_length - 3] + "..."

    return reason


def validate_welcome_message(message: str) -> Tuple[bool, Optional[str]]:
    if not message or not message.strip():
        return False, "The welcome message cannot be empty."

    if len(message) > WELCOME_MESSAGE_MAX_LENGTH:
        return False, f"The welcome message must be {WELCOME_MESSAGE_MAX_LENGTH} characters or fewer."

    return True, None
