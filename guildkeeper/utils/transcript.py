"""
Ticket Transcripts
Plain-text rendering of a ticket surface's message history
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

SEPARATOR = "=" * 51
NO_TEXT = "[No text content]"


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def transcript_filename(channel_name: str) -> str:
    return f"ticket-{channel_name}-transcript.txt"


def format_message(message) -> List[str]:
    author = message.author
    content = message.content if message.content else NO_TEXT
    lines = [f"[{_iso(message.created_at)}] {author} ({author.id}): {content}"]

    for attachment in message.attachments:
        lines.append(f"  📎 Attachment: {attachment.filename} ({attachment.url})")

    if message.embeds:
        lines.append("  📋 Embed content present")

    return lines


def build_transcript(
    channel_name: str,
    messages: Iterable,
    closed_by,
    reason: Optional[str] = None,
    closed_at: Optional[datetime] = None
) -> str:
    """Render messages (oldest first) under a header naming the closer and reason."""
    closed_at = closed_at or datetime.now(timezone.utc)

    lines = [
        f"Ticket Transcript - {channel_name}",
        f"Closed by: {closed_by} ({closed_by.id})",
        f"Closed at: {_iso(closed_at)}",
        f"Reason: {reason or 'No reason provided'}",
        SEPARATOR,
        ""
    ]

    for message in messages:
        lines.extend(format_message(message))

    return "\n".join(lines) + "\n"
