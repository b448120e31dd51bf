"""
Ticket System Models
Data structures for the ticket workflow
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class TicketStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class Ticket:
    guild_id: int
    channel_id: int
    user_id: int

    id: Optional[int] = None
    status: TicketStatus = TicketStatus.OPEN
    reason: Optional[str] = None

    created_at: datetime = field(default_factory=datetime.now)
    closed_at: Optional[datetime] = None
    closed_by: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.status == TicketStatus.OPEN

    def close(self, closed_by: int, closed_at: Optional[datetime] = None, reason: Optional[str] = None):
        self.closed_by = closed_by
        if reason is not None:
            self.reason = reason
        self.closed_at = closed_at or datetime.now()
        self.status = TicketStatus.CLOSED

    @classmethod
    def from_dict(cls, data: dict) -> 'Ticket':
        ticket = cls(
            guild_id=data['guild_id'],
            channel_id=data['channel_id'],
            user_id=data['user_id']
        )

        ticket.id = data.get('id')
        ticket.status = TicketStatus(data.get('status', 'open'))
        ticket.reason = data.get('reason')
        ticket.closed_by = data.get('closed_by')

        for field_name in ['created_at', 'closed_at']:
            if data.get(field_name):
                value = data[field_name]
                if isinstance(value, str):
                    setattr(ticket, field_name, datetime.fromisoformat(value))
                else:
                    setattr(ticket, field_name, value)

        return ticket
