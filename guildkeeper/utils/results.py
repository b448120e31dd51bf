"""
Workflow Results
Expected rejections are returned as values; unexpected failures raise
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


class RejectionReason(Enum):
    UNKNOWN_COMMAND = "unknown_command"
    RATE_LIMITED = "rate_limited"
    GUILD_ONLY = "guild_only"
    MISSING_PERMISSION = "missing_permission"
    BOT_MISSING_PERMISSION = "bot_missing_permission"
    SELF_TARGET = "self_target"
    BOT_TARGET = "bot_target"
    NOT_A_MEMBER = "not_a_member"
    HIERARCHY = "hierarchy"
    BOT_HIERARCHY = "bot_hierarchy"
    INVALID_DURATION = "invalid_duration"
    INVALID_AMOUNT = "invalid_amount"
    ALREADY_MUTED = "already_muted"
    NOT_MUTED = "not_muted"
    NOTHING_TO_DELETE = "nothing_to_delete"
    TICKET_EXISTS = "ticket_exists"
    NOT_A_TICKET = "not_a_ticket"
    TICKET_ALREADY_CLOSED = "ticket_already_closed"
    INVALID_ROLE = "invalid_role"
    ROLE_ALREADY_SET = "role_already_set"
    ROLE_NOT_SET = "role_not_set"
    INVALID_INPUT = "invalid_input"
    NOT_CONFIGURED = "not_configured"

    @property
    def is_permission_denial(self) -> bool:
        return self in (
            RejectionReason.MISSING_PERMISSION,
            RejectionReason.BOT_MISSING_PERMISSION,
            RejectionReason.HIERARCHY,
            RejectionReason.BOT_HIERARCHY
        )


@dataclass(frozen=True)
class Rejection:
    reason: RejectionReason
    title: str
    message: str
    detail: Optional[object] = None


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @property
    def reason(self) -> Optional[RejectionReason]:
        return self.rejection.reason if self.rejection else None

    @classmethod
    def success(cls, value: Optional[T] = None) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def reject(
        cls,
        reason: RejectionReason,
        title: str,
        message: str,
        detail: Optional[object] = None
    ) -> 'Result[T]':
        return cls(rejection=Rejection(reason=reason, title=title, message=message, detail=detail))
