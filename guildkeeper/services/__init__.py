"""
Workflow Services for GuildKeeper
Business rules shared by the cogs
"""

from .moderation import ModerationOutcome, ModerationService
from .onboarding import JoinOutcome, OnboardingService
from .reconciliation import Reconciler
from .tickets import TicketClosed, TicketCreated, TicketService

__all__ = [
    'ModerationOutcome',
    'ModerationService',
    'JoinOutcome',
    'OnboardingService',
    'Reconciler',
    'TicketClosed',
    'TicketCreated',
    'TicketService'
]
