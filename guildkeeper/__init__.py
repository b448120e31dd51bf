"""
GuildKeeper
Community management bot: moderation, tickets, onboarding and logging
"""

__version__ = "1.0.0"
