"""
Command Registry
Static table of every slash command with its category and preconditions
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class Category:
    key: str
    label: str
    emoji: str
    description: str


@dataclass(frozen=True)
class CommandSpec:
    name: str
    category: str
    description: str
    usage: str
    permissions: Tuple[str, ...] = ()
    roles: Tuple[str, ...] = ()
    guild_only: bool = True


CATEGORIES: Dict[str, Category] = {
    'moderation': Category('moderation', 'Moderation', '🔨', 'Ban, kick, mute, warn and clean up channels'),
    'admin': Category('admin', 'Admin', '⚙️', 'Configure auto-roles, welcome messages, logging and tickets'),
    'support': Category('support', 'Support', '🎫', 'Open and close support tickets'),
    'utility': Category('utility', 'Utility', '🔧', 'Help, FAQ and general information')
}


COMMANDS: Dict[str, CommandSpec] = {spec.name: spec for spec in (
    CommandSpec('ban', 'moderation', 'Ban a user from the server', '/ban <user> [reason] [delete_days]', ('ban_members',)),
    CommandSpec('kick', 'moderation', 'Kick a user from the server', '/kick <user> [reason]', ('kick_members',)),
    CommandSpec('mute', 'moderation', 'Timeout a user (max 28 days)', '/mute <user> [duration] [reason]', ('moderate_members',)),
    CommandSpec('unmute', 'moderation', 'Remove a timeout from a user', '/unmute <user> [reason]', ('moderate_members',)),
    CommandSpec('warn', 'moderation', 'Issue a warning to a user', '/warn <user> <reason>', ('moderate_members',)),
    CommandSpec('purge', 'moderation', 'Bulk delete recent messages', '/purge <amount> [user] [reason]', ('manage_messages',)),
    CommandSpec('slowmode', 'moderation', 'Set the channel slowmode', '/slowmode <seconds> [channel] [reason]', ('manage_channels',)),

    CommandSpec('autorole', 'admin', 'Configure automatic role assignment', '/autorole add|remove|list [role]', ('manage_roles',)),
    CommandSpec('welcome', 'admin', 'Configure welcome messages', '/welcome set|background|toggle_image|disable|test|view', ('manage_guild',)),
    CommandSpec('logs', 'admin', 'Configure logging channels', '/logs mod_log|member_log|message_log|disable|view', ('manage_guild',)),
    CommandSpec('setup', 'admin', 'Post the ticket panel', '/setup ticket <channel> [message] [support_role]', ('manage_guild',)),
    CommandSpec('embed', 'admin', 'Send a custom embed', '/embed [title] [description] [color] [image] [thumbnail] [footer] [channel]', ('manage_messages',)),

    CommandSpec('ticket', 'support', 'Create a support ticket', '/ticket [reason]'),
    CommandSpec('close', 'support', 'Close the current ticket', '/close [reason]'),

    CommandSpec('help', 'utility', 'Show the help menu', '/help [category]', guild_only=False),
    CommandSpec('faq', 'utility', 'Frequently asked questions', '/faq [topic]', guild_only=False),
    CommandSpec('ping', 'utility', 'Check bot latency', '/ping', guild_only=False),
    CommandSpec('avatar', 'utility', "Show a user's avatar", '/avatar [user]', guild_only=False),
    CommandSpec('serverinfo', 'utility', 'Show server information', '/serverinfo'),
    CommandSpec('userinfo', 'utility', 'Show user information', '/userinfo [user]')
)}


def commands_in(category: str) -> List[CommandSpec]:
    return [spec for spec in COMMANDS.values() if spec.category == category]
