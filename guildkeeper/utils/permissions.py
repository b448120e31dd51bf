"""
Permission System for GuildKeeper
Permission flag checks and role hierarchy comparisons
"""

from typing import Iterable, List, Optional, Set

import discord


def format_permission(name: str) -> str:
    return name.replace('_', ' ').replace('guild', 'server').title()


def rank(member) -> int:
    top_role = getattr(member, 'top_role', None)
    return top_role.position if top_role is not None else 0


def missing_permissions(member, permissions: Iterable[str]) -> List[str]:
    granted = getattr(member, 'guild_permissions', None)
    if granted is None:
        return list(permissions)

    if getattr(granted, 'administrator', False):
        return []

    return [perm for perm in permissions if not getattr(granted, perm, False)]


def has_any_role(member, role_names: Iterable[str]) -> bool:
    wanted = {name.lower() for name in role_names}
    return any(role.name.lower() in wanted for role in getattr(member, 'roles', []))


def is_member(user) -> bool:
    return isinstance(user, discord.Member) or getattr(user, 'guild', None) is not None


class PermissionChecker:
    def __init__(self, owner_ids: Optional[Iterable[int]] = None):
        self._bot_owners: Set[int] = set(owner_ids or ())

    def set_bot_owners(self, owner_ids: Iterable[int]):
        self._bot_owners = set(owner_ids)

    def is_bot_owner(self, user_id: int) -> bool:
        return user_id in self._bot_owners

    def outranks(self, actor, target) -> bool:
        guild = getattr(target, 'guild', None)
        owner_id = getattr(guild, 'owner_id', None)

        if owner_id is not None:
            if target.id == owner_id:
                return False
            if actor.id == owner_id:
                return True

        return rank(actor) > rank(target)

    def can_assign_role(self, bot_member, role) -> bool:
        if getattr(role, 'managed', False):
            return False
        if role.is_default():
            return False
        return role.position < rank(bot_member)
