"""
Moderation Workflow
Validates actor/target relationships and executes punitive actions
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence

import discord

from guildkeeper.config import AUTO_MUTE_DURATION_MS
from guildkeeper.db_manager import DatabaseManager
from guildkeeper.models.moderation import ALL_USERS, CHANNEL_SCOPE, ModerationAction
from guildkeeper.services.reconciliation import Reconciler
from guildkeeper.utils.embed_builder import EmbedBuilder, EmbedColor
from guildkeeper.utils.helpers import MAX_TIMEOUT_MS, format_duration, parse_duration
from guildkeeper.utils.notify import post_to_channel, send_dm
from guildkeeper.utils.permissions import PermissionChecker, format_permission, is_member, missing_permissions
from guildkeeper.utils.results import RejectionReason, Result
from guildkeeper.utils.validators import validate_reason

logger = logging.getLogger('guildkeeper.moderation')

DEFAULT_MUTE_DURATION = "1h"
PURGE_FETCH_LIMIT = 100
BULK_DELETE_MAX_AGE = timedelta(days=14)
MAX_SLOWMODE_SECONDS = 21600

REQUIRED_PERMISSIONS = {
    ModerationAction.BAN: ('ban_members',),
    ModerationAction.KICK: ('kick_members',),
    ModerationAction.MUTE: ('moderate_members',),
    ModerationAction.UNMUTE: ('moderate_members',),
    ModerationAction.WARN: ('moderate_members',),
    ModerationAction.PURGE: ('manage_messages',),
    ModerationAction.SLOWMODE: ('manage_channels',)
}


@dataclass
class ModerationOutcome:
    action: ModerationAction
    moderator: object
    reason: str
    target: Optional[object] = None
    duration_ms: Optional[int] = None
    dm_sent: bool = False
    delete_days: int = 0
    warning_count: Optional[int] = None
    auto_muted: bool = False
    auto_mute_failed: bool = False
    deleted_count: int = 0
    channel: Optional[object] = None
    slowmode_seconds: Optional[int] = None

    @property
    def duration_text(self) -> Optional[str]:
        if self.duration_ms is None:
            return None
        return format_duration(self.duration_ms)


class ModerationService:
    def __init__(
        self,
        db: DatabaseManager,
        reconciler: Reconciler,
        checker: Optional[PermissionChecker] = None,
        max_warnings: int = 3
    ):
        self.db = db
        self.reconciler = reconciler
        self.checker = checker or PermissionChecker()
        self.max_warnings = max_warnings

    # Preconditions

    def _check_permissions(self, action: ModerationAction, actor) -> Optional[Result]:
        required = REQUIRED_PERMISSIONS[action]

        missing = missing_permissions(actor, required)
        if missing:
            names = ", ".join(f'"{format_permission(p)}"' for p in missing)
            return Result.reject(
                RejectionReason.MISSING_PERMISSION,
                "Missing Permissions",
                f"You need the {names} permission to use this command."
            )

        bot_missing = missing_permissions(actor.guild.me, required)
        if bot_missing:
            names = ", ".join(f'"{format_permission(p)}"' for p in bot_missing)
            return Result.reject(
                RejectionReason.BOT_MISSING_PERMISSION,
                "Bot Missing Permissions",
                f"I need the {names} permission to execute this command."
            )

        return None

    def _check_target(
        self,
        action: ModerationAction,
        actor,
        target,
        require_member: bool = True
    ) -> Optional[Result]:
        verb = action.value
        bot_member = actor.guild.me

        if target.id == actor.id:
            return Result.reject(RejectionReason.SELF_TARGET, "Invalid Target", f"You cannot {verb} yourself.")

        if target.id == bot_member.id:
            return Result.reject(RejectionReason.BOT_TARGET, "Invalid Target", f"I cannot {verb} myself.")

        if not is_member(target):
            if require_member:
                return Result.reject(
                    RejectionReason.NOT_A_MEMBER,
                    "User Not Found",
                    "This user is not a member of this server."
                )
            return None

        if not self.checker.outranks(actor, target):
            return Result.reject(
                RejectionReason.HIERARCHY,
                "Role Hierarchy",
                f"You cannot {verb} a user with an equal or higher role than yours."
            )

        if not self.checker.outranks(bot_member, target):
            return Result.reject(
                RejectionReason.BOT_HIERARCHY,
                "Role Hierarchy",
                f"I cannot {verb} this user. Their highest role is equal to or above mine."
            )

        return None

    def _preconditions(self, action: ModerationAction, actor, target=None, require_member: bool = True) -> Optional[Result]:
        rejection = self._check_permissions(action, actor)
        if rejection is None and target is not None:
            rejection = self._check_target(action, actor, target, require_member)
        if rejection is not None:
            log = logger.info if rejection.reason.is_permission_denial else logger.debug
            log(f"{action.value} by {actor} ({actor.id}) rejected: {rejection.reason.value}")
        return rejection

    def _dm_embed(self, action: ModerationAction, guild, moderator, reason: str, duration: Optional[str] = None) -> discord.Embed:
        embed = (
            EmbedBuilder(
                title=f"{action.emoji} You have been {action.past_tense}",
                description=f"You have been {action.past_tense} in **{guild.name}**."
            )
            .color(EmbedColor.MODERATION)
            .field("Reason", reason, False)
            .field("Moderator", str(moderator), True)
        )

        if duration:
            embed.field("Duration", duration, True)

        return embed.build()

    # Actions

    async def ban(self, actor, target, reason: Optional[str] = None, delete_days: int = 0) -> Result[ModerationOutcome]:
        action = ModerationAction.BAN
        rejection = self._preconditions(action, actor, target, require_member=False)
        if rejection is not None:
            return rejection

        if not 0 <= delete_days <= 7:
            return Result.reject(
                RejectionReason.INVALID_AMOUNT,
                "Invalid Amount",
                "Message deletion must be between 0 and 7 days."
            )

        guild = actor.guild
        reason = validate_reason(reason)
        outcome = ModerationOutcome(action=action, moderator=actor, target=target, reason=reason, delete_days=delete_days)

        outcome.dm_sent = await send_dm(target, self._dm_embed(action, guild, actor, reason))

        await guild.ban(
            target,
            reason=f"{reason} | Moderator: {actor}",
            delete_message_seconds=delete_days * 86400
        )
        await self.db.add_mod_log(guild.id, target.id, actor.id, action, reason)

        logger.info(f"{actor} banned {target} in {guild.name} for: {reason}")
        return Result.success(outcome)

    async def kick(self, actor, target, reason: Optional[str] = None) -> Result[ModerationOutcome]:
        action = ModerationAction.KICK
        rejection = self._preconditions(action, actor, target)
        if rejection is not None:
            return rejection

        guild = actor.guild
        reason = validate_reason(reason)
        outcome = ModerationOutcome(action=action, moderator=actor, target=target, reason=reason)

        outcome.dm_sent = await send_dm(target, self._dm_embed(action, guild, actor, reason))

        await target.kick(reason=f"{reason} | Moderator: {actor}")
        await self.db.add_mod_log(guild.id, target.id, actor.id, action, reason)

        logger.info(f"{actor} kicked {target} from {guild.name} for: {reason}")
        return Result.success(outcome)

    async def mute(
        self,
        actor,
        target,
        duration: Optional[str] = None,
        reason: Optional[str] = None
    ) -> Result[ModerationOutcome]:
        action = ModerationAction.MUTE
        rejection = self._preconditions(action, actor, target)
        if rejection is not None:
            return rejection

        if target.is_timed_out():
            return Result.reject(RejectionReason.ALREADY_MUTED, "Already Muted", "This user is already muted.")

        duration_ms = parse_duration(duration or DEFAULT_MUTE_DURATION)
        if duration_ms is None or duration_ms <= 0 or duration_ms > MAX_TIMEOUT_MS:
            return Result.reject(
                RejectionReason.INVALID_DURATION,
                "Invalid Duration",
                "Please provide a valid duration such as `10m`, `1h` or `2d` (maximum 28 days)."
            )

        guild = actor.guild
        reason = validate_reason(reason)
        outcome = ModerationOutcome(action=action, moderator=actor, target=target, reason=reason, duration_ms=duration_ms)

        outcome.dm_sent = await send_dm(target, self._dm_embed(action, guild, actor, reason, outcome.duration_text))

        await target.timeout(timedelta(milliseconds=duration_ms), reason=f"{reason} | Moderator: {actor}")
        await self.db.add_mod_log(guild.id, target.id, actor.id, action, reason, duration=duration_ms)

        logger.info(f"{actor} muted {target} in {guild.name} for {outcome.duration_text}: {reason}")
        return Result.success(outcome)

    async def unmute(self, actor, target, reason: Optional[str] = None) -> Result[ModerationOutcome]:
        action = ModerationAction.UNMUTE
        rejection = self._preconditions(action, actor, target)
        if rejection is not None:
            return rejection

        if not target.is_timed_out():
            return Result.reject(RejectionReason.NOT_MUTED, "Not Muted", "This user is not muted.")

        guild = actor.guild
        reason = validate_reason(reason)
        outcome = ModerationOutcome(action=action, moderator=actor, target=target, reason=reason)

        outcome.dm_sent = await send_dm(target, self._dm_embed(action, guild, actor, reason))

        await target.timeout(None, reason=f"{reason} | Moderator: {actor}")
        await self.db.add_mod_log(guild.id, target.id, actor.id, action, reason)

        logger.info(f"{actor} unmuted {target} in {guild.name}: {reason}")
        return Result.success(outcome)

    async def warn(self, actor, target, reason: Optional[str] = None) -> Result[ModerationOutcome]:
        action = ModerationAction.WARN
        rejection = self._preconditions(action, actor, target)
        if rejection is not None:
            return rejection

        guild = actor.guild
        reason = validate_reason(reason)
        outcome = ModerationOutcome(action=action, moderator=actor, target=target, reason=reason)

        outcome.dm_sent = await send_dm(target, self._dm_embed(action, guild, actor, reason))

        await self.db.add_warning(guild.id, target.id, actor.id, reason)
        await self.db.add_mod_log(guild.id, target.id, actor.id, action, reason)

        outcome.warning_count = await self.db.get_warning_count(guild.id, target.id)
        logger.info(f"{actor} warned {target} in {guild.name} ({outcome.warning_count} active): {reason}")

        if outcome.warning_count >= self.max_warnings:
            await self._escalate(guild, target, outcome)

        return Result.success(outcome)

    async def _escalate(self, guild, target, outcome: ModerationOutcome):
        bot_member = guild.me
        auto_reason = f"Automatic punishment for reaching {outcome.warning_count} warnings"

        try:
            await target.timeout(timedelta(milliseconds=AUTO_MUTE_DURATION_MS), reason=auto_reason)
        except discord.HTTPException as e:
            outcome.auto_mute_failed = True
            logger.warning(f"Auto-mute failed for {target} in {guild.name}: {e}")
            return

        await self.db.add_mod_log(
            guild.id,
            target.id,
            bot_member.id,
            ModerationAction.AUTO_MUTE,
            auto_reason,
            duration=AUTO_MUTE_DURATION_MS
        )
        outcome.auto_muted = True
        logger.info(f"Auto-muted {target} in {guild.name} after {outcome.warning_count} warnings")

    async def purge(
        self,
        actor,
        channel,
        amount: int,
        target_user=None,
        reason: Optional[str] = None
    ) -> Result[ModerationOutcome]:
        action = ModerationAction.PURGE
        rejection = self._preconditions(action, actor)
        if rejection is not None:
            return rejection

        if not 1 <= amount <= 100:
            return Result.reject(
                RejectionReason.INVALID_AMOUNT,
                "Invalid Amount",
                "You can delete between 1 and 100 messages at a time."
            )

        messages = [message async for message in channel.history(limit=PURGE_FETCH_LIMIT)]
        eligible = select_purgeable(messages, amount, target_user, discord.utils.utcnow())

        if not eligible:
            return Result.reject(
                RejectionReason.NOTHING_TO_DELETE,
                "No Messages to Delete",
                "No messages found to delete. Messages older than 14 days cannot be bulk deleted."
            )

        guild = actor.guild
        reason = validate_reason(reason)

        await channel.delete_messages(eligible, reason=f"{reason} | Moderator: {actor}")

        outcome = ModerationOutcome(
            action=action,
            moderator=actor,
            target=target_user,
            reason=reason,
            deleted_count=len(eligible),
            channel=channel
        )
        await self.db.add_mod_log(
            guild.id,
            target_user.id if target_user else ALL_USERS,
            actor.id,
            action,
            f"{reason} | Deleted {len(eligible)} messages"
        )

        logger.info(f"{actor} purged {len(eligible)} messages in #{channel.name} ({guild.name})")
        return Result.success(outcome)

    async def set_slowmode(self, actor, channel, seconds: int, reason: Optional[str] = None) -> Result[ModerationOutcome]:
        action = ModerationAction.SLOWMODE
        rejection = self._preconditions(action, actor)
        if rejection is not None:
            return rejection

        if not 0 <= seconds <= MAX_SLOWMODE_SECONDS:
            return Result.reject(
                RejectionReason.INVALID_AMOUNT,
                "Invalid Duration",
                f"Slowmode must be between 0 and {MAX_SLOWMODE_SECONDS} seconds."
            )

        guild = actor.guild
        reason = validate_reason(reason)

        await channel.edit(slowmode_delay=seconds, reason=f"{reason} | Moderator: {actor}")

        outcome = ModerationOutcome(
            action=action,
            moderator=actor,
            reason=reason,
            channel=channel,
            slowmode_seconds=seconds,
            duration_ms=seconds * 1000 if seconds else None
        )
        await self.db.add_mod_log(
            guild.id,
            CHANNEL_SCOPE,
            actor.id,
            action,
            f"{reason} | Channel: #{channel.name} | Duration: {seconds}s",
            duration=seconds * 1000
        )

        logger.info(f"{actor} set slowmode in #{channel.name} ({guild.name}) to {seconds}s")
        return Result.success(outcome)

    # Mirroring

    async def mirror(self, guild, outcome: ModerationOutcome) -> bool:
        settings = await self.db.get_guild_settings(guild.id)
        channel = await self.reconciler.resolve_channel(guild, settings.mod_log_channel)
        if channel is None:
            return False

        extra = None
        if outcome.action == ModerationAction.PURGE:
            extra = ("Messages Deleted", str(outcome.deleted_count))
        elif outcome.action == ModerationAction.SLOWMODE:
            extra = ("Channel", outcome.channel.mention)
        elif outcome.action == ModerationAction.BAN:
            extra = ("Messages Deleted", f"{outcome.delete_days} day(s)")
        elif outcome.warning_count is not None:
            extra = ("Active Warnings", str(outcome.warning_count))

        embed = EmbedBuilder.moderation(
            action=outcome.action.value.upper(),
            moderator=outcome.moderator,
            target=outcome.target,
            reason=outcome.reason,
            duration=outcome.duration_text,
            extra=extra
        )
        sent = await post_to_channel(channel, embed=embed)

        if sent and outcome.auto_muted:
            auto_embed = EmbedBuilder.moderation(
                action=ModerationAction.AUTO_MUTE.value.upper(),
                moderator=guild.me,
                target=outcome.target,
                reason=f"Automatic punishment for reaching {outcome.warning_count} warnings",
                duration=format_duration(AUTO_MUTE_DURATION_MS)
            )
            await post_to_channel(channel, embed=auto_embed)

        return sent


def select_purgeable(messages: Sequence, amount: int, target_user, now) -> list:
    """Pick up to ``amount`` of the newest messages (optionally by one author) young enough to bulk delete."""
    if target_user is not None:
        messages = [m for m in messages if m.author.id == target_user.id]

    cutoff = now - BULK_DELETE_MAX_AGE
    return [m for m in messages[:amount] if m.created_at > cutoff]
