"""
Database Manager
SQLite persistence for settings, tickets, warnings, audit logs and auto-roles
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import aiosqlite

from guildkeeper.models.guild import GuildSettings
from guildkeeper.models.moderation import ModerationAction, ModLog, Warning
from guildkeeper.models.ticket import Ticket, TicketStatus

logger = logging.getLogger('guildkeeper.database')


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS guild_settings (
        guild_id INTEGER PRIMARY KEY,
        welcome_channel INTEGER,
        welcome_message TEXT,
        welcome_image_enabled INTEGER NOT NULL DEFAULT 0,
        background_url TEXT,
        mod_log_channel INTEGER,
        member_log_channel INTEGER,
        message_log_channel INTEGER,
        ticket_channel INTEGER,
        ticket_category INTEGER,
        ticket_message TEXT,
        ticket_support_role INTEGER,
        ticket_log_channel INTEGER,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tickets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        guild_id INTEGER NOT NULL,
        channel_id INTEGER NOT NULL,
        user_id INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'open',
        reason TEXT,
        created_at TEXT NOT NULL,
        closed_at TEXT,
        closed_by INTEGER
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_tickets_one_open
        ON tickets (guild_id, user_id) WHERE status = 'open'
    """,
    "CREATE INDEX IF NOT EXISTS idx_tickets_channel ON tickets (channel_id)",
    """
    CREATE TABLE IF NOT EXISTS warnings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        guild_id INTEGER NOT NULL,
        user_id INTEGER NOT NULL,
        moderator_id INTEGER NOT NULL,
        reason TEXT NOT NULL,
        active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_warnings_user ON warnings (guild_id, user_id, active)",
    """
    CREATE TABLE IF NOT EXISTS mod_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        guild_id INTEGER NOT NULL,
        user_id TEXT NOT NULL,
        moderator_id INTEGER NOT NULL,
        action TEXT NOT NULL,
        reason TEXT,
        duration INTEGER,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_mod_logs_user ON mod_logs (guild_id, user_id)",
    """
    CREATE TABLE IF NOT EXISTS autoroles (
        guild_id INTEGER NOT NULL,
        role_id INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (guild_id, role_id)
    )
    """
]


class DatabaseManager:
    def __init__(self, db_path: str = "data/bot.db"):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()
        self._cache: Dict[str, Dict[Any, Any]] = {
            'guilds': {}
        }

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("DatabaseManager.initialize() has not been called")
        return self._conn

    async def initialize(self):
        if self._conn is not None:
            return

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode = WAL")

        for statement in SCHEMA:
            await self._conn.execute(statement)
        await self._conn.commit()

        logger.info(f"Database ready at {self.db_path}")

    async def close(self):
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        self._cache['guilds'].clear()
        logger.info("Database connection closed")

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._write_lock:
            conn = self.connection
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    # Guild settings

    async def get_guild_settings(self, guild_id: int) -> GuildSettings:
        if guild_id in self._cache['guilds']:
            return self._cache['guilds'][guild_id]

        cursor = await self.connection.execute(
            "SELECT * FROM guild_settings WHERE guild_id = ?", (guild_id,)
        )
        row = await cursor.fetchone()
        await cursor.close()

        if not row:
            return GuildSettings(guild_id=guild_id)

        settings = GuildSettings.from_dict(dict(row))
        self._cache['guilds'][guild_id] = settings
        return settings

    async def update_guild_settings(self, guild_id: int, **changes: Any) -> GuildSettings:
        editable = set(GuildSettings.editable_fields())
        unknown = set(changes) - editable
        if unknown:
            raise ValueError(f"Unknown guild setting(s): {', '.join(sorted(unknown))}")

        if 'welcome_image_enabled' in changes:
            changes['welcome_image_enabled'] = int(bool(changes['welcome_image_enabled']))

        now = datetime.now().isoformat()
        columns = ['guild_id', *changes.keys(), 'created_at', 'updated_at']
        values = [guild_id, *changes.values(), now, now]
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{name} = excluded.{name}" for name in [*changes.keys(), 'updated_at'])

        async with self._transaction() as conn:
            await conn.execute(
                f"INSERT INTO guild_settings ({', '.join(columns)}) VALUES ({placeholders}) "
                f"ON CONFLICT(guild_id) DO UPDATE SET {updates}",
                values
            )

        self._cache['guilds'].pop(guild_id, None)
        return await self.get_guild_settings(guild_id)

    # Tickets

    async def create_ticket(
        self,
        guild_id: int,
        channel_id: int,
        user_id: int,
        reason: Optional[str] = None
    ) -> Optional[Ticket]:
        ticket = Ticket(guild_id=guild_id, channel_id=channel_id, user_id=user_id, reason=reason)

        async with self._transaction() as conn:
            cursor = await conn.execute(
                "INSERT OR IGNORE INTO tickets (guild_id, channel_id, user_id, status, reason, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (guild_id, channel_id, user_id, TicketStatus.OPEN.value, reason, ticket.created_at.isoformat())
            )
            inserted = cursor.rowcount
            ticket.id = cursor.lastrowid
            await cursor.close()

        if not inserted:
            logger.info(f"Ignored duplicate open ticket for user {user_id} in guild {guild_id}")
            return None
        return ticket

    async def get_ticket_by_channel(self, channel_id: int) -> Optional[Ticket]:
        cursor = await self.connection.execute(
            "SELECT * FROM tickets WHERE channel_id = ? ORDER BY id DESC LIMIT 1", (channel_id,)
        )
        row = await cursor.fetchone()
        await cursor.close()
        return Ticket.from_dict(dict(row)) if row else None

    async def get_open_ticket(self, guild_id: int, user_id: int) -> Optional[Ticket]:
        cursor = await self.connection.execute(
            "SELECT * FROM tickets WHERE guild_id = ? AND user_id = ? AND status = 'open' LIMIT 1",
            (guild_id, user_id)
        )
        row = await cursor.fetchone()
        await cursor.close()
        return Ticket.from_dict(dict(row)) if row else None

    async def close_ticket(
        self,
        ticket_id: int,
        closed_by: int,
        closed_at: Optional[datetime] = None,
        reason: Optional[str] = None
    ) -> bool:
        closed_at = closed_at or datetime.now()

        async with self._transaction() as conn:
            cursor = await conn.execute(
                "UPDATE tickets SET status = 'closed', closed_at = ?, closed_by = ?, reason = COALESCE(?, reason) "
                "WHERE id = ? AND status = 'open'",
                (closed_at.isoformat(), closed_by, reason, ticket_id)
            )
            updated = cursor.rowcount
            await cursor.close()

        return updated == 1

    # Warnings

    async def add_warning(self, guild_id: int, user_id: int, moderator_id: int, reason: str) -> Warning:
        warning = Warning(guild_id=guild_id, user_id=user_id, moderator_id=moderator_id, reason=reason)

        async with self._transaction() as conn:
            cursor = await conn.execute(
                "INSERT INTO warnings (guild_id, user_id, moderator_id, reason, active, created_at) "
                "VALUES (?, ?, ?, ?, 1, ?)",
                (guild_id, user_id, moderator_id, reason, warning.created_at.isoformat())
            )
            warning.id = cursor.lastrowid
            await cursor.close()

        return warning

    async def get_warning_count(self, guild_id: int, user_id: int) -> int:
        cursor = await self.connection.execute(
            "SELECT COUNT(*) FROM warnings WHERE guild_id = ? AND user_id = ? AND active = 1",
            (guild_id, user_id)
        )
        row = await cursor.fetchone()
        await cursor.close()
        return row[0] if row else 0

    async def deactivate_warnings(self, guild_id: int, user_id: int) -> int:
        """Clear a user's active warnings, returning how many were deactivated"""
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "UPDATE warnings SET active = 0 WHERE guild_id = ? AND user_id = ? AND active = 1",
                (guild_id, user_id)
            )
            updated = cursor.rowcount
            await cursor.close()

        return updated

    # Moderation audit log

    async def add_mod_log(
        self,
        guild_id: int,
        user_id: Union[int, str],
        moderator_id: int,
        action: ModerationAction,
        reason: str,
        duration: Optional[int] = None
    ) -> ModLog:
        log = ModLog(
            guild_id=guild_id,
            user_id=user_id,
            moderator_id=moderator_id,
            action=action,
            reason=reason,
            duration=duration
        )

        async with self._transaction() as conn:
            cursor = await conn.execute(
                "INSERT INTO mod_logs (guild_id, user_id, moderator_id, action, reason, duration, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (guild_id, str(user_id), moderator_id, action.value, reason, duration, log.created_at.isoformat())
            )
            log.id = cursor.lastrowid
            await cursor.close()

        return log

    async def get_mod_logs(
        self,
        guild_id: int,
        user_id: Optional[Union[int, str]] = None,
        action: Optional[ModerationAction] = None,
        limit: int = 50
    ) -> List[ModLog]:
        query = "SELECT * FROM mod_logs WHERE guild_id = ?"
        params: list = [guild_id]

        if user_id is not None:
            query += " AND user_id = ?"
            params.append(str(user_id))
        if action is not None:
            query += " AND action = ?"
            params.append(action.value)

        query += " ORDER BY id LIMIT ?"
        params.append(limit)

        cursor = await self.connection.execute(query, params)
        rows = await cursor.fetchall()
        await cursor.close()
        return [ModLog.from_dict(dict(row)) for row in rows]

    # Auto-roles

    async def get_auto_roles(self, guild_id: int) -> List[int]:
        cursor = await self.connection.execute(
            "SELECT role_id FROM autoroles WHERE guild_id = ? ORDER BY created_at, role_id", (guild_id,)
        )
        rows = await cursor.fetchall()
        await cursor.close()
        return [row['role_id'] for row in rows]

    async def add_auto_role(self, guild_id: int, role_id: int) -> bool:
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "INSERT OR IGNORE INTO autoroles (guild_id, role_id, created_at) VALUES (?, ?, ?)",
                (guild_id, role_id, datetime.now().isoformat())
            )
            inserted = cursor.rowcount
            await cursor.close()
        return inserted == 1

    async def remove_auto_role(self, guild_id: int, role_id: int) -> bool:
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "DELETE FROM autoroles WHERE guild_id = ? AND role_id = ?", (guild_id, role_id)
            )
            deleted = cursor.rowcount
            await cursor.close()
        return deleted == 1
