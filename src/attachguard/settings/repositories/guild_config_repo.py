"""
Repository for the attachment_blocker_guilds table.

Handles only the guild defaults table. Errors propagate to the caller.
"""

from __future__ import annotations

import json

import aiosqlite

from attachguard.datatypes.blocker_config import GuildBlockerConfig
from attachguard.util.logger import get_logger

logger = get_logger("guild_config_repo")

_COLUMNS = """
    guild_id, enabled, default_allowed_types, default_timeout_ms,
    bypass_role_ids, created_at, updated_at
"""


def _row_to_config(row) -> GuildBlockerConfig:
    return GuildBlockerConfig.from_dict({
        "guild_id": row[0],
        "enabled": bool(row[1]),
        "default_allowed_types": json.loads(row[2] or "[]"),
        "default_timeout_ms": row[3],
        "bypass_role_ids": json.loads(row[4] or "[]"),
        "created_at": row[5],
        "updated_at": row[6],
    })


class GuildConfigRepository:
    """CRUD for the attachment_blocker_guilds table only."""

    async def get(
        self, conn: aiosqlite.Connection, guild_id: int
    ) -> GuildBlockerConfig | None:
        """Fetch a guild's defaults, or None."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM attachment_blocker_guilds WHERE guild_id = ?",
            (int(guild_id),),
        ) as cursor:
            row = await cursor.fetchone()

        return None if row is None else _row_to_config(row)

    async def upsert(
        self, conn: aiosqlite.Connection, config: GuildBlockerConfig
    ) -> None:
        """Insert or replace a guild's defaults row."""
        await conn.execute(
            f"""
            INSERT INTO attachment_blocker_guilds ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                enabled               = excluded.enabled,
                default_allowed_types = excluded.default_allowed_types,
                default_timeout_ms    = excluded.default_timeout_ms,
                bypass_role_ids       = excluded.bypass_role_ids,
                updated_at            = excluded.updated_at
            """,
            (
                int(config.guild_id),
                1 if config.enabled else 0,
                json.dumps([t.value for t in config.default_allowed_types]),
                int(config.default_timeout_ms),
                json.dumps(list(config.bypass_role_ids)),
                config.created_at,
                config.updated_at,
            ),
        )

    async def delete(self, conn: aiosqlite.Connection, guild_id: int) -> bool:
        """Delete a guild's defaults row. Returns True if a row was removed."""
        cursor = await conn.execute(
            "DELETE FROM attachment_blocker_guilds WHERE guild_id = ?",
            (int(guild_id),),
        )
        return cursor.rowcount > 0
