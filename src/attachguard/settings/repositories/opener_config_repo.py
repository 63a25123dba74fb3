"""Repository for the attachment_blocker_openers table (temporary voice openers)."""

from __future__ import annotations

import json
from typing import List

import aiosqlite

from attachguard.datatypes.blocker_config import OpenerBlockerConfig
from attachguard.util.logger import get_logger

logger = get_logger("opener_config_repo")

_COLUMNS = """
    opener_channel_id, guild_id, enabled, allowed_types, timeout_ms,
    created_by, created_at, updated_at
"""


def _row_to_config(row) -> OpenerBlockerConfig:
    return OpenerBlockerConfig.from_dict({
        "opener_channel_id": row[0],
        "guild_id": row[1],
        "enabled": bool(row[2]),
        "allowed_types": json.loads(row[3] or "[]"),
        "timeout_ms": row[4],
        "created_by": row[5],
        "created_at": row[6],
        "updated_at": row[7],
    })


class OpenerConfigRepository:
    """CRUD for opener overrides."""

    async def get(
        self, conn: aiosqlite.Connection, opener_channel_id: int
    ) -> OpenerBlockerConfig | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM attachment_blocker_openers WHERE opener_channel_id = ?",
            (int(opener_channel_id),),
        ) as cursor:
            row = await cursor.fetchone()

        return None if row is None else _row_to_config(row)

    async def list_for_guild(
        self, conn: aiosqlite.Connection, guild_id: int
    ) -> List[OpenerBlockerConfig]:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM attachment_blocker_openers WHERE guild_id = ? ORDER BY opener_channel_id",
            (int(guild_id),),
        ) as cursor:
            rows = await cursor.fetchall()

        return [_row_to_config(row) for row in rows]

    async def ids_for_guild(self, conn: aiosqlite.Connection, guild_id: int) -> List[int]:
        async with conn.execute(
            "SELECT opener_channel_id FROM attachment_blocker_openers WHERE guild_id = ?",
            (int(guild_id),),
        ) as cursor:
            rows = await cursor.fetchall()

        return [row[0] for row in rows]

    async def upsert(
        self, conn: aiosqlite.Connection, config: OpenerBlockerConfig
    ) -> None:
        await conn.execute(
            f"""
            INSERT INTO attachment_blocker_openers ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(opener_channel_id) DO UPDATE SET
                guild_id      = excluded.guild_id,
                enabled       = excluded.enabled,
                allowed_types = excluded.allowed_types,
                timeout_ms    = excluded.timeout_ms,
                created_by    = excluded.created_by,
                updated_at    = excluded.updated_at
            """,
            (
                int(config.opener_channel_id),
                int(config.guild_id),
                1 if config.enabled else 0,
                json.dumps([t.value for t in config.allowed_types]),
                config.timeout_ms,
                int(config.created_by),
                config.created_at,
                config.updated_at,
            ),
        )

    async def delete(self, conn: aiosqlite.Connection, opener_channel_id: int) -> bool:
        cursor = await conn.execute(
            "DELETE FROM attachment_blocker_openers WHERE opener_channel_id = ?",
            (int(opener_channel_id),),
        )
        return cursor.rowcount > 0

    async def delete_for_guild(self, conn: aiosqlite.Connection, guild_id: int) -> int:
        cursor = await conn.execute(
            "DELETE FROM attachment_blocker_openers WHERE guild_id = ?",
            (int(guild_id),),
        )
        return cursor.rowcount
