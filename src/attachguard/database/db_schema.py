"""
Database schema initialization.

Creates the three attachment blocker tables, their guild indexes and the
schema version marker. List-valued columns hold JSON arrays.
"""

import aiosqlite
from attachguard.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates and versions the attachment blocker schema."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes if missing.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS attachment_blocker_guilds (
                guild_id INTEGER PRIMARY KEY,
                enabled INTEGER NOT NULL DEFAULT 0,
                default_allowed_types TEXT NOT NULL DEFAULT '[]',
                default_timeout_ms INTEGER NOT NULL DEFAULT 0,
                bypass_role_ids TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL DEFAULT '',
                updated_at TEXT NOT NULL DEFAULT ''
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS attachment_blocker_channels (
                channel_id INTEGER PRIMARY KEY,
                guild_id INTEGER NOT NULL,
                enabled INTEGER NOT NULL DEFAULT 1,
                allowed_types TEXT NOT NULL DEFAULT '[]',
                timeout_ms INTEGER,
                bypass_role_ids TEXT NOT NULL DEFAULT '[]',
                created_by INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT '',
                updated_at TEXT NOT NULL DEFAULT ''
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS attachment_blocker_openers (
                opener_channel_id INTEGER PRIMARY KEY,
                guild_id INTEGER NOT NULL,
                enabled INTEGER NOT NULL DEFAULT 1,
                allowed_types TEXT NOT NULL DEFAULT '[]',
                timeout_ms INTEGER,
                created_by INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT '',
                updated_at TEXT NOT NULL DEFAULT ''
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_blocker_channels_guild ON attachment_blocker_channels(guild_id)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_blocker_openers_guild ON attachment_blocker_openers(guild_id)"
        )

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
