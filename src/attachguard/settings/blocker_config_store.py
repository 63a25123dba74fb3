"""
BlockerConfigStore: cache-aside access to the three attachment blocker scopes.

Responsibilities:
- Read-through: cache first, then SQLite; found records are written back
  with a fixed TTL. Cache trouble degrades to a database read, and a failed
  database read is reported as "no config" so resolution fails closed.
- Write-through invalidation: upsert/delete hit SQLite first, then drop the
  cache entry so the next read repopulates from the source of truth.
- Bulk removal of a guild's channel and opener overrides with per-key cache
  invalidation.

All raw SQL lives in the repositories; the connection and cache client are
injected at construction.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

import aiosqlite

from attachguard.database.db_cache import CacheClient
from attachguard.database.db_connection import ConnectionManager
from attachguard.datatypes.attachment_types import parse_attachment_types
from attachguard.datatypes.blocker_config import (
    ChannelBlockerConfig,
    GuildBlockerConfig,
    OpenerBlockerConfig,
    utcnow_iso,
)
from attachguard.settings.repositories import (
    ChannelConfigRepository,
    GuildConfigRepository,
    OpenerConfigRepository,
)
from attachguard.util.logger import get_logger

logger = get_logger("blocker_config_store")

CACHE_TTL = 300  # seconds

BlockerRecord = Union[GuildBlockerConfig, ChannelBlockerConfig, OpenerBlockerConfig]


class ConfigScope(Enum):
    """A configuration scope and its cache key namespace."""

    GUILD = "attachment-blocker:guild:"
    CHANNEL = "attachment-blocker:channel:"
    OPENER = "attachment-blocker:opener:"

    def cache_key(self, key: int) -> str:
        return f"{self.value}{int(key)}"


_RECORD_TYPES = {
    ConfigScope.GUILD: GuildBlockerConfig,
    ConfigScope.CHANNEL: ChannelBlockerConfig,
    ConfigScope.OPENER: OpenerBlockerConfig,
}

_KEY_FIELDS = {
    ConfigScope.GUILD: "guild_id",
    ConfigScope.CHANNEL: "channel_id",
    ConfigScope.OPENER: "opener_channel_id",
}

_WRITABLE_FIELDS = {
    ConfigScope.GUILD: {"enabled", "default_allowed_types", "default_timeout_ms", "bypass_role_ids"},
    ConfigScope.CHANNEL: {"guild_id", "enabled", "allowed_types", "timeout_ms", "bypass_role_ids", "created_by"},
    ConfigScope.OPENER: {"guild_id", "enabled", "allowed_types", "timeout_ms", "created_by"},
}


def _normalize_fields(scope: ConfigScope, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a partial update and convert it to the records' dict form."""
    unknown = set(fields) - _WRITABLE_FIELDS[scope]
    if unknown:
        raise ValueError(f"Unknown {scope.name.lower()} config fields: {sorted(unknown)}")

    normalized: Dict[str, Any] = {}
    for name, value in fields.items():
        if name in ("default_allowed_types", "allowed_types"):
            normalized[name] = [t.value for t in parse_attachment_types(value or [])]
        elif name == "bypass_role_ids":
            normalized[name] = [int(role_id) for role_id in value or []]
        elif name == "default_timeout_ms":
            normalized[name] = max(0, int(value or 0))
        elif name == "timeout_ms":
            normalized[name] = None if value is None else max(0, int(value))
        elif name in ("guild_id", "created_by"):
            normalized[name] = int(value)
        elif name == "enabled":
            normalized[name] = bool(value)
    return normalized


class BlockerConfigStore:
    """Cache-aside store for guild, channel and opener blocker configs."""

    def __init__(
        self,
        connection: ConnectionManager,
        cache: CacheClient,
        cache_ttl: int = CACHE_TTL,
    ) -> None:
        self._connection = connection
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._repos = {
            ConfigScope.GUILD: GuildConfigRepository(),
            ConfigScope.CHANNEL: ChannelConfigRepository(),
            ConfigScope.OPENER: OpenerConfigRepository(),
        }

    # ------------------------------------------------------------------
    # Generic scope operations
    # ------------------------------------------------------------------

    async def get(self, scope: ConfigScope, key: int) -> Optional[BlockerRecord]:
        """Return the record for ``key`` in ``scope``, or None if there is none."""
        cache_key = scope.cache_key(key)
        record_type = _RECORD_TYPES[scope]

        cached = await self._cache.get(cache_key)
        if cached.hit:
            try:
                return record_type.from_dict(json.loads(cached.value))
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("[BLOCKER STORE] Discarding unreadable cache entry %s: %s", cache_key, exc)
                await self._invalidate(cache_key)
        elif cached.miss_reason == "error":
            logger.debug("[BLOCKER STORE] Cache unavailable for %s; reading database", cache_key)

        try:
            async with self._connection.read() as conn:
                record = await self._repos[scope].get(conn, int(key))
        except (aiosqlite.Error, RuntimeError, ValueError) as exc:
            logger.error("[BLOCKER STORE] Failed to read %s config %s: %s", scope.name.lower(), int(key), exc)
            return None

        if record is not None:
            stored = await self._cache.set_with_ttl(cache_key, self._cache_ttl, json.dumps(record.to_dict()))
            if not stored:
                logger.debug("[BLOCKER STORE] Could not populate cache for %s", cache_key)
        return record

    async def upsert(self, scope: ConfigScope, key: int, fields: Mapping[str, Any]) -> BlockerRecord:
        """
        Insert or update the record for ``key``, applying only the given fields.

        Missing fields keep their stored value (or the default on insert).
        Passing ``timeout_ms=None`` clears an override's timeout so it falls
        back to the guild default. Database errors propagate.

        Raises:
            ValueError: For unknown fields, or a channel/opener insert without
                ``guild_id``.
        """
        normalized = _normalize_fields(scope, fields)
        record_type = _RECORD_TYPES[scope]
        key_field = _KEY_FIELDS[scope]
        repo = self._repos[scope]
        now = utcnow_iso()

        async with self._connection.transaction() as conn:
            existing = await repo.get(conn, int(key))
            if existing is None:
                if scope is not ConfigScope.GUILD and "guild_id" not in normalized:
                    raise ValueError(f"guild_id is required to create a {scope.name.lower()} override")
                data: Dict[str, Any] = {key_field: int(key), "created_at": now}
            else:
                data = existing.to_dict()

            data.update(normalized)
            data["updated_at"] = now
            record = record_type.from_dict(data)
            await repo.upsert(conn, record)

        await self._invalidate(scope.cache_key(key))
        logger.debug("[BLOCKER STORE] Upserted %s config %s", scope.name.lower(), int(key))
        return record

    async def delete(self, scope: ConfigScope, key: int) -> bool:
        """Delete the record for ``key``. Returns True if one existed."""
        async with self._connection.transaction() as conn:
            deleted = await self._repos[scope].delete(conn, int(key))

        await self._invalidate(scope.cache_key(key))
        return deleted

    async def delete_all_for_guild(self, guild_id: int) -> int:
        """
        Delete every channel and opener override belonging to a guild.

        Each affected cache key is invalidated on its own; one failure does
        not stop the others. The guild defaults record is left in place.

        Returns:
            Number of override records deleted.
        """
        channel_repo: ChannelConfigRepository = self._repos[ConfigScope.CHANNEL]
        opener_repo: OpenerConfigRepository = self._repos[ConfigScope.OPENER]

        async with self._connection.transaction() as conn:
            channel_ids = await channel_repo.ids_for_guild(conn, int(guild_id))
            opener_ids = await opener_repo.ids_for_guild(conn, int(guild_id))
            deleted = await channel_repo.delete_for_guild(conn, int(guild_id))
            deleted += await opener_repo.delete_for_guild(conn, int(guild_id))

        cache_keys = [ConfigScope.CHANNEL.cache_key(cid) for cid in channel_ids]
        cache_keys += [ConfigScope.OPENER.cache_key(oid) for oid in opener_ids]
        failures = 0
        for cache_key in cache_keys:
            if not await self._invalidate(cache_key):
                failures += 1

        if failures:
            logger.warning(
                "[BLOCKER STORE] %d of %d cache invalidations failed for guild %s",
                failures, len(cache_keys), int(guild_id),
            )
        logger.info("[BLOCKER STORE] Removed %d overrides for guild %s", deleted, int(guild_id))
        return deleted

    # ------------------------------------------------------------------
    # Guild defaults
    # ------------------------------------------------------------------

    async def get_guild_config(self, guild_id: int) -> Optional[GuildBlockerConfig]:
        return await self.get(ConfigScope.GUILD, guild_id)

    async def update_guild_config(self, guild_id: int, **fields: Any) -> GuildBlockerConfig:
        return await self.upsert(ConfigScope.GUILD, guild_id, fields)

    async def delete_guild_config(self, guild_id: int) -> bool:
        return await self.delete(ConfigScope.GUILD, guild_id)

    async def add_guild_bypass_role(self, guild_id: int, role_id: int) -> Optional[GuildBlockerConfig]:
        """Add a guild-wide bypass role. Returns None if the guild is not set up."""
        config = await self.get_guild_config(guild_id)
        if config is None:
            return None
        if int(role_id) in config.bypass_role_ids:
            return config
        return await self.update_guild_config(guild_id, bypass_role_ids=[*config.bypass_role_ids, int(role_id)])

    async def remove_guild_bypass_role(self, guild_id: int, role_id: int) -> Optional[GuildBlockerConfig]:
        config = await self.get_guild_config(guild_id)
        if config is None or int(role_id) not in config.bypass_role_ids:
            return config
        remaining = [rid for rid in config.bypass_role_ids if rid != int(role_id)]
        return await self.update_guild_config(guild_id, bypass_role_ids=remaining)

    # ------------------------------------------------------------------
    # Channel overrides
    # ------------------------------------------------------------------

    async def get_channel_config(self, channel_id: int) -> Optional[ChannelBlockerConfig]:
        return await self.get(ConfigScope.CHANNEL, channel_id)

    async def list_channel_configs(self, guild_id: int) -> List[ChannelBlockerConfig]:
        """All channel overrides of a guild, read straight from the database."""
        async with self._connection.read() as conn:
            return await self._repos[ConfigScope.CHANNEL].list_for_guild(conn, int(guild_id))

    async def upsert_channel_config(
        self,
        guild_id: int,
        channel_id: int,
        *,
        created_by: int,
        **fields: Any,
    ) -> ChannelBlockerConfig:
        return await self.upsert(
            ConfigScope.CHANNEL,
            channel_id,
            {**fields, "guild_id": guild_id, "created_by": created_by},
        )

    async def delete_channel_config(self, channel_id: int) -> bool:
        return await self.delete(ConfigScope.CHANNEL, channel_id)

    async def delete_all_channel_configs(self, guild_id: int) -> int:
        """Delete only the channel overrides of a guild."""
        repo: ChannelConfigRepository = self._repos[ConfigScope.CHANNEL]
        async with self._connection.transaction() as conn:
            channel_ids = await repo.ids_for_guild(conn, int(guild_id))
            deleted = await repo.delete_for_guild(conn, int(guild_id))

        for channel_id in channel_ids:
            await self._invalidate(ConfigScope.CHANNEL.cache_key(channel_id))
        return deleted

    async def add_channel_bypass_role(
        self, guild_id: int, channel_id: int, role_id: int, *, created_by: int
    ) -> ChannelBlockerConfig:
        """Add a bypass role to a channel, creating an inheriting override if needed."""
        config = await self.get_channel_config(channel_id)
        current = config.bypass_role_ids if config is not None else []
        if config is not None and int(role_id) in current:
            return config
        return await self.upsert_channel_config(
            guild_id, channel_id, created_by=created_by, bypass_role_ids=[*current, int(role_id)]
        )

    async def remove_channel_bypass_role(self, channel_id: int, role_id: int) -> Optional[ChannelBlockerConfig]:
        config = await self.get_channel_config(channel_id)
        if config is None or int(role_id) not in config.bypass_role_ids:
            return config
        remaining = [rid for rid in config.bypass_role_ids if rid != int(role_id)]
        return await self.upsert(ConfigScope.CHANNEL, channel_id, {"bypass_role_ids": remaining})

    # ------------------------------------------------------------------
    # Opener overrides (temporary voice channels)
    # ------------------------------------------------------------------

    async def get_opener_config(self, opener_channel_id: int) -> Optional[OpenerBlockerConfig]:
        return await self.get(ConfigScope.OPENER, opener_channel_id)

    async def list_opener_configs(self, guild_id: int) -> List[OpenerBlockerConfig]:
        async with self._connection.read() as conn:
            return await self._repos[ConfigScope.OPENER].list_for_guild(conn, int(guild_id))

    async def upsert_opener_config(
        self,
        guild_id: int,
        opener_channel_id: int,
        *,
        created_by: int,
        **fields: Any,
    ) -> OpenerBlockerConfig:
        return await self.upsert(
            ConfigScope.OPENER,
            opener_channel_id,
            {**fields, "guild_id": guild_id, "created_by": created_by},
        )

    async def delete_opener_config(self, opener_channel_id: int) -> bool:
        return await self.delete(ConfigScope.OPENER, opener_channel_id)

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    async def _invalidate(self, cache_key: str) -> bool:
        try:
            deleted = await self._cache.delete(cache_key)
        except Exception as exc:
            logger.warning("[BLOCKER STORE] Cache invalidation raised for %s: %s", cache_key, exc)
            return False
        if not deleted:
            logger.warning("[BLOCKER STORE] Cache invalidation failed for %s", cache_key)
        return deleted


__all__ = ["BlockerConfigStore", "BlockerRecord", "CACHE_TTL", "ConfigScope"]
