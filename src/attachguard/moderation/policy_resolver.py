"""
Effective attachment policy resolution.

``resolve_effective_config`` is a pure merge over already-fetched records.
``BlockerConfigResolver`` fetches those records from the config store and
the opener lookup, then delegates to it.

Resolution order, first match wins:
1. no guild config: disabled
2. the channel's own override
3. the parent channel's override (threads only)
4. the opener override of a temporary channel
5. guild defaults
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional, Union

from attachguard.datatypes.attachment_types import AttachmentType
from attachguard.datatypes.blocker_config import (
    ChannelBlockerConfig,
    EffectiveConfig,
    GuildBlockerConfig,
    OpenerBlockerConfig,
)
from attachguard.moderation.opener_lookup import NullOpenerLookup, OpenerLookup
from attachguard.settings.blocker_config_store import BlockerConfigStore
from attachguard.util.logger import get_logger

logger = get_logger("policy_resolver")


def _allowed_or_default(
    override_types: Iterable[AttachmentType], guild: GuildBlockerConfig
) -> tuple[AttachmentType, ...]:
    # Only an empty list inherits; [NONE] is a real value.
    override_types = tuple(override_types)
    return override_types if override_types else tuple(guild.default_allowed_types)


def _merge_override(
    guild: GuildBlockerConfig,
    override: Union[ChannelBlockerConfig, OpenerBlockerConfig],
    bypass_role_ids: Iterable[int],
) -> EffectiveConfig:
    return EffectiveConfig(
        enabled=override.enabled and guild.enabled,
        allowed_types=_allowed_or_default(override.allowed_types, guild),
        timeout_ms=override.timeout_ms if override.timeout_ms is not None else guild.default_timeout_ms,
        bypass_role_ids=frozenset(bypass_role_ids),
        is_channel_override=True,
    )


def resolve_effective_config(
    guild: Optional[GuildBlockerConfig],
    channel: Optional[ChannelBlockerConfig],
    parent_channel: Optional[ChannelBlockerConfig] = None,
    opener: Optional[OpenerBlockerConfig] = None,
) -> EffectiveConfig:
    """Merge the configured scopes into the policy for one channel."""
    if guild is None:
        return EffectiveConfig.disabled()

    for override in (channel, parent_channel):
        if override is not None:
            return _merge_override(
                guild, override, [*guild.bypass_role_ids, *override.bypass_role_ids]
            )

    if opener is not None:
        return _merge_override(guild, opener, guild.bypass_role_ids)

    return EffectiveConfig(
        enabled=guild.enabled,
        allowed_types=tuple(guild.default_allowed_types),
        timeout_ms=guild.default_timeout_ms,
        bypass_role_ids=frozenset(guild.bypass_role_ids),
        is_channel_override=False,
    )


class BlockerConfigResolver:
    """Loads the scopes relevant to a channel and resolves them."""

    def __init__(self, store: BlockerConfigStore, opener_lookup: Optional[OpenerLookup] = None) -> None:
        self.store = store
        self.opener_lookup = opener_lookup or NullOpenerLookup()

    async def resolve(
        self,
        guild_id: int,
        channel_id: int,
        parent_channel_id: Optional[int] = None,
    ) -> EffectiveConfig:
        guild, channel = await asyncio.gather(
            self.store.get_guild_config(guild_id),
            self.store.get_channel_config(channel_id),
        )
        if guild is None:
            return EffectiveConfig.disabled()
        if channel is not None:
            return resolve_effective_config(guild, channel)

        parent = None
        if parent_channel_id is not None and int(parent_channel_id) != int(channel_id):
            parent = await self.store.get_channel_config(parent_channel_id)
            if parent is not None:
                return resolve_effective_config(guild, None, parent)

        opener = await self._opener_config(guild_id, channel_id)
        return resolve_effective_config(guild, None, parent, opener)

    async def _opener_config(self, guild_id: int, channel_id: int) -> Optional[OpenerBlockerConfig]:
        try:
            opener_id = await self.opener_lookup.get_opener_for_channel(int(guild_id), int(channel_id))
        except Exception as exc:
            logger.debug("[POLICY RESOLVER] Opener lookup failed for channel %s: %s", channel_id, exc)
            return None

        if opener_id is None:
            return None
        return await self.store.get_opener_config(opener_id)
