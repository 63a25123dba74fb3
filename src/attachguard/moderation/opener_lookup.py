"""Mapping from temporary voice channels to the opener channel that spawned them."""

from __future__ import annotations

from typing import Optional, Protocol

import discord

from attachguard.util.logger import get_logger

logger = get_logger("opener_lookup")


class OpenerLookup(Protocol):
    async def get_opener_for_channel(self, guild_id: int, channel_id: int) -> Optional[int]:
        """Return the opener channel id for ``channel_id``, or None."""
        ...


class NullOpenerLookup:
    """Used when no temporary voice system is installed."""

    async def get_opener_for_channel(self, guild_id: int, channel_id: int) -> Optional[int]:
        return None


class CogOpenerLookup:
    """
    Asks a loaded temp-voice cog which opener spawned a channel.

    The cog is looked up by name on every call so it can be loaded or
    reloaded after this object is created. A missing cog, a cog without
    ``get_opener_for_channel``, a raised error and a None answer all mean
    the channel has no opener.
    """

    def __init__(self, bot: discord.Bot, cog_name: str = "TempVC") -> None:
        self.bot = bot
        self.cog_name = cog_name

    async def get_opener_for_channel(self, guild_id: int, channel_id: int) -> Optional[int]:
        cog = self.bot.get_cog(self.cog_name)
        if cog is None:
            logger.debug("[OPENER LOOKUP] %s cog not loaded", self.cog_name)
            return None

        lookup = getattr(cog, "get_opener_for_channel", None)
        if lookup is None:
            logger.debug("[OPENER LOOKUP] %s cog has no get_opener_for_channel", self.cog_name)
            return None

        try:
            opener_id = await lookup(guild_id, channel_id)
        except Exception as exc:
            logger.debug("[OPENER LOOKUP] Lookup failed for channel %s: %s", channel_id, exc)
            return None

        if not opener_id:
            return None
        logger.debug("[OPENER LOOKUP] Channel %s spawned by opener %s", channel_id, opener_id)
        return int(opener_id)
