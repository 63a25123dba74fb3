"""
Attachment blocker admin commands.

Everything lives under one slash command group, ``/attachment-blocker``:
- setup, view, disable
- channel add/remove: per-channel overrides
- opener add/remove: overrides for temporary voice channels spawned by an opener
- bypass add/remove/list and channel-add/channel-remove/channel-list

All commands require the Manage Server permission and answer ephemerally.
Timeouts are entered in seconds and stored in milliseconds.
"""

from typing import Optional

import aiosqlite
import discord
from discord import Option
from discord.ext import commands

from attachguard.datatypes.attachment_types import AttachmentType, AttachmentTypeLabels
from attachguard.settings.blocker_config_store import BlockerConfigStore
from attachguard.ui.blocker_embeds import build_config_view_embed, format_roles
from attachguard.util.logger import get_logger

logger = get_logger("attachment_blocker_cog")

MAX_TIMEOUT_SECONDS = 604800

TYPE_CHOICES = [
    discord.OptionChoice(name="Images", value=AttachmentType.IMAGE.value),
    discord.OptionChoice(name="Videos", value=AttachmentType.VIDEO.value),
    discord.OptionChoice(name="GIFs", value=AttachmentType.GIF.value),
    discord.OptionChoice(name="Audio", value=AttachmentType.AUDIO.value),
    discord.OptionChoice(name="All (allow everything)", value=AttachmentType.ALL.value),
    discord.OptionChoice(name="None (block everything)", value=AttachmentType.NONE.value),
]

CHANNEL_TYPES = [discord.ChannelType.text, discord.ChannelType.news, discord.ChannelType.voice]

STORE_ERRORS = (aiosqlite.Error, ValueError, RuntimeError)

MISSING_PERMISSION = "You need the Manage Server permission to configure the attachment blocker."
STORE_FAILURE = "A :bug: showed up while saving the attachment blocker settings. Please try again."


def seconds_to_ms(seconds: Optional[int]) -> Optional[int]:
    if seconds is None:
        return None
    return max(0, min(int(seconds), MAX_TIMEOUT_SECONDS)) * 1000


def type_label(value: str) -> str:
    return AttachmentTypeLabels[AttachmentType(value)]


class AttachmentBlockerCog(commands.Cog):
    """Slash commands that manage guild, channel and opener attachment rules."""

    blocker = discord.SlashCommandGroup(
        "attachment-blocker",
        "Manage attachment blocking rules for channels",
        default_member_permissions=discord.Permissions(manage_guild=True),
    )
    channel_group = blocker.create_subgroup("channel", "Manage per-channel overrides")
    opener_group = blocker.create_subgroup("opener", "Manage overrides for temporary voice channel openers")
    bypass_group = blocker.create_subgroup("bypass", "Manage role-based bypasses")

    def __init__(self, discord_bot_instance, store: BlockerConfigStore):
        self.discord_bot_instance = discord_bot_instance
        self.store = store
        logger.info("Attachment blocker cog loaded")

    async def _ensure_context(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        permissions = getattr(ctx.user, "guild_permissions", None)
        if not getattr(permissions, "manage_guild", False):
            await ctx.respond(MISSING_PERMISSION, ephemeral=True)
            return False
        return True

    async def _report_failure(self, ctx: discord.ApplicationContext, action: str, exc: Exception) -> None:
        logger.exception("Attachment blocker %s failed for guild %s: %s", action, ctx.guild_id, exc)
        await ctx.respond(STORE_FAILURE, ephemeral=True)

    # ------------------------------------------------------------------
    # Guild defaults
    # ------------------------------------------------------------------

    @blocker.command(name="setup", description="Configure guild-wide attachment blocking defaults")
    async def setup_defaults(
        self,
        ctx: discord.ApplicationContext,
        type: Option(str, "Attachment type to whitelist (guild-wide default)", choices=TYPE_CHOICES),  # type: ignore
        timeout: Option(int, "Timeout duration in seconds for violators (0 = no timeout)", min_value=0, max_value=MAX_TIMEOUT_SECONDS, default=0),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            await self.store.update_guild_config(
                ctx.guild_id,
                enabled=True,
                default_allowed_types=[type],
                default_timeout_ms=seconds_to_ms(timeout or 0),
            )
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "setup", exc)
            return

        message = f"Attachment blocker **enabled**. Allowed by default: **{type_label(type)}**."
        if timeout:
            message += f" Violators are timed out for {int(timeout)} seconds."
        await ctx.respond(message, ephemeral=True)

    @blocker.command(name="view", description="View current attachment blocking configuration")
    async def view_config(self, ctx: discord.ApplicationContext):
        if not await self._ensure_context(ctx):
            return
        guild_config = await self.store.get_guild_config(ctx.guild_id)
        try:
            channel_configs = await self.store.list_channel_configs(ctx.guild_id)
            opener_configs = await self.store.list_opener_configs(ctx.guild_id)
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "view", exc)
            return
        embed = build_config_view_embed(guild_config, channel_configs, opener_configs)
        await ctx.respond(embed=embed, ephemeral=True)

    @blocker.command(name="disable", description="Disable attachment blocking guild-wide")
    async def disable_blocker(self, ctx: discord.ApplicationContext):
        if not await self._ensure_context(ctx):
            return
        try:
            await self.store.update_guild_config(ctx.guild_id, enabled=False)
            removed = await self.store.delete_all_for_guild(ctx.guild_id)
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "disable", exc)
            return
        await ctx.respond(
            f"Attachment blocker **disabled**. Removed {removed} override(s).",
            ephemeral=True,
        )

    # ------------------------------------------------------------------
    # Channel overrides
    # ------------------------------------------------------------------

    @channel_group.command(name="add", description="Add or update a channel-specific override")
    async def channel_add(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Target channel", channel_types=CHANNEL_TYPES),  # type: ignore
        type: Option(str, "Attachment type to whitelist in this channel", choices=TYPE_CHOICES),  # type: ignore
        timeout: Option(int, "Timeout duration override in seconds (0 = no timeout)", min_value=0, max_value=MAX_TIMEOUT_SECONDS, required=False, default=None),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            await self.store.upsert_channel_config(
                ctx.guild_id,
                channel.id,
                created_by=ctx.user.id,
                enabled=True,
                allowed_types=[type],
                timeout_ms=seconds_to_ms(timeout),
            )
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "channel add", exc)
            return
        await ctx.respond(
            f"{channel.mention} now allows **{type_label(type)}**.",
            ephemeral=True,
        )

    @channel_group.command(name="remove", description="Remove a channel override (revert to guild defaults)")
    async def channel_remove(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Channel to remove override from", channel_types=CHANNEL_TYPES),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            deleted = await self.store.delete_channel_config(channel.id)
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "channel remove", exc)
            return
        if deleted:
            await ctx.respond(f"Override for {channel.mention} removed; guild defaults apply.", ephemeral=True)
        else:
            await ctx.respond(f"{channel.mention} has no override.", ephemeral=True)

    # ------------------------------------------------------------------
    # Opener overrides
    # ------------------------------------------------------------------

    @opener_group.command(name="add", description="Set rules for every temporary channel spawned by an opener")
    async def opener_add(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.VoiceChannel, "Opener voice channel"),  # type: ignore
        type: Option(str, "Attachment type to whitelist in spawned channels", choices=TYPE_CHOICES),  # type: ignore
        timeout: Option(int, "Timeout duration override in seconds (0 = no timeout)", min_value=0, max_value=MAX_TIMEOUT_SECONDS, required=False, default=None),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            await self.store.upsert_opener_config(
                ctx.guild_id,
                channel.id,
                created_by=ctx.user.id,
                enabled=True,
                allowed_types=[type],
                timeout_ms=seconds_to_ms(timeout),
            )
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "opener add", exc)
            return
        await ctx.respond(
            f"Channels spawned by {channel.mention} now allow **{type_label(type)}**.",
            ephemeral=True,
        )

    @opener_group.command(name="remove", description="Remove an opener override")
    async def opener_remove(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.VoiceChannel, "Opener voice channel"),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            deleted = await self.store.delete_opener_config(channel.id)
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "opener remove", exc)
            return
        if deleted:
            await ctx.respond(f"Opener override for {channel.mention} removed.", ephemeral=True)
        else:
            await ctx.respond(f"{channel.mention} has no opener override.", ephemeral=True)

    # ------------------------------------------------------------------
    # Bypass roles
    # ------------------------------------------------------------------

    @bypass_group.command(name="add", description="Add a global bypass role")
    async def bypass_add(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "Role to bypass all attachment checks"),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            config = await self.store.add_guild_bypass_role(ctx.guild_id, role.id)
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "bypass add", exc)
            return
        if config is None:
            await ctx.respond("Run `/attachment-blocker setup` first.", ephemeral=True)
            return
        await ctx.respond(f"{role.mention} now bypasses attachment checks.", ephemeral=True)

    @bypass_group.command(name="remove", description="Remove a global bypass role")
    async def bypass_remove(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "Role to remove from global bypass"),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            config = await self.store.remove_guild_bypass_role(ctx.guild_id, role.id)
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "bypass remove", exc)
            return
        if config is None:
            await ctx.respond("Run `/attachment-blocker setup` first.", ephemeral=True)
            return
        await ctx.respond(f"{role.mention} no longer bypasses attachment checks.", ephemeral=True)

    @bypass_group.command(name="list", description="List global bypass roles")
    async def bypass_list(self, ctx: discord.ApplicationContext):
        if not await self._ensure_context(ctx):
            return
        config = await self.store.get_guild_config(ctx.guild_id)
        role_ids = config.bypass_role_ids if config is not None else []
        await ctx.respond(f"Global bypass roles: {format_roles(role_ids)}", ephemeral=True)

    @bypass_group.command(name="channel-add", description="Add a bypass role for a specific channel")
    async def bypass_channel_add(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Target channel", channel_types=CHANNEL_TYPES),  # type: ignore
        role: Option(discord.Role, "Role to bypass checks in this channel"),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            await self.store.add_channel_bypass_role(
                ctx.guild_id, channel.id, role.id, created_by=ctx.user.id
            )
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "bypass channel-add", exc)
            return
        await ctx.respond(f"{role.mention} now bypasses attachment checks in {channel.mention}.", ephemeral=True)

    @bypass_group.command(name="channel-remove", description="Remove a bypass role from a specific channel")
    async def bypass_channel_remove(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Target channel", channel_types=CHANNEL_TYPES),  # type: ignore
        role: Option(discord.Role, "Role to remove from this channel bypass"),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        try:
            config = await self.store.remove_channel_bypass_role(channel.id, role.id)
        except STORE_ERRORS as exc:
            await self._report_failure(ctx, "bypass channel-remove", exc)
            return
        if config is None:
            await ctx.respond(f"{channel.mention} has no override.", ephemeral=True)
            return
        await ctx.respond(f"{role.mention} no longer bypasses checks in {channel.mention}.", ephemeral=True)

    @bypass_group.command(name="channel-list", description="List bypass roles for a specific channel")
    async def bypass_channel_list(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Target channel", channel_types=CHANNEL_TYPES),  # type: ignore
    ):
        if not await self._ensure_context(ctx):
            return
        config = await self.store.get_channel_config(channel.id)
        role_ids = config.bypass_role_ids if config is not None else []
        await ctx.respond(f"Bypass roles in {channel.mention}: {format_roles(role_ids)}", ephemeral=True)


def setup(discord_bot_instance, store: BlockerConfigStore):
    """Add the attachment blocker cog to the supplied Discord bot instance."""
    discord_bot_instance.add_cog(AttachmentBlockerCog(discord_bot_instance, store))
