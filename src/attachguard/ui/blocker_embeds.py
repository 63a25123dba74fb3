"""
Embeds for the attachment blocker: the DM sent to a user whose message was
removed and the `/attachment-blocker view` summary.
"""

import datetime
from typing import Iterable, Optional, Sequence

import discord

from attachguard.datatypes.attachment_types import AttachmentType, AttachmentTypeLabels
from attachguard.datatypes.blocker_config import (
    ChannelBlockerConfig,
    GuildBlockerConfig,
    OpenerBlockerConfig,
)

NOTICE_TITLE = "⚠️ Attachment Blocker"
DEFAULT_NOTICE_COLOR = 0xFF4444

# Embed field values are capped at 1024 characters
MAX_LISTED_OVERRIDES = 8


def format_allowed_types(allowed_types: Iterable[AttachmentType], *, inherited_label: str = "Inherits defaults") -> str:
    labels = [AttachmentTypeLabels.get(t, t.value) for t in allowed_types]
    return ", ".join(labels) if labels else inherited_label


def format_timeout(timeout_ms: Optional[int], *, inherited_label: str = "Inherits default") -> str:
    if timeout_ms is None:
        return inherited_label
    if timeout_ms <= 0:
        return "None"
    seconds = timeout_ms // 1000
    return f"{seconds}s"


def format_roles(role_ids: Iterable[int]) -> str:
    mentions = [f"<@&{role_id}>" for role_id in role_ids]
    return ", ".join(mentions) if mentions else "None"


def build_blocked_notice_embed(
    channel_id: int,
    reasons: Sequence[str],
    timeout_ms: int = 0,
    color: int = DEFAULT_NOTICE_COLOR,
) -> discord.Embed:
    """
    Build the DM explaining why a message was removed.

    Args:
        channel_id: Channel the message was posted in.
        reasons: Accumulated block reasons, joined with commas.
        timeout_ms: Timeout applied to the author; mentioned only when positive.
        color: Embed color.

    Returns:
        discord.Embed: The notice.
    """
    description = (
        f"Your message in <#{channel_id}> was removed.\n"
        f"**Reason:** {', '.join(reasons)}"
    )
    if timeout_ms > 0:
        description += f"\n\nYou have been timed out for {timeout_ms // 1000} seconds."

    return discord.Embed(
        title=NOTICE_TITLE,
        description=description,
        color=color,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )


def build_config_view_embed(
    guild_config: Optional[GuildBlockerConfig],
    channel_configs: Sequence[ChannelBlockerConfig] = (),
    opener_configs: Sequence[OpenerBlockerConfig] = (),
) -> discord.Embed:
    """Summarize guild defaults, channel overrides and opener overrides."""
    embed = discord.Embed(
        title="Attachment Blocker Configuration",
        color=discord.Color.blurple(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )

    if guild_config is None:
        embed.description = "Not configured. Use `/attachment-blocker setup` to enable it."
        return embed

    status = "Enabled ✅" if guild_config.enabled else "Disabled ❌"
    embed.add_field(name="Status", value=status, inline=True)
    embed.add_field(
        name="Allowed Types",
        value=format_allowed_types(guild_config.default_allowed_types, inherited_label="None configured"),
        inline=True,
    )
    embed.add_field(name="Timeout", value=format_timeout(guild_config.default_timeout_ms), inline=True)
    embed.add_field(name="Bypass Roles", value=format_roles(guild_config.bypass_role_ids), inline=False)

    if channel_configs:
        embed.add_field(
            name=f"Channel Overrides ({len(channel_configs)})",
            value=_override_lines(channel_configs),
            inline=False,
        )

    if opener_configs:
        embed.add_field(
            name=f"Temp VC Opener Overrides ({len(opener_configs)})",
            value=_override_lines(opener_configs),
            inline=False,
        )

    return embed


def _override_lines(configs) -> str:
    lines = []
    for config in list(configs)[:MAX_LISTED_OVERRIDES]:
        channel_id = getattr(config, "channel_id", None) or config.opener_channel_id
        state = "" if config.enabled else " (disabled)"
        line = (
            f"<#{channel_id}>{state}: {format_allowed_types(config.allowed_types)}"
            f" | timeout {format_timeout(config.timeout_ms)}"
        )
        bypass = getattr(config, "bypass_role_ids", None)
        if bypass:
            line += f" | bypass {format_roles(bypass)}"
        lines.append(line)

    hidden = len(configs) - MAX_LISTED_OVERRIDES
    if hidden > 0:
        lines.append(f"...and {hidden} more")
    return "\n".join(lines)
