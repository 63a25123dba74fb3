"""
discord_utils.py
================

Low-level Discord helpers for attachment enforcement and the admin commands.

The enforcement helpers never raise: each returns an ActionOutcome so the
caller can decide which failures matter.
"""

import datetime
from typing import Optional, Sequence, Union

import discord

from attachguard.datatypes.action_datatypes import ActionOutcome, ActionStep
from attachguard.ui.blocker_embeds import DEFAULT_NOTICE_COLOR, build_blocked_notice_embed
from attachguard.util.logger import get_logger

logger = get_logger("discord_utils")

# Discord caps member timeouts at 28 days
MAX_TIMEOUT = datetime.timedelta(days=28)

AUDIT_REASON_PREFIX = "AttachmentBlocker"


def has_bypass_role(role_ids: Sequence[int] | frozenset[int], bypass_role_ids: frozenset[int]) -> bool:
    if not bypass_role_ids:
        return False
    return any(int(role_id) in bypass_role_ids for role_id in role_ids)


async def safe_delete_message(message: discord.Message) -> ActionOutcome:
    """
    Attempt to delete a Discord message.

    Args:
        message (discord.Message): The message to delete.

    Returns:
        ActionOutcome: Delete outcome; failures carry the error text.
    """
    try:
        await message.delete()
        return ActionOutcome.ok(ActionStep.DELETE)
    except discord.NotFound:
        logger.debug(f"Message {message.id} was already deleted")
        return ActionOutcome.failed(ActionStep.DELETE, "message not found")
    except discord.Forbidden:
        logger.warning(f"No permission to delete message {message.id}")
        return ActionOutcome.failed(ActionStep.DELETE, "forbidden")
    except Exception as exc:
        logger.error(f"Error deleting message {message.id}: {exc}")
        return ActionOutcome.failed(ActionStep.DELETE, str(exc))


async def resolve_member(message: discord.Message) -> Optional[discord.Member]:
    """Return the author as a guild Member, fetching it when the cache lacks it."""
    if isinstance(message.author, discord.Member):
        return message.author
    guild = message.guild
    if guild is None:
        return None
    member = guild.get_member(message.author.id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(message.author.id)
    except (discord.NotFound, discord.HTTPException) as exc:
        logger.debug(f"Could not fetch member {message.author.id}: {exc}")
        return None


async def resolve_author_role_ids(message: discord.Message) -> frozenset[int]:
    """Role ids of the message author, looked up through the guild when the author is a plain User."""
    member = await resolve_member(message)
    if member is None:
        return frozenset()
    return frozenset(int(role.id) for role in getattr(member, "roles", None) or [])


async def timeout_member(
    message: discord.Message,
    timeout_ms: int,
    reasons: Sequence[str],
) -> ActionOutcome:
    """
    Time out the author of ``message`` for ``timeout_ms`` milliseconds.

    The audit log reason is ``AttachmentBlocker: <reasons>``. Durations above
    the platform maximum are clamped.
    """
    if timeout_ms <= 0:
        return ActionOutcome.skip(ActionStep.TIMEOUT, "no timeout configured")

    member = await resolve_member(message)
    if member is None:
        return ActionOutcome.failed(ActionStep.TIMEOUT, "member not found")

    duration = min(datetime.timedelta(milliseconds=timeout_ms), MAX_TIMEOUT)
    audit_reason = f"{AUDIT_REASON_PREFIX}: {', '.join(reasons)}"
    try:
        await member.timeout(discord.utils.utcnow() + duration, reason=audit_reason)
        return ActionOutcome.ok(ActionStep.TIMEOUT)
    except discord.Forbidden:
        logger.warning(f"No permission to time out {member}")
        return ActionOutcome.failed(ActionStep.TIMEOUT, "forbidden")
    except Exception as exc:
        logger.error(f"Error timing out user {member}: {exc}")
        return ActionOutcome.failed(ActionStep.TIMEOUT, str(exc))


async def send_blocked_notice(
    user: Union[discord.User, discord.Member],
    channel_id: int,
    reasons: Sequence[str],
    timeout_ms: int = 0,
    color: int = DEFAULT_NOTICE_COLOR,
) -> ActionOutcome:
    """DM ``user`` that their message was removed. Many users block DMs, so failure is expected."""
    embed = build_blocked_notice_embed(channel_id, reasons, timeout_ms, color)
    try:
        await user.send(embed=embed)
        return ActionOutcome.ok(ActionStep.NOTIFY)
    except discord.Forbidden:
        logger.debug(f"Couldn't DM user {user} about blocked attachment: DMs disabled")
        return ActionOutcome.failed(ActionStep.NOTIFY, "DMs disabled")
    except Exception as exc:
        logger.debug(f"Failed to DM user {user} about blocked attachment: {exc}")
        return ActionOutcome.failed(ActionStep.NOTIFY, str(exc))
