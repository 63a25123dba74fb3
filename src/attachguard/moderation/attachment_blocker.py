"""
AttachmentBlockerService: inspects messages and enforces the attachment policy.

For every guild message the service resolves the effective policy for its
channel, classifies native attachments, forwarded attachments, forwarded
embeds and media links in the text, and when something is disallowed
deletes the message, optionally times the author out and DMs them.

Only deletion is required for a message to count as blocked; timeout and
DM failures are recorded and logged but never undo the deletion.
"""

from __future__ import annotations

from typing import Any, List

import discord

from attachguard.datatypes.action_datatypes import ActionOutcome, ActionStep, EnforcementResult
from attachguard.datatypes.attachment_types import (
    AttachmentType,
    AttachmentTypeLabels,
    classify_forwarded_embed,
    is_mime_type_allowed,
)
from attachguard.datatypes.blocker_config import EffectiveConfig
from attachguard.datatypes.message_content import InspectedMessage
from attachguard.moderation.link_detection import describe_link_types, detect_disallowed_links
from attachguard.moderation.policy_resolver import BlockerConfigResolver
from attachguard.ui.blocker_embeds import DEFAULT_NOTICE_COLOR
from attachguard.util import discord_utils
from attachguard.util.logger import get_logger

logger = get_logger("attachment_blocker")

NO_ATTACHMENTS_REASON = "No attachments allowed"


class _ReasonList:
    """The first reason is a full sentence; later ones are bare tokens."""

    def __init__(self) -> None:
        self.items: List[str] = []

    def add(self, sentence: str, token: str) -> None:
        self.items.append(token if self.items else sentence)

    def add_once(self, sentence: str) -> None:
        if not self.items:
            self.items.append(sentence)


def collect_violations(message: InspectedMessage, config: EffectiveConfig) -> List[str]:
    """
    Return the reasons ``message`` violates ``config``, or an empty list.

    Assumes the policy is enabled and does not allow ``ALL``.
    """
    allowed = config.allowed_types
    none_set = AttachmentType.NONE in allowed

    mime_types = message.attachment_mime_types
    # One entry per category, in first-seen order
    embed_types = list(dict.fromkeys(
        t for t in map(classify_forwarded_embed, message.forwarded_embeds) if t is not None
    ))
    content = message.combined_content

    if not none_set and not mime_types and not embed_types and not content:
        return []

    reasons = _ReasonList()

    for mime_type in mime_types:
        if none_set:
            reasons.add_once(NO_ATTACHMENTS_REASON)
        elif not is_mime_type_allowed(mime_type, allowed):
            reasons.add(f"Attachment type not allowed: {mime_type}", mime_type)

    for embed_type in embed_types:
        if none_set:
            reasons.add_once(NO_ATTACHMENTS_REASON)
        elif embed_type not in allowed:
            label = AttachmentTypeLabels[embed_type]
            reasons.add(f"{label} not allowed", label)

    if content:
        disallowed = detect_disallowed_links(content, () if none_set else allowed)
        if disallowed is not None:
            link_types = describe_link_types(disallowed.links)
            reasons.add(f"{link_types} not allowed", link_types)

    return reasons.items


class AttachmentBlockerService:
    """
    Per-message enforcement entry point.

    Args:
        resolver: Loads and merges the policy scopes for a channel.
        dm_notifications: Whether to DM authors of removed messages.
        notice_color: Color of the DM embed.
    """

    def __init__(
        self,
        resolver: BlockerConfigResolver,
        *,
        dm_notifications: bool = True,
        notice_color: int = DEFAULT_NOTICE_COLOR,
    ) -> None:
        self.resolver = resolver
        self.dm_notifications = dm_notifications
        self.notice_color = notice_color

    async def check_and_enforce(self, message: discord.Message) -> bool:
        """Inspect a py-cord message and enforce the policy. Returns True if it was blocked."""
        if message.guild is None or getattr(message.author, "bot", False):
            return False
        return await self.handle(InspectedMessage.from_discord_message(message))

    async def handle(self, message: InspectedMessage) -> bool:
        """
        Inspect ``message`` and enforce the policy of its channel.

        Returns:
            bool: True only when a violation was found and the message deleted.
        """
        if message.author_is_bot or message.is_voice_message:
            return False
        if message.guild_id is None or message.channel_id is None:
            return False

        config = await self.resolver.resolve(
            int(message.guild_id),
            int(message.channel_id),
            int(message.parent_channel_id) if message.parent_channel_id is not None else None,
        )

        role_ids = message.author_role_ids
        if not role_ids and config.bypass_role_ids and message.source is not None:
            # Author arrived as a User without roles; ask the guild for the member
            role_ids = await discord_utils.resolve_author_role_ids(message.source)
        if discord_utils.has_bypass_role(role_ids, config.bypass_role_ids):
            return False
        if not config.enabled:
            return False
        if AttachmentType.ALL in config.allowed_types:
            return False

        reasons = collect_violations(message, config)
        if not reasons:
            return False

        if not message.deletable:
            logger.debug(
                f"[ATTACHMENT BLOCKER] Cannot delete message from {message.author_tag} "
                f"in channel {message.channel_id}: missing permission"
            )
            return False

        result = await self.enforce(message, config, reasons)
        return result.blocked

    async def enforce(
        self,
        message: InspectedMessage,
        config: EffectiveConfig,
        reasons: List[str],
    ) -> EnforcementResult:
        """Run delete, then timeout and DM. Only a failed delete stops the sequence."""
        result = EnforcementResult(reasons=list(reasons))
        source: Any = message.source

        deleted = result.record(await discord_utils.safe_delete_message(source))
        if not deleted.succeeded:
            logger.error(
                f"[ATTACHMENT BLOCKER] Error deleting message with blocked content "
                f"from {message.author_tag}: {deleted.error}"
            )
            return result

        if config.timeout_ms > 0:
            result.record(await discord_utils.timeout_member(source, config.timeout_ms, result.reasons))

        if self.dm_notifications:
            result.record(await discord_utils.send_blocked_notice(
                source.author,
                int(message.channel_id),
                result.reasons,
                config.timeout_ms,
                self.notice_color,
            ))
        else:
            result.record(ActionOutcome.skip(ActionStep.NOTIFY, "notifications disabled"))

        channel_label = message.channel_name or str(message.channel_id)
        logger.info(
            f"[ATTACHMENT BLOCKER] Blocked content from {message.author_tag} "
            f"in #{channel_label}: {result.reason_text}"
        )
        logger.debug(f"[ATTACHMENT BLOCKER] Enforcement outcome: {result.summary()}")
        return result

