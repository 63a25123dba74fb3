"""
Validated view of an inbound Discord message for attachment inspection.

Forwarded message snapshots and their embeds arrive from py-cord with loosely
defined shapes. They are converted once, here, into small explicit
dataclasses so the classifiers and the enforcement pipeline never probe raw
platform objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Literal, Optional

import discord

from attachguard.datatypes.attachment_types import resolve_attachment_mime_type
from attachguard.datatypes.discord_datatypes import ChannelID, GuildID, UserID

EmbedKind = Literal["image", "video", "gifv", "other"]

_EMBED_KINDS = {"image", "video", "gifv"}


@dataclass(slots=True, frozen=True)
class AttachmentRef:
    """The declared metadata of one uploaded file."""

    content_type: Optional[str] = None
    filename: Optional[str] = None
    url: Optional[str] = None
    proxy_url: Optional[str] = None

    @property
    def mime_type(self) -> str:
        return resolve_attachment_mime_type(self.content_type, self.filename, self.url, self.proxy_url)


@dataclass(slots=True, frozen=True)
class ForwardedEmbed:
    """A rich embed carried by a forwarded message."""

    kind: EmbedKind = "other"
    image_url: Optional[str] = None
    video_url: Optional[str] = None


@dataclass(slots=True)
class ForwardedSnapshot:
    """Content, attachments and embeds copied into a message by a forward."""

    content: str = ""
    attachments: List[AttachmentRef] = field(default_factory=list)
    embeds: List[ForwardedEmbed] = field(default_factory=list)


@dataclass(slots=True)
class InspectedMessage:
    """Everything the enforcement pipeline needs to know about a message.

    ``source`` keeps the raw ``discord.Message`` for the delete/timeout/DM
    side effects; nothing else reads it.
    """

    author_id: UserID
    author_is_bot: bool = False
    author_role_ids: frozenset[int] = frozenset()
    author_tag: str = ""
    is_voice_message: bool = False
    guild_id: Optional[GuildID] = None
    channel_id: Optional[ChannelID] = None
    parent_channel_id: Optional[ChannelID] = None
    content: str = ""
    attachments: List[AttachmentRef] = field(default_factory=list)
    snapshots: List[ForwardedSnapshot] = field(default_factory=list)
    channel_name: str = ""
    deletable: bool = True
    source: Any = None

    @property
    def attachment_mime_types(self) -> List[str]:
        """MIME types of native and forwarded attachments, unresolvable ones skipped."""
        mime_types: List[str] = []
        for attachment in self.attachments:
            if mime_type := attachment.mime_type:
                mime_types.append(mime_type)
        for snapshot in self.snapshots:
            for attachment in snapshot.attachments:
                if mime_type := attachment.mime_type:
                    mime_types.append(mime_type)
        return mime_types

    @property
    def forwarded_embeds(self) -> List[ForwardedEmbed]:
        return [embed for snapshot in self.snapshots for embed in snapshot.embeds]

    @property
    def combined_content(self) -> str:
        """Message text followed by each snapshot's text, newline-joined."""
        parts = [self.content] if self.content else []
        parts.extend(snapshot.content for snapshot in self.snapshots if snapshot.content)
        return "\n".join(parts)

    @classmethod
    def from_discord_message(cls, message: discord.Message) -> "InspectedMessage":
        """Build an InspectedMessage from a py-cord message."""
        guild = message.guild
        channel = message.channel

        parent_channel_id = None
        if isinstance(channel, discord.Thread) and channel.parent_id:
            parent_channel_id = ChannelID(channel.parent_id)

        flags = getattr(message, "flags", None)
        is_voice_message = bool(
            getattr(flags, "is_voice_message", False) or getattr(flags, "voice", False)
        )

        return cls(
            author_id=UserID.from_user(message.author),
            author_is_bot=bool(getattr(message.author, "bot", False)),
            author_role_ids=_role_ids(message.author),
            author_tag=str(message.author),
            is_voice_message=is_voice_message,
            guild_id=GuildID.from_guild(guild) if guild is not None else None,
            channel_id=ChannelID.from_channel(channel) if channel is not None else None,
            parent_channel_id=parent_channel_id,
            content=_as_text(message.content),
            attachments=[_attachment_ref(a) for a in message.attachments or []],
            snapshots=[_snapshot(s) for s in _raw_snapshots(message)],
            channel_name=_as_text(getattr(channel, "name", None)),
            deletable=_is_deletable(message),
            source=message,
        )


# ------------------------------------------------------------------
# Private helpers: raw py-cord payload → dataclasses
# ------------------------------------------------------------------

def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_url(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _role_ids(author: Any) -> frozenset[int]:
    # Only guild members carry roles; a plain User yields an empty set.
    roles = getattr(author, "roles", None) or []
    try:
        return frozenset(int(role.id) for role in roles)
    except (TypeError, AttributeError, ValueError):
        return frozenset()


def _attachment_ref(attachment: Any) -> AttachmentRef:
    return AttachmentRef(
        content_type=_as_url(getattr(attachment, "content_type", None)),
        filename=_as_url(getattr(attachment, "filename", None)),
        url=_as_url(getattr(attachment, "url", None)),
        proxy_url=_as_url(getattr(attachment, "proxy_url", None)),
    )


def _embed(embed: Any) -> ForwardedEmbed:
    raw_kind = getattr(embed, "type", "")
    kind = raw_kind.lower() if isinstance(raw_kind, str) else ""
    return ForwardedEmbed(
        kind=kind if kind in _EMBED_KINDS else "other",
        image_url=_as_url(getattr(getattr(embed, "image", None), "url", None)),
        video_url=_as_url(getattr(getattr(embed, "video", None), "url", None)),
    )


def _raw_snapshots(message: Any) -> List[Any]:
    # py-cord exposes ``snapshots``; discord.py-style payloads use ``message_snapshots``.
    raw = getattr(message, "snapshots", None) or getattr(message, "message_snapshots", None)
    if not raw:
        return []
    if isinstance(raw, dict):
        return list(raw.values())
    try:
        return list(raw)
    except TypeError:
        return []


def _snapshot(snapshot: Any) -> ForwardedSnapshot:
    inner = getattr(snapshot, "message", None) or snapshot
    attachments = getattr(inner, "attachments", None) or []
    embeds = getattr(inner, "embeds", None) or []
    return ForwardedSnapshot(
        content=_as_text(getattr(inner, "content", "")),
        attachments=[_attachment_ref(a) for a in attachments],
        embeds=[_embed(e) for e in embeds],
    )


def _is_deletable(message: discord.Message) -> bool:
    """Whether the bot may delete the message (own message or Manage Messages)."""
    guild = message.guild
    channel = message.channel
    if guild is None or channel is None:
        return False
    me = getattr(guild, "me", None)
    if me is None:
        return False
    if getattr(message.author, "id", None) == getattr(me, "id", None):
        return True
    try:
        return bool(channel.permissions_for(me).manage_messages)
    except Exception:
        return False
