"""
Attachment blocker configuration records.

Three independent scopes are persisted:
- GuildBlockerConfig: one per guild, the defaults. Absent means disabled.
- ChannelBlockerConfig: optional override for one channel (or thread parent).
- OpenerBlockerConfig: optional override for every temporary channel spawned
  by one opener channel.

EffectiveConfig is the merged result for a single channel and is never
stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from attachguard.datatypes.attachment_types import AttachmentType, parse_attachment_types


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _role_ids(values: Any) -> List[int]:
    result: List[int] = []
    for value in values or []:
        role_id = int(value)
        if role_id not in result:
            result.append(role_id)
    return result


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


@dataclass(slots=True)
class GuildBlockerConfig:
    """Guild-wide attachment blocker defaults."""

    guild_id: int
    enabled: bool = False
    default_allowed_types: List[AttachmentType] = field(default_factory=list)
    default_timeout_ms: int = 0
    bypass_role_ids: List[int] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guild_id": self.guild_id,
            "enabled": self.enabled,
            "default_allowed_types": [t.value for t in self.default_allowed_types],
            "default_timeout_ms": self.default_timeout_ms,
            "bypass_role_ids": list(self.bypass_role_ids),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GuildBlockerConfig":
        return cls(
            guild_id=int(data["guild_id"]),
            enabled=bool(data.get("enabled", False)),
            default_allowed_types=parse_attachment_types(data.get("default_allowed_types") or []),
            default_timeout_ms=max(0, int(data.get("default_timeout_ms") or 0)),
            bypass_role_ids=_role_ids(data.get("bypass_role_ids")),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass(slots=True)
class ChannelBlockerConfig:
    """Per-channel override. Empty ``allowed_types`` inherits the guild defaults."""

    channel_id: int
    guild_id: int
    enabled: bool = True
    allowed_types: List[AttachmentType] = field(default_factory=list)
    timeout_ms: Optional[int] = None
    bypass_role_ids: List[int] = field(default_factory=list)
    created_by: int = 0
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "guild_id": self.guild_id,
            "enabled": self.enabled,
            "allowed_types": [t.value for t in self.allowed_types],
            "timeout_ms": self.timeout_ms,
            "bypass_role_ids": list(self.bypass_role_ids),
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelBlockerConfig":
        return cls(
            channel_id=int(data["channel_id"]),
            guild_id=int(data["guild_id"]),
            enabled=bool(data.get("enabled", True)),
            allowed_types=parse_attachment_types(data.get("allowed_types") or []),
            timeout_ms=_optional_int(data.get("timeout_ms")),
            bypass_role_ids=_role_ids(data.get("bypass_role_ids")),
            created_by=int(data.get("created_by") or 0),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass(slots=True)
class OpenerBlockerConfig:
    """Override applied to every temporary channel spawned by an opener channel."""

    opener_channel_id: int
    guild_id: int
    enabled: bool = True
    allowed_types: List[AttachmentType] = field(default_factory=list)
    timeout_ms: Optional[int] = None
    created_by: int = 0
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "opener_channel_id": self.opener_channel_id,
            "guild_id": self.guild_id,
            "enabled": self.enabled,
            "allowed_types": [t.value for t in self.allowed_types],
            "timeout_ms": self.timeout_ms,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OpenerBlockerConfig":
        return cls(
            opener_channel_id=int(data["opener_channel_id"]),
            guild_id=int(data["guild_id"]),
            enabled=bool(data.get("enabled", True)),
            allowed_types=parse_attachment_types(data.get("allowed_types") or []),
            timeout_ms=_optional_int(data.get("timeout_ms")),
            created_by=int(data.get("created_by") or 0),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass(slots=True, frozen=True)
class EffectiveConfig:
    """The merged policy that applies to one channel at enforcement time."""

    enabled: bool
    allowed_types: tuple[AttachmentType, ...]
    timeout_ms: int
    bypass_role_ids: frozenset[int]
    is_channel_override: bool

    @classmethod
    def disabled(cls) -> "EffectiveConfig":
        return cls(
            enabled=False,
            allowed_types=(),
            timeout_ms=0,
            bypass_role_ids=frozenset(),
            is_channel_override=False,
        )
