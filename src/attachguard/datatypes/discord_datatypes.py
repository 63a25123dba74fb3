"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers but are often stored or transmitted as
strings for JSON compatibility. These wrappers give guild, channel, user and
role IDs a consistent interface across the attachment blocker.
"""

from __future__ import annotations

from typing import Union

import discord


class Snowflake:
    """
    Base wrapper for a Discord snowflake ID.

    The value is stored as a string for JSON parity and compares equal to the
    same ID given as a wrapper of the same kind, a string, or an int.

    Example:
        >>> gid = GuildID.from_int(123456789012345678)
        >>> gid.to_int()
        123456789012345678
        >>> str(gid)
        '123456789012345678'
        >>> gid == 123456789012345678
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Initialize from a string, int, or another wrapper.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        """Create the wrapper from an integer snowflake."""
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls and SQL parameters."""
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        """Return the string representation for JSON serialization."""
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(Snowflake):
    """Snowflake ID of a guild (the policy's top-level tenant)."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class ChannelID(Snowflake):
    """Snowflake ID of a channel, thread, or temporary voice opener."""

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: Union[discord.abc.GuildChannel, discord.Thread]) -> "ChannelID":
        return cls(channel.id)


class UserID(Snowflake):
    """Snowflake ID of a user or guild member."""

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)
