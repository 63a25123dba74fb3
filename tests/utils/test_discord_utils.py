import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from attachguard.datatypes.action_datatypes import ActionStep
from attachguard.util import discord_utils


def http_error(cls, status):
    return cls(MagicMock(status=status), "error")


class FakeMember(SimpleNamespace):
    pass


@pytest.fixture
def message():
    msg = MagicMock()
    msg.id = 1
    msg.delete = AsyncMock()
    msg.author = SimpleNamespace(id=42)
    msg.guild = MagicMock()
    msg.guild.fetch_member = AsyncMock()
    return msg


def test_has_bypass_role():
    assert discord_utils.has_bypass_role([1, 2], frozenset({2})) is True
    assert discord_utils.has_bypass_role([1], frozenset({2})) is False
    assert discord_utils.has_bypass_role([1], frozenset()) is False
    assert discord_utils.has_bypass_role([], frozenset({2})) is False


@pytest.mark.asyncio
async def test_safe_delete_message_success(message):
    outcome = await discord_utils.safe_delete_message(message)
    assert outcome.step is ActionStep.DELETE
    assert outcome.succeeded is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, expected",
    [
        (http_error(discord.NotFound, 404), "message not found"),
        (http_error(discord.Forbidden, 403), "forbidden"),
        (RuntimeError("boom"), "boom"),
    ],
)
async def test_safe_delete_message_failures(message, error, expected):
    message.delete = AsyncMock(side_effect=error)
    outcome = await discord_utils.safe_delete_message(message)
    assert outcome.succeeded is False
    assert outcome.error == expected


@pytest.mark.asyncio
async def test_resolve_member_prefers_cache_then_fetch(message):
    cached = FakeMember(id=42)
    message.guild.get_member.return_value = cached
    assert await discord_utils.resolve_member(message) is cached

    fetched = FakeMember(id=42)
    message.guild.get_member.return_value = None
    message.guild.fetch_member = AsyncMock(return_value=fetched)
    assert await discord_utils.resolve_member(message) is fetched


@pytest.mark.asyncio
async def test_resolve_member_missing(message):
    message.guild.get_member.return_value = None
    message.guild.fetch_member = AsyncMock(side_effect=http_error(discord.NotFound, 404))
    assert await discord_utils.resolve_member(message) is None


@pytest.mark.asyncio
async def test_timeout_member_skips_zero(message):
    outcome = await discord_utils.timeout_member(message, 0, ["x"])
    assert outcome.skipped is True
    message.guild.get_member.assert_not_called()


@pytest.mark.asyncio
async def test_timeout_member_clamps_and_sets_reason(message):
    member = FakeMember(id=42, timeout=AsyncMock())
    message.guild.get_member.return_value = member
    before = discord.utils.utcnow()

    outcome = await discord_utils.timeout_member(message, 60 * 24 * 3600 * 1000, ["GIFs", "Tenor link"])

    assert outcome.succeeded is True
    until = member.timeout.await_args.args[0]
    assert until - before <= datetime.timedelta(days=28, seconds=5)
    assert member.timeout.await_args.kwargs["reason"] == "AttachmentBlocker: GIFs, Tenor link"


@pytest.mark.asyncio
async def test_timeout_member_forbidden(message):
    member = FakeMember(id=42, timeout=AsyncMock(side_effect=http_error(discord.Forbidden, 403)))
    message.guild.get_member.return_value = member
    outcome = await discord_utils.timeout_member(message, 1000, ["x"])
    assert outcome.succeeded is False
    assert outcome.error == "forbidden"


@pytest.mark.asyncio
async def test_send_blocked_notice_builds_embed():
    user = SimpleNamespace(send=AsyncMock())
    outcome = await discord_utils.send_blocked_notice(user, 10, ["GIFs"], 0, 0x123456)

    assert outcome.succeeded is True
    embed = user.send.await_args.kwargs["embed"]
    assert "<#10>" in embed.description
    assert "GIFs" in embed.description


@pytest.mark.asyncio
async def test_send_blocked_notice_dm_closed():
    user = SimpleNamespace(send=AsyncMock(side_effect=http_error(discord.Forbidden, 403)))
    outcome = await discord_utils.send_blocked_notice(user, 10, ["GIFs"])
    assert outcome.succeeded is False
    assert outcome.error == "DMs disabled"


@pytest.mark.asyncio
async def test_resolve_author_role_ids_uses_guild_member(message):
    message.guild.get_member.return_value = FakeMember(id=42, roles=[SimpleNamespace(id=5), SimpleNamespace(id=6)])
    assert await discord_utils.resolve_author_role_ids(message) == frozenset({5, 6})


@pytest.mark.asyncio
async def test_resolve_author_role_ids_without_member(message):
    message.guild.get_member.return_value = None
    message.guild.fetch_member = AsyncMock(side_effect=http_error(discord.NotFound, 404))
    assert await discord_utils.resolve_author_role_ids(message) == frozenset()
