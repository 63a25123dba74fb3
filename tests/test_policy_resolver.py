from unittest.mock import AsyncMock, MagicMock

import pytest

from attachguard.datatypes.attachment_types import AttachmentType
from attachguard.datatypes.blocker_config import (
    ChannelBlockerConfig,
    GuildBlockerConfig,
    OpenerBlockerConfig,
)
from attachguard.moderation.policy_resolver import BlockerConfigResolver, resolve_effective_config

GUILD_ID = 1
CHANNEL_ID = 10
PARENT_ID = 11
OPENER_ID = 20


def make_guild(**kwargs) -> GuildBlockerConfig:
    defaults = dict(
        guild_id=GUILD_ID,
        enabled=True,
        default_allowed_types=[AttachmentType.IMAGE],
        default_timeout_ms=5000,
        bypass_role_ids=[100],
    )
    defaults.update(kwargs)
    return GuildBlockerConfig(**defaults)


def make_channel(channel_id=CHANNEL_ID, **kwargs) -> ChannelBlockerConfig:
    return ChannelBlockerConfig(channel_id=channel_id, guild_id=GUILD_ID, **kwargs)


def make_opener(**kwargs) -> OpenerBlockerConfig:
    return OpenerBlockerConfig(opener_channel_id=OPENER_ID, guild_id=GUILD_ID, **kwargs)


# ---------------------------------------------------------------------------
# Pure resolution
# ---------------------------------------------------------------------------

def test_no_guild_config_is_disabled_regardless_of_overrides():
    result = resolve_effective_config(
        None,
        make_channel(allowed_types=[AttachmentType.VIDEO]),
        make_channel(PARENT_ID),
        make_opener(),
    )
    assert result.enabled is False
    assert result.allowed_types == ()
    assert result.timeout_ms == 0
    assert result.bypass_role_ids == frozenset()
    assert result.is_channel_override is False


def test_guild_defaults_when_no_override():
    result = resolve_effective_config(make_guild(), None)
    assert result.enabled is True
    assert result.allowed_types == (AttachmentType.IMAGE,)
    assert result.timeout_ms == 5000
    assert result.bypass_role_ids == frozenset({100})
    assert result.is_channel_override is False


def test_empty_override_types_inherit_guild_defaults():
    result = resolve_effective_config(make_guild(), make_channel(allowed_types=[]))
    assert result.allowed_types == (AttachmentType.IMAGE,)
    assert result.is_channel_override is True


def test_none_override_is_not_inherited():
    result = resolve_effective_config(make_guild(), make_channel(allowed_types=[AttachmentType.NONE]))
    assert result.allowed_types == (AttachmentType.NONE,)


def test_channel_override_merges_timeout_and_bypass():
    channel = make_channel(timeout_ms=None, bypass_role_ids=[200])
    result = resolve_effective_config(make_guild(), channel)
    assert result.timeout_ms == 5000
    assert result.bypass_role_ids == frozenset({100, 200})

    channel = make_channel(timeout_ms=0)
    assert resolve_effective_config(make_guild(), channel).timeout_ms == 0


@pytest.mark.parametrize(
    "guild_enabled, override_enabled, expected",
    [(True, True, True), (True, False, False), (False, True, False), (False, False, False)],
)
def test_enabled_is_and_of_guild_and_override(guild_enabled, override_enabled, expected):
    result = resolve_effective_config(
        make_guild(enabled=guild_enabled), make_channel(enabled=override_enabled)
    )
    assert result.enabled is expected


def test_parent_override_applies_to_thread():
    parent = make_channel(PARENT_ID, allowed_types=[AttachmentType.GIF], bypass_role_ids=[300])
    result = resolve_effective_config(make_guild(), None, parent)
    assert result.allowed_types == (AttachmentType.GIF,)
    assert result.bypass_role_ids == frozenset({100, 300})
    assert result.is_channel_override is True


def test_channel_override_wins_over_parent_and_opener():
    channel = make_channel(allowed_types=[AttachmentType.AUDIO])
    parent = make_channel(PARENT_ID, allowed_types=[AttachmentType.GIF])
    opener = make_opener(allowed_types=[AttachmentType.VIDEO])
    result = resolve_effective_config(make_guild(), channel, parent, opener)
    assert result.allowed_types == (AttachmentType.AUDIO,)


def test_opener_override_uses_guild_bypass_only():
    opener = make_opener(allowed_types=[AttachmentType.VIDEO], timeout_ms=1000)
    result = resolve_effective_config(make_guild(), None, None, opener)
    assert result.allowed_types == (AttachmentType.VIDEO,)
    assert result.timeout_ms == 1000
    assert result.bypass_role_ids == frozenset({100})
    assert result.is_channel_override is True


def test_bypass_always_contains_guild_roles():
    guild = make_guild(bypass_role_ids=[1, 2])
    for result in (
        resolve_effective_config(guild, None),
        resolve_effective_config(guild, make_channel(bypass_role_ids=[3])),
        resolve_effective_config(guild, None, make_channel(PARENT_ID)),
        resolve_effective_config(guild, None, None, make_opener()),
    ):
        assert result.bypass_role_ids >= frozenset({1, 2})


# ---------------------------------------------------------------------------
# Resolver with I/O
# ---------------------------------------------------------------------------

def make_store(guild=None, channels=None, openers=None):
    channels = channels or {}
    openers = openers or {}
    store = MagicMock()
    store.get_guild_config = AsyncMock(return_value=guild)
    store.get_channel_config = AsyncMock(side_effect=lambda cid: channels.get(int(cid)))
    store.get_opener_config = AsyncMock(side_effect=lambda oid: openers.get(int(oid)))
    return store


@pytest.mark.asyncio
async def test_resolver_skips_further_lookups_without_guild():
    store = make_store(guild=None)
    lookup = MagicMock()
    lookup.get_opener_for_channel = AsyncMock(return_value=OPENER_ID)

    result = await BlockerConfigResolver(store, lookup).resolve(GUILD_ID, CHANNEL_ID, PARENT_ID)

    assert result.enabled is False
    lookup.get_opener_for_channel.assert_not_awaited()
    store.get_opener_config.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolver_uses_parent_override_for_threads():
    parent = make_channel(PARENT_ID, allowed_types=[AttachmentType.GIF])
    store = make_store(guild=make_guild(), channels={PARENT_ID: parent})

    result = await BlockerConfigResolver(store).resolve(GUILD_ID, CHANNEL_ID, PARENT_ID)

    assert result.allowed_types == (AttachmentType.GIF,)
    assert store.get_channel_config.await_count == 2


@pytest.mark.asyncio
async def test_resolver_ignores_parent_equal_to_channel():
    store = make_store(guild=make_guild())
    await BlockerConfigResolver(store).resolve(GUILD_ID, CHANNEL_ID, CHANNEL_ID)
    assert store.get_channel_config.await_count == 1


@pytest.mark.asyncio
async def test_resolver_consults_opener_lookup():
    opener = make_opener(allowed_types=[AttachmentType.VIDEO])
    store = make_store(guild=make_guild(), openers={OPENER_ID: opener})
    lookup = MagicMock()
    lookup.get_opener_for_channel = AsyncMock(return_value=OPENER_ID)

    result = await BlockerConfigResolver(store, lookup).resolve(GUILD_ID, CHANNEL_ID)

    lookup.get_opener_for_channel.assert_awaited_once_with(GUILD_ID, CHANNEL_ID)
    assert result.allowed_types == (AttachmentType.VIDEO,)
    assert result.is_channel_override is True


@pytest.mark.asyncio
async def test_resolver_opener_lookup_error_falls_back_to_defaults():
    store = make_store(guild=make_guild())
    lookup = MagicMock()
    lookup.get_opener_for_channel = AsyncMock(side_effect=RuntimeError("temp vc offline"))

    result = await BlockerConfigResolver(store, lookup).resolve(GUILD_ID, CHANNEL_ID)

    assert result.is_channel_override is False
    assert result.allowed_types == (AttachmentType.IMAGE,)


@pytest.mark.asyncio
async def test_resolver_without_lookup_uses_defaults():
    store = make_store(guild=make_guild())
    result = await BlockerConfigResolver(store).resolve(GUILD_ID, CHANNEL_ID)
    assert result.is_channel_override is False
    store.get_opener_config.assert_not_awaited()
