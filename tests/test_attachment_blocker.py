"""
Tests for AttachmentBlockerService.

Messages are built as InspectedMessage values with a MagicMock standing in
for the py-cord message used by the side effects.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from attachguard.datatypes.attachment_types import AttachmentType
from attachguard.datatypes.blocker_config import ChannelBlockerConfig, EffectiveConfig, GuildBlockerConfig
from attachguard.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from attachguard.datatypes.message_content import (
    AttachmentRef,
    ForwardedEmbed,
    ForwardedSnapshot,
    InspectedMessage,
)
from attachguard.moderation.attachment_blocker import AttachmentBlockerService, collect_violations
from attachguard.moderation.policy_resolver import BlockerConfigResolver

GUILD_ID = 1
CHANNEL_ID = 10
TENOR = "https://tenor.com/view/dancing-cat-123"


def make_source():
    member = MagicMock()
    member.timeout = AsyncMock()
    source = MagicMock()
    source.id = 555
    source.delete = AsyncMock()
    source.author = MagicMock()
    source.author.id = 42
    source.author.send = AsyncMock()
    source.guild.get_member.return_value = member
    return source, member


def make_message(source, **kwargs) -> InspectedMessage:
    defaults = dict(
        author_id=UserID(42),
        author_tag="user#0001",
        guild_id=GuildID(GUILD_ID),
        channel_id=ChannelID(CHANNEL_ID),
        channel_name="general",
        source=source,
    )
    defaults.update(kwargs)
    return InspectedMessage(**defaults)


def make_service(guild=None, channel=None, **kwargs):
    store = MagicMock()
    store.get_guild_config = AsyncMock(return_value=guild)
    store.get_channel_config = AsyncMock(return_value=channel)
    store.get_opener_config = AsyncMock(return_value=None)
    return AttachmentBlockerService(BlockerConfigResolver(store), **kwargs)


def image_only_guild(**kwargs):
    defaults = dict(guild_id=GUILD_ID, enabled=True, default_allowed_types=[AttachmentType.IMAGE])
    defaults.update(kwargs)
    return GuildBlockerConfig(**defaults)


VIDEO = AttachmentRef(content_type="video/mp4", filename="clip.mp4")
PNG = AttachmentRef(content_type="image/png", filename="cat.png")


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_scenario_a_disallowed_video_is_deleted_without_timeout():
    source, member = make_source()
    service = make_service(guild=image_only_guild())

    blocked = await service.handle(make_message(source, attachments=[VIDEO]))

    assert blocked is True
    source.delete.assert_awaited_once()
    member.timeout.assert_not_awaited()
    source.author.send.assert_awaited_once()
    embed = source.author.send.await_args.kwargs["embed"]
    assert "Attachment type not allowed: video/mp4" in embed.description
    assert "timed out" not in embed.description


@pytest.mark.asyncio
async def test_scenario_b_inheriting_override_allows_image():
    source, _ = make_source()
    channel = ChannelBlockerConfig(channel_id=CHANNEL_ID, guild_id=GUILD_ID, enabled=True, allowed_types=[])
    service = make_service(guild=image_only_guild(), channel=channel)

    assert await service.handle(make_message(source, attachments=[PNG])) is False
    source.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_scenario_c_none_policy_blocks_gif_link():
    source, _ = make_source()
    guild = image_only_guild(default_allowed_types=[AttachmentType.NONE])
    service = make_service(guild=guild)

    blocked = await service.handle(make_message(source, content=f"lol {TENOR}"))

    assert blocked is True
    embed = source.author.send.await_args.kwargs["embed"]
    assert "Tenor link not allowed" in embed.description


@pytest.mark.asyncio
async def test_scenario_d_disabled_guild_wins_over_enabled_override():
    source, _ = make_source()
    guild = image_only_guild(enabled=False)
    channel = ChannelBlockerConfig(channel_id=CHANNEL_ID, guild_id=GUILD_ID, enabled=True, allowed_types=[])
    service = make_service(guild=guild, channel=channel)

    assert await service.handle(make_message(source, attachments=[VIDEO])) is False
    source.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_scenario_e_bypass_role_skips_enforcement():
    source, _ = make_source()
    service = make_service(guild=image_only_guild(bypass_role_ids=[777]))

    message = make_message(source, attachments=[VIDEO], author_role_ids=frozenset({1, 777}))

    assert await service.handle(message) is False
    source.delete.assert_not_awaited()


# ---------------------------------------------------------------------------
# Pre-filters
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"author_is_bot": True},
        {"is_voice_message": True},
        {"guild_id": None},
        {"channel_id": None},
    ],
)
async def test_prefilters_short_circuit_before_resolution(overrides):
    source, _ = make_source()
    service = make_service(guild=image_only_guild())

    assert await service.handle(make_message(source, attachments=[VIDEO], **overrides)) is False
    service.resolver.store.get_guild_config.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_guild_config_never_blocks():
    source, _ = make_source()
    service = make_service(guild=None)
    assert await service.handle(make_message(source, attachments=[VIDEO])) is False


@pytest.mark.asyncio
async def test_all_allowed_never_blocks():
    source, _ = make_source()
    service = make_service(guild=image_only_guild(default_allowed_types=[AttachmentType.ALL]))
    assert await service.handle(make_message(source, attachments=[VIDEO], content=TENOR)) is False


@pytest.mark.asyncio
async def test_plain_text_is_not_blocked():
    source, _ = make_source()
    service = make_service(guild=image_only_guild())
    assert await service.handle(make_message(source, content="hello there")) is False


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_timeout_applied_with_audit_reason():
    source, member = make_source()
    service = make_service(guild=image_only_guild(default_timeout_ms=60000))

    assert await service.handle(make_message(source, attachments=[VIDEO])) is True

    member.timeout.assert_awaited_once()
    assert member.timeout.await_args.kwargs["reason"] == "AttachmentBlocker: Attachment type not allowed: video/mp4"
    embed = source.author.send.await_args.kwargs["embed"]
    assert "You have been timed out for 60 seconds." in embed.description


@pytest.mark.asyncio
async def test_delete_failure_aborts_and_returns_false():
    source, member = make_source()
    source.delete = AsyncMock(side_effect=discord.Forbidden(MagicMock(status=403), "missing perms"))
    service = make_service(guild=image_only_guild(default_timeout_ms=60000))

    assert await service.handle(make_message(source, attachments=[VIDEO])) is False
    member.timeout.assert_not_awaited()
    source.author.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_undeletable_message_is_not_enforced():
    source, _ = make_source()
    service = make_service(guild=image_only_guild())
    assert await service.handle(make_message(source, attachments=[VIDEO], deletable=False)) is False
    source.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_timeout_and_dm_failures_are_non_fatal():
    source, member = make_source()
    member.timeout = AsyncMock(side_effect=RuntimeError("hierarchy"))
    source.author.send = AsyncMock(side_effect=discord.Forbidden(MagicMock(status=403), "dms closed"))
    service = make_service(guild=image_only_guild(default_timeout_ms=1000))

    assert await service.handle(make_message(source, attachments=[VIDEO])) is True
    source.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_dm_can_be_disabled():
    source, _ = make_source()
    service = make_service(guild=image_only_guild(), dm_notifications=False)

    assert await service.handle(make_message(source, attachments=[VIDEO])) is True
    source.author.send.assert_not_awaited()


# ---------------------------------------------------------------------------
# Reason accumulation
# ---------------------------------------------------------------------------

def config_with(*types):
    return EffectiveConfig(
        enabled=True,
        allowed_types=tuple(types),
        timeout_ms=0,
        bypass_role_ids=frozenset(),
        is_channel_override=False,
    )


def test_first_reason_is_sentence_then_tokens():
    message = InspectedMessage(
        author_id=UserID(1),
        attachments=[VIDEO, AttachmentRef(content_type="audio/mpeg")],
        content=TENOR,
    )
    reasons = collect_violations(message, config_with(AttachmentType.IMAGE))
    assert reasons == ["Attachment type not allowed: video/mp4", "audio/mpeg", "Tenor link"]


def test_none_policy_records_single_attachment_reason():
    message = InspectedMessage(
        author_id=UserID(1),
        attachments=[PNG, VIDEO],
        snapshots=[ForwardedSnapshot(embeds=[ForwardedEmbed(kind="gifv")])],
    )
    assert collect_violations(message, config_with(AttachmentType.NONE)) == ["No attachments allowed"]


def test_forwarded_content_is_inspected():
    snapshot = ForwardedSnapshot(
        content="",
        attachments=[VIDEO],
        embeds=[ForwardedEmbed(kind="gifv")],
    )
    message = InspectedMessage(author_id=UserID(1), snapshots=[snapshot])
    reasons = collect_violations(message, config_with(AttachmentType.IMAGE))
    assert reasons == ["Attachment type not allowed: video/mp4", "GIFs"]


def test_forwarded_embed_reason_uses_label():
    message = InspectedMessage(
        author_id=UserID(1),
        snapshots=[ForwardedSnapshot(embeds=[ForwardedEmbed(kind="video", video_url="https://x/v.mp4")])],
    )
    assert collect_violations(message, config_with(AttachmentType.IMAGE)) == ["Videos not allowed"]


def test_unknown_attachment_types_pass():
    message = InspectedMessage(
        author_id=UserID(1),
        attachments=[AttachmentRef(content_type="application/pdf", filename="doc.pdf")],
    )
    assert collect_violations(message, config_with(AttachmentType.IMAGE)) == []


def test_none_policy_with_empty_message_is_clean():
    message = InspectedMessage(author_id=UserID(1))
    assert collect_violations(message, config_with(AttachmentType.NONE)) == []


def test_unlisted_video_type_passes_image_only_policy():
    message = InspectedMessage(
        author_id=UserID(1),
        attachments=[AttachmentRef(content_type="video/x-flv", filename="old.flv")],
    )
    assert collect_violations(message, config_with(AttachmentType.IMAGE)) == []


@pytest.mark.asyncio
async def test_unlisted_video_type_is_not_deleted():
    source, _ = make_source()
    service = make_service(guild=image_only_guild())
    flv = AttachmentRef(content_type="video/x-flv", filename="old.flv")

    assert await service.handle(make_message(source, attachments=[flv])) is False
    source.delete.assert_not_awaited()


def test_repeated_forwarded_embed_category_is_reported_once():
    snapshot = ForwardedSnapshot(
        embeds=[
            ForwardedEmbed(kind="image", image_url="https://x/a.png"),
            ForwardedEmbed(kind="image", image_url="https://x/b.png"),
        ]
    )
    message = InspectedMessage(author_id=UserID(1), snapshots=[snapshot])
    assert collect_violations(message, config_with(AttachmentType.VIDEO)) == ["Images not allowed"]


@pytest.mark.asyncio
async def test_bypass_role_found_through_guild_member_lookup():
    source, member = make_source()
    member.roles = [MagicMock(id=777)]
    service = make_service(guild=image_only_guild(bypass_role_ids=[777]))

    assert await service.handle(make_message(source, attachments=[VIDEO])) is False
    source.guild.get_member.assert_called_once_with(42)
    source.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_member_without_bypass_role_is_still_blocked():
    source, member = make_source()
    member.roles = [MagicMock(id=1)]
    service = make_service(guild=image_only_guild(bypass_role_ids=[777]))

    assert await service.handle(make_message(source, attachments=[VIDEO])) is True
