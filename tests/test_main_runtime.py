from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from attachguard import main
from attachguard.database.db_cache import MemoryTTLCache
from attachguard.settings.blocker_config_store import BlockerConfigStore


def test_resolve_base_dir_prefers_env(monkeypatch, tmp_path):
    monkeypatch.setenv("ATTACHGUARD_HOME", str(tmp_path))
    assert main.resolve_base_dir() == tmp_path.resolve()


def test_build_intents_enables_content_and_members():
    intents = main.build_intents()
    assert intents.message_content is True
    assert intents.members is True
    assert intents.guilds is True


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **_: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)
    with pytest.raises(SystemExit):
        main.load_environment()


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **_: None)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")
    assert main.load_environment() == "abc"


@pytest.mark.asyncio
async def test_create_cache_without_redis_is_in_process():
    cache = await main.create_cache(SimpleNamespace(redis_url=""))
    assert isinstance(cache, MemoryTTLCache)


@pytest.mark.asyncio
async def test_create_cache_keeps_unreachable_redis(monkeypatch):
    client = SimpleNamespace(ping=AsyncMock(return_value=False))
    monkeypatch.setattr(main.RedisCacheClient, "from_url", classmethod(lambda cls, url: client))

    cache = await main.create_cache(SimpleNamespace(redis_url="redis://nowhere:6379/0"))

    assert cache is client
    client.ping.assert_awaited_once()


@pytest.mark.asyncio
async def test_open_and_shutdown_runtime(tmp_path):
    config = SimpleNamespace(database_path=tmp_path / "app.db", redis_url="", cache_ttl_seconds=60)

    runtime = await main.open_runtime(config)
    assert isinstance(runtime.store, BlockerConfigStore)
    assert (tmp_path / "app.db").exists()

    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()
    await main.shutdown_runtime(bot, runtime)
    bot.close.assert_awaited_once()


def test_load_cogs_registers_both_cogs():
    added = []
    bot = SimpleNamespace(add_cog=added.append, get_cog=lambda name: None)
    runtime = SimpleNamespace(store=SimpleNamespace())
    config = SimpleNamespace(opener_cog_name="TempVC", dm_notifications=True, notice_color=0xFF4444)

    main.load_cogs(bot, runtime, config)

    names = sorted(type(cog).__name__ for cog in added)
    assert names == ["AttachmentBlockerCog", "MessageListenerCog"]


@pytest.mark.asyncio
async def test_async_main_returns_one_when_database_fails(monkeypatch):
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "open_runtime", AsyncMock(side_effect=RuntimeError("disk full")))
    assert await main.async_main() == 1
