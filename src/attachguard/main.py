"""
AttachGuard Discord Bot
=======================

Enforces per-guild attachment and media-link rules: messages carrying
disallowed uploads, forwarded media or media links are deleted, the author
is optionally timed out and told why by DM.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. ATTACHGUARD_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("ATTACHGUARD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

import discord
from dotenv import load_dotenv

from attachguard.configuration.app_configuration import AppConfig, app_config
from attachguard.database.db_cache import CacheClient, MemoryTTLCache, RedisCacheClient
from attachguard.database.db_connection import ConnectionManager
from attachguard.moderation.attachment_blocker import AttachmentBlockerService
from attachguard.moderation.opener_lookup import CogOpenerLookup
from attachguard.moderation.policy_resolver import BlockerConfigResolver
from attachguard.settings.blocker_config_store import BlockerConfigStore
from attachguard.util.logger import get_logger, handle_exception


logger = get_logger("main")


@dataclass
class Runtime:
    """Resources opened at startup and closed at shutdown."""

    connection: ConnectionManager
    cache: CacheClient
    store: BlockerConfigStore


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild messages, their content and member roles."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


async def create_cache(config: AppConfig) -> CacheClient:
    """Connect to Redis when configured, otherwise use the in-process cache."""
    if not config.redis_url:
        logger.info("No redis_url configured; using in-process cache.")
        return MemoryTTLCache()

    client = RedisCacheClient.from_url(config.redis_url)
    if await client.ping():
        logger.info("Connected to Redis cache.")
    else:
        # Every cache call degrades to a miss, so startup continues.
        logger.warning("Redis at configured redis_url is not reachable; reads will fall back to the database.")
    return client


async def open_runtime(config: AppConfig) -> Runtime:
    connection = ConnectionManager()
    await connection.open(config.database_path)
    cache = await create_cache(config)
    store = BlockerConfigStore(connection, cache, cache_ttl=config.cache_ttl_seconds)
    return Runtime(connection=connection, cache=cache, store=store)


def load_cogs(discord_bot_instance: discord.Bot, runtime: Runtime, config: AppConfig) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from attachguard.bot.cogs import attachment_blocker_cmds, message_listener

    resolver = BlockerConfigResolver(
        runtime.store,
        CogOpenerLookup(discord_bot_instance, config.opener_cog_name),
    )
    service = AttachmentBlockerService(
        resolver,
        dm_notifications=config.dm_notifications,
        notice_color=config.notice_color,
    )

    message_listener.setup(discord_bot_instance, service)
    attachment_blocker_cmds.setup(discord_bot_instance, runtime.store)

    logger.info("All cogs loaded successfully.")


def create_bot(runtime: Runtime, config: AppConfig) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, runtime, config)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, runtime: Runtime) -> None:
    """Close the bot, the cache client and the database connection."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing Discord bot: %s", exc)

    try:
        await runtime.cache.close()
    except Exception as exc:
        logger.exception("Error during cache shutdown: %s", exc)

    try:
        await runtime.connection.close()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database, cache and bot, returning an exit code."""
    token = load_environment()

    try:
        logger.info("Initializing database at %s...", app_config.database_path)
        runtime = await open_runtime(app_config)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    bot = None
    exit_code = 0
    try:
        bot = create_bot(runtime, app_config)
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, runtime)

    return exit_code


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code."""
    logger.info("Starting AttachGuard…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    print(f"Exited with code: {main()}")
