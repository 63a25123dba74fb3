"""Repository layer for attachment blocker database access."""
from attachguard.settings.repositories.guild_config_repo import GuildConfigRepository
from attachguard.settings.repositories.channel_config_repo import ChannelConfigRepository
from attachguard.settings.repositories.opener_config_repo import OpenerConfigRepository

__all__ = [
    "GuildConfigRepository",
    "ChannelConfigRepository",
    "OpenerConfigRepository",
]
