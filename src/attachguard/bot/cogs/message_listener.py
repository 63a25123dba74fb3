"""Message listener Cog for the attachment blocker.

Runs every new or edited guild message through the AttachmentBlockerService.
"""

import discord
from discord.ext import commands

from attachguard.moderation.attachment_blocker import AttachmentBlockerService
from attachguard.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for handling message creation and editing events."""

    def __init__(self, discord_bot_instance, service: AttachmentBlockerService):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        service:
            Enforcement service that inspects each message.
        """
        self.discord_bot_instance = discord_bot_instance
        self.service = service
        logger.info("Message listener cog loaded")

    async def _enforce(self, message: discord.Message) -> bool:
        # Event handlers must never raise into the gateway loop.
        try:
            return await self.service.check_and_enforce(message)
        except Exception:
            logger.exception(f"Attachment check failed for message {getattr(message, 'id', '?')}")
            return False

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        """Check new guild messages for disallowed attachments and media links."""
        if message.guild is None:
            return
        await self._enforce(message)

    @commands.Cog.listener(name='on_message_edit')
    async def on_message_edit(self, before: discord.Message, after: discord.Message):
        """
        Re-check edited messages.

        Edits can add embeds or links after the original post; unchanged
        content with unchanged attachments is skipped.
        """
        if after.guild is None:
            return
        if (
            (before.content or "") == (after.content or "")
            and len(before.attachments) == len(after.attachments)
        ):
            return
        await self._enforce(after)


def setup(discord_bot_instance, service: AttachmentBlockerService):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, service))
