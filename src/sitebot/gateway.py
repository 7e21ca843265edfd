"""Discord chat gateway.

Connects to Discord, filters incoming messages down to human messages in
the configured channel, passes their text to the BotController and posts
the reply back to the channel.
"""

import logging
from typing import Any, List, Optional

import discord

from src.sitebot.controller import BotController

logger = logging.getLogger(__name__)


# Discord rejects messages longer than this.
MAX_MESSAGE_LENGTH = 2000


def should_handle(message: Any, channel_id: Optional[int]) -> bool:
    """Decide whether a chat message is for the bot.

    Args:
        message: A discord.Message (or anything shaped like one).
        channel_id: The only channel to listen in; None listens everywhere.

    Returns:
        False for messages from bots (including this one) and for messages
        outside the configured channel.
    """
    if getattr(message.author, "bot", False):
        return False
    if channel_id is not None and message.channel.id != channel_id:
        return False
    return True


def split_reply(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split a reply into chunks Discord will accept, preferring line breaks."""
    chunks: List[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return [chunk.rstrip("\n") for chunk in chunks if chunk.strip()]


class ChatGateway(discord.Client):
    """Discord client that forwards channel messages to the controller.

    Attributes:
        controller: Handles parsed commands and produces replies.
        channel_id: Channel to listen in, or None for every readable channel.
    """

    def __init__(self, controller: BotController, channel_id: Optional[int] = None):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents)
        self.controller = controller
        self.channel_id = channel_id

    async def on_ready(self) -> None:
        logger.info(
            "Logged in to Discord",
            extra={"user": str(self.user), "channel_id": self.channel_id},
        )

    async def on_message(self, message: discord.Message) -> None:
        if not should_handle(message, self.channel_id):
            return

        reply = await self.controller.handle_message(message.content)
        if not reply:
            return

        chunks = split_reply(reply)
        for index, chunk in enumerate(chunks):
            if index == 0:
                await message.reply(chunk, mention_author=False)
            else:
                await message.channel.send(chunk)
