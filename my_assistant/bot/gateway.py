"""Telegram adapter: inbound update normalisation and outbound calls."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from telegram import Bot, Update
from telegram.constants import MessageLimit
from telegram.error import TelegramError

from my_assistant.constants import UNKNOWN_USER

logger = logging.getLogger(__name__)

# Kinds recorded as "[kind]" without downloading anything.
OTHER_MESSAGE_KINDS = ("sticker", "location", "contact", "venue", "poll", "dice", "video_note")


@dataclass
class InboundEvent:
    kind: str  # "message" or "postback"
    user_id: str
    chat_id: Optional[int]
    timestamp: datetime
    message_id: str = ""
    message_type: str = "text"
    text: str = ""
    file_id: Optional[str] = None
    postback_data: Optional[str] = None

    @classmethod
    def from_update(cls, update: Update) -> Optional["InboundEvent"]:
        """Normalise a Telegram update; None for updates the bot does not handle."""
        query = update.callback_query
        if query is not None:
            chat_id = query.message.chat.id if query.message else query.from_user.id
            return cls(
                kind="postback",
                user_id=str(query.from_user.id),
                chat_id=chat_id,
                timestamp=datetime.now(timezone.utc),
                message_id=str(query.id),
                message_type="postback",
                postback_data=query.data,
            )

        message = update.message
        if message is None or message.from_user is None:
            return None

        event = cls(
            kind="message",
            user_id=str(message.from_user.id),
            chat_id=message.chat.id,
            timestamp=message.date or datetime.now(timezone.utc),
            message_id=str(message.message_id),
        )
        if message.text is not None:
            event.text = message.text
        elif message.photo:
            event.message_type, event.file_id = "image", message.photo[-1].file_id
        elif message.video is not None:
            event.message_type, event.file_id = "video", message.video.file_id
        elif message.animation is not None:
            event.message_type, event.file_id = "video", message.animation.file_id
        elif message.audio is not None:
            event.message_type, event.file_id = "audio", message.audio.file_id
        elif message.voice is not None:
            event.message_type, event.file_id = "audio", message.voice.file_id
        elif message.document is not None:
            event.message_type, event.file_id = "file", message.document.file_id
        else:
            event.message_type = next(
                (kind for kind in OTHER_MESSAGE_KINDS if getattr(message, kind, None) is not None),
                "unknown",
            )
        return event


def split_message(text: str, limit: int = MessageLimit.MAX_TEXT_LENGTH) -> List[str]:
    """Split *text* on line boundaries into chunks no longer than *limit*."""
    if len(text) <= limit:
        return [text]
    chunks: List[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


class TelegramGateway:
    """Outbound operations the bot needs from the messaging platform."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def reply(self, event: InboundEvent, text: str) -> None:
        for chunk in split_message(text):
            await self.bot.send_message(chat_id=event.chat_id, text=chunk)

    async def get_display_name(self, user_id: str) -> str:
        try:
            chat = await self.bot.get_chat(int(user_id))
        except (TelegramError, ValueError) as exc:
            logger.error("Could not fetch profile for %s: %s", user_id, exc)
            return UNKNOWN_USER
        return chat.full_name or chat.username or UNKNOWN_USER

    async def fetch_content(self, event: InboundEvent) -> bytes:
        file = await self.bot.get_file(event.file_id)
        return bytes(await file.download_as_bytearray())
