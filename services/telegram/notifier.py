"""Forward generated images and their prompts to a Telegram chat.

Forwarding is best effort: nothing here raises to the caller, every failure is
logged and reported as a False return.
"""

from __future__ import annotations

import html
import logging
from typing import Optional

from telegram import Bot
from telegram.constants import ParseMode

LOGGER = logging.getLogger(__name__)

CAPTION_PROMPT_LIMIT = 150


def shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def build_caption(prompt: str, ratio: str, resolution: str, source: str = "API") -> str:
    """HTML caption used for forwarded images."""
    return (
        f"🎨 <b>New image</b> ({html.escape(source)})\n\n"
        f"Quality: {html.escape(resolution)}\n"
        f"Ratio: {html.escape(ratio)}\n\n"
        f"Prompt: {html.escape(shorten(prompt, CAPTION_PROMPT_LIMIT))}"
    )


class TelegramNotifier:
    """Send a photo plus the full prompt as `prompt.txt` to the configured chat."""

    def __init__(self, token: Optional[str], chat_id: Optional[str], bot: Optional[Bot] = None) -> None:
        self.token = token or None
        self.chat_id = chat_id or None
        self.bot = bot

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_id)

    async def forward(self, image_bytes: bytes, caption: str, prompt: Optional[str] = None) -> bool:
        """Forward one image; returns whether it was delivered."""
        if not self.token:
            return False
        if not self.chat_id:
            LOGGER.info("Cannot forward image: no TELEGRAM_CHAT_ID configured. Send /chatid to the bot to find it.")
            return False

        try:
            if self.bot is not None:
                await self._send(self.bot, image_bytes, caption, prompt)
            else:
                async with Bot(self.token) as bot:
                    await self._send(bot, image_bytes, caption, prompt)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Failed to forward image to Telegram: %s", exc)
            return False

        LOGGER.info("Image and prompt forwarded to Telegram")
        return True

    async def _send(self, bot: Bot, image_bytes: bytes, caption: str, prompt: Optional[str]) -> None:
        await bot.send_photo(chat_id=self.chat_id, photo=image_bytes, caption=caption, parse_mode=ParseMode.HTML)
        if prompt:
            await bot.send_document(chat_id=self.chat_id, document=prompt.encode("utf-8"), filename="prompt.txt")
