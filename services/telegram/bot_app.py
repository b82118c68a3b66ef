"""Interactive Telegram bot: `/imagine`, `/quick`, `/status`, `/chatid`.

The bot runs inside the gateway process (long polling, started from the
FastAPI lifespan) and generates through the same `GenerationGateway` and
session manager as the HTTP routes.
"""

from __future__ import annotations

import html
import logging
import time
from typing import Optional

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes

from models.errors import GatewayError
from models.generation_models import RATIOS, RESOLUTIONS, GenerationOptions
from services.generation_gateway import GenerationGateway
from services.session.session_manager import SessionManager
from services.telegram.notifier import CAPTION_PROMPT_LIMIT, shorten
from services.telegram.pending_store import PendingGenerationStore

LOGGER = logging.getLogger(__name__)

WELCOME_TEXT = (
    "🎨 <b>Z-Image Generator Bot</b>\n\n"
    "<b>Commands:</b>\n"
    "/imagine &lt;prompt&gt; - Generate with quality and ratio selection\n"
    "/quick &lt;prompt&gt; - Quick generate (1K, 1:1)\n"
    "/status - Check session status\n"
    "/chatid - Show this chat's id for image forwarding\n\n"
    "<b>Examples:</b>\n"
    "<code>/imagine a cute cat girl with blue eyes</code>\n"
    "<code>/quick cyberpunk city at night</code>"
)

RATIO_BUTTONS = (
    (("1:1", "1:1 Square"), ("16:9", "16:9 Wide")),
    (("9:16", "9:16 Portrait"), ("4:3", "4:3 Classic")),
    (("3:4", "3:4 Portrait"), ("21:9", "21:9 Cinema")),
)


def command_argument(text: Optional[str]) -> str:
    """Everything after the command word, stripped."""
    parts = (text or "").split(maxsplit=1)
    return parts[1].strip() if len(parts) > 1 else ""


def quality_keyboard(request_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("⚡ 1K (Fast)", callback_data=f"model_1K_{request_id}"),
                InlineKeyboardButton("💎 2K (HD)", callback_data=f"model_2K_{request_id}"),
            ],
            [InlineKeyboardButton("❌ Cancel", callback_data=f"cancel_{request_id}")],
        ]
    )


def ratio_keyboard(resolution: str, request_id: str) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(label, callback_data=f"ratio_{ratio}_{resolution}_{request_id}") for ratio, label in row]
        for row in RATIO_BUTTONS
    ]
    rows.append([InlineKeyboardButton("❌ Cancel", callback_data=f"cancel_{request_id}")])
    return InlineKeyboardMarkup(rows)


def _gateway(context: ContextTypes.DEFAULT_TYPE) -> GenerationGateway:
    return context.bot_data["gateway"]


def _pending(context: ContextTypes.DEFAULT_TYPE) -> PendingGenerationStore:
    return context.bot_data["pending"]


async def _delete_quietly(bot: Bot, chat_id: int, message_id: int) -> None:
    try:
        await bot.delete_message(chat_id=chat_id, message_id=message_id)
    except TelegramError as exc:
        LOGGER.debug("Could not delete message %s: %s", message_id, exc)


async def generate_and_send(
    bot: Bot,
    gateway: GenerationGateway,
    chat_id: int,
    prompt: str,
    resolution: str,
    ratio: str,
) -> bool:
    """Generate an image and deliver it to `chat_id`; returns whether it was sent."""
    started = time.monotonic()
    wait_hint = "1-2 minutes" if resolution == "2K" else "30-60 seconds"
    status = await bot.send_message(
        chat_id=chat_id,
        text=(
            "⏳ <b>Generating Image...</b>\n\n"
            f"Quality: <b>{html.escape(resolution)}</b>\n"
            f"Ratio: <b>{html.escape(ratio)}</b>\n"
            f"Prompt: <i>{html.escape(shorten(prompt, 100))}</i>\n\n"
            f"Please wait... This may take {wait_hint}."
        ),
        parse_mode=ParseMode.HTML,
    )

    try:
        artifact = await gateway.generate(
            prompt,
            GenerationOptions(ratio=ratio, resolution=resolution, no_watermark=True),
            response_format="b64_json",
        )
        elapsed = time.monotonic() - started
        caption = (
            "✨ <b>Image Generated!</b>\n\n"
            f"Quality: {html.escape(resolution)}\n"
            f"Ratio: {html.escape(ratio)}\n"
            f"Time: {elapsed:.1f}s\n\n"
            f"Prompt: {html.escape(shorten(prompt, CAPTION_PROMPT_LIMIT))}"
        )
        await bot.send_photo(chat_id=chat_id, photo=artifact.image_bytes, caption=caption, parse_mode=ParseMode.HTML)
        if len(prompt) > CAPTION_PROMPT_LIMIT:
            await bot.send_document(chat_id=chat_id, document=prompt.encode("utf-8"), filename="full_prompt.txt")
    except (GatewayError, TelegramError) as exc:
        message = exc.message if isinstance(exc, GatewayError) else str(exc)
        LOGGER.error("Bot generation failed: %s", message)
        failure = f"❌ <b>Generation Failed</b>\n\nError: {html.escape(message)}\n\nPlease try again."
        try:
            await bot.edit_message_text(
                chat_id=chat_id, message_id=status.message_id, text=failure, parse_mode=ParseMode.HTML
            )
        except TelegramError:
            await bot.send_message(chat_id=chat_id, text=f"❌ Generation failed: {message}")
        return False

    await _delete_quietly(bot, chat_id, status.message_id)
    return True


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(WELCOME_TEXT, parse_mode=ParseMode.HTML)


async def chatid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    chat_id = update.effective_chat.id
    await update.effective_message.reply_text(
        f"This chat's id is <code>{chat_id}</code>.\n"
        f"Set <code>TELEGRAM_CHAT_ID={chat_id}</code> and restart the gateway to receive every generated image here.",
        parse_mode=ParseMode.HTML,
    )


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session: SessionManager = context.bot_data["session"]
    info = session.info()
    if info.valid:
        session_line = f"✅ Valid, expires in {info.expires_in_days} days ({info.expires_in_hours} hours)"
    else:
        session_line = f"❌ {html.escape(info.error or 'Expired')}"
    await update.effective_message.reply_text(
        "<b>🖥️ System Status</b>\n\n"
        f"<b>Session:</b> {session_line}\n"
        f"Session token: {'✅ Set' if session.access_token else '❌ Missing'}\n"
        f"Exchange token: {'✅ Set' if session.has_exchange_token else '❌ Missing'}\n\n"
        f"Ratios: {', '.join(RATIOS)}\n"
        f"Resolutions: {', '.join(RESOLUTIONS)}",
        parse_mode=ParseMode.HTML,
    )


async def imagine_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    prompt = command_argument(update.effective_message.text)
    if not prompt:
        await update.effective_message.reply_text(
            "❌ Please provide a prompt.\n\nExample: <code>/imagine a cute cat girl with blue eyes</code>",
            parse_mode=ParseMode.HTML,
        )
        return

    request_id = _pending(context).create(prompt, update.effective_chat.id)
    await update.effective_message.reply_text(
        f"🎨 <b>Image Generation</b>\n\nPrompt: <i>{html.escape(shorten(prompt, 100))}</i>\n\nSelect quality:",
        parse_mode=ParseMode.HTML,
        reply_markup=quality_keyboard(request_id),
    )


async def quick_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    prompt = command_argument(update.effective_message.text)
    if not prompt:
        await update.effective_message.reply_text(
            "❌ Please provide a prompt.\n\nExample: <code>/quick a cute cat</code>", parse_mode=ParseMode.HTML
        )
        return
    await generate_and_send(context.bot, _gateway(context), update.effective_chat.id, prompt, "1K", "1:1")


async def selection_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Drive the quality -> ratio -> generate selection flow."""
    query = update.callback_query
    data = query.data or ""
    chat_id = query.message.chat.id
    message_id = query.message.message_id
    pending = _pending(context)

    if data.startswith("model_"):
        parts = data.split("_", 2)
        entry = pending.get(parts[2]) if len(parts) == 3 else None
        if entry is None or parts[1] not in RESOLUTIONS:
            await query.answer("❌ Request expired. Please try again.")
            return
        resolution, request_id = parts[1], parts[2]
        await query.edit_message_text(
            f"🎨 <b>Image Generation</b>\n\nQuality: <b>{resolution}</b>\n"
            f"Prompt: <i>{html.escape(shorten(entry.prompt, 80))}</i>\n\nSelect aspect ratio:",
            parse_mode=ParseMode.HTML,
            reply_markup=ratio_keyboard(resolution, request_id),
        )
        await query.answer()

    elif data.startswith("ratio_"):
        parts = data.split("_", 3)
        entry = pending.consume(parts[3]) if len(parts) == 4 else None
        if entry is None:
            await query.answer("❌ Request expired. Please try again.")
            return
        ratio, resolution = parts[1], parts[2]
        await _delete_quietly(context.bot, chat_id, message_id)
        await query.answer("🎨 Generating...")
        await generate_and_send(context.bot, _gateway(context), chat_id, entry.prompt, resolution, ratio)

    elif data.startswith("cancel_"):
        pending.cancel(data[len("cancel_"):])
        await _delete_quietly(context.bot, chat_id, message_id)
        await query.answer("❌ Cancelled")

    else:
        await query.answer()


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    LOGGER.error("Telegram update failed: %s", context.error, exc_info=context.error)


def build_bot_application(
    token: str,
    gateway: GenerationGateway,
    session: SessionManager,
    pending: Optional[PendingGenerationStore] = None,
) -> Application:
    """Create the bot application with all handlers registered."""
    application = Application.builder().token(token).concurrent_updates(True).build()
    application.bot_data["gateway"] = gateway
    application.bot_data["session"] = session
    application.bot_data["pending"] = pending or PendingGenerationStore()

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", start_command))
    application.add_handler(CommandHandler("status", status_command))
    application.add_handler(CommandHandler("chatid", chatid_command))
    application.add_handler(CommandHandler("imagine", imagine_command))
    application.add_handler(CommandHandler("quick", quick_command))
    application.add_handler(CallbackQueryHandler(selection_callback))
    application.add_error_handler(error_handler)
    return application


async def start_bot(application: Application) -> None:
    await application.initialize()
    await application.start()
    await application.updater.start_polling(allowed_updates=["message", "callback_query"])
    LOGGER.info("Telegram bot is listening")


async def stop_bot(application: Application) -> None:
    if application.updater is not None and application.updater.running:
        await application.updater.stop()
    if application.running:
        await application.stop()
    await application.shutdown()
