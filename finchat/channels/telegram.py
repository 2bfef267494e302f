"""Telegram adapter: bridges aiogram updates to the message handler.

Single-worker long-polling design. Private chats are always processed; group
chats only when the bot is addressed (see MessageHandler).
"""

from __future__ import annotations

import asyncio
import contextlib

import structlog
from aiogram import Bot, Dispatcher
from aiogram.enums import ChatAction, ChatType
from aiogram.types import Message

from finchat.channels.telegram_render import friendly_error_message, split_message
from finchat.config.settings import TelegramSettings
from finchat.gateway.message_handler import IncomingMessage, MessageHandler, reply_parts
from finchat.infra.errors import ChannelError, FinChatError

logger = structlog.get_logger()

# Typing indicator interval (Telegram requires refresh every ~5s)
_TYPING_INTERVAL_S = 4

_GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)


def conversant_for(user_id: int) -> str:
    return f"telegram:{user_id}"


def locale_for(language_code: str | None) -> str | None:
    if not language_code:
        return None
    return "pt-br" if language_code.lower().startswith("pt") else "en"


def to_incoming(message: Message) -> IncomingMessage | None:
    """Map an aiogram Message to an IncomingMessage; None for messages without a sender."""
    user = message.from_user
    if user is None:
        return None
    return IncomingMessage(
        conversant=conversant_for(user.id),
        text=message.text or message.caption,
        has_image=bool(message.photo),
        is_group=message.chat.type in _GROUP_CHAT_TYPES,
        locale=locale_for(user.language_code),
    )


class TelegramAdapter:
    def __init__(
        self,
        bot_token: str,
        telegram_settings: TelegramSettings,
        handler: MessageHandler,
    ) -> None:
        self._bot = Bot(token=bot_token)
        self._dp = Dispatcher()
        self._settings = telegram_settings
        self._handler = handler

        self._dp.message.register(self._handle_message)

    async def check_ready(self) -> None:
        """Verify bot token and connectivity via getMe. Raises ChannelError on failure."""
        try:
            me = await self._bot.get_me()
        except Exception as exc:
            raise ChannelError(
                f"Telegram bot token verification failed: {exc}",
                code="TELEGRAM_AUTH_FAILED",
            ) from exc
        self._handler.bot_username = me.username or ""
        logger.info("telegram_bot_ready", username=self._handler.bot_username)

    async def start_polling(self) -> None:
        """Start long-polling. Blocks until stopped or fatal error."""
        logger.info("telegram_polling_started", username=self._handler.bot_username)
        await self._dp.start_polling(self._bot)

    async def stop(self) -> None:
        """Gracefully stop polling and close bot session."""
        await self._dp.stop_polling()
        await self._bot.session.close()
        logger.info("telegram_polling_stopped")

    async def _handle_message(self, message: Message) -> None:
        incoming = to_incoming(message)
        if incoming is None:
            return

        typing_task = asyncio.create_task(self._typing_loop(message.chat.id), name="tg_typing")
        try:
            reply = await self._handler.handle(incoming)
            for part in reply_parts(reply):
                await self._send(message, part)
        except FinChatError as exc:
            logger.exception("telegram_handle_error", conversant=incoming.conversant, error_code=exc.code)
            await message.answer(friendly_error_message(exc.code, incoming.locale))
        except Exception:
            logger.exception("telegram_handle_error", conversant=incoming.conversant)
            await message.answer(friendly_error_message(None, incoming.locale))
        finally:
            typing_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await typing_task

    async def _send(self, message: Message, text: str) -> None:
        for chunk in split_message(text, self._settings.message_max_length):
            await message.answer(chunk)

    async def _typing_loop(self, chat_id: int) -> None:
        """Send typing indicator every _TYPING_INTERVAL_S until cancelled."""
        while True:
            try:
                await self._bot.send_chat_action(chat_id, ChatAction.TYPING)
            except Exception:
                logger.debug("telegram_typing_failed", chat_id=chat_id)
            await asyncio.sleep(_TYPING_INTERVAL_S)
