"""Channel-independent entry point: one inbound message in, zero or more reply parts out."""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from finchat.cascade.resolver import CascadeResolver
from finchat.cascade.types import Reply
from finchat.constants import DEFAULT_LOCALE
from finchat.i18n.catalog import get_message, resolve_locale
from finchat.infra.logging import bind_conversant
from finchat.metrics.recorder import MetricsRecorder, ParsingMetric

logger = structlog.get_logger()

IMAGE_STRATEGY = "image"
IMAGE_UNSUPPORTED_ERROR = "image processing not supported"


@dataclass(frozen=True)
class IncomingMessage:
    conversant: str
    text: str | None = None
    has_image: bool = False
    is_group: bool = False
    locale: str | None = None


def reply_parts(reply: Reply) -> list[str]:
    if reply is None:
        return []
    if isinstance(reply, str):
        return [reply] if reply.strip() else []
    return [part for part in reply if part.strip()]


def is_addressed_to_bot(text: str, *, trigger_word: str, bot_username: str = "") -> bool:
    """Group filter: the trigger word as a whole word, or an @mention of the bot."""
    lowered = text.lower()
    if re.search(rf"\b{re.escape(trigger_word.lower())}\b", lowered):
        return True
    return bool(bot_username) and f"@{bot_username.lower()}" in lowered


def strip_mention(text: str, bot_username: str) -> str:
    if not bot_username:
        return text.strip()
    return re.sub(rf"@{re.escape(bot_username)}\b", "", text, flags=re.IGNORECASE).strip()


class MessageHandler:
    def __init__(
        self,
        resolver: CascadeResolver,
        metrics: MetricsRecorder,
        *,
        trigger_word: str = "bot",
        bot_username: str = "",
        default_locale: str = DEFAULT_LOCALE,
    ) -> None:
        self._resolver = resolver
        self._metrics = metrics
        self._trigger_word = trigger_word
        self.bot_username = bot_username
        self._default_locale = default_locale

    async def handle(self, message: IncomingMessage) -> Reply:
        """Returns None when the message is ignored (group chatter, empty body)."""
        bind_conversant(message.conversant)
        text = message.text or ""
        locale = resolve_locale(message.locale or self._default_locale)

        if message.is_group and not is_addressed_to_bot(
            text, trigger_word=self._trigger_word, bot_username=self.bot_username
        ):
            logger.debug("group_message_ignored", conversant=message.conversant)
            return None

        text = strip_mention(text, self.bot_username)
        if not text:
            if message.has_image:
                return await self._reject_image(message, locale)
            return None

        outcome = await self._resolver.resolve(message.conversant, text, locale=locale)
        return outcome.reply

    async def _reject_image(self, message: IncomingMessage, locale: str) -> Reply:
        await self._metrics.record(
            ParsingMetric(
                conversant=message.conversant,
                message_text="",
                strategy_used=IMAGE_STRATEGY,
                success=False,
                message_type="image",
                error_message=IMAGE_UNSUPPORTED_ERROR,
            )
        )
        return get_message("image_unsupported", locale)
