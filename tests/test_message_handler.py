"""Tests for MessageHandler: group filtering, mentions, images and reply shaping."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from finchat.cascade.types import Outcome
from finchat.gateway.message_handler import (
    IMAGE_UNSUPPORTED_ERROR,
    IncomingMessage,
    MessageHandler,
    is_addressed_to_bot,
    reply_parts,
    strip_mention,
)
from finchat.i18n.catalog import get_message

CONVERSANT = "telegram:111"


def _make_handler(reply="ok") -> tuple[MessageHandler, AsyncMock, AsyncMock]:
    resolver = AsyncMock()
    resolver.resolve.return_value = Outcome.ok(reply)
    metrics = AsyncMock()
    handler = MessageHandler(resolver, metrics, trigger_word="bot", bot_username="FinChatBot")
    return handler, resolver, metrics


class TestHelpers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("bot gastei 50", True),
            ("Ei BOT, relatório", True),
            ("@finchatbot ajuda", True),
            ("robot gastei 50", False),
            ("gastei 50", False),
        ],
    )
    def test_is_addressed_to_bot(self, text: str, expected: bool) -> None:
        assert is_addressed_to_bot(text, trigger_word="bot", bot_username="FinChatBot") is expected

    def test_strip_mention(self) -> None:
        assert strip_mention("@FinChatBot gastei 50", "FinChatBot") == "gastei 50"
        assert strip_mention("  gastei 50 ", "") == "gastei 50"

    def test_reply_parts(self) -> None:
        assert reply_parts(None) == []
        assert reply_parts("  ") == []
        assert reply_parts("a") == ["a"]
        assert reply_parts(["a", "", "b"]) == ["a", "b"]


class TestMessageHandler:
    @pytest.mark.asyncio
    async def test_private_message_goes_to_resolver(self) -> None:
        handler, resolver, _ = _make_handler("feito")

        reply = await handler.handle(IncomingMessage(conversant=CONVERSANT, text="gastei 50", locale="en"))

        assert reply == "feito"
        resolver.resolve.assert_awaited_once_with(CONVERSANT, "gastei 50", locale="en")

    @pytest.mark.asyncio
    async def test_default_locale(self) -> None:
        handler, resolver, _ = _make_handler()

        await handler.handle(IncomingMessage(conversant=CONVERSANT, text="oi"))

        assert resolver.resolve.call_args.kwargs["locale"] == "pt-br"

    @pytest.mark.asyncio
    async def test_group_message_not_addressed_is_ignored(self) -> None:
        handler, resolver, metrics = _make_handler()

        reply = await handler.handle(IncomingMessage(conversant=CONVERSANT, text="gastei 50", is_group=True))

        assert reply is None
        resolver.resolve.assert_not_awaited()
        metrics.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_group_mention_is_stripped(self) -> None:
        handler, resolver, _ = _make_handler()

        await handler.handle(
            IncomingMessage(conversant=CONVERSANT, text="@FinChatBot gastei 50", is_group=True)
        )

        assert resolver.resolve.call_args.args[1] == "gastei 50"

    @pytest.mark.asyncio
    async def test_image_without_caption(self) -> None:
        handler, resolver, metrics = _make_handler()

        reply = await handler.handle(IncomingMessage(conversant=CONVERSANT, has_image=True))

        assert reply == get_message("image_unsupported")
        resolver.resolve.assert_not_awaited()
        metric = metrics.record.call_args.args[0]
        assert metric.message_type == "image"
        assert not metric.success
        assert metric.error_message == IMAGE_UNSUPPORTED_ERROR

    @pytest.mark.asyncio
    async def test_image_caption_is_processed_as_text(self) -> None:
        handler, resolver, metrics = _make_handler()

        await handler.handle(IncomingMessage(conversant=CONVERSANT, text="gastei 50", has_image=True))

        resolver.resolve.assert_awaited_once()
        metrics.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_text_is_ignored(self) -> None:
        handler, resolver, _ = _make_handler()
        assert await handler.handle(IncomingMessage(conversant=CONVERSANT, text="   ")) is None
        resolver.resolve.assert_not_awaited()
