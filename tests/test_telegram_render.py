"""Tests for Telegram reply rendering: splitting and error mapping."""

from __future__ import annotations

import pytest

from finchat.channels.telegram_render import friendly_error_message, split_message
from finchat.i18n.catalog import get_message

# ── split_message ────────────────────────────────────────────────────────────


class TestSplitMessage:
    def test_empty_returns_empty(self):
        assert split_message("") == []

    def test_short_text_single_chunk(self):
        assert split_message("✅ Despesa adicionada") == ["✅ Despesa adicionada"]

    def test_exact_limit_single_chunk(self):
        text = "A" * 4096
        assert split_message(text, max_length=4096) == [text]

    def test_splits_on_paragraph_boundary(self):
        part_a = "A" * 3000
        part_b = "B" * 3000
        parts = split_message(part_a + "\n\n" + part_b, max_length=4096)
        assert parts == [part_a, part_b]

    def test_splits_on_line_boundary(self):
        lines = [f"• ABC{i:03d} | 15/10/2024 | R$ 10,00" for i in range(20)]
        parts = split_message("\n".join(lines), max_length=200)
        assert all(len(part) <= 200 for part in parts)
        assert "\n".join(parts).split("\n") == lines

    def test_splits_on_sentence_boundary(self):
        text = ("Gastei dez reais. " * 400).strip()
        parts = split_message(text, max_length=4096)
        assert len(parts) >= 2
        assert all(len(part) <= 4096 for part in parts)
        assert all(part.endswith(".") for part in parts)

    def test_hard_cut_no_boundaries(self):
        parts = split_message("x" * 10000, max_length=4096)
        assert [len(p) for p in parts] == [4096, 4096, 1808]


# ── friendly_error_message ───────────────────────────────────────────────────


class TestFriendlyErrorMessage:
    @pytest.mark.parametrize("code", ["LEDGER_ERROR", "LLM_ERROR", "UNKNOWN_CODE", None])
    def test_generic(self, code):
        assert friendly_error_message(code) == get_message("generic_error")

    def test_locale(self):
        assert friendly_error_message("LEDGER_ERROR", "en") == get_message("generic_error", "en")
