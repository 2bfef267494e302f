"""Tests for control-word and selection parsing shared by every flow."""

from __future__ import annotations

import pytest

from finchat.infra.text import is_cancel, is_confirm, is_no, is_yes, normalize_text, parse_index


class TestNormalizeText:
    def test_strips_accents_and_case(self) -> None:
        assert normalize_text("  Itaú   VISA ") == "itau visa"

    def test_empty(self) -> None:
        assert normalize_text("   ") == ""


class TestControlWords:
    @pytest.mark.parametrize("text", ["cancelar", "CANCELAR", " cancel "])
    def test_cancel(self, text: str) -> None:
        assert is_cancel(text)

    def test_cancel_must_be_whole_message(self) -> None:
        assert not is_cancel("quero cancelar isso")

    @pytest.mark.parametrize("text", ["confirmar", "Confirm"])
    def test_confirm(self, text: str) -> None:
        assert is_confirm(text)

    def test_sim_is_not_a_deletion_confirmation(self) -> None:
        assert not is_confirm("sim")

    @pytest.mark.parametrize("text", ["sim", "S", "yes", "ok", "confirmar"])
    def test_yes(self, text: str) -> None:
        assert is_yes(text)

    @pytest.mark.parametrize("text", ["não", "nao", "n", "no", "cancelar"])
    def test_no(self, text: str) -> None:
        assert is_no(text)

    def test_maybe_is_neither(self) -> None:
        assert not is_yes("talvez")
        assert not is_no("talvez")


class TestParseIndex:
    def test_one_based(self) -> None:
        assert parse_index("1", 3) == 0
        assert parse_index(" 3 ", 3) == 2

    def test_out_of_range(self) -> None:
        assert parse_index("0", 3) is None
        assert parse_index("4", 3) is None

    def test_not_a_number(self) -> None:
        assert parse_index("itau", 3) is None
        assert parse_index("-1", 3) is None

    def test_superscript_digit_is_not_an_index(self) -> None:
        assert parse_index("²", 3) is None
