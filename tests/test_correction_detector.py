"""Tests for correction detection ("remover ABC123") and learned-pattern matching."""

from __future__ import annotations

from datetime import date

import pytest

from finchat.nlp.correction_detector import detect_correction, find_transaction_id, is_transaction_id
from finchat.nlp.patterns import LearnedPattern, compile_pattern, match_learned_pattern

TODAY = date(2024, 10, 15)


class TestTransactionId:
    @pytest.mark.parametrize("token", ["ABC123", "a1b2c3", "9ZZZZZ"])
    def test_valid(self, token: str) -> None:
        assert is_transaction_id(token)

    @pytest.mark.parametrize("token", ["comida", "123456", "AB12", "ABC1234"])
    def test_invalid(self, token: str) -> None:
        assert not is_transaction_id(token)

    def test_find_skips_plain_words(self) -> None:
        assert find_transaction_id("remover compra abc123") == "ABC123"
        assert find_transaction_id("remover compra") is None


class TestDetectCorrection:
    def test_delete(self) -> None:
        result = detect_correction("remover ABC123", today=TODAY)
        assert result.action == "delete"
        assert result.confidence == 0.9
        assert result.transaction_id == "ABC123"

    def test_delete_to_intent(self) -> None:
        intent = detect_correction("apagar abc123", today=TODAY).to_intent()
        assert intent.action == "delete_transaction"
        assert intent.entities == {"transaction_id": "ABC123"}

    def test_amount_update(self) -> None:
        result = detect_correction("ABC123 era 45", today=TODAY)
        assert result.action == "update"
        assert result.updates == {"amount": 45.0}
        assert result.confidence == 0.9

    def test_payment_method_update(self) -> None:
        result = detect_correction("ABC123 foi no pix", today=TODAY)
        assert result.action == "update"
        assert result.updates == {"payment_method": "PIX"}

    def test_update_to_intent(self) -> None:
        intent = detect_correction("ABC123 era 45", today=TODAY).to_intent()
        assert intent.action == "edit_transaction"
        assert intent.entities == {"amount": 45.0, "transaction_id": "ABC123"}

    def test_correction_word_without_id_stays_below_threshold(self) -> None:
        result = detect_correction("mudar categoria", today=TODAY)
        assert result.action == "unknown"
        assert result.confidence == 0.2

    def test_ordinary_message(self) -> None:
        result = detect_correction("gastei 50 reais em comida", today=TODAY)
        assert result.action == "unknown"
        assert result.confidence == 0.0


class TestLearnedPatterns:
    def test_js_named_groups_are_accepted(self) -> None:
        regex = compile_pattern(r"gastei (?<amount>\d+) no (?<category>\w+)")
        match = regex.search("Gastei 30 no bar")
        assert match is not None
        assert match.group("amount") == "30"

    def test_lookbehind_is_left_alone(self) -> None:
        regex = compile_pattern(r"(?<=R\$)(?<amount>\d+)")
        assert regex.search("paguei R$42").group("amount") == "42"

    def test_match_overrides_stored_entities(self) -> None:
        pattern = LearnedPattern(
            id="p1",
            pattern_type="add_expense",
            regex_pattern=r"gastei (?<amount>\d+) no (?<category>\w+)",
            parsed_output={"type": "expense", "amount": 10},
            confidence_score=0.9,
        )
        matched = match_learned_pattern("gastei 30 no bar", [pattern])
        assert matched is not None
        found, intent = matched
        assert found.id == "p1"
        assert intent.action == "add_expense"
        assert intent.confidence == 0.9
        assert intent.entities == {"type": "expense", "amount": 30.0, "category": "bar"}

    def test_invalid_regex_is_skipped(self) -> None:
        broken = LearnedPattern(id="bad", pattern_type="add_expense", regex_pattern="([")
        good = LearnedPattern(id="ok", pattern_type="show_report", regex_pattern="resumo")
        matched = match_learned_pattern("resumo", [broken, good])
        assert matched is not None
        assert matched[0].id == "ok"

    def test_no_match(self) -> None:
        pattern = LearnedPattern(id="p1", pattern_type="add_expense", regex_pattern="^gastei")
        assert match_learned_pattern("bom dia", [pattern]) is None
