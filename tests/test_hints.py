"""Tests for example phrase suggestions."""

import pytest
from voice_expense import ExpenseTranscriptParser, default_tables
from voice_expense.exceptions import ConfigurationError
from voice_expense.hints import spoken_unit, suggested_phrases
from voice_expense.keywords import load_currency_catalog


CATALOG = load_currency_catalog()


class TestSuggestedPhrases:
    """Every suggested phrase must parse in its own currency."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = ExpenseTranscriptParser(*default_tables())

    @pytest.mark.parametrize("code", CATALOG.codes)
    def test_phrases_parse_in_their_currency(self, code):
        # a different default makes a silently defaulted currency visible
        default = 'JPY' if code != 'JPY' else 'USD'

        for phrase in suggested_phrases(CATALOG, code):
            expense = self.parser.parse(phrase, default).unwrap()
            assert expense.currency == code, phrase
            assert expense.amount > 0

    @pytest.mark.parametrize("code,unit", [
        ("AED", "dirhams"),
        ("USD", "dollars"),
        ("JPY", "yen"),
        ("AUD", "australian dollars"),
    ])
    def test_spoken_unit(self, code, unit):
        assert spoken_unit(CATALOG.get(code)) == unit

    def test_code_phrase_for_non_usd(self):
        assert "I just spent 50 EUR on groceries" in suggested_phrases(CATALOG, 'eur')
        assert not any("USD" in phrase for phrase in suggested_phrases(CATALOG, 'USD'))

    def test_unknown_currency(self):
        with pytest.raises(ConfigurationError):
            suggested_phrases(CATALOG, 'XYZ')
