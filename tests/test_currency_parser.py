"""Tests for CurrencyDetector component."""

import pytest
from voice_expense.expense import AmbiguityFlag
from voice_expense.keywords import KeywordTable, load_currency_table
from voice_expense.parsers.base import TranscriptContext
from voice_expense.parsers.currency_parser import CurrencyDetector
from voice_expense.parsers.normalizer import Normalizer


class TestCurrencyDetector:
    """Test suite for CurrencyDetector with the bundled currency table."""

    def setup_method(self):
        """Set up test fixtures."""
        self.table = load_currency_table()
        self.detector = CurrencyDetector(self.table)
        self.normalizer = Normalizer(self.table.symbols)

    def detect(self, text: str, default: str = 'USD'):
        context = TranscriptContext(
            transcript=text,
            tokens=self.normalizer.tokenize(text),
            default_currency=default,
        )
        return self.detector.parse(context)

    def test_keyword(self):
        result = self.detect("I spent 150 dirhams on groceries")

        assert result.value == 'AED'
        assert result.metadata['source'] == 'keyword'
        assert result.flags == []

    def test_upper_case_code(self):
        result = self.detect("20 AED for lunch")

        assert result.value == 'AED'
        assert result.metadata['source'] == 'code'

    def test_lower_case_code_is_a_keyword(self):
        result = self.detect("20 aed for lunch")

        assert result.value == 'AED'
        assert result.metadata['source'] == 'keyword'

    @pytest.mark.parametrize("text,expected", [
        ("$20 for lunch", 'USD'),
        ("€20 for lunch", 'EUR'),
        ("£12 on a taxi", 'GBP'),
        ("₹500 for groceries", 'INR'),
        ("150 د.إ at Carrefour", 'AED'),
        ("A$30 for lunch", 'AUD'),
    ])
    def test_symbols(self, text, expected):
        result = self.detect(text)

        assert result.value == expected
        assert result.metadata['source'] == 'symbol'
        assert result.flags == []

    def test_longest_keyword_wins_without_conflict(self):
        result = self.detect("20 australian dollars for coffee")

        assert result.value == 'AUD'
        assert result.flags == []

    def test_earliest_keyword_wins_conflict(self):
        result = self.detect("5 dollars or 10 australian dollars")

        assert result.value == 'USD'
        assert result.flags == [AmbiguityFlag.CONFLICTING_CURRENCY]

    def test_symbol_beats_keyword_and_flags_conflict(self):
        result = self.detect("$20 or 75 dirhams")

        assert result.value == 'USD'
        assert result.flags == [AmbiguityFlag.CONFLICTING_CURRENCY]

    def test_code_beats_keyword_and_flags_conflict(self):
        result = self.detect("AED 20, I mean dollars")

        assert result.value == 'AED'
        assert AmbiguityFlag.CONFLICTING_CURRENCY in result.flags

    def test_agreeing_signals_do_not_conflict(self):
        result = self.detect("20 USD dollars")

        assert result.value == 'USD'
        assert result.flags == []

    def test_default_currency(self):
        result = self.detect("50", default='AED')

        assert result.value == 'AED'
        assert result.metadata['source'] == 'default'
        assert result.flags == [AmbiguityFlag.CURRENCY_DEFAULTED]

    def test_unmapped_symbol_falls_back_to_default(self):
        result = self.detect("₩5000 for dinner", default='EUR')

        assert result.value == 'EUR'
        assert result.flags == [AmbiguityFlag.CURRENCY_DEFAULTED]

    def test_keyword_matches_whole_words_only(self):
        # "pounds" must not be found inside "compounds"
        result = self.detect("20 for compounds", default='AED')

        assert result.value == 'AED'


class TestCurrencyDetectorSyntheticTable:
    """CurrencyDetector works with any injected table."""

    def test_custom_table(self):
        table = KeywordTable({'franken': 'CHF', 'chf': 'CHF', 'euro': 'EUR', 'eur': 'EUR'})
        detector = CurrencyDetector(table)
        text = "12 Franken for coffee"
        context = TranscriptContext(transcript=text, tokens=Normalizer().tokenize(text), default_currency='EUR')

        result = detector.parse(context)

        assert result.value == 'CHF'
        assert result.metadata['source'] == 'keyword'
