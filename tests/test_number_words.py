"""Tests for NumberWordConverter."""

import pytest
from decimal import Decimal
from voice_expense.parsers.number_words import NumberWordConverter


class TestNumberWordConverter:
    """Test suite for spoken number composition."""

    def setup_method(self):
        """Set up test fixtures."""
        self.converter = NumberWordConverter()

    @pytest.mark.parametrize("words,expected", [
        (['five'], 5),
        (['zero'], 0),
        (['twenty'], 20),
        (['one', 'hundred', 'fifty'], 150),
        (['twenty', '-', 'five'], 25),
        (['a', 'hundred'], 100),
        (['thousand'], 1000),
        (['two', 'thousand', 'three', 'hundred', 'and', 'five'], 2305),
        (['one', 'million', 'two', 'hundred', 'thousand'], 1200000),
        (['five', 'lakh'], 500000),
        (['two', 'crore'], 20000000),
        (['nineteen', 'hundred'], 1900),
        (['two', 'thousands'], 2000),
        (['three', 'hundreds'], 300),
        (['five', 'millions'], 5000000),
        (['two', 'billions'], 2000000000),
        (['one', 'trillions'], 1000000000000),
    ])
    def test_composition(self, words, expected):
        assert self.converter.convert(words) == Decimal(expected)

    def test_spoken_decimal(self):
        assert self.converter.convert(['two', 'point', 'five']) == Decimal('2.5')
        assert self.converter.convert(['ten', 'dot', 'two', 'five']) == Decimal('10.25')

    def test_spoken_decimal_with_scale(self):
        assert self.converter.convert(['two', 'point', 'five', 'million']) == Decimal('2500000')

    def test_base_from_numeric_literal(self):
        assert self.converter.convert(['thousand'], base=Decimal(2)) == Decimal(2000)
        assert self.converter.convert(['hundred'], base=Decimal(3)) == Decimal(300)
        assert self.converter.convert(['point', 'five'], base=Decimal(150)) == Decimal('150.5')

    def test_no_number_words(self):
        assert self.converter.convert([]) is None
        assert self.converter.convert(['and']) is None

    def test_word_predicates(self):
        assert NumberWordConverter.is_number_word('seventy')
        assert NumberWordConverter.is_number_word('crore')
        assert not NumberWordConverter.is_number_word('dollars')
        assert NumberWordConverter.is_digit_word('nine')
        assert not NumberWordConverter.is_digit_word('ten')
        assert NumberWordConverter.is_scale('lakh')
        assert not NumberWordConverter.is_scale('twenty')
