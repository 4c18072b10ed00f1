"""Tests for parser settings."""

import pytest
from decimal import Decimal
from pathlib import Path
from voice_expense import Category, ExpenseTranscriptParser
from voice_expense.config import ParserSettings, load_settings
from voice_expense.exceptions import ConfigurationError


class TestParserSettings:
    """Test suite for ParserSettings."""

    def test_defaults(self):
        settings = ParserSettings()

        assert settings.max_amount == Decimal('999999.99')
        assert settings.max_merchant_length == 100
        assert settings.default_currency == 'USD'
        assert settings.categories_path is None

    def test_values_are_normalized(self):
        settings = ParserSettings(max_amount='250.5', default_currency=' aed ', categories_path='rules.yml')

        assert settings.max_amount == Decimal('250.5')
        assert settings.default_currency == 'AED'
        assert settings.categories_path == Path('rules.yml')

    @pytest.mark.parametrize("kwargs", [
        {'max_amount': 'lots'},
        {'max_amount': 0},
        {'max_amount': '-5'},
        {'max_merchant_length': 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            ParserSettings(**kwargs)

    def test_override_ignores_none(self):
        settings = ParserSettings(default_currency='EUR')

        changed = settings.override(default_currency=None, max_amount='100')

        assert changed.default_currency == 'EUR'
        assert changed.max_amount == Decimal('100')
        assert settings.max_amount == Decimal('999999.99')

    def test_settings_are_hashable(self):
        assert hash(ParserSettings()) == hash(ParserSettings())


class TestLoadSettings:
    """Test suite for load_settings."""

    def test_none_gives_defaults(self):
        assert load_settings(None) == ParserSettings()

    def test_yaml_file(self, tmp_path):
        config = tmp_path / 'settings.yml'
        config.write_text(
            "max_amount: 5000\n"
            "default_currency: aed\n"
            "categories_path: rules/categories.yml\n",
            encoding='utf-8',
        )

        settings = load_settings(config)

        assert settings.max_amount == Decimal('5000')
        assert settings.default_currency == 'AED'
        assert settings.categories_path == tmp_path / 'rules' / 'categories.yml'

    def test_unknown_keys(self, tmp_path):
        config = tmp_path / 'settings.yml'
        config.write_text("max_amount: 10\nlanguage: de\n", encoding='utf-8')

        with pytest.raises(ConfigurationError, match='language'):
            load_settings(config)

    @pytest.mark.parametrize("content", ["- 1\n- 2\n", "max_amount: [\n"])
    def test_invalid_files(self, tmp_path, content):
        config = tmp_path / 'settings.yml'
        config.write_text(content, encoding='utf-8')

        with pytest.raises(ConfigurationError):
            load_settings(config)

    def test_parser_from_settings_uses_rule_files(self, tmp_path):
        rules = tmp_path / 'categories.yml'
        rules.write_text(
            "entries:\n"
            "  - category: Entertainment\n"
            "    keywords: [bowling]\n",
            encoding='utf-8',
        )
        parser = ExpenseTranscriptParser.from_settings(ParserSettings(categories_path=rules))

        expense = parser.parse("15 dollars for bowling").unwrap()

        assert expense.category == Category.ENTERTAINMENT
        assert parser.parse("15 dollars for lunch").unwrap().category == Category.OTHER
