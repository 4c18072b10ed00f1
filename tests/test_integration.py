"""Integration tests for the complete parsing system."""

import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal
from voice_expense import (
    AmbiguityFlag,
    Category,
    Confidence,
    ConfigurationError,
    ErrorKind,
    ExpenseTranscriptParser,
    KeywordTable,
    ParserSettings,
    TranscriptRejectedError,
    default_tables,
    parse_transcript,
)


class TestScenarios:
    """End-to-end scenarios with the bundled keyword tables."""

    def setup_method(self):
        """Set up test fixtures."""
        self.categories, self.currencies = default_tables()

    def parse(self, text, default='USD', **kwargs):
        return parse_transcript(text, default, self.categories, self.currencies, **kwargs)

    def test_groceries_at_carrefour(self):
        text = "I spent 150 dirhams on groceries at Carrefour"
        outcome = self.parse(text, 'USD')

        assert outcome.ok
        expense = outcome.expense
        assert expense.amount == Decimal('150.00')
        assert expense.currency == 'AED'
        assert expense.category == Category.GROCERY
        assert expense.merchant == 'Carrefour'
        assert expense.confidence == Confidence.HIGH
        assert expense.ambiguity_flags == ()
        assert expense.notes == text
        assert text[slice(*expense.merchant_span)] == 'Carrefour'

    def test_twenty_dollars_for_lunch(self):
        outcome = self.parse("I just spent twenty dollars for lunch", 'USD')

        expense = outcome.unwrap()
        assert expense.amount == Decimal('20.00')
        assert expense.currency == 'USD'
        assert expense.category == Category.FOOD_DINING
        assert expense.merchant is None
        assert expense.confidence == Confidence.HIGH

    def test_missing_amount(self):
        outcome = self.parse("spent something", 'AED')

        assert not outcome.ok
        assert outcome.expense is None
        assert outcome.error.kind == ErrorKind.MISSING_AMOUNT

    def test_bare_number(self):
        outcome = self.parse("50", 'AED')

        expense = outcome.expense
        assert expense.amount == Decimal('50.00')
        assert expense.currency == 'AED'
        assert expense.category == Category.OTHER
        assert expense.ambiguity_flags == (AmbiguityFlag.CURRENCY_DEFAULTED, AmbiguityFlag.CATEGORY_DEFAULTED)
        assert expense.confidence == Confidence.LOW

    @pytest.mark.parametrize("text", ["", "   ", "?!", None])
    def test_empty_transcript(self, text):
        outcome = self.parse(text, 'EUR')

        assert outcome.error.kind == ErrorKind.EMPTY_TRANSCRIPT

    def test_unknown_default_currency_raises(self):
        with pytest.raises(ConfigurationError):
            self.parse("20 dollars for lunch", 'XYZ')

    def test_unwrap_raises_on_error(self):
        outcome = self.parse("spent something")

        with pytest.raises(TranscriptRejectedError) as excinfo:
            outcome.unwrap()
        assert excinfo.value.details == {'kind': 'MissingAmount'}

    def test_to_dict(self):
        data = self.parse("I spent 150 dirhams on groceries at Carrefour").to_dict()

        assert data['ok'] is True
        assert data['expense']['amount'] == '150.00'
        assert data['expense']['category'] == 'Grocery'
        assert data['expense']['confidence'] == 'High'
        assert data['expense']['ambiguity_flags'] == []

        data = self.parse("").to_dict()
        assert data == {'ok': False, 'error': {'kind': 'EmptyTranscript', 'message': data['error']['message']}}


class TestProperties:
    """Idempotence, round-trip, boundaries, tie-break and fallback."""

    def setup_method(self):
        """Set up test fixtures."""
        self.categories, self.currencies = default_tables()
        self.parser = ExpenseTranscriptParser(self.categories, self.currencies)

    def test_idempotence(self):
        text = "about 42.50 euros for dinner at Chez Marie yesterday"
        first = self.parser.parse(text, 'USD')
        second = self.parser.parse(text, 'USD')

        assert first == second
        assert first.expense == second.expense

    @pytest.mark.parametrize("amount,spoken,code,keyword,category,merchant", [
        ("150", "dirhams", "AED", "groceries", Category.GROCERY, "Carrefour"),
        ("42.75", "dollars", "USD", "taxi", Category.TRANSPORTATION, "Yellow Cab Company"),
        ("1,250", "rupees", "INR", "medicine", Category.HEALTHCARE, "Apollo Pharmacy"),
        ("89.99", "euros", "EUR", "movie", Category.ENTERTAINMENT, "Cinema City"),
        ("300", "riyals", "SAR", "tuition", Category.EDUCATION, "Riverside Academy"),
        ("12", "pounds", "GBP", "electricity", Category.BILLS_UTILITIES, "Octopus Energy"),
        ("25", "dollars", "USD", "shoes", Category.SHOPPING, "Foot Locker"),
        ("7.5", "dollars", "USD", "coffee", Category.FOOD_DINING, "Blue Bottle"),
    ])
    def test_round_trip(self, amount, spoken, code, keyword, category, merchant):
        text = f"I spent {amount} {spoken} on {keyword} at {merchant}"

        expense = self.parser.parse(text, 'JPY').unwrap()

        assert expense.amount == Decimal(amount.replace(',', '')).quantize(Decimal('0.01'))
        assert expense.currency == code
        assert expense.category == category
        assert expense.merchant == merchant
        assert expense.confidence == Confidence.HIGH

    def test_zero_is_advisory(self):
        expense = self.parser.parse("0 dollars for lunch", 'USD').unwrap()

        assert expense.amount == Decimal('0')
        assert expense.ambiguity_flags == (AmbiguityFlag.ZERO_AMOUNT,)
        assert expense.confidence == Confidence.MEDIUM

    def test_negative_is_missing_amount(self):
        outcome = self.parser.parse("-50 dollars", 'USD')

        assert outcome.error.kind == ErrorKind.MISSING_AMOUNT

    def test_over_maximum_is_clamped(self):
        expense = self.parser.parse("2000000 dollars for rent", 'USD').unwrap()

        assert expense.amount == Decimal('999999.99')
        assert AmbiguityFlag.AMOUNT_OUT_OF_RANGE in expense.ambiguity_flags
        assert expense.confidence == Confidence.LOW

    def test_huge_amount_never_raises(self):
        expense = self.parser.parse("I spent " + "9" * 30 + " dollars on lunch", 'USD').unwrap()

        assert expense.amount == Decimal('999999.99')
        assert expense.ambiguity_flags == (AmbiguityFlag.AMOUNT_OUT_OF_RANGE,)
        assert expense.confidence == Confidence.LOW

    def test_plural_scale_word(self):
        expense = self.parser.parse("two thousands dollars for rent", 'USD').unwrap()

        assert expense.amount == Decimal('2000.00')
        assert expense.confidence == Confidence.HIGH

    def test_dollars_and_cents(self):
        expense = self.parser.parse("I spent twenty dollars and fifty cents on lunch", 'EUR').unwrap()

        assert expense.amount == Decimal('20.50')
        assert expense.currency == 'USD'
        assert expense.category == Category.FOOD_DINING
        assert expense.ambiguity_flags == ()
        assert expense.confidence == Confidence.HIGH

    def test_configured_maximum(self):
        parser = ExpenseTranscriptParser(self.categories, self.currencies,
                                         ParserSettings(max_amount=Decimal('500')))

        expense = parser.parse("600 dollars for rent", 'USD').unwrap()

        assert expense.amount == Decimal('500')
        assert expense.ambiguity_flags == (AmbiguityFlag.AMOUNT_OUT_OF_RANGE,)

    def test_category_tie_break(self):
        expense = self.parser.parse("10 dollars on coffee then a taxi", 'USD').unwrap()
        assert expense.category == Category.FOOD_DINING

        expense = self.parser.parse("10 dollars for food shopping", 'USD').unwrap()
        assert expense.category == Category.GROCERY

    def test_currency_fallback(self):
        expense = self.parser.parse("25 on lunch", 'EUR').unwrap()

        assert expense.currency == 'EUR'
        assert AmbiguityFlag.CONFLICTING_CURRENCY not in expense.ambiguity_flags
        assert expense.ambiguity_flags == (AmbiguityFlag.CURRENCY_DEFAULTED,)
        assert expense.confidence == Confidence.MEDIUM

    def test_conflicts_lower_confidence(self):
        expense = self.parser.parse("$20 or 75 dirhams for lunch", 'USD').unwrap()

        assert expense.currency == 'USD'
        assert expense.ambiguity_flags == (AmbiguityFlag.AMBIGUOUS_AMOUNT, AmbiguityFlag.CONFLICTING_CURRENCY)
        assert expense.confidence == Confidence.LOW

    def test_rejected_merchant(self):
        expense = self.parser.parse("20 dollars for lunch at home", 'USD').unwrap()

        assert expense.merchant is None
        assert expense.merchant_span is None
        assert expense.ambiguity_flags == (AmbiguityFlag.MERCHANT_REJECTED,)
        assert expense.confidence == Confidence.MEDIUM

    def test_unknown_default_currency(self):
        with pytest.raises(ConfigurationError):
            self.parser.parse("20 dollars for lunch", 'XYZ')

    def test_reference_time_gives_transaction_date(self):
        reference = datetime(2025, 10, 15, 18, 30)

        expense = self.parser.parse("20 dollars on lunch yesterday", 'USD', reference_time=reference).unwrap()
        assert expense.transaction_date == datetime(2025, 10, 14, 18, 30)

        expense = self.parser.parse("20 dollars on lunch yesterday", 'USD').unwrap()
        assert expense.transaction_date is None

    @pytest.mark.parametrize("text", [
        "I spent 150 dirhams on groceries at Carrefour",
        "50",
        "0 dollars",
        "$20 or 75 dirhams",
        "about twenty five bucks for a taxi from the airport",
        "paid 3 million rupees",
        "lunch at home for 12",
        "€9.99 netflix",
    ])
    def test_invariants(self, text):
        expense = self.parser.parse(text, 'USD').unwrap()

        assert expense.amount >= 0
        assert expense.amount == expense.amount.quantize(Decimal('0.01'))
        assert expense.currency in self.currencies.targets
        assert isinstance(expense.category, Category)
        assert (expense.ambiguity_flags == ()) == (expense.confidence == Confidence.HIGH)
        assert len(set(expense.ambiguity_flags)) == len(expense.ambiguity_flags)
        if expense.merchant is not None:
            assert 0 < len(expense.merchant) <= 100


class TestInjectedTables:
    """The parser runs on any explicitly constructed tables."""

    def test_synthetic_tables(self):
        categories = KeywordTable({'kaffee': 'Food & Dining'})
        currencies = KeywordTable({'franken': 'CHF', 'chf': 'CHF'})

        outcome = parse_transcript("12 Franken für Kaffee", 'CHF', categories, currencies)

        expense = outcome.unwrap()
        assert expense.currency == 'CHF'
        assert expense.category == Category.FOOD_DINING
        assert expense.confidence == Confidence.HIGH


class TestConcurrency:
    """Parallel parse calls share the tables without interference."""

    def test_thread_pool_matches_sequential(self):
        categories, currencies = default_tables()
        parser = ExpenseTranscriptParser(categories, currencies)
        transcripts = [
            "I spent 150 dirhams on groceries at Carrefour",
            "I just spent twenty dollars for lunch",
            "spent something",
            "50",
            "",
            "$20 or 75 dirhams for lunch",
            "€12 for a taxi from the airport",
        ] * 10

        sequential = [parser.parse(text, 'USD') for text in transcripts]
        with ThreadPoolExecutor(max_workers=8) as executor:
            parallel = list(executor.map(lambda text: parser.parse(text, 'USD'), transcripts))

        assert parallel == sequential
