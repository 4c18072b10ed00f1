"""Transcript-to-expense parsing using modular components."""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Optional

from .assembler import ExpenseAssembler
from .classify import CategoryClassifier
from .config import ParserSettings
from .exceptions import ConfigurationError
from .expense import ErrorKind, ParseOutcome
from .keywords import KeywordTable, default_tables, load_category_table, load_currency_table
from .parsers import AmountParser, CurrencyDetector, DateParser, MerchantParser, Normalizer
from .parsers.base import TranscriptContext

logger = logging.getLogger(__name__)


class ExpenseTranscriptParser:
    """
    Parse spoken or typed expense statements into expense drafts.

    Holds the keyword tables and component parsers; ``parse`` keeps no state
    between calls, so one instance can serve many threads.
    """

    def __init__(self,
                 category_keywords: KeywordTable,
                 currency_keywords: KeywordTable,
                 settings: Optional[ParserSettings] = None):
        self.settings = settings or ParserSettings()
        self.category_keywords = category_keywords
        self.currency_keywords = currency_keywords
        self.currency_codes = currency_keywords.targets

        self.normalizer = Normalizer(currency_keywords.symbols)
        self.amount_parser = AmountParser(max_amount=self.settings.max_amount)
        self.currency_detector = CurrencyDetector(currency_keywords)
        self.classifier = CategoryClassifier(category_keywords)
        self.merchant_parser = MerchantParser(max_length=self.settings.max_merchant_length)
        self.date_parser = DateParser()
        self.assembler = ExpenseAssembler()

        logger.debug(f"Initialized transcript parser with {len(category_keywords)} category "
                     f"and {len(currency_keywords)} currency keywords")

    @classmethod
    def from_settings(cls, settings: Optional[ParserSettings] = None) -> 'ExpenseTranscriptParser':
        """Build a parser from the bundled rule files or the paths in ``settings``."""
        settings = settings or ParserSettings()
        bundled_categories, bundled_currencies = default_tables()
        categories = (load_category_table(settings.categories_path)
                      if settings.categories_path else bundled_categories)
        currencies = (load_currency_table(settings.currencies_path)
                      if settings.currencies_path else bundled_currencies)
        return cls(categories, currencies, settings)

    def parse(self,
              transcript: Optional[str],
              default_currency: Optional[str] = None,
              reference_time: Optional[datetime] = None) -> ParseOutcome:
        """
        Parse one transcript.

        Args:
            transcript: Raw transcript text
            default_currency: Code used when the transcript names no currency;
                falls back to ``settings.default_currency``
            reference_time: "Now" for relative date hints; without it no
                transaction date is produced

        Returns:
            ParseOutcome holding a ParsedExpense, or an EmptyTranscript /
            MissingAmount error

        Raises:
            ConfigurationError: if the default currency is not a configured code
        """
        default = self._resolve_default(default_currency)

        tokens = self.normalizer.tokenize(transcript or "")
        if not tokens:
            logger.info("Rejected empty transcript")
            return ParseOutcome.failure(ErrorKind.EMPTY_TRANSCRIPT,
                                        "The transcript is empty. Please say the expense again.")

        context = TranscriptContext(
            transcript=transcript,
            tokens=tokens,
            default_currency=default,
            reference_time=reference_time,
        )

        amount_result = self.amount_parser.parse(context)
        if amount_result is None:
            return ParseOutcome.failure(ErrorKind.MISSING_AMOUNT,
                                        "No amount found. How much did you spend?")

        currency_result = self.currency_detector.parse(context)
        category_result = self.classifier.parse(context)
        merchant_result = self.merchant_parser.parse(context)
        date_result = self.date_parser.parse(context)

        expense = self.assembler.assemble(
            transcript,
            amount=amount_result,
            currency=currency_result,
            category=category_result,
            merchant=merchant_result,
            date=date_result,
        )

        logger.info(f"Parsed transcript: amount={expense.amount} {expense.currency}, "
                    f"category={expense.category.value}, merchant={expense.merchant}, "
                    f"confidence={expense.confidence.value}")

        return ParseOutcome.success(expense, metadata={
            'tokens': len(tokens),
            'amount_meta': amount_result.metadata,
            'currency_meta': currency_result.metadata,
            'category_meta': category_result.metadata,
            'merchant_meta': merchant_result.metadata if merchant_result else {},
            'date_meta': date_result.metadata if date_result else {},
        })

    def _resolve_default(self, default_currency: Optional[str]) -> str:
        code = (default_currency or self.settings.default_currency or "").strip().upper()
        if code not in self.currency_codes:
            raise ConfigurationError(f"Default currency {code!r} is not a configured currency",
                                     {'configured': sorted(self.currency_codes)})
        return code


@lru_cache(maxsize=16)
def _cached_parser(category_keywords: KeywordTable,
                   currency_keywords: KeywordTable,
                   settings: ParserSettings) -> ExpenseTranscriptParser:
    return ExpenseTranscriptParser(category_keywords, currency_keywords, settings)


def parse_transcript(transcript: Optional[str],
                     default_currency: str,
                     category_keywords: KeywordTable,
                     currency_keywords: KeywordTable,
                     *,
                     settings: Optional[ParserSettings] = None,
                     reference_time: Optional[datetime] = None) -> ParseOutcome:
    """
    Parse a transcript with explicitly supplied keyword tables.

    Args:
        transcript: Raw transcript text
        default_currency: Currency code used when none is spoken
        category_keywords: Keyword phrase to category name table
        currency_keywords: Keyword phrase / symbol / code to currency code table
        settings: Limits (maximum amount, merchant length); defaults if None
        reference_time: "Now" for relative date hints

    Returns:
        ParseOutcome with either ``expense`` or ``error`` set

    Raises:
        ConfigurationError: if ``default_currency`` is not a code in
            ``currency_keywords``; transcript problems never raise
    """
    parser = _cached_parser(category_keywords, currency_keywords, settings or ParserSettings())
    return parser.parse(transcript, default_currency=default_currency, reference_time=reference_time)
