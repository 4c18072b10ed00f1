"""Merge component parse results into a ParsedExpense."""

import logging
from typing import Iterable, List, Optional, Tuple

from .expense import AmbiguityFlag, Category, Confidence, ParsedExpense, SEVERE_FLAGS
from .parsers.base import ParseResult

logger = logging.getLogger(__name__)


class ExpenseAssembler:
    """Combine amount, currency, category and merchant results; never raises."""

    def assemble(self,
                 transcript: str,
                 amount: ParseResult,
                 currency: ParseResult,
                 category: ParseResult,
                 merchant: Optional[ParseResult] = None,
                 date: Optional[ParseResult] = None) -> ParsedExpense:
        """
        Build the expense draft.

        Args:
            transcript: Original transcript, stored verbatim as notes
            amount: AmountParser result (required; a missing amount is
                handled before assembly)
            currency: CurrencyDetector result
            category: CategoryClassifier result
            merchant: MerchantParser result, if any connector phrase was found
            date: DateParser result, if a reference time was supplied

        Returns:
            ParsedExpense with ordered flags and a confidence level
        """
        parts = [amount, currency, category]
        if merchant is not None:
            parts.append(merchant)

        flags = self.collect_flags(part.flags for part in parts)
        confidence = self.classify_confidence(flags)

        merchant_name = merchant.value if merchant is not None else None
        merchant_span = merchant.metadata.get('span') if merchant_name else None

        expense = ParsedExpense(
            amount=amount.value,
            currency=currency.value,
            category=category.value if category.value is not None else Category.OTHER,
            merchant=merchant_name,
            notes=transcript,
            ambiguity_flags=flags,
            confidence=confidence,
            merchant_span=merchant_span,
            transaction_date=date.value if date is not None else None,
            score=self.score(parts),
        )

        logger.debug(f"Assembled expense {expense.amount} {expense.currency} "
                     f"({expense.category.value}, {confidence.value}, flags={[f.value for f in flags]})")
        return expense

    @staticmethod
    def collect_flags(groups: Iterable[List[AmbiguityFlag]]) -> Tuple[AmbiguityFlag, ...]:
        """Concatenate flags in component order, dropping repeats."""
        ordered = []
        for group in groups:
            for flag in group:
                if flag not in ordered:
                    ordered.append(flag)
        return tuple(ordered)

    @staticmethod
    def classify_confidence(flags: Tuple[AmbiguityFlag, ...]) -> Confidence:
        if not flags:
            return Confidence.HIGH

        both_defaulted = (AmbiguityFlag.CURRENCY_DEFAULTED in flags
                          and AmbiguityFlag.CATEGORY_DEFAULTED in flags)
        if both_defaulted or any(flag in SEVERE_FLAGS for flag in flags):
            return Confidence.LOW

        return Confidence.MEDIUM

    @staticmethod
    def score(parts: List[ParseResult]) -> float:
        """Mean component confidence, 0-1."""
        if not parts:
            return 0.0
        return sum(part.confidence for part in parts) / len(parts)
