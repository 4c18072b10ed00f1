"""Review queue for parse outcomes that need the user's confirmation."""

import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field

from .expense import AmbiguityFlag, Confidence, ParseOutcome

logger = logging.getLogger(__name__)

# Wording used in review reasons, one per flag
FLAG_REASONS = {
    AmbiguityFlag.AMBIGUOUS_AMOUNT: "several amounts mentioned",
    AmbiguityFlag.ZERO_AMOUNT: "zero amount",
    AmbiguityFlag.AMOUNT_OUT_OF_RANGE: "amount above maximum, clamped",
    AmbiguityFlag.CONFLICTING_CURRENCY: "conflicting currencies",
    AmbiguityFlag.CURRENCY_DEFAULTED: "currency not stated",
    AmbiguityFlag.CATEGORY_DEFAULTED: "unknown category",
    AmbiguityFlag.MERCHANT_REJECTED: "merchant not understood",
}


@dataclass
class ReviewItem:
    """Represents a transcript that needs confirmation or re-prompting."""
    source_id: str
    reason: str
    transcript: str = ""
    suggested_amount: Optional[str] = None
    suggested_currency: Optional[str] = None
    suggested_category: Optional[str] = None
    suggested_merchant: Optional[str] = None
    confidence: Optional[str] = None
    flags: List[str] = field(default_factory=list)


class ReviewQueue:
    """Collects outcomes the dialog layer should confirm before saving."""

    def __init__(self, review_medium: bool = True):
        """
        Initialize review queue.

        Args:
            review_medium: Queue Medium-confidence results too, not only Low
                ones and errors
        """
        self.items: List[ReviewItem] = []
        self.review_medium = review_medium

    def should_review(self, outcome: ParseOutcome) -> bool:
        """Errors always need review; expenses when their confidence is too low."""
        if not outcome.ok:
            return True

        expense = outcome.expense
        if not expense.needs_confirmation:
            return False
        return self.review_medium or expense.confidence is Confidence.LOW

    def add_item(self, source_id: str, reason: str, **suggestions: Any):
        """Add an item to the review queue."""
        item = ReviewItem(source_id=source_id, reason=reason, **suggestions)
        self.items.append(item)
        logger.debug(f"Added to review queue: {source_id} - {reason}")

    def add_from_outcome(self, source_id: str, transcript: str, outcome: ParseOutcome) -> bool:
        """
        Queue an outcome if it needs review.

        Args:
            source_id: Identifier of the transcript in its batch
            transcript: Raw transcript text
            outcome: Parse outcome for that transcript

        Returns:
            True if the outcome was queued
        """
        if not self.should_review(outcome):
            return False

        snippet = ' '.join((transcript or '').split())[:200]

        if not outcome.ok:
            self.add_item(
                source_id=source_id,
                reason=outcome.error.message,
                transcript=snippet,
                flags=[outcome.error.kind.value],
            )
            logger.info(f"Sending {source_id} to review: {outcome.error.kind.value}")
            return True

        expense = outcome.expense
        reason = "; ".join(FLAG_REASONS[flag] for flag in expense.ambiguity_flags)
        self.add_item(
            source_id=source_id,
            reason=reason,
            transcript=snippet,
            suggested_amount=str(expense.amount),
            suggested_currency=expense.currency,
            suggested_category=expense.category.value,
            suggested_merchant=expense.merchant,
            confidence=expense.confidence.value,
            flags=[flag.value for flag in expense.ambiguity_flags],
        )
        logger.info(f"Sending {source_id} to review: {reason}")
        return True

    def detect_conflicts(self, records: List[Dict[str, Any]]) -> List[ReviewItem]:
        """
        Detect likely duplicate expenses within one batch.

        Args:
            records: Expense dicts (``ParsedExpense.to_dict()`` plus ``source_id``)

        Returns:
            List of additional review items for duplicates
        """
        conflicts = []

        groups: Dict[tuple, List[Dict[str, Any]]] = {}
        for record in records:
            key = (
                record.get('amount'),
                record.get('currency'),
                (record.get('merchant') or '').lower(),
                (record.get('transaction_date') or '')[:10],
            )
            groups.setdefault(key, []).append(record)

        for (amount, currency, merchant, date), group in groups.items():
            if len(group) < 2:
                continue
            where = f" at {group[0].get('merchant')}" if merchant else ""
            for record in group:
                conflicts.append(ReviewItem(
                    source_id=str(record.get('source_id', '')),
                    reason="Potential duplicate expense",
                    transcript=record.get('notes') or '',
                    suggested_amount=amount,
                    suggested_currency=currency,
                    suggested_category=record.get('category'),
                    suggested_merchant=record.get('merchant'),
                    confidence=record.get('confidence'),
                    flags=list(record.get('ambiguity_flags', [])),
                ))
            logger.info(f"Found {len(group)} entries of {amount} {currency}{where}")

        return conflicts

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics for the review queue."""
        if not self.items:
            return {"total": 0}

        flag_counts: Dict[str, int] = {}
        missing_data = 0
        duplicates = 0

        for item in self.items:
            for flag in item.flags:
                flag_counts[flag] = flag_counts.get(flag, 0) + 1
            if item.suggested_amount is None:
                missing_data += 1
            if item.reason == "Potential duplicate expense":
                duplicates += 1

        return {
            "total": len(self.items),
            "missing_data": missing_data,
            "duplicates": duplicates,
            "flag_breakdown": flag_counts,
        }

    def clear(self):
        """Clear all items from the review queue."""
        self.items.clear()
        logger.info("Review queue cleared")
