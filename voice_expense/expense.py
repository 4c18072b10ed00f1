"""Expense draft, flags and parse outcome types."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .exceptions import TranscriptRejectedError


class Category(str, Enum):
    """Closed set of expense categories, declared in canonical tie-break order."""
    FOOD_DINING = "Food & Dining"
    GROCERY = "Grocery"
    TRANSPORTATION = "Transportation"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    BILLS_UTILITIES = "Bills & Utilities"
    HEALTHCARE = "Healthcare"
    EDUCATION = "Education"
    OTHER = "Other"

    @classmethod
    def from_name(cls, name: str) -> 'Category':
        """Look up a category by its display name, case-insensitively."""
        wanted = name.strip().lower()
        for category in cls:
            if category.value.lower() == wanted:
                return category
        raise ValueError(f"Unknown category: {name!r}")

    @property
    def rank(self) -> int:
        return list(Category).index(self)


class AmbiguityFlag(str, Enum):
    """Non-fatal signals attached to a successfully parsed expense."""
    AMBIGUOUS_AMOUNT = "AmbiguousAmount"
    ZERO_AMOUNT = "ZeroAmount"
    AMOUNT_OUT_OF_RANGE = "AmountOutOfRange"
    CONFLICTING_CURRENCY = "ConflictingCurrency"
    CURRENCY_DEFAULTED = "CurrencyDefaulted"
    CATEGORY_DEFAULTED = "CategoryDefaulted"
    MERCHANT_REJECTED = "MerchantRejected"


# Flags that force Low confidence regardless of anything else
SEVERE_FLAGS = frozenset({
    AmbiguityFlag.AMBIGUOUS_AMOUNT,
    AmbiguityFlag.CONFLICTING_CURRENCY,
    AmbiguityFlag.AMOUNT_OUT_OF_RANGE,
})


class Confidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ErrorKind(str, Enum):
    """Conditions that stop a parse call from producing an expense."""
    EMPTY_TRANSCRIPT = "EmptyTranscript"
    MISSING_AMOUNT = "MissingAmount"


@dataclass(frozen=True)
class ParseError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class ParsedExpense:
    """Structured expense draft extracted from a single transcript."""
    amount: Decimal
    currency: str
    category: Category = Category.OTHER
    merchant: Optional[str] = None
    notes: Optional[str] = None
    ambiguity_flags: Tuple[AmbiguityFlag, ...] = ()
    confidence: Confidence = Confidence.HIGH
    merchant_span: Optional[Tuple[int, int]] = None
    transaction_date: Optional[datetime] = None
    score: float = 0.0

    @property
    def needs_confirmation(self) -> bool:
        """True when the dialog layer should confirm before persisting."""
        return bool(self.ambiguity_flags)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-friendly values."""
        return {
            'amount': str(self.amount),
            'currency': self.currency,
            'category': self.category.value,
            'merchant': self.merchant,
            'notes': self.notes,
            'ambiguity_flags': [flag.value for flag in self.ambiguity_flags],
            'confidence': self.confidence.value,
            'merchant_span': list(self.merchant_span) if self.merchant_span else None,
            'transaction_date': self.transaction_date.isoformat() if self.transaction_date else None,
            'score': round(self.score, 2),
        }


@dataclass(frozen=True)
class ParseOutcome:
    """Either a parsed expense or the error that prevented one."""
    expense: Optional[ParsedExpense] = None
    error: Optional[ParseError] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def success(cls, expense: ParsedExpense, metadata: Optional[Dict[str, Any]] = None) -> 'ParseOutcome':
        return cls(expense=expense, metadata=metadata or {})

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> 'ParseOutcome':
        return cls(error=ParseError(kind=kind, message=message))

    @property
    def ok(self) -> bool:
        return self.expense is not None

    def unwrap(self) -> ParsedExpense:
        """Return the expense or raise ``TranscriptRejectedError``."""
        if self.expense is None:
            raise TranscriptRejectedError(self.error)
        return self.expense

    def to_dict(self) -> Dict[str, Any]:
        if self.expense is not None:
            return {'ok': True, 'expense': self.expense.to_dict()}
        return {'ok': False, 'error': {'kind': self.error.kind.value, 'message': self.error.message}}
