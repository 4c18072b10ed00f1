"""Base classes for transcript parsers."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Dict, List, Tuple
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    WORD = "word"
    NUMBER = "number"
    CURRENCY_SYMBOL = "currency_symbol"
    CONNECTOR = "connector"
    PUNCTUATION = "punctuation"


@dataclass(frozen=True)
class Token:
    """A classified lexical unit with its span in the original transcript."""
    text: str
    kind: TokenKind
    start: int
    end: int

    @property
    def is_wordlike(self) -> bool:
        return self.kind in (TokenKind.WORD, TokenKind.CONNECTOR)


@dataclass
class ParseResult:
    """Result of a parsing operation with confidence, flags and metadata."""
    value: Any
    confidence: float
    source_text: str = ""
    metadata: Dict[str, Any] = None
    flags: List[Any] = field(default_factory=list)

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


@dataclass(frozen=True)
class TranscriptContext:
    """Everything a parser may look at for one transcript."""
    transcript: str
    tokens: Tuple[Token, ...] = ()
    default_currency: Optional[str] = None
    reference_time: Optional[datetime] = None

    def original(self, token: Token) -> str:
        """Text of a token as it appeared in the transcript."""
        return self.transcript[token.start:token.end]

    def span_text(self, start: int, end: int) -> str:
        return self.transcript[start:end]


class BaseParser(ABC):
    """Base class for all transcript parsers."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def parse(self, context: TranscriptContext) -> Optional[ParseResult]:
        """
        Parse the specific field from transcript context.

        Args:
            context: Transcript context with tokens and caller defaults

        Returns:
            ParseResult with value and confidence, or None if parsing failed
        """
        pass

    def _log_result(self, result: Optional[ParseResult], context: TranscriptContext):
        """Log parsing result for debugging."""
        if result:
            self.logger.debug(f"Parsed: {result.value} (confidence: {result.confidence:.2f})")
        else:
            self.logger.debug("Parsing failed - no result")


def find_phrase(tokens: Tuple[Token, ...], phrase: Tuple[str, ...], start: int = 0) -> List[int]:
    """Return every token index where ``phrase`` occurs as a contiguous run."""
    size = len(phrase)
    if size == 0:
        return []
    hits = []
    for index in range(start, len(tokens) - size + 1):
        if all(tokens[index + offset].text == phrase[offset] for offset in range(size)):
            hits.append(index)
    return hits
