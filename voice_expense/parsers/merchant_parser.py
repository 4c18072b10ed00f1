"""Merchant name extraction from "at ..." / "from ..." phrases."""

import logging
from typing import List, Optional, Tuple

from .base import BaseParser, ParseResult, Token, TokenKind, TranscriptContext
from ..expense import AmbiguityFlag

logger = logging.getLogger(__name__)

DEFAULT_MAX_MERCHANT_LENGTH = 100

MERCHANT_CONNECTORS = frozenset({'at', 'from'})
LEADING_ARTICLES = frozenset({'the', 'a', 'an'})

STOP_WORDS = frozenset({
    'the', 'a', 'an', 'my', 'our', 'your', 'his', 'her', 'their', 'this', 'that',
    'these', 'those', 'some', 'any', 'it', 'home', 'work', 'here', 'there',
    'all', 'least', 'most', 'around', 'about', 'once', 'last', 'first', 'now',
})

# Time expressions that often trail the merchant ("at Carrefour this morning")
TRAILING_TIME_WORDS = frozenset({
    'yesterday', 'today', 'tonight', 'morning', 'afternoon', 'evening',
    'night', 'this', 'last', 'ago',
})


class MerchantParser(BaseParser):
    """Recover the merchant that follows an "at" or "from" connector."""

    def __init__(self, max_length: int = DEFAULT_MAX_MERCHANT_LENGTH):
        super().__init__()
        self.max_length = max_length

    def parse(self, context: TranscriptContext) -> Optional[ParseResult]:
        """
        Extract the merchant name.

        The first acceptable candidate wins. When candidates exist but every
        one is rejected (too long, or only stop-words) the result has no value
        and carries ``MerchantRejected``. No candidate at all returns None.

        Args:
            context: Transcript context with tokens

        Returns:
            ParseResult with the merchant in its original casing
        """
        candidates = self._find_candidates(context.tokens)
        if not candidates:
            self.logger.debug("No merchant phrase found")
            return None

        rejected = []
        for start, end in candidates:
            name = ' '.join(context.original(token) for token in context.tokens[start:end])
            reason = self._rejection_reason(context.tokens[start:end], name)
            if reason:
                rejected.append((name, reason))
                continue

            span = (context.tokens[start].start, context.tokens[end - 1].end)
            result = ParseResult(
                value=name,
                confidence=0.85 if not rejected else 0.7,
                source_text=context.span_text(*span),
                metadata={'span': span, 'rejected': rejected},
            )
            self._log_result(result, context)
            return result

        self.logger.info(f"Merchant candidates rejected: {rejected}")
        return ParseResult(
            value=None,
            confidence=0.0,
            metadata={'span': None, 'rejected': rejected},
            flags=[AmbiguityFlag.MERCHANT_REJECTED],
        )

    def _find_candidates(self, tokens: Tuple[Token, ...]) -> List[Tuple[int, int]]:
        """Token ranges of word runs that follow a merchant connector."""
        candidates = []
        for index, token in enumerate(tokens):
            if token.kind != TokenKind.CONNECTOR or token.text not in MERCHANT_CONNECTORS:
                continue

            end = index + 1
            while end < len(tokens) and tokens[end].kind == TokenKind.WORD:
                end += 1

            start = index + 1
            while start < end - 1 and tokens[start].text in LEADING_ARTICLES:
                start += 1
            while end - 1 > start and tokens[end - 1].text in TRAILING_TIME_WORDS:
                end -= 1

            if end > start:
                candidates.append((start, end))

        return candidates

    def _rejection_reason(self, tokens: Tuple[Token, ...], name: str) -> Optional[str]:
        if all(token.text in STOP_WORDS for token in tokens):
            return 'stop_words'
        if len(name) > self.max_length:
            return 'too_long'
        return None
