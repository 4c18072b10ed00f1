"""Currency detection from codes, symbols and spoken keywords."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .base import BaseParser, ParseResult, Token, TokenKind, TranscriptContext, find_phrase
from ..expense import AmbiguityFlag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrencySignal:
    code: str
    source: str
    start: int
    end: int
    text: str


class CurrencyDetector(BaseParser):
    """
    Resolve the transcript currency against a currency keyword table.

    Signals are ranked: an upper-case ISO code as typed ("AED"), then a
    currency symbol, then a keyword phrase ("dirhams", "australian dollars"),
    then the caller's default. Distinct codes among the signals raise
    ``ConflictingCurrency``; the highest-ranked signal still wins.
    """

    SOURCE_CONFIDENCE = {
        'code': 0.95,
        'symbol': 0.9,
        'keyword': 0.85,
        'default': 0.5,
    }

    def __init__(self, table):
        super().__init__()
        self.table = table
        self.codes = table.targets

    def parse(self, context: TranscriptContext) -> Optional[ParseResult]:
        signals = self.find_signals(context)

        if not signals:
            if not context.default_currency:
                self.logger.warning("No currency signal and no default currency")
                return None
            result = ParseResult(
                value=context.default_currency,
                confidence=self.SOURCE_CONFIDENCE['default'],
                metadata={'source': 'default', 'signals': []},
                flags=[AmbiguityFlag.CURRENCY_DEFAULTED],
            )
            self._log_result(result, context)
            return result

        winner = signals[0]
        flags = []
        confidence = self.SOURCE_CONFIDENCE[winner.source]

        distinct = {signal.code for signal in signals}
        if len(distinct) > 1:
            self.logger.info(f"Conflicting currency signals {sorted(distinct)}, using {winner.code}")
            flags.append(AmbiguityFlag.CONFLICTING_CURRENCY)
            confidence = min(confidence, 0.4)

        result = ParseResult(
            value=winner.code,
            confidence=confidence,
            source_text=winner.text,
            metadata={
                'source': winner.source,
                'signals': [(signal.source, signal.code, signal.text) for signal in signals],
            },
            flags=flags,
        )

        self._log_result(result, context)
        return result

    def find_signals(self, context: TranscriptContext) -> List[CurrencySignal]:
        """All currency signals, highest priority first."""
        tokens = context.tokens
        return (self._code_signals(context)
                + self._symbol_signals(tokens)
                + self._keyword_signals(tokens))

    def _code_signals(self, context: TranscriptContext) -> List[CurrencySignal]:
        signals = []
        for index, token in enumerate(context.tokens):
            if not token.is_wordlike:
                continue
            original = context.original(token)
            if 3 <= len(original) <= 4 and original.isalpha() and original.isupper() and original in self.codes:
                signals.append(CurrencySignal(original, 'code', index, index + 1, original))
        return signals

    def _symbol_signals(self, tokens: Tuple[Token, ...]) -> List[CurrencySignal]:
        signals = []
        for index, token in enumerate(tokens):
            if token.kind != TokenKind.CURRENCY_SYMBOL:
                continue
            code = self.table.lookup(token.text)
            if code is None:
                self.logger.debug(f"Unmapped currency symbol {token.text!r}")
                continue
            signals.append(CurrencySignal(code, 'symbol', index, index + 1, token.text))
        return signals

    def _keyword_signals(self, tokens: Tuple[Token, ...]) -> List[CurrencySignal]:
        """Keyword phrases in transcript order; shorter phrases inside a longer match are dropped."""
        matches = []
        for words, code in self.table.phrases:
            for start in find_phrase(tokens, words):
                end = start + len(words)
                if all(token.is_wordlike for token in tokens[start:end]):
                    matches.append(CurrencySignal(code, 'keyword', start, end, ' '.join(words)))

        matches.sort(key=lambda signal: (-(signal.end - signal.start), signal.start))

        accepted: List[CurrencySignal] = []
        for match in matches:
            if any(match.start < kept.end and kept.start < match.end for kept in accepted):
                continue
            accepted.append(match)

        accepted.sort(key=lambda signal: signal.start)
        return accepted
