"""Transcript normalization: lower-casing and token classification."""

import re
import logging
import unicodedata
from typing import Iterable, List, Tuple

from .base import Token, TokenKind

logger = logging.getLogger(__name__)

CONNECTORS = frozenset({'at', 'from', 'for', 'on', 'in', 'to', 'with'})

NUMBER_PATTERN = r'\d+(?:,\d{3})*(?:\.\d+)?'
WORD_PATTERN = r"[^\W\d_]+(?:['’][^\W\d_]+)*"


class Normalizer:
    """
    Split a transcript into classified tokens.

    Numeric literals stay whole ("150.50", "1,234.56"), connectors are tagged
    separately from ordinary words, and any Unicode currency sign becomes a
    ``currency_symbol`` token. Multi-character symbols that are not Unicode
    currency signs (e.g. "د.إ") must be passed in ``symbols``.
    """

    def __init__(self, symbols: Iterable[str] = ()):
        self.symbols = tuple(sorted({s for s in symbols if s}, key=len, reverse=True))

        alternatives = []
        if self.symbols:
            alternatives.append('(?P<symbol>' + '|'.join(_symbol_pattern(s) for s in self.symbols) + ')')
        alternatives.extend([
            f'(?P<number>{NUMBER_PATTERN})',
            f'(?P<word>{WORD_PATTERN})',
            r'(?P<other>\S)',
        ])
        self.token_pattern = re.compile('|'.join(alternatives), re.IGNORECASE)

    def tokenize(self, transcript: str) -> Tuple[Token, ...]:
        """
        Tokenize a raw transcript.

        Args:
            transcript: Raw spoken or typed text

        Returns:
            Tokens in input order; empty when there is nothing but
            whitespace and punctuation
        """
        if not transcript:
            return ()

        tokens: List[Token] = []
        for match in self.token_pattern.finditer(transcript):
            text = match.group().lower()
            group = match.lastgroup

            if group == 'symbol':
                kind = TokenKind.CURRENCY_SYMBOL
            elif group == 'number':
                kind = TokenKind.NUMBER
            elif group == 'word':
                kind = TokenKind.CONNECTOR if text in CONNECTORS else TokenKind.WORD
            elif unicodedata.category(match.group()) == 'Sc':
                kind = TokenKind.CURRENCY_SYMBOL
            else:
                kind = TokenKind.PUNCTUATION

            tokens.append(Token(text=text, kind=kind, start=match.start(), end=match.end()))

        if all(token.kind == TokenKind.PUNCTUATION for token in tokens):
            logger.debug("Transcript has no extractable content")
            return ()

        return tuple(tokens)


def _symbol_pattern(symbol: str) -> str:
    """Escape a symbol; letters at its edges must not run into a word."""
    pattern = re.escape(symbol)
    if symbol[0].isalpha():
        pattern = r'(?<![^\W\d_])' + pattern
    if symbol[-1].isalpha():
        pattern = pattern + r'(?![^\W\d_])'
    return pattern
