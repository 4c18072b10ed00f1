"""Amount parsing from numeric literals and spoken number words."""

import logging
from dataclasses import dataclass
from decimal import Decimal, DecimalException, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import List, Optional, Tuple

from .base import BaseParser, ParseResult, Token, TokenKind, TranscriptContext
from .number_words import ARTICLES, DECIMAL_POINTS, NumberWordConverter
from ..expense import AmbiguityFlag

logger = logging.getLogger(__name__)

DEFAULT_MAX_AMOUNT = Decimal('999999.99')
CENTS = Decimal('0.01')

QUALIFIERS = frozenset({
    'about', 'almost', 'exactly', 'nearly', 'around', 'approximately', 'roughly',
})
NEGATIVE_WORDS = frozenset({'minus', 'negative'})
DASHES = frozenset({'-', '−', '–'})
TIME_UNITS = frozenset({'day', 'days', 'week', 'weeks'})
FRACTION_UNITS = frozenset({'cent', 'cents', 'paise', 'paisa'})
# Words allowed between a whole amount and "and <n> cents" ("dollars", "us dollars")
MAX_UNIT_WORDS = 2


@dataclass(frozen=True)
class AmountRun:
    """One contiguous numeric run found in the token stream."""
    value: Decimal
    start: int
    end: int
    qualifier: Optional[str] = None


class AmountParser(BaseParser):
    """
    Extract the spoken or written amount from a transcript.

    Numeric literals may carry a spoken fraction and scale words
    ("150 point five", "2 thousand"); word runs are composed by
    ``NumberWordConverter``. The first run in token order is the amount.
    """

    def __init__(self, max_amount: Decimal = DEFAULT_MAX_AMOUNT):
        super().__init__()
        self.max_amount = Decimal(max_amount)
        self.converter = NumberWordConverter()

    def parse(self, context: TranscriptContext) -> Optional[ParseResult]:
        """
        Extract the amount candidate.

        Args:
            context: Transcript context with tokens

        Returns:
            ParseResult whose value is a non-negative Decimal with two places,
            or None when the transcript has no numeric content
        """
        runs = self.find_runs(context.tokens)
        if not runs:
            self.logger.info("No amount found in transcript")
            return None

        chosen = runs[0]
        flags = []
        confidence = 0.95

        if len(runs) > 1:
            self.logger.info(f"Found {len(runs)} numeric runs, taking the first ({chosen.value})")
            flags.append(AmbiguityFlag.AMBIGUOUS_AMOUNT)
            confidence = min(confidence, 0.5)

        # Clamp before quantizing; huge values cannot be quantized to cents
        if chosen.value > self.max_amount:
            self.logger.warning(f"Amount {chosen.value} exceeds maximum {self.max_amount}, clamping")
            amount = self.max_amount.quantize(CENTS, rounding=ROUND_DOWN)
            flags.append(AmbiguityFlag.AMOUNT_OUT_OF_RANGE)
            confidence = min(confidence, 0.3)
        else:
            amount = chosen.value.quantize(CENTS, rounding=ROUND_HALF_UP)
            if amount == 0:
                flags.append(AmbiguityFlag.ZERO_AMOUNT)
                confidence = min(confidence, 0.6)

        tokens = context.tokens
        start_char = tokens[chosen.start].start
        end_char = tokens[chosen.end - 1].end

        result = ParseResult(
            value=amount,
            confidence=confidence,
            source_text=context.span_text(start_char, end_char),
            metadata={
                'span': (start_char, end_char),
                'qualifier': chosen.qualifier,
                'candidates': [str(run.value) for run in runs],
            },
            flags=flags,
        )

        self._log_result(result, context)
        return result

    def find_runs(self, tokens: Tuple[Token, ...]) -> List[AmountRun]:
        """Return every non-negative numeric run in token order."""
        runs = []
        index = 0
        while index < len(tokens):
            value, end = self._scan_run(tokens, index)
            if value is None:
                index += 1
                continue

            if self._is_negative(tokens, index):
                self.logger.debug(f"Ignoring negative amount at token {index}")
            elif self._is_time_offset(tokens, end):
                self.logger.debug(f"Ignoring time offset at token {index}")
            else:
                value, end = self._with_fraction(tokens, value, end)
                runs.append(AmountRun(value, index, end, self._qualifier(tokens, index)))
            index = end

        return runs

    def _scan_run(self, tokens: Tuple[Token, ...], index: int) -> Tuple[Optional[Decimal], int]:
        if tokens[index].kind == TokenKind.NUMBER:
            return self._scan_literal(tokens, index)
        if self._starts_word_run(tokens, index):
            return self._scan_words(tokens, index)
        return None, index

    def _with_fraction(self, tokens: Tuple[Token, ...], value: Decimal, end: int) -> Tuple[Decimal, int]:
        """
        Fold spoken cents or paise into a run.

        "fifty cents" is 0.50; "twenty dollars and fifty cents" is 20.50,
        with the cents run consumed so it is not counted as a second amount.
        """
        if end < len(tokens) and tokens[end].text in FRACTION_UNITS:
            return value / 100, end + 1

        if value != value.to_integral_value():
            return value, end

        index = end
        while index < len(tokens) and tokens[index].text != 'and':
            token = tokens[index]
            if (index - end == MAX_UNIT_WORDS or not token.is_wordlike
                    or NumberWordConverter.is_number_word(token.text)):
                return value, end
            index += 1

        if index + 1 >= len(tokens):
            return value, end

        cents, stop = self._scan_run(tokens, index + 1)
        if (cents is None or stop >= len(tokens) or tokens[stop].text not in FRACTION_UNITS
                or cents >= 100 or cents != cents.to_integral_value()):
            return value, end

        return value + cents / 100, stop + 1

    def _scan_literal(self, tokens: Tuple[Token, ...], index: int) -> Tuple[Optional[Decimal], int]:
        """A numeric literal plus any spoken fraction and scale words after it."""
        literal = tokens[index].text.replace(',', '')
        try:
            base = Decimal(literal)
        except InvalidOperation:
            self.logger.debug(f"Unreadable numeric literal {literal!r}")
            return None, index + 1
        words = []
        end = index + 1

        if end + 1 < len(tokens) and tokens[end].text in DECIMAL_POINTS:
            following = tokens[end + 1]
            if following.kind == TokenKind.NUMBER and following.text.isdigit() and '.' not in literal:
                base = Decimal(f"{literal}.{following.text}")
                end += 2
            elif NumberWordConverter.is_digit_word(following.text):
                words.append(tokens[end].text)
                end += 1
                while end < len(tokens) and NumberWordConverter.is_digit_word(tokens[end].text):
                    words.append(tokens[end].text)
                    end += 1

        while end < len(tokens) and NumberWordConverter.is_scale(tokens[end].text):
            words.append(tokens[end].text)
            end += 1

        if not words:
            return base, end
        return self._convert(words, base), end

    def _starts_word_run(self, tokens: Tuple[Token, ...], index: int) -> bool:
        text = tokens[index].text
        if tokens[index].kind != TokenKind.WORD:
            return False
        if NumberWordConverter.is_number_word(text):
            return True
        # "a hundred", "a thousand"
        return (text in ARTICLES and index + 1 < len(tokens)
                and NumberWordConverter.is_scale(tokens[index + 1].text))

    def _scan_words(self, tokens: Tuple[Token, ...], index: int) -> Tuple[Optional[Decimal], int]:
        words = []
        end = index
        if tokens[end].text in ARTICLES:
            words.append(tokens[end].text)
            end += 1

        while end < len(tokens):
            text = tokens[end].text
            following = tokens[end + 1] if end + 1 < len(tokens) else None

            if tokens[end].kind == TokenKind.WORD and NumberWordConverter.is_number_word(text):
                words.append(text)
                end += 1
            elif (text == 'and' and words and NumberWordConverter.is_scale(words[-1])
                  and following is not None and NumberWordConverter.is_number_word(following.text)):
                words.append(text)
                end += 1
            elif (text == '-' and words and following is not None
                  and NumberWordConverter.is_number_word(following.text)
                  and tokens[end - 1].end == tokens[end].start and tokens[end].end == following.start):
                words.append(text)
                end += 1
            elif (text in DECIMAL_POINTS and words and following is not None
                  and NumberWordConverter.is_digit_word(following.text)):
                words.append(text)
                end += 1
                while end < len(tokens) and NumberWordConverter.is_digit_word(tokens[end].text):
                    words.append(tokens[end].text)
                    end += 1
            else:
                break

        return self._convert(words), end

    def _convert(self, words: List[str], base: Optional[Decimal] = None) -> Optional[Decimal]:
        try:
            return self.converter.convert(words, base=base)
        except DecimalException as e:
            self.logger.debug(f"Cannot compose number from {words}: {e}")
            return None

    def _previous_index(self, tokens: Tuple[Token, ...], index: int) -> int:
        """Index of the token before ``index``, skipping currency symbols."""
        previous = index - 1
        while previous >= 0 and tokens[previous].kind == TokenKind.CURRENCY_SYMBOL:
            previous -= 1
        return previous

    def _is_negative(self, tokens: Tuple[Token, ...], index: int) -> bool:
        previous = self._previous_index(tokens, index)
        if previous < 0:
            return False

        marker = tokens[previous]
        if marker.text in NEGATIVE_WORDS:
            return True
        if marker.text not in DASHES:
            return False

        # The dash must lead straight into the run and not close a "50-60" style range
        if marker.end != tokens[previous + 1].start:
            return False
        if previous == 0:
            return True
        before = tokens[previous - 1]
        return before.end != marker.start or before.kind == TokenKind.PUNCTUATION

    def _is_time_offset(self, tokens: Tuple[Token, ...], end: int) -> bool:
        """True for runs like "3 days ago", which are dates rather than amounts."""
        return (end + 1 < len(tokens) and tokens[end].text in TIME_UNITS
                and tokens[end + 1].text == 'ago')

    def _qualifier(self, tokens: Tuple[Token, ...], index: int) -> Optional[str]:
        previous = self._previous_index(tokens, index)
        if previous >= 0 and tokens[previous].text in QUALIFIERS:
            return tokens[previous].text
        return None
