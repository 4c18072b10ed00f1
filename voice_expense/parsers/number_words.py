"""Spoken English cardinal numbers to Decimal values."""

import logging
from decimal import Decimal
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

ONES = {
    'zero': 0, 'one': 1, 'two': 2, 'three': 3, 'four': 4,
    'five': 5, 'six': 6, 'seven': 7, 'eight': 8, 'nine': 9,
    'ten': 10, 'eleven': 11, 'twelve': 12, 'thirteen': 13, 'fourteen': 14,
    'fifteen': 15, 'sixteen': 16, 'seventeen': 17, 'eighteen': 18, 'nineteen': 19,
}

TENS = {
    'twenty': 20, 'thirty': 30, 'forty': 40, 'fifty': 50,
    'sixty': 60, 'seventy': 70, 'eighty': 80, 'ninety': 90,
}

SCALES = {
    'hundred': 100, 'hundreds': 100,
    'thousand': 1_000, 'thousands': 1_000,
    'lakh': 100_000, 'lakhs': 100_000, 'lac': 100_000, 'lacs': 100_000,
    'million': 1_000_000, 'millions': 1_000_000,
    'crore': 10_000_000, 'crores': 10_000_000,
    'billion': 1_000_000_000, 'billions': 1_000_000_000,
    'trillion': 1_000_000_000_000, 'trillions': 1_000_000_000_000,
}

DECIMAL_POINTS = frozenset({'point', 'dot'})
ARTICLES = frozenset({'a', 'an'})


class NumberWordConverter:
    """
    Compose runs of cardinal words into a single value.

    Units and tens add to the current group, "hundred" multiplies the group,
    and larger scales multiply the group and add it to the running total.
    "point"/"dot" followed by single digits adds a decimal fraction, which a
    trailing scale word multiplies along with the whole part
    ("two point five million" = 2,500,000).
    """

    @staticmethod
    def is_number_word(word: str) -> bool:
        return word in ONES or word in TENS or word in SCALES

    @staticmethod
    def is_digit_word(word: str) -> bool:
        return word in ONES and ONES[word] < 10

    @staticmethod
    def is_scale(word: str) -> bool:
        return word in SCALES

    def convert(self, words: Iterable[str], base: Optional[Decimal] = None) -> Optional[Decimal]:
        """
        Convert a run of number words.

        Args:
            words: Lower-cased words of one run; "and", hyphens and articles
                are ignored
            base: Value already read from a numeric literal that the words
                extend (e.g. 2 in "2 thousand")

        Returns:
            Decimal value, or None if the run holds no number words
        """
        total = Decimal(0)
        current = Decimal(base) if base is not None else Decimal(0)
        seen = base is not None
        fraction_digits = []
        in_fraction = False

        for word in words:
            if word in ARTICLES or word == 'and' or word == '-':
                continue

            if word in DECIMAL_POINTS:
                in_fraction = True
                continue

            if in_fraction and self.is_digit_word(word):
                fraction_digits.append(ONES[word])
                seen = True
                continue
            in_fraction = False

            if word in ONES:
                current += ONES[word]
                seen = True
            elif word in TENS:
                current += TENS[word]
                seen = True
            elif word in SCALES:
                seen = True
                scale = SCALES[word]
                current += self._fraction_value(fraction_digits)
                fraction_digits = []
                if scale == 100:
                    current = (current or 1) * scale
                elif current:
                    total += current * scale
                    current = Decimal(0)
                else:
                    total = (total or 1) * scale

        if not seen:
            return None

        value = total + current + self._fraction_value(fraction_digits)
        logger.debug(f"Converted number words to {value}")
        return value

    @staticmethod
    def _fraction_value(digits) -> Decimal:
        value = Decimal(0)
        for position, digit in enumerate(digits, start=1):
            value += Decimal(digit) / (Decimal(10) ** position)
        return value
