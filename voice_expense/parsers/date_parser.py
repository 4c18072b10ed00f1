"""Relative date hints ("yesterday", "this morning", "3 days ago")."""

import logging
from datetime import datetime
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta, MO, TU, WE, TH, FR, SA, SU

from .base import BaseParser, ParseResult, Token, TokenKind, TranscriptContext, find_phrase
from .number_words import NumberWordConverter

logger = logging.getLogger(__name__)

WEEKDAYS = {
    'monday': MO, 'tuesday': TU, 'wednesday': WE, 'thursday': TH,
    'friday': FR, 'saturday': SA, 'sunday': SU,
}

PARTS_OF_DAY = {
    'morning': 9,
    'afternoon': 14,
    'evening': 19,
    'night': 21,
}


class DateParser(BaseParser):
    """
    Resolve relative time expressions against a caller-supplied reference time.

    The parser never reads the clock: without ``context.reference_time`` it
    returns None. With a reference time and no expression in the transcript
    the reference time itself is returned at low confidence.
    """

    def __init__(self):
        super().__init__()
        self.converter = NumberWordConverter()

        # Fixed phrases in priority order: (phrase, days back, hour or None, pattern_type)
        self.phrase_patterns = [
            (('day', 'before', 'yesterday'), 2, None, 'day_before_yesterday'),
            (('yesterday', 'morning'), 1, PARTS_OF_DAY['morning'], 'yesterday_part'),
            (('yesterday', 'afternoon'), 1, PARTS_OF_DAY['afternoon'], 'yesterday_part'),
            (('yesterday', 'evening'), 1, PARTS_OF_DAY['evening'], 'yesterday_part'),
            (('last', 'night'), 1, PARTS_OF_DAY['night'], 'last_night'),
            (('yesterday',), 1, None, 'yesterday'),
            (('this', 'morning'), 0, PARTS_OF_DAY['morning'], 'this_part'),
            (('this', 'afternoon'), 0, PARTS_OF_DAY['afternoon'], 'this_part'),
            (('this', 'evening'), 0, PARTS_OF_DAY['evening'], 'this_part'),
            (('tonight',), 0, 20, 'tonight'),
            (('today',), 0, None, 'today'),
            (('just',), 0, None, 'just'),
        ]

    def parse(self, context: TranscriptContext) -> Optional[ParseResult]:
        """
        Extract a transaction date hint.

        Args:
            context: Transcript context with tokens and reference time

        Returns:
            ParseResult with a datetime, or None without a reference time
        """
        reference = context.reference_time
        if reference is None:
            return None

        tokens = context.tokens
        match = self._find_days_ago(tokens) or self._find_last_weekday(tokens)
        if match:
            offset, pattern_type = match
            result = ParseResult(
                value=reference + offset,
                confidence=0.85,
                metadata={'pattern_type': pattern_type},
            )
            self._log_result(result, context)
            return result

        for phrase, days_back, hour, pattern_type in self.phrase_patterns:
            if not find_phrase(tokens, phrase):
                continue
            value = reference - relativedelta(days=days_back)
            if hour is not None:
                value = value.replace(hour=hour, minute=0, second=0, microsecond=0)
            result = ParseResult(
                value=value,
                confidence=0.9,
                source_text=' '.join(phrase),
                metadata={'pattern_type': pattern_type},
            )
            self._log_result(result, context)
            return result

        return ParseResult(value=reference, confidence=0.5, metadata={'pattern_type': 'reference'})

    def _find_days_ago(self, tokens: Tuple[Token, ...]) -> Optional[Tuple[relativedelta, str]]:
        """"N days ago" / "N weeks ago" with N as digits or words."""
        for index in range(len(tokens) - 1):
            unit = tokens[index].text
            if tokens[index + 1].text != 'ago' or unit not in ('day', 'days', 'week', 'weeks'):
                continue

            start = index
            while start > 0 and (tokens[start - 1].kind == TokenKind.NUMBER
                                 or NumberWordConverter.is_number_word(tokens[start - 1].text)
                                 or tokens[start - 1].text in ('a', 'an')):
                start -= 1
            if start == index:
                continue

            count = self._count(tokens[start:index])
            if count is None:
                continue
            if unit.startswith('week'):
                return relativedelta(weeks=-count), 'weeks_ago'
            return relativedelta(days=-count), 'days_ago'

        return None

    def _count(self, tokens: Tuple[Token, ...]) -> Optional[int]:
        if len(tokens) == 1 and tokens[0].kind == TokenKind.NUMBER:
            text = tokens[0].text.replace(',', '')
            return int(text) if text.isdigit() else None
        words = [token.text for token in tokens]
        if words in (['a'], ['an']):
            return 1
        value = self.converter.convert(words)
        if value is None or value != value.to_integral_value():
            return None
        return int(value)

    def _find_last_weekday(self, tokens: Tuple[Token, ...]) -> Optional[Tuple[relativedelta, str]]:
        """"last friday" is the most recent Friday strictly before the reference day."""
        for index in range(len(tokens) - 1):
            weekday = WEEKDAYS.get(tokens[index + 1].text)
            if tokens[index].text in ('last', 'on') and weekday is not None:
                return relativedelta(days=-1, weekday=weekday(-1)), 'last_weekday'
        return None
