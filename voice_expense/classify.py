"""Category classification using keyword phrase rules."""

import logging
from typing import List, Optional, Tuple

from .exceptions import ConfigurationError
from .expense import AmbiguityFlag, Category
from .parsers.base import ParseResult, Token, TranscriptContext, find_phrase

logger = logging.getLogger(__name__)


class CategoryClassifier:
    """Classify transcripts into the closed category set by keyword phrases."""

    def __init__(self, table):
        """
        Initialize classifier with a category keyword table.

        Args:
            table: KeywordTable mapping keyword phrases to category names
        """
        self.table = table
        self.rules: List[Tuple[Tuple[str, ...], Category]] = []
        self.load_rules()

    def load_rules(self):
        """Resolve table values to categories, keeping canonical order."""
        rules = []
        for words, name in self.table.phrases:
            try:
                category = Category.from_name(name)
            except ValueError as e:
                logger.error(f"Failed to load category rules: {e}")
                raise ConfigurationError(str(e), {'phrase': ' '.join(words)}) from e
            rules.append((words, category))

        rules.sort(key=lambda rule: rule[1].rank)
        self.rules = rules
        logger.debug(f"Loaded {len(self.rules)} category rules")

    def find_matches(self, tokens: Tuple[Token, ...]) -> List[Tuple[Category, int, int]]:
        """
        Every keyword phrase found in the tokens.

        Returns:
            List of (category, phrase_length, start_index), best match first:
            longer phrases before shorter ones, then canonical order, then
            position in the transcript
        """
        matches = []
        for words, category in self.rules:
            for start in find_phrase(tokens, words):
                matches.append((category, len(words), start))

        matches.sort(key=lambda match: (-match[1], match[0].rank, match[2]))
        return matches

    def classify(self, tokens: Tuple[Token, ...]) -> Tuple[Category, float]:
        """
        Classify a token sequence into a category.

        Args:
            tokens: Normalized transcript tokens

        Returns:
            Tuple of (category, confidence_score)
        """
        matches = self.find_matches(tokens)
        if not matches:
            logger.info("No category match found, defaulting to 'Other'")
            return Category.OTHER, 0.1

        category, length, _ = matches[0]
        competing = {match[0] for match in matches}
        confidence = 0.95 if length > 1 else 0.9
        if len(competing) > 1:
            logger.debug(f"Category candidates {[c.value for c in competing]}, chose '{category.value}'")
            confidence = 0.75

        logger.debug(f"Classified as '{category.value}' with confidence {confidence:.2f}")
        return category, confidence

    def parse(self, context: TranscriptContext) -> Optional[ParseResult]:
        category, confidence = self.classify(context.tokens)
        flags = [AmbiguityFlag.CATEGORY_DEFAULTED] if category is Category.OTHER else []
        return ParseResult(
            value=category,
            confidence=confidence,
            metadata={'suggestions': [c.value for c, _ in self.get_category_suggestions(context.tokens)]},
            flags=flags,
        )

    def get_category_suggestions(self, tokens: Tuple[Token, ...], top_n: int = 3) -> List[Tuple[Category, int]]:
        """
        Get top N category suggestions for review purposes.

        Args:
            tokens: Normalized transcript tokens
            top_n: Number of suggestions to return

        Returns:
            List of (category, longest_phrase_length) tuples, best first
        """
        suggestions = []
        seen = set()
        for category, length, _ in self.find_matches(tokens):
            if category in seen:
                continue
            seen.add(category)
            suggestions.append((category, length))
        return suggestions[:top_n]
