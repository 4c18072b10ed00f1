"""Example phrases shown when the parser needs the user to try again."""

import logging
from typing import List

from .exceptions import ConfigurationError
from .keywords import CurrencyCatalog, CurrencyInfo

logger = logging.getLogger(__name__)

PHRASE_TEMPLATES = [
    "I just spent 25 {unit} on food",
    "I paid 50 {unit} for groceries at the supermarket",
    "Log 15 {unit} for lunch",
    "I spent 30 {unit} on gas",
    "I bought coffee for 5 {unit}",
    "Add 100 {unit} shopping expense",
    "I just paid 20 {unit} for entertainment",
]


def spoken_unit(currency: CurrencyInfo) -> str:
    """Plural spoken name of a currency ("dirhams", "yen")."""
    short = currency.short_name.lower()
    if short:
        for keyword in currency.voice_keywords:
            if keyword.lower().endswith(short + 's'):
                return keyword.lower()
        return short
    return currency.code


def suggested_phrases(catalog: CurrencyCatalog, currency_code: str) -> List[str]:
    """
    Example sentences in the given currency, every one of them parseable.

    Raises:
        ConfigurationError: if ``currency_code`` is not in the catalog
    """
    currency = catalog.get(currency_code)
    if currency is None:
        raise ConfigurationError(f"Unknown currency {currency_code!r}", {'configured': list(catalog.codes)})

    unit = spoken_unit(currency)
    phrases = [template.format(unit=unit) for template in PHRASE_TEMPLATES]
    if currency.code != 'USD':
        phrases.append(f"I just spent 50 {currency.code} on groceries")
    return phrases
