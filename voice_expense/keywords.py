"""Keyword tables for categories and currencies, and the loaders for their rule files."""

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

import yaml
from rapidfuzz import fuzz

from .exceptions import ConfigurationError
from .expense import Category
from .parsers.normalizer import Normalizer

logger = logging.getLogger(__name__)

RULES_DIR = Path(__file__).parent / 'rules'
DEFAULT_CATEGORIES_PATH = RULES_DIR / 'categories.yml'
DEFAULT_CURRENCIES_PATH = RULES_DIR / 'currencies.json'


@dataclass(frozen=True, eq=False)
class KeywordTable:
    """
    Immutable mapping from lower-case keyword phrase to a target value.

    Each phrase is pre-tokenized with the same ``Normalizer`` the parser uses,
    so matching happens on token boundaries. When the same phrase is given
    twice with different values the first one wins and the loser is kept in
    ``dropped`` for diagnostics.
    """
    entries: Union[Mapping[str, str], Iterable[Tuple[str, str]]]
    version: str = ""
    last_updated: str = ""
    symbols: FrozenSet[str] = frozenset()
    phrases: Tuple[Tuple[Tuple[str, ...], str], ...] = field(init=False, repr=False)
    dropped: Tuple[Tuple[str, str, str], ...] = field(init=False, repr=False)

    def __post_init__(self):
        items = self.entries.items() if isinstance(self.entries, Mapping) else self.entries
        cleaned: Dict[str, str] = {}
        dropped = []

        for phrase, value in items:
            key = ' '.join(str(phrase).lower().split())
            if not key:
                continue
            if key in cleaned:
                if cleaned[key] != value:
                    logger.warning(f"Keyword '{key}' maps to both {cleaned[key]} and {value}; keeping {cleaned[key]}")
                    dropped.append((key, cleaned[key], value))
                continue
            cleaned[key] = value

        symbols = frozenset(s for s in self.symbols if s)
        normalizer = Normalizer(symbols)
        phrases = []
        for key, value in cleaned.items():
            words = tuple(token.text for token in normalizer.tokenize(key))
            if words:
                phrases.append((words, value))

        object.__setattr__(self, 'entries', MappingProxyType(cleaned))
        object.__setattr__(self, 'symbols', symbols)
        object.__setattr__(self, 'phrases', tuple(phrases))
        object.__setattr__(self, 'dropped', tuple(dropped))

    def __getitem__(self, phrase: str) -> str:
        return self.entries[phrase.lower()]

    def __contains__(self, phrase: object) -> bool:
        return isinstance(phrase, str) and phrase.lower() in self.entries

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def lookup(self, phrase: str) -> Optional[str]:
        return self.entries.get(phrase.lower())

    @property
    def targets(self) -> FrozenSet[str]:
        """Every distinct value the table maps to."""
        return frozenset(self.entries.values())


@dataclass(frozen=True)
class CurrencyInfo:
    """Currency metadata as stored in the currencies resource."""
    code: str
    symbol: str
    display_name: str
    short_name: str = ""
    locale_identifier: str = ""
    is_rtl: bool = False
    voice_keywords: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CurrencyInfo':
        try:
            code = str(data['code']).strip().upper()
            symbol = str(data['symbol']).strip()
            display_name = str(data['displayName'])
        except KeyError as e:
            raise ConfigurationError(f"Currency entry missing field {e}", {'entry': data}) from e

        if not 3 <= len(code) <= 4 or not code.isalpha():
            raise ConfigurationError(f"Invalid currency code: {code!r}", {'entry': data})

        return cls(
            code=code,
            symbol=symbol,
            display_name=display_name,
            short_name=str(data.get('shortName', '')),
            locale_identifier=str(data.get('localeIdentifier', '')),
            is_rtl=bool(data.get('isRTL', False)),
            voice_keywords=tuple(str(k) for k in data.get('voiceKeywords', [])),
        )


@dataclass(frozen=True)
class CurrencyCatalog:
    """Ordered collection of configured currencies."""
    currencies: Tuple[CurrencyInfo, ...]
    version: str = ""
    last_updated: str = ""

    @property
    def codes(self) -> Tuple[str, ...]:
        return tuple(currency.code for currency in self.currencies)

    def get(self, code: str) -> Optional[CurrencyInfo]:
        wanted = code.strip().upper()
        for currency in self.currencies:
            if currency.code == wanted:
                return currency
        return None

    def keyword_table(self) -> KeywordTable:
        """Build the currency keyword table: voice keywords and symbols to codes."""
        pairs = []
        symbols = set()
        for currency in self.currencies:
            for keyword in currency.voice_keywords:
                pairs.append((keyword, currency.code))
            if currency.symbol:
                pairs.append((currency.symbol, currency.code))
                symbols.add(currency.symbol)
            # keeps every configured code present as a target
            pairs.append((currency.code, currency.code))

        return KeywordTable(
            entries=pairs,
            version=self.version,
            last_updated=self.last_updated,
            symbols=frozenset(symbols),
        )


def _read_resource(path: Path) -> Dict[str, Any]:
    """Load a versioned rules resource (JSON or YAML) and check its envelope."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Failed to load rules from {path}: {e}")
        raise ConfigurationError(f"Failed to load rules from {path}: {e}", {'path': str(path)}) from e

    if not isinstance(data, dict) or not isinstance(data.get('entries'), list):
        raise ConfigurationError(f"Rules file {path} must contain an 'entries' list", {'path': str(path)})

    return data


def load_category_table(path: Optional[Path] = None) -> KeywordTable:
    """
    Load category keywords.

    Args:
        path: YAML or JSON file with ``entries: [{category, keywords}]``;
            defaults to the bundled ``rules/categories.yml``

    Returns:
        KeywordTable mapping keyword phrases to category names. A phrase
        listed under several categories stays with the canonical-earlier one.
    """
    path = Path(path) if path else DEFAULT_CATEGORIES_PATH
    data = _read_resource(path)

    grouped: List[Tuple[Category, List[str]]] = []
    for entry in data['entries']:
        try:
            category = Category.from_name(str(entry['category']))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid category entry in {path}: {e}", {'entry': entry}) from e
        if category is Category.OTHER:
            raise ConfigurationError("'Other' is the fallback category and cannot have keywords",
                                     {'path': str(path)})
        grouped.append((category, list(entry.get('keywords', []))))

    grouped.sort(key=lambda item: item[0].rank)
    pairs = [(keyword, category.value) for category, keywords in grouped for keyword in keywords]

    table = KeywordTable(
        entries=pairs,
        version=str(data.get('version', '')),
        last_updated=str(data.get('lastUpdated', '')),
    )
    logger.info(f"Loaded {len(table)} category keywords (version {table.version or 'unversioned'})")
    return table


def load_currency_catalog(path: Optional[Path] = None) -> CurrencyCatalog:
    """Load currency metadata from ``rules/currencies.json`` or ``path``."""
    path = Path(path) if path else DEFAULT_CURRENCIES_PATH
    data = _read_resource(path)

    currencies = []
    seen = set()
    for entry in data['entries']:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Invalid currency entry in {path}", {'entry': entry})
        currency = CurrencyInfo.from_dict(entry)
        if currency.code in seen:
            raise ConfigurationError(f"Duplicate currency code {currency.code} in {path}")
        seen.add(currency.code)
        currencies.append(currency)

    catalog = CurrencyCatalog(
        currencies=tuple(currencies),
        version=str(data.get('version', '')),
        last_updated=str(data.get('lastUpdated', '')),
    )
    logger.info(f"Loaded {len(currencies)} currencies (version {catalog.version or 'unversioned'})")
    return catalog


def load_currency_table(path: Optional[Path] = None) -> KeywordTable:
    return load_currency_catalog(path).keyword_table()


@lru_cache(maxsize=None)
def default_tables() -> Tuple[KeywordTable, KeywordTable]:
    """Bundled (category, currency) tables, loaded once per process."""
    return load_category_table(), load_currency_table()


def find_similar_keywords(table: KeywordTable, threshold: float = 90.0) -> List[Tuple[str, str, str, str, float]]:
    """
    Find near-duplicate phrases that point at different values.

    Args:
        table: Table to inspect
        threshold: Minimum rapidfuzz ratio (0-100) to report

    Returns:
        List of (phrase_a, value_a, phrase_b, value_b, similarity), most similar first
    """
    items = sorted(table.entries.items())
    similar = []
    for index, (phrase_a, value_a) in enumerate(items):
        for phrase_b, value_b in items[index + 1:]:
            if value_a == value_b:
                continue
            similarity = fuzz.ratio(phrase_a, phrase_b)
            if similarity >= threshold:
                similar.append((phrase_a, value_a, phrase_b, value_b, similarity))

    similar.sort(key=lambda item: -item[4])
    return similar
