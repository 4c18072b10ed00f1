"""Parser settings and their optional YAML file."""

import logging
from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .exceptions import ConfigurationError
from .parsers.amount_parser import DEFAULT_MAX_AMOUNT
from .parsers.merchant_parser import DEFAULT_MAX_MERCHANT_LENGTH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParserSettings:
    max_amount: Decimal = DEFAULT_MAX_AMOUNT
    max_merchant_length: int = DEFAULT_MAX_MERCHANT_LENGTH
    default_currency: str = "USD"
    categories_path: Optional[Path] = None   # None: bundled rules/categories.yml
    currencies_path: Optional[Path] = None   # None: bundled rules/currencies.json

    def __post_init__(self):
        try:
            max_amount = Decimal(str(self.max_amount))
        except InvalidOperation as e:
            raise ConfigurationError(f"max_amount is not a number: {self.max_amount!r}") from e
        if max_amount <= 0:
            raise ConfigurationError("max_amount must be positive", {'max_amount': str(max_amount)})
        if int(self.max_merchant_length) < 1:
            raise ConfigurationError("max_merchant_length must be at least 1",
                                     {'max_merchant_length': self.max_merchant_length})

        object.__setattr__(self, 'max_amount', max_amount)
        object.__setattr__(self, 'max_merchant_length', int(self.max_merchant_length))
        object.__setattr__(self, 'default_currency', str(self.default_currency).strip().upper())
        for name in ('categories_path', 'currencies_path'):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, Path(value))

    def override(self, **changes: Any) -> 'ParserSettings':
        """Copy with the given non-None values replaced (CLI options)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_settings(path: Optional[Path] = None) -> ParserSettings:
    """
    Load settings from a YAML file.

    Args:
        path: YAML mapping of ParserSettings fields; None gives the defaults.
            Relative rule paths resolve against the file's directory.

    Returns:
        ParserSettings
    """
    if path is None:
        return ParserSettings()

    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load settings from {path}: {e}")
        raise ConfigurationError(f"Failed to load settings from {path}: {e}", {'path': str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping", {'path': str(path)})

    known = {f.name for f in fields(ParserSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown settings in {path}: {', '.join(unknown)}", {'path': str(path)})

    values: Dict[str, Any] = dict(data)
    for name in ('categories_path', 'currencies_path'):
        if values.get(name):
            rule_path = Path(values[name])
            values[name] = rule_path if rule_path.is_absolute() else path.parent / rule_path

    settings = ParserSettings(**values)
    logger.info(f"Loaded settings from {path}")
    return settings
