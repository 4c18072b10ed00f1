"""Transcript parsing components - one parser per expense field."""

from .normalizer import Normalizer
from .number_words import NumberWordConverter
from .amount_parser import AmountParser
from .currency_parser import CurrencyDetector
from .merchant_parser import MerchantParser
from .date_parser import DateParser

__all__ = [
    'Normalizer',
    'NumberWordConverter',
    'AmountParser',
    'CurrencyDetector',
    'MerchantParser',
    'DateParser',
]
