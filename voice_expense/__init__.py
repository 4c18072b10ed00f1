"""Voice Expense Parser - Turn spoken expense statements into structured expense drafts."""

__version__ = "1.0.0"
__author__ = "Voice Expense Team"
__email__ = ""

from .expense import (
    AmbiguityFlag,
    Category,
    Confidence,
    ErrorKind,
    ParsedExpense,
    ParseError,
    ParseOutcome,
)
from .exceptions import ExpenseParserError, ConfigurationError, TranscriptRejectedError
from .keywords import KeywordTable, default_tables, load_category_table, load_currency_table
from .config import ParserSettings, load_settings
from .parse import ExpenseTranscriptParser, parse_transcript
from .classify import CategoryClassifier
from .review import ReviewQueue, ReviewItem
from .export import ExcelExporter

__all__ = [
    'AmbiguityFlag',
    'Category',
    'Confidence',
    'ErrorKind',
    'ParsedExpense',
    'ParseError',
    'ParseOutcome',
    'ExpenseParserError',
    'ConfigurationError',
    'TranscriptRejectedError',
    'KeywordTable',
    'default_tables',
    'load_category_table',
    'load_currency_table',
    'ParserSettings',
    'load_settings',
    'ExpenseTranscriptParser',
    'parse_transcript',
    'CategoryClassifier',
    'ReviewQueue',
    'ReviewItem',
    'ExcelExporter',
]
