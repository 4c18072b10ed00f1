"""Command-line interface for parsing expense transcripts."""

import logging
import click
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple
import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from tqdm import tqdm
import sys
from datetime import datetime
from collections import Counter

from dateutil import parser as date_parser

from .config import ParserSettings, load_settings
from .exceptions import ExpenseParserError
from .export import ExcelExporter
from .hints import suggested_phrases
from .keywords import find_similar_keywords, load_category_table, load_currency_catalog
from .parse import ExpenseTranscriptParser
from .review import ReviewQueue

# Set up logging; stdout is reserved for command output
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stderr)
    ]
)
logger = logging.getLogger(__name__)


class BatchProcessor:
    """Parse a file of transcripts in parallel and collect review items."""

    def __init__(self,
                 settings: Optional[ParserSettings] = None,
                 max_workers: int = 4,
                 reference_time: Optional[datetime] = None):
        """
        Initialize the batch processor.

        Args:
            settings: Parser settings (limits, default currency, rule paths)
            max_workers: Number of parallel workers
            reference_time: "Now" used for relative date hints
        """
        self.settings = settings or ParserSettings()
        self.max_workers = max_workers
        self.reference_time = reference_time

        self.parser = ExpenseTranscriptParser.from_settings(self.settings)
        self.review_queue = ReviewQueue()

        self.stats = {
            'total': 0,
            'parsed': 0,
            'failed': 0,
            'review_items': 0,
            'duplicates': 0,
        }

    @staticmethod
    def read_transcripts(input_file: Path) -> List[Tuple[str, str, Optional[str]]]:
        """
        Read transcripts from a text or JSON Lines file.

        Text files hold one transcript per line (blank lines skipped, ids are
        line numbers). JSON Lines records need ``transcript`` and may carry
        ``id`` and ``default_currency``.

        Returns:
            List of (source_id, transcript, default_currency)
        """
        entries = []
        with open(input_file, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, 1):
                if not line.strip():
                    continue
                if input_file.suffix.lower() == '.jsonl':
                    try:
                        record = json.loads(line)
                    except ValueError as e:
                        raise click.BadParameter(f"Line {line_number} is not valid JSON: {e}")
                    if not isinstance(record, dict) or 'transcript' not in record:
                        raise click.BadParameter(f"Line {line_number} has no 'transcript' field")
                    entries.append((str(record.get('id', line_number)),
                                    str(record['transcript']),
                                    record.get('default_currency')))
                else:
                    entries.append((str(line_number), line.rstrip('\n'), None))
        return entries

    def process_single(self, source_id: str, transcript: str,
                       default_currency: Optional[str] = None) -> Dict[str, Any]:
        """Parse one transcript into a result record."""
        outcome = self.parser.parse(transcript, default_currency=default_currency,
                                    reference_time=self.reference_time)
        return {
            'source_id': source_id,
            'transcript': transcript,
            'outcome': outcome,
        }

    def process_batch(self, entries: List[Tuple[str, str, Optional[str]]]) -> List[Dict[str, Any]]:
        """
        Parse all transcripts.

        Returns:
            Result records in input order
        """
        self.stats['total'] = len(entries)
        if not entries:
            logger.warning("No transcripts found!")
            return []

        results: Dict[int, Dict[str, Any]] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self.process_single, *entry): index
                for index, entry in enumerate(entries)
            }

            with tqdm(total=len(entries), desc="Parsing transcripts", file=sys.stderr) as pbar:
                for future in as_completed(future_to_index):
                    index = future_to_index[future]
                    result = future.result()
                    results[index] = result

                    if result['outcome'].ok:
                        self.stats['parsed'] += 1
                    else:
                        self.stats['failed'] += 1

                    pbar.update(1)
                    pbar.set_postfix({
                        'parsed': self.stats['parsed'],
                        'failed': self.stats['failed']
                    })

        ordered = [results[index] for index in range(len(entries))]

        for result in ordered:
            self.review_queue.add_from_outcome(result['source_id'], result['transcript'], result['outcome'])

        duplicates = self.review_queue.detect_conflicts(self.expense_records(ordered))
        self.review_queue.items.extend(duplicates)
        self.stats['duplicates'] = len(duplicates)
        self.stats['review_items'] = len(self.review_queue.items)

        logger.info(f"Batch parsing complete. Parsed: {self.stats['parsed']}, "
                    f"Failed: {self.stats['failed']}, Review items: {self.stats['review_items']}")
        return ordered

    @staticmethod
    def expense_records(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            ExcelExporter.create_record(result['source_id'], result['outcome'].expense)
            for result in results if result['outcome'].ok
        ]


def _parse_reference_time(ctx, param, value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError) as e:
        raise click.BadParameter(f"Cannot parse date/time {value!r}: {e}")


def _settings_from_options(config: Optional[Path], default_currency: Optional[str],
                           max_amount: Optional[str] = None) -> ParserSettings:
    settings = load_settings(config)
    return settings.override(default_currency=default_currency, max_amount=max_amount)


def _enable_debug(debug: bool):
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        click.echo("Debug mode enabled - detailed parsing logs will be shown", err=True)


@click.group()
def cli():
    """Voice expense parser - turn spoken expense statements into expense drafts."""
    pass


@cli.command()
@click.argument('transcript')
@click.option('--default-currency', default=None, help='Currency code used when none is spoken')
@click.option('--reference-time', default=None, callback=_parse_reference_time,
              help='Reference "now" for relative dates, e.g. 2025-10-19T18:30')
@click.option('--config', 'config', default=None, type=click.Path(exists=True, path_type=Path),
              help='YAML settings file')
@click.option('--max-amount', default=None, help='Largest accepted amount')
@click.option('--debug', is_flag=True, help='Enable debug output')
def parse(transcript: str,
          default_currency: Optional[str],
          reference_time: Optional[datetime],
          config: Optional[Path],
          max_amount: Optional[str],
          debug: bool):
    """
    Parse a single transcript and print the result as JSON.

    Example:
        voice-expense parse "I spent 150 dirhams on groceries at Carrefour"
    """
    _enable_debug(debug)
    try:
        settings = _settings_from_options(config, default_currency, max_amount)
        parser = ExpenseTranscriptParser.from_settings(settings)
        outcome = parser.parse(transcript, reference_time=reference_time)
    except ExpenseParserError as e:
        logger.error(f"Parsing failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))


@cli.command()
@click.option('--in', 'input_file', required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Text file (one transcript per line) or JSON Lines file')
@click.option('--out', 'output_dir', required=True, type=click.Path(path_type=Path),
              help='Output directory for results')
@click.option('--default-currency', default=None, help='Currency code used when none is spoken')
@click.option('--reference-time', default=None, callback=_parse_reference_time,
              help='Reference "now" for relative dates')
@click.option('--config', 'config', default=None, type=click.Path(exists=True, path_type=Path),
              help='YAML settings file')
@click.option('--max-workers', default=4, type=int, help='Maximum number of parallel workers')
@click.option('--excel', is_flag=True, help='Also write an Excel workbook')
@click.option('--summary', is_flag=True, help='Include summary section in Excel output')
@click.option('--debug', is_flag=True, help='Enable debug output')
def batch(input_file: Path,
          output_dir: Path,
          default_currency: Optional[str],
          reference_time: Optional[datetime],
          config: Optional[Path],
          max_workers: int,
          excel: bool,
          summary: bool,
          debug: bool):
    """
    Parse a file of transcripts and write results.jsonl and review.json.

    Example:
        voice-expense batch --in transcripts.txt --out ./out --excel --summary
    """
    _enable_debug(debug)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)

        settings = _settings_from_options(config, default_currency)
        processor = BatchProcessor(settings=settings, max_workers=max_workers,
                                   reference_time=reference_time)

        logger.info(f"Input file: {input_file}")
        logger.info(f"Output directory: {output_dir}")
        logger.info(f"Max workers: {max_workers}")

        entries = processor.read_transcripts(input_file)
        results = processor.process_batch(entries)

        results_path = output_dir / 'results.jsonl'
        with open(results_path, 'w', encoding='utf-8') as f:
            for result in results:
                line = {'source_id': result['source_id'], 'transcript': result['transcript']}
                line.update(result['outcome'].to_dict())
                f.write(json.dumps(line, ensure_ascii=False) + '\n')

        review_path = output_dir / 'review.json'
        with open(review_path, 'w', encoding='utf-8') as f:
            json.dump({
                'summary': processor.review_queue.get_summary(),
                'items': [vars(item) for item in processor.review_queue.items],
            }, f, ensure_ascii=False, indent=2)

        excel_path = None
        if excel:
            excel_path = output_dir / 'expenses.xlsx'
            records = processor.expense_records(results)
            for problem in ExcelExporter.validate_records(records):
                logger.warning(f"Export check: {problem}")
            ExcelExporter(excel_path).export_expenses(
                records=records,
                review_items=processor.review_queue.items,
                include_summary=summary,
            )

    except ExpenseParserError as e:
        logger.error(f"Processing failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    confidence_counts = Counter(
        result['outcome'].expense.confidence.value for result in results if result['outcome'].ok
    )

    click.echo("\n" + "=" * 50)
    click.echo("PARSING SUMMARY")
    click.echo("=" * 50)
    click.echo(f"Total transcripts: {processor.stats['total']}")
    click.echo(f"Parsed: {processor.stats['parsed']}")
    click.echo(f"Failed: {processor.stats['failed']}")
    for level in ('High', 'Medium', 'Low'):
        click.echo(f"  {level} confidence: {confidence_counts.get(level, 0)}")
    click.echo(f"Items needing review: {processor.stats['review_items']}")
    click.echo("\nOutput files:")
    click.echo(f"  - Results: {results_path}")
    click.echo(f"  - Review: {review_path}")
    if excel_path:
        click.echo(f"  - Excel: {excel_path}")

    if processor.stats['duplicates']:
        click.echo(f"\n{processor.stats['duplicates']} entries look like duplicates.")


@cli.command('check-rules')
@click.option('--categories', default=None, type=click.Path(exists=True, path_type=Path),
              help='Category rules file (default: bundled)')
@click.option('--currencies', default=None, type=click.Path(exists=True, path_type=Path),
              help='Currency rules file (default: bundled)')
@click.option('--threshold', default=90.0, type=float, help='Similarity (0-100) to report')
def check_rules(categories: Optional[Path], currencies: Optional[Path], threshold: float):
    """Report duplicate and near-duplicate keywords across categories and currencies."""
    try:
        category_table = load_category_table(categories)
        catalog = load_currency_catalog(currencies)
    except ExpenseParserError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    currency_table = catalog.keyword_table()

    click.echo(f"Categories: {len(category_table)} keywords (version {category_table.version or '-'})")
    click.echo(f"Currencies: {', '.join(catalog.codes)} (version {catalog.version or '-'})")

    problems = 0
    for name, table in (('category', category_table), ('currency', currency_table)):
        for phrase, kept, dropped in table.dropped:
            click.echo(f"Duplicate {name} keyword '{phrase}': kept {kept}, ignored {dropped}")
            problems += 1
        for phrase_a, value_a, phrase_b, value_b, similarity in find_similar_keywords(table, threshold):
            click.echo(f"Similar {name} keywords '{phrase_a}' ({value_a}) and '{phrase_b}' ({value_b}): "
                       f"{similarity:.0f}%")
            problems += 1

    click.echo(f"{problems} potential problem(s) found")


@cli.command()
@click.option('--currency', default='USD', help='Currency code the phrases should use')
@click.option('--currencies', default=None, type=click.Path(exists=True, path_type=Path),
              help='Currency rules file (default: bundled)')
def phrases(currency: str, currencies: Optional[Path]):
    """Print example phrases users can say."""
    try:
        catalog = load_currency_catalog(currencies)
        for phrase in suggested_phrases(catalog, currency):
            click.echo(phrase)
    except ExpenseParserError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    cli()
