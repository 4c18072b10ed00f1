"""Excel export of a parsed batch and its review queue."""

import logging
from typing import List, Dict, Any
from pathlib import Path
import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter

from .expense import ParsedExpense
from .review import ReviewItem

logger = logging.getLogger(__name__)

HEADERS = ["Source", "Date", "Amount", "Currency", "Category", "Merchant",
           "Confidence", "Review Status", "Review Reason", "Transcript"]
COLUMN_WIDTHS = [12, 20, 12, 10, 20, 25, 12, 14, 40, 60]


class ExcelExporter:
    """Export parsed expenses and review data to Excel."""

    def __init__(self, output_path: Path):
        """
        Initialize Excel exporter.

        Args:
            output_path: Path for the output Excel file
        """
        self.output_path = Path(output_path)
        self.workbook = Workbook()

    def export_expenses(self,
                        records: List[Dict[str, Any]],
                        review_items: List[ReviewItem],
                        include_summary: bool = True):
        """
        Export expenses and review data to a single consolidated sheet.

        Args:
            records: Expense dicts from ``create_record``
            review_items: Items needing review; failed transcripts appear
                only here
            include_summary: Whether to put a per-currency summary on top
        """
        try:
            if "Sheet" in self.workbook.sheetnames:
                self.workbook.remove(self.workbook["Sheet"])

            self._create_consolidated_sheet(records, review_items, include_summary)

            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self.workbook.save(str(self.output_path))

            logger.info(f"Excel file exported to: {self.output_path}")

        except Exception as e:
            logger.error(f"Failed to export Excel file: {e}")
            raise

    def _create_consolidated_sheet(self, records: List[Dict[str, Any]],
                                   review_items: List[ReviewItem], include_summary: bool = True):
        ws = self.workbook.create_sheet("Expenses")

        current_row = 1
        if include_summary:
            current_row = self._add_summary_section(ws, records, current_row)
            current_row += 2

        review_lookup: Dict[str, List[ReviewItem]] = {}
        for item in review_items:
            review_lookup.setdefault(item.source_id, []).append(item)

        ws.cell(row=current_row, column=1, value="ALL EXPENSES").font = Font(bold=True, size=14)
        current_row += 2

        for col, header in enumerate(HEADERS, 1):
            cell = ws.cell(row=current_row, column=col, value=header)
            cell.font = Font(bold=True)
            cell.fill = PatternFill(start_color="E6E6E6", end_color="E6E6E6", fill_type="solid")
            cell.alignment = Alignment(horizontal="center")
        current_row += 1

        # OK rows first, then rows needing review
        ok_rows = [r for r in records if str(r.get('source_id', '')) not in review_lookup]
        review_rows = [r for r in records if str(r.get('source_id', '')) in review_lookup]

        for record in ok_rows:
            self._write_row(ws, current_row, record, "OK", "")
            current_row += 1

        for record in review_rows:
            reasons = "; ".join(item.reason for item in review_lookup[str(record.get('source_id', ''))])
            self._write_row(ws, current_row, record, "REVIEW", reasons)
            current_row += 1

        # Transcripts that failed to parse have no record
        known = {str(r.get('source_id', '')) for r in records}
        for item in review_items:
            if item.source_id in known:
                continue
            ws.cell(row=current_row, column=1, value=item.source_id)
            ws.cell(row=current_row, column=3, value=item.suggested_amount or '')
            ws.cell(row=current_row, column=4, value=item.suggested_currency or '')
            ws.cell(row=current_row, column=5, value=item.suggested_category or '')
            ws.cell(row=current_row, column=8, value="REVIEW")
            ws.cell(row=current_row, column=9, value=item.reason)
            ws.cell(row=current_row, column=10, value=item.transcript)
            current_row += 1

        for index, width in enumerate(COLUMN_WIDTHS, 1):
            ws.column_dimensions[get_column_letter(index)].width = width

        logger.info(f"Created consolidated sheet with {len(records)} expenses and {len(review_items)} review items")

    @staticmethod
    def _write_row(ws, row: int, record: Dict[str, Any], status: str, reason: str):
        values = [
            record.get('source_id', ''),
            record.get('transaction_date') or '',
            float(record.get('amount') or 0),
            record.get('currency', ''),
            record.get('category', 'Other'),
            record.get('merchant') or '',
            record.get('confidence', ''),
            status,
            reason,
            record.get('notes') or '',
        ]
        for col, value in enumerate(values, 1):
            ws.cell(row=row, column=col, value=value)

    def _add_summary_section(self, ws, records: List[Dict[str, Any]], start_row: int) -> int:
        """Add per-currency totals and a category breakdown above the table."""
        if not records:
            ws.cell(row=start_row, column=1, value="No expenses to summarize")
            return start_row + 1

        df = pd.DataFrame(records)
        df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0)

        ws.cell(row=start_row, column=1, value="EXPENSE SUMMARY").font = Font(bold=True, size=14)
        current_row = start_row + 2

        ws.cell(row=current_row, column=1, value="Total Expenses:").font = Font(bold=True)
        ws.cell(row=current_row, column=2, value=len(records))
        current_row += 2

        # Amounts in different currencies are never added together
        ws.cell(row=current_row, column=1, value="Currency").font = Font(bold=True)
        ws.cell(row=current_row, column=2, value="Count").font = Font(bold=True)
        ws.cell(row=current_row, column=3, value="Total").font = Font(bold=True)
        ws.cell(row=current_row, column=4, value="Average").font = Font(bold=True)
        current_row += 1

        by_currency = df.groupby('currency')['amount'].agg(['count', 'sum', 'mean'])
        for currency, data in by_currency.iterrows():
            ws.cell(row=current_row, column=1, value=currency)
            ws.cell(row=current_row, column=2, value=int(data['count']))
            ws.cell(row=current_row, column=3, value=f"{data['sum']:,.2f}")
            ws.cell(row=current_row, column=4, value=f"{data['mean']:,.2f}")
            current_row += 1

        current_row += 1
        ws.cell(row=current_row, column=1, value="Category Breakdown:").font = Font(bold=True)
        current_row += 1

        ws.cell(row=current_row, column=1, value="Category").font = Font(bold=True)
        ws.cell(row=current_row, column=2, value="Currency").font = Font(bold=True)
        ws.cell(row=current_row, column=3, value="Count").font = Font(bold=True)
        ws.cell(row=current_row, column=4, value="Amount").font = Font(bold=True)
        current_row += 1

        breakdown = self.summarize(records)
        for _, data in breakdown.iterrows():
            ws.cell(row=current_row, column=1, value=data['category'])
            ws.cell(row=current_row, column=2, value=data['currency'])
            ws.cell(row=current_row, column=3, value=int(data['count']))
            ws.cell(row=current_row, column=4, value=f"{data['total']:,.2f}")
            current_row += 1

        return current_row

    @staticmethod
    def summarize(records: List[Dict[str, Any]]) -> pd.DataFrame:
        """
        Category totals per currency.

        Returns:
            DataFrame with columns category, currency, count, total; largest
            totals first
        """
        if not records:
            return pd.DataFrame(columns=['category', 'currency', 'count', 'total'])

        df = pd.DataFrame(records)
        df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0)
        summary = (df.groupby(['category', 'currency'])['amount']
                   .agg(count='count', total='sum')
                   .reset_index()
                   .sort_values(['total', 'category'], ascending=[False, True])
                   .reset_index(drop=True))
        return summary

    @staticmethod
    def validate_records(records: List[Dict[str, Any]]) -> List[str]:
        """
        Validate expense records before export.

        Returns:
            List of validation error messages
        """
        errors = []
        required_fields = ['amount', 'currency', 'category']

        for i, record in enumerate(records):
            for field in required_fields:
                if field not in record:
                    errors.append(f"Expense {i+1}: Missing '{field}' field")
                elif record[field] is None:
                    errors.append(f"Expense {i+1}: '{field}' is None")
            if record.get('amount') is not None:
                try:
                    float(record['amount'])
                except (TypeError, ValueError):
                    errors.append(f"Expense {i+1}: Amount must be numeric")

        return errors

    @staticmethod
    def create_record(source_id: str, expense: ParsedExpense) -> Dict[str, Any]:
        """Flatten an expense for export, tagged with its batch id."""
        record = expense.to_dict()
        record['source_id'] = source_id
        return record
