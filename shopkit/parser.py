from .adapters.csv_adapter import CsvAdapter
from .adapters.excel_adapter import ExcelAdapter
from .normalizer import ImportPlan, ProductRowNormalizer, plan_rows
from .scanner import render_csv
from .schema import EXPORT_HEADERS, STANDARD_HEADERS
from .variation import record_has_variants
from typing import List, Dict, Any, Optional
from pathlib import Path
import json


def flatten_record(record: Dict[str, Any]) -> List[Any]:
    """Turn a `products` record into one export row (STANDARD_HEADERS order).

    Variation detail is not exported. Variant products always show stock 0;
    an unlimited base stock is an empty cell.
    """
    if record_has_variants(record):
        stock = 0
    else:
        stock = record.get("stock")

    values = {
        "id": record.get("id"),
        "title": record.get("title") or "",
        "description": record.get("description") or "",
        "status": "active" if record.get("is_active", True) else "draft",
        "category": record.get("category") or "",
        "subcategory": record.get("subcategory") or "",
        "handle": record.get("handle") or "",
        "price": record.get("price") or 0,
        "stock": stock,
        "sku": record.get("sku") or "",
    }
    return [values[name] for name in STANDARD_HEADERS]


def render_export(records: List[Dict[str, Any]]) -> str:
    """Export CSV text (with BOM) for in-memory callers such as a download view."""
    rows = [EXPORT_HEADERS] + [flatten_record(record) for record in records]
    return render_csv(rows, bom=True)


class CatalogParser:
    """Reads product import files and writes product exports."""

    def __init__(self, default_category: Optional[str] = None):
        """Initialize the parser.

        Args:
            default_category: Category for imported rows that leave it empty
        """
        self.adapters = []
        self.normalizer = ProductRowNormalizer(default_category=default_category)

    def register_adapter(self, adapter):
        """Register a file adapter for parsing.

        Args:
            adapter: Adapter instance with can_handle() and read() methods
        """
        self.adapters.append(adapter)

    def _find_adapter(self, file_path: str):
        for adapter in self.adapters:
            if adapter.can_handle(file_path):
                return adapter
        raise ValueError(f"No adapter found for {file_path}")

    def read(self, file_path: str) -> List[List[str]]:
        """Read a file into rows of cells, header row first.

        Raises:
            ValueError: If no adapter is found for the file
        """
        return self._find_adapter(file_path).read(file_path)

    def parse(self, file_path: str) -> ImportPlan:
        """Read a file and run the validation pass over it.

        Args:
            file_path: Path to the product CSV/XLSX file

        Returns:
            ImportPlan with valid rows and rejected rows

        Raises:
            ValueError: If no adapter is found for the file
            ImportFormatError: If the header is missing required columns
        """
        return plan_rows(self.read(file_path), self.normalizer)

    def get_mapping_report(self, file_path: str) -> Dict[str, Any]:
        """Get a report of how the file's columns map to product fields."""
        rows = self.read(file_path)
        if not rows:
            return {"mapped": {}, "unmapped": [], "missing_required": []}
        return self.normalizer.get_mapping_report(rows[0])

    def export(self, records: List[Dict[str, Any]], output_path: str, format: Optional[str] = None) -> str:
        """Export product records to a file.

        Args:
            records: `products` records, e.g. from RecordStore.list_products()
            output_path: Path where the file should be saved
            format: 'csv', 'excel', 'json', or None to pick from the extension

        Returns:
            Path to the exported file

        Raises:
            ValueError: If the format is not supported
        """
        output_path = Path(output_path)

        if format is None:
            suffix = output_path.suffix.lower()
            if suffix == '.xlsx':
                format = 'excel'
            elif suffix == '.json':
                format = 'json'
            else:
                format = 'csv'
                if suffix != '.csv':
                    output_path = output_path.with_suffix('.csv')

        format = format.lower()
        rows = [flatten_record(record) for record in records]

        if format == 'csv':
            CsvAdapter().write([EXPORT_HEADERS] + rows, str(output_path))
        elif format == 'excel':
            ExcelAdapter().write([EXPORT_HEADERS] + rows, str(output_path))
        elif format == 'json':
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump([dict(zip(STANDARD_HEADERS, row)) for row in rows], f, indent=2, ensure_ascii=False)
        else:
            raise ValueError(f"Unsupported export format: {format}. Supported formats: csv, excel, json")

        return str(output_path)
