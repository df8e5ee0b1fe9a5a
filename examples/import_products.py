#!/usr/bin/env python3
"""Example: import a product CSV into the storefront database, or export one.

Usage:
    python import_products.py import products.csv
    python import_products.py export products_export.csv

The database URL comes from SHOPKIT_DB_URL (or SUPABASE_DB_URL), read from
the environment or a .env file.
"""

import sys
from pathlib import Path

from shopkit import CatalogParser
from shopkit.adapters.csv_adapter import CsvAdapter
from shopkit.adapters.excel_adapter import ExcelAdapter
from shopkit.config import configure_logging, load_settings
from shopkit.ingest import SupabaseClient, format_import_report, import_products
from shopkit.scanner import render_csv


def ask_to_continue(plan) -> bool:
    """Show rejected rows and ask whether to import the rest."""
    print(f"{len(plan.failures)} row(s) have errors:")
    for failure in plan.failures:
        print(f"  row {failure.row_number}: {failure.describe()}")
    answer = input(f"Import the other {len(plan.rows)} row(s) and skip these? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def run_import(file_path: str, db: SupabaseClient, settings) -> None:
    parser = CatalogParser(default_category=settings.default_category)
    parser.register_adapter(CsvAdapter())
    parser.register_adapter(ExcelAdapter())

    if Path(file_path).suffix.lower() == ".csv":
        document = Path(file_path).read_bytes()
    else:
        # Spreadsheets go through the adapter and back to CSV text
        document = render_csv(parser.read(file_path))

    report = import_products(document, db, confirm=ask_to_continue, settings=settings, debug=True)
    print(format_import_report(report, limit=settings.failure_display_limit))


def run_export(output_path: str, db: SupabaseClient) -> None:
    parser = CatalogParser()
    path = parser.export(db.list_products(), output_path)
    print(f"✓ Exported products to: {path}")


if __name__ == "__main__":
    if len(sys.argv) < 3 or sys.argv[1] not in ("import", "export"):
        print("Usage: python import_products.py import|export <file>")
        sys.exit(1)

    settings = load_settings()
    configure_logging(settings)
    db = SupabaseClient.from_settings(settings)

    try:
        if sys.argv[1] == "import":
            run_import(sys.argv[2], db, settings)
        else:
            run_export(sys.argv[2], db)
    finally:
        db.close()
