"""Bulk product ingestion into the record store."""

from .product_ingest import (
    import_products,
    ingest_products,
    prepare_import,
    format_import_report,
    ImportReport,
    RecordStore,
)
from .supabase_client import SupabaseClient

__all__ = [
    "import_products",
    "ingest_products",
    "prepare_import",
    "format_import_report",
    "ImportReport",
    "RecordStore",
    "SupabaseClient",
]
