"""
Bulk product ingestion from delimited text.

The flow has two phases:

1. Validation pass (prepare_import): scan the document, map the header,
   normalize every row. Bad rows are collected, nothing is written. The
   caller sees the rejections and decides whether to continue without them.
2. Write pass (ingest_products): for each valid row, in document order,
   look the product up by sku, then update or insert it.

Key rules:
- Rows are written one at a time. Each row's existence check must see the
  writes of the rows before it, otherwise two rows for the same sku (or the
  same derived handle) race each other.
- A product that already has variation axes always gets stock 0, whatever
  the document says. Its base stock is never read, and a non-zero value
  there misleads every report that does read it.
- A failing row is recorded and the next row is attempted. Only a store
  that cannot be reached at all stops the batch, and that is checked before
  the first write.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import uuid4

from ..config import Settings
from ..exceptions import StoreError
from ..normalizer import ImportPlan, ProductRow, ProductRowNormalizer, RowFailure, plan_rows
from ..scanner import decode_document, parse_text
from ..variation import record_has_variants

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_DISPLAY_LIMIT = 10


class RecordStore:
    """
    Record store interface used by the ingestion pipeline and exporter.

    Implement this with your actual database client. Records are plain dicts
    keyed by `products` column names. Every method may fail independently:
    per-row failures raise StoreWriteError, a store that cannot be reached
    raises StoreUnavailableError.
    """

    def check_connection(self) -> None:
        """Verify the store is reachable.

        Raises:
            StoreUnavailableError: If it is not
        """
        raise NotImplementedError

    def get_product_by_sku(self, sku: str) -> Optional[Dict[str, Any]]:
        """
        Look up a product by its unique sku.

        Returns:
            The record (with at least id, has_variants, variants_config), or
            None when no product has this sku
        """
        raise NotImplementedError

    def handle_exists(self, handle: str) -> bool:
        """Whether any product already uses this handle."""
        raise NotImplementedError

    def update_product(self, product_id: str, fields: Dict[str, Any]) -> None:
        """Write a partial record onto an existing product."""
        raise NotImplementedError

    def insert_product(self, fields: Dict[str, Any]) -> str:
        """
        Insert a new product.

        Returns:
            The new product id
        """
        raise NotImplementedError

    def list_products(self) -> List[Dict[str, Any]]:
        """All products in display order."""
        raise NotImplementedError


@dataclass
class ImportReport:
    """
    Outcome of an import.

    failed counts validation rejections and write failures together;
    failures holds all of them, in the order they happened. aborted is set
    when the caller declined to continue after the validation pass.
    """
    succeeded: int = 0
    failed: int = 0
    failures: List[RowFailure] = field(default_factory=list)
    aborted: bool = False

    def record(self, failure: Optional[RowFailure]) -> None:
        """Fold one row outcome into the report (None means success)."""
        if failure is None:
            self.succeeded += 1
        else:
            self.failed += 1
            self.failures.append(failure)

    def preview(self, limit: int = DEFAULT_FAILURE_DISPLAY_LIMIT) -> List[RowFailure]:
        """The first `limit` failures, for display."""
        return self.failures[:limit]


def format_import_report(report: ImportReport, limit: int = DEFAULT_FAILURE_DISPLAY_LIMIT) -> str:
    """Render an import report for the operator.

    Always gives exact counts; lists at most `limit` failing products and
    says how many more were left out.
    """
    if report.aborted:
        return (
            f"CSV import cancelled. {report.failed} row(s) had errors; "
            f"nothing was written."
        )

    lines = ["CSV import finished.", "", f"Succeeded: {report.succeeded}"]
    if report.failed:
        lines.append(f"Failed: {report.failed}")
        lines.append("")
        lines.append("Failed products:")
        lines.extend(failure.describe() for failure in report.preview(limit))
        hidden = len(report.failures) - limit
        if hidden > 0:
            lines.append(f"...and {hidden} more")
    return "\n".join(lines)


def prepare_import(
    document: Union[str, bytes],
    normalizer: Optional[ProductRowNormalizer] = None
) -> ImportPlan:
    """Validation pass: scan, map the header and normalize every row.

    Args:
        document: CSV text, or raw bytes to be decoded
        normalizer: Row normalizer (a default one if omitted)

    Returns:
        ImportPlan with valid rows and collected rejections

    Raises:
        ImportFormatError: If the document has no header or lacks a
            required column
    """
    text = decode_document(document) if isinstance(document, bytes) else document
    return plan_rows(parse_text(text), normalizer)


def _unique_handle(store: RecordStore, handle: str) -> str:
    """Return handle, or handle-2, handle-3, ... whichever is free first."""
    if not handle:
        handle = f"prod-{uuid4().hex[:8]}"
    if not store.handle_exists(handle):
        return handle

    suffix = 2
    while store.handle_exists(f"{handle}-{suffix}"):
        suffix += 1
    return f"{handle}-{suffix}"


def _write_row(store: RecordStore, row: ProductRow, debug: bool = False) -> Optional[RowFailure]:
    """
    Update or insert one row.

    Returns:
        None on success, a RowFailure carrying the store's error otherwise
    """
    try:
        existing = store.get_product_by_sku(row.sku)

        if existing is not None:
            # Columns the document lacks are left as stored
            fields = row.to_fields()
            if record_has_variants(existing):
                if fields.get("stock"):
                    logger.info(
                        f"SKU {row.sku}: product has variations, ignoring stock "
                        f"{fields['stock']} from import and writing 0"
                    )
                fields["stock"] = 0

            store.update_product(existing["id"], fields)
            if debug:
                logger.info(f"Row {row.row_number}: updated product {existing['id']} (SKU {row.sku})")
        else:
            fields = row.to_fields(insert=True)
            handle = _unique_handle(store, row.handle)
            if handle != row.handle:
                logger.info(f"SKU {row.sku}: handle '{row.handle}' is taken, using '{handle}'")
            fields["handle"] = handle
            fields.setdefault("stock", 0)
            fields["has_variants"] = False
            fields["variants_config"] = []

            product_id = store.insert_product(fields)
            if debug:
                logger.info(f"Row {row.row_number}: inserted product {product_id} (SKU {row.sku}, handle {handle})")

    except StoreError as e:
        logger.error(f"Product write failed (SKU: {row.sku}): {e}")
        return RowFailure(row.row_number, row.sku, row.title, str(e))

    return None


def ingest_products(
    plan: ImportPlan,
    store: RecordStore,
    debug: bool = False
) -> ImportReport:
    """Write every valid row of a plan, sequentially.

    The plan's validation failures are carried into the report first, so
    its counts cover the whole document.

    Args:
        plan: Output of prepare_import
        store: Record store to write to
        debug: Log every row decision

    Returns:
        ImportReport with exact success/failure counts
    """
    report = ImportReport()
    for failure in plan.failures:
        report.record(failure)

    for row in plan.rows:
        report.record(_write_row(store, row, debug=debug))

    logger.info(f"Import finished: {report.succeeded} succeeded, {report.failed} failed")
    return report


def import_products(
    document: Union[str, bytes],
    store: RecordStore,
    confirm: Optional[Callable[[ImportPlan], bool]] = None,
    settings: Optional[Settings] = None,
    debug: bool = False
) -> ImportReport:
    """
    Import a product CSV document into the store.

    1. Validation pass over the whole document
    2. If rows were rejected, ask confirm(plan) whether to go on without them
    3. Check the store is reachable
    4. Write the valid rows one by one

    Args:
        document: CSV text or raw bytes
        store: Record store to write to
        confirm: Called only when some rows were rejected; returning False
            cancels the import before any write. Omitted means continue.
        settings: Settings providing the default category
        debug: Log every row decision

    Returns:
        ImportReport (aborted=True if confirm declined)

    Raises:
        ImportFormatError: If the document as a whole is unusable
        StoreUnavailableError: If the store cannot be reached
    """
    normalizer = ProductRowNormalizer(
        default_category=settings.default_category if settings else None
    )
    plan = prepare_import(document, normalizer)

    if plan.has_failures:
        for failure in plan.failures:
            logger.warning(f"Row {failure.row_number} rejected: {failure.describe()}")
        if confirm is not None and not confirm(plan):
            logger.warning(f"Import cancelled with {len(plan.failures)} rejected row(s)")
            return ImportReport(failed=len(plan.failures), failures=list(plan.failures), aborted=True)

    store.check_connection()

    return ingest_products(plan, store, debug=debug)
