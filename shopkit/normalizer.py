from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Union
import logging
import re

from .exceptions import ImportFormatError
from .scanner import strip_header_hint
from .schema import ACTIVE_STATUS_VALUES, COLUMN_MAPPINGS, REQUIRED_COLUMNS, STANDARD_HEADERS

logger = logging.getLogger(__name__)

# "1200", "-3", "1200.00"; the fractional part may only be zeros
_WHOLE_NUMBER_RE = re.compile(r"^(-?\d+)(?:\.0*)?$")


@dataclass
class ProductRow:
    """
    A validated, normalized import row.

    stock is None when the document gave no stock value; the write then
    leaves the stored stock alone (update) or uses 0 (insert).
    handle_derived is True when the handle was generated from the sku
    rather than supplied by the document.
    columns holds the fields the document has a column for; on update only
    those (plus the required ones) are written.
    """
    row_number: int
    sku: str
    title: str
    price: int
    handle: str
    handle_derived: bool = False
    stock: Optional[int] = None
    description: Optional[str] = None
    is_active: bool = True
    category: Optional[str] = None
    subcategory: Optional[str] = None
    columns: FrozenSet[str] = frozenset(STANDARD_HEADERS)

    def to_fields(self, insert: bool = False) -> Dict[str, Any]:
        """Partial `products` record for the store write.

        Args:
            insert: Write every field, with defaults for columns the
                document lacks. Otherwise absent columns are left out so the
                stored values survive, and a handle made up from the sku is
                left out too.
        """
        values = {
            "sku": self.sku,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "is_active": self.is_active,
            "status": "active" if self.is_active else "draft",
            "category": self.category,
            "subcategory": self.subcategory,
            "handle": self.handle,
        }
        if not insert:
            # is_active and status both come from the status column
            source = {"is_active": "status"}
            values = {
                name: value for name, value in values.items()
                if name in REQUIRED_COLUMNS or source.get(name, name) in self.columns
            }
            if self.handle_derived:
                values.pop("handle", None)

        if self.stock is not None:
            values["stock"] = self.stock
        return values


@dataclass
class RowFailure:
    """A row that was rejected during validation or failed to write."""
    row_number: int
    sku: str
    title: str
    reason: str

    def describe(self) -> str:
        return f"SKU: {self.sku or '(none)'} ({self.title or 'untitled'}) - {self.reason}"


def derive_handle(sku: str) -> str:
    """Slug from a sku: lowercase, runs of non [a-z0-9] collapsed to '-'."""
    return re.sub(r"[^a-z0-9]+", "-", sku.lower()).strip("-")


def _parse_int(value: str) -> Optional[int]:
    """Parse "1,200" / "1200" / "1200.0" into an int.

    Returns None for anything that is not a whole number, including "1200.5".
    """
    cleaned = value.strip().replace(",", "").replace("，", "")
    match = _WHOLE_NUMBER_RE.match(cleaned)
    if not match:
        return None
    return int(match.group(1))


def _column_key(name: str) -> str:
    return re.sub(r"[\s_\-]+", " ", strip_header_hint(name).lower()).strip()


class ProductRowNormalizer:
    """Maps import columns to product fields and validates each row.

    Validation never raises for a bad row: it returns a RowFailure so the
    caller can collect them and still offer the rest of the batch.
    """

    def __init__(self, default_category: Optional[str] = None):
        """Initialize the normalizer.

        Args:
            default_category: Category written when a row leaves it empty
        """
        self.default_category = default_category

        self._variation_to_standard = {}
        for standard, variations in COLUMN_MAPPINGS.items():
            for variation in variations:
                self._variation_to_standard[_column_key(variation)] = standard

    def normalize_column_name(self, column_name: str) -> Optional[str]:
        """Map a header cell to an internal field name.

        Args:
            column_name: Header cell as written, hint included

        Returns:
            Internal field name, or None for unknown columns
        """
        if not column_name:
            return None
        return self._variation_to_standard.get(_column_key(column_name))

    def map_header(self, header: Sequence[str]) -> List[Optional[str]]:
        """Map every header cell; unknown columns map to None.

        Raises:
            ImportFormatError: If a required column is missing
        """
        fields = [self.normalize_column_name(cell) for cell in header]
        missing = [name for name in REQUIRED_COLUMNS if name not in fields]
        if missing:
            raise ImportFormatError(f"Missing required column(s): {', '.join(missing)}")

        seen = set()
        for cell, name in zip(header, fields):
            if name is None:
                logger.debug(f"Ignoring unknown column '{cell}'")
            elif name in seen:
                logger.warning(f"Column '{cell}' maps to '{name}' again; the first one wins")
            seen.add(name)
        return fields

    def get_mapping_report(self, header: Sequence[str]) -> Dict[str, Any]:
        """Report how a header row maps to internal fields."""
        mapped: Dict[str, List[str]] = {}
        unmapped = []
        for cell in header:
            name = self.normalize_column_name(cell)
            if name:
                mapped.setdefault(name, []).append(cell)
            else:
                unmapped.append(cell)
        return {
            "mapped": mapped,
            "unmapped": unmapped,
            "missing_required": [name for name in REQUIRED_COLUMNS if name not in mapped],
        }

    def normalize_row(
        self,
        fields: Sequence[Optional[str]],
        cells: Sequence[str],
        row_number: int
    ) -> Union[ProductRow, RowFailure]:
        """Validate and normalize one data row.

        Args:
            fields: Output of map_header for this document
            cells: Raw cells of the row
            row_number: 1-based row position in the document (header is 1)

        Returns:
            ProductRow on success, RowFailure describing the first problem
        """
        values: Dict[str, str] = {}
        for name, cell in zip(fields, cells):
            if name is not None and name not in values:
                values[name] = cell

        sku = values.get("sku", "").strip()
        if sku.startswith("'"):
            # Excel text marker, see the sku column hint
            sku = sku[1:].strip()
        title = values.get("title", "").strip()

        if len(cells) != len(fields):
            return RowFailure(row_number, sku, title, f"expected {len(fields)} columns, got {len(cells)}")
        if not sku:
            return RowFailure(row_number, sku, title, "sku is missing")
        if not title:
            return RowFailure(row_number, sku, title, "title is missing")

        price = _parse_int(values.get("price", ""))
        if price is None:
            return RowFailure(row_number, sku, title, f"price is not a whole number: {values.get('price', '')!r}")
        if price < 0:
            return RowFailure(row_number, sku, title, f"price is negative: {price}")

        stock = None
        raw_stock = values.get("stock", "").strip()
        if raw_stock:
            stock = _parse_int(raw_stock)
            if stock is None or stock < 0:
                logger.warning(f"Row {row_number} (SKU {sku}): stock {raw_stock!r} is not a count, using 0")
                stock = 0

        status = values.get("status", "").strip().lower()
        is_active = not status or status in ACTIVE_STATUS_VALUES

        handle = values.get("handle", "").strip()
        handle_derived = not handle
        if handle_derived:
            handle = derive_handle(sku)

        # kept verbatim so export then import reproduces it
        description = values.get("description", "")
        if not description.strip():
            description = None

        return ProductRow(
            row_number=row_number,
            sku=sku,
            title=title,
            price=price,
            handle=handle,
            handle_derived=handle_derived,
            stock=stock,
            description=description,
            is_active=is_active,
            category=values.get("category", "").strip() or self.default_category,
            subcategory=values.get("subcategory", "").strip() or None,
            columns=frozenset(name for name in fields if name is not None),
        )


@dataclass
class ImportPlan:
    """Result of the validation pass, before anything is written."""
    rows: List[ProductRow]
    failures: List[RowFailure]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


def plan_rows(
    rows: Sequence[Sequence[str]],
    normalizer: Optional[ProductRowNormalizer] = None
) -> ImportPlan:
    """Run the validation pass over scanned rows.

    Args:
        rows: Scanned rows, header row first
        normalizer: Normalizer to use (a default one if omitted)

    Returns:
        ImportPlan with the valid rows in document order and every rejection

    Raises:
        ImportFormatError: If there is no header row or a required column
            is missing
    """
    if not rows:
        raise ImportFormatError("Document is empty; expected a header row")

    normalizer = normalizer or ProductRowNormalizer()
    fields = normalizer.map_header(rows[0])

    valid: List[ProductRow] = []
    failures: List[RowFailure] = []
    for row_number, cells in enumerate(rows[1:], start=2):
        result = normalizer.normalize_row(fields, cells, row_number)
        if isinstance(result, RowFailure):
            failures.append(result)
        else:
            valid.append(result)

    return ImportPlan(rows=valid, failures=failures)
