from .variation import Product, VariationAxis, Option, StockMode, UNLIMITED
from .resolver import (
    resolve_stock,
    resolve_price,
    check_availability,
    stock_status,
    summarize_stock,
    AvailabilityResult,
    StockStatus,
)
from .parser import CatalogParser, render_export
from .normalizer import ProductRowNormalizer, ImportPlan, ProductRow, RowFailure
from .schema import STANDARD_HEADERS, EXPORT_HEADERS, COLUMN_MAPPINGS

__all__ = [
    "Product",
    "VariationAxis",
    "Option",
    "StockMode",
    "UNLIMITED",
    "resolve_stock",
    "resolve_price",
    "check_availability",
    "stock_status",
    "summarize_stock",
    "AvailabilityResult",
    "StockStatus",
    "CatalogParser",
    "render_export",
    "ProductRowNormalizer",
    "ImportPlan",
    "ProductRow",
    "RowFailure",
    "STANDARD_HEADERS",
    "EXPORT_HEADERS",
    "COLUMN_MAPPINGS",
]
