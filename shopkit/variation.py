"""
Product variation model.

A product either has no variation axes, in which case its own base stock is
the only stock figure, or it has one or more axes (size, packaging, ...) each
holding mutually exclusive options. Options carry a price delta and an
optional stock count; an axis may instead share one stock pool across all
of its options.

Two "no number" values exist and must never be mixed up:
- None on Option.stock_count / VariationAxis.shared_pool means "absent",
  i.e. this option or axis does not constrain stock.
- UNLIMITED is the resolved ceiling (and base stock) when nothing constrains
  the purchasable quantity.
A stock count of 0 is a real constraint: nothing left.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .exceptions import InvalidProductError

logger = logging.getLogger(__name__)


class Unlimited(Enum):
    """Type of the UNLIMITED sentinel."""
    UNLIMITED = "unlimited"

    def __repr__(self) -> str:
        return "UNLIMITED"


UNLIMITED = Unlimited.UNLIMITED

# An int >= 0, or UNLIMITED
StockCeiling = Union[int, Unlimited]

# axis id -> option id
Selection = Dict[str, str]


class StockMode(Enum):
    """How an axis takes part in stock resolution."""
    NONE = "none"              # axis never constrains stock
    INDIVIDUAL = "individual"  # each option has its own count
    SHARED = "shared"          # options draw from the axis's shared pool


@dataclass(frozen=True)
class Option:
    id: str
    label: str
    price_adjustment: int = 0
    stock_count: Optional[int] = None


@dataclass(frozen=True)
class VariationAxis:
    id: str
    name: str
    options: List[Option]
    stock_mode: StockMode = StockMode.NONE
    shared_pool: Optional[int] = None

    def find_option(self, option_id: str) -> Optional[Option]:
        """Return the option with this id, or None. Ids are unique per axis only."""
        for option in self.options:
            if option.id == option_id:
                return option
        return None


@dataclass
class Product:
    """
    A product snapshot as read from the record store.

    base_stock is only meaningful when axes is empty. Writers must persist
    it as 0 for variant products (see to_record).
    """
    id: Optional[str]
    handle: str
    base_price: int
    base_stock: StockCeiling = UNLIMITED
    axes: List[VariationAxis] = field(default_factory=list)
    sku: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    is_active: bool = True
    category: Optional[str] = None
    subcategory: Optional[str] = None

    @property
    def has_variants(self) -> bool:
        return bool(self.axes)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Product":
        """Build a Product from a `products` table row.

        Args:
            record: Row dict with the store's column names (price, stock,
                variants_config, ...)

        Returns:
            Product instance

        Raises:
            InvalidProductError: If the row or its variants_config is malformed
        """
        axes = parse_variants_config(record.get("variants_config"))

        try:
            base_price = int(record.get("price") or 0)
        except (TypeError, ValueError):
            raise InvalidProductError(f"Invalid price for product {record.get('id')}: {record.get('price')!r}")

        stock = record.get("stock")
        if stock is None:
            base_stock = UNLIMITED
        else:
            base_stock = _stock_count(stock, f"stock of product {record.get('id')}")

        return cls(
            id=str(record["id"]) if record.get("id") is not None else None,
            handle=record.get("handle") or "",
            base_price=base_price,
            base_stock=base_stock,
            axes=axes,
            sku=record.get("sku"),
            title=record.get("title") or "",
            description=record.get("description"),
            is_active=bool(record.get("is_active", True)),
            category=record.get("category"),
            subcategory=record.get("subcategory"),
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to a `products` row dict.

        Variant products always get stock 0: their base stock is never read,
        and a stale non-zero value would mislead anything that does read it.
        """
        if self.has_variants:
            stock = 0
        elif self.base_stock is UNLIMITED:
            stock = None
        else:
            stock = self.base_stock

        record = {
            "handle": self.handle,
            "sku": self.sku,
            "title": self.title,
            "description": self.description,
            "price": self.base_price,
            "stock": stock,
            "is_active": self.is_active,
            "status": "active" if self.is_active else "draft",
            "category": self.category,
            "subcategory": self.subcategory,
            "has_variants": self.has_variants,
            "variants_config": [axis_to_config(axis) for axis in self.axes],
        }
        if self.id is not None:
            record["id"] = self.id
        return record


def record_has_variants(record: Dict[str, Any]) -> bool:
    """Whether a raw store row describes a variant product.

    Legacy rows can have has_variants false while still carrying a
    variants_config, so either one counts.
    """
    if not record:
        return False
    config = record.get("variants_config")
    return bool(record.get("has_variants")) or (isinstance(config, list) and len(config) > 0)


def parse_variants_config(config: Any) -> List[VariationAxis]:
    """Parse the JSON `variants_config` column into axes.

    Raises:
        InvalidProductError: If the structure is not a list of axis objects
    """
    if config is None:
        return []
    if not isinstance(config, list):
        raise InvalidProductError(f"variants_config must be a list, got {type(config).__name__}")

    axes = []
    for index, raw_axis in enumerate(config):
        if not isinstance(raw_axis, dict):
            raise InvalidProductError(f"variants_config[{index}] is not an object")
        try:
            axes.append(_parse_axis(index, raw_axis))
        except InvalidProductError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidProductError(f"variants_config[{index}] is malformed: {e!r}")

    return axes


def _parse_axis(index: int, raw_axis: Dict[str, Any]) -> VariationAxis:
    try:
        stock_mode = StockMode(raw_axis.get("stockManagement") or "none")
    except ValueError:
        raise InvalidProductError(
            f"variants_config[{index}] has unknown stockManagement "
            f"{raw_axis.get('stockManagement')!r}"
        )

    raw_options = raw_axis.get("options") or []
    if not raw_options:
        raise InvalidProductError(f"variants_config[{index}] has no options")

    options = []
    for raw_option in raw_options:
        stock = raw_option.get("stock")
        options.append(Option(
            id=str(raw_option["id"]),
            label=raw_option.get("value") or "",
            price_adjustment=int(raw_option.get("priceAdjustment") or 0),
            stock_count=None if stock is None else _stock_count(stock, f"stock of option {raw_option['id']}"),
        ))

    shared = raw_axis.get("sharedStock")
    return VariationAxis(
        id=str(raw_axis["id"]),
        name=raw_axis.get("name") or "",
        options=options,
        stock_mode=stock_mode,
        shared_pool=None if shared is None else _stock_count(shared, f"sharedStock of axis {raw_axis['id']}"),
    )


def axis_to_config(axis: VariationAxis) -> Dict[str, Any]:
    """Inverse of parse_variants_config for a single axis."""
    return {
        "id": axis.id,
        "name": axis.name,
        "stockManagement": axis.stock_mode.value,
        "sharedStock": axis.shared_pool,
        "options": [
            {
                "id": option.id,
                "value": option.label,
                "priceAdjustment": option.price_adjustment,
                "stock": option.stock_count,
            }
            for option in axis.options
        ],
    }


def _stock_count(value: Any, what: str) -> int:
    """Stored stock figure as an int >= 0.

    Concurrent orders can oversell a product below zero; such a value is
    read as 0 (sold out) rather than making the product unreadable.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidProductError(f"Invalid {what}: {value!r}")
    if number < 0:
        logger.warning(f"Negative {what} ({number}); treating it as 0")
        return 0
    return number
