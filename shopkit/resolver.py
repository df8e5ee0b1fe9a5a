"""
Stock and price resolution for a product option selection.

Every function here is pure: no I/O, no caching, no mutation of the
product. They are safe to call from any number of threads.

RESOLUTION RULES:
- A product without axes resolves stock from its base stock alone.
- For a variant product, each axis with a selected option may contribute a
  candidate ceiling: its shared pool if it has one, else the selected
  option's own count. Axes in stock mode NONE and options without a count
  contribute nothing.
- The tightest candidate wins. Each axis is an independently exhaustible
  resource, so the purchasable quantity cannot exceed the scarcest one.
- No candidate at all means UNLIMITED.

check_availability is advisory. Nothing here decrements stock, so two
buyers can both pass the check; the order commit path must re-validate.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .exceptions import IncompleteSelectionError, InvalidQuantityError
from .variation import (
    UNLIMITED,
    Option,
    Product,
    Selection,
    StockCeiling,
    StockMode,
    VariationAxis,
)

DEFAULT_LOW_STOCK_THRESHOLD = 5

MESSAGE_NONE_REMAINING = "Not enough stock. This item can no longer be added."
MESSAGE_N_REMAINING = "Not enough stock. You can add up to {remaining} more."


class StockStatus(Enum):
    """Storefront stock badge."""
    UNLIMITED = "unlimited"
    OUT = "out"
    LOW = "low"
    AVAILABLE = "available"


@dataclass(frozen=True)
class AvailabilityResult:
    """
    Outcome of check_availability.

    remaining is only set when the request is refused: how many more units
    could still be added on top of the reservation (may be 0).
    """
    available: bool
    ceiling: StockCeiling
    remaining: Optional[int] = None
    message: str = ""


def _selected_options(
    product: Product,
    selection: Selection
) -> Iterator[Tuple[VariationAxis, Option]]:
    """Yield (axis, option) for every axis that has a valid selected option.

    Unselected axes, and selections naming an option the axis does not have,
    are skipped.
    """
    for axis in product.axes:
        option_id = selection.get(axis.id)
        if option_id is None:
            continue
        option = axis.find_option(option_id)
        if option is None:
            continue
        yield axis, option


def _unselected_axes(product: Product, selection: Selection) -> List[str]:
    selected = {axis.id for axis, _ in _selected_options(product, selection)}
    return [axis.id for axis in product.axes if axis.id not in selected]


def resolve_stock(
    product: Product,
    selection: Selection,
    require_complete: bool = False
) -> StockCeiling:
    """Resolve the binding stock ceiling for a selection.

    Args:
        product: Product snapshot
        selection: Mapping of axis id -> option id (may be empty or partial)
        require_complete: If True, every axis must have a valid selection.
            By default unselected axes are simply left out of the minimum,
            which can yield a looser ceiling than the caller intended.

    Returns:
        An int >= 0, or UNLIMITED

    Raises:
        IncompleteSelectionError: If require_complete is set and some axis
            lacks a valid selection
    """
    if not product.axes:
        return product.base_stock

    if require_complete:
        missing = _unselected_axes(product, selection)
        if missing:
            raise IncompleteSelectionError(missing)

    ceiling: Optional[int] = None

    for axis, option in _selected_options(product, selection):
        if axis.stock_mode is StockMode.NONE:
            continue

        if axis.shared_pool is not None:
            candidate = axis.shared_pool
        elif option.stock_count is not None:
            candidate = option.stock_count
        else:
            continue

        ceiling = candidate if ceiling is None else min(ceiling, candidate)

    return UNLIMITED if ceiling is None else ceiling


def resolve_price(product: Product, selection: Selection) -> int:
    """Base price plus the price adjustment of every selected option.

    Not clamped: a negative total is for the caller to reject.
    """
    return product.base_price + sum(
        option.price_adjustment for _, option in _selected_options(product, selection)
    )


def _check_quantity(name: str, value, minimum: int) -> None:
    # bool is an int subclass but never a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantityError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidQuantityError(f"{name} must be >= {minimum}, got {value}")


def check_availability(
    product: Product,
    selection: Selection,
    requested_qty: int,
    reserved_qty: int = 0
) -> AvailabilityResult:
    """Check whether requested_qty more units can be taken.

    Args:
        product: Product snapshot
        selection: Mapping of axis id -> option id
        requested_qty: Units the customer wants to add (must be >= 1)
        reserved_qty: Units of the same product/selection already held
            elsewhere, e.g. in the cart (must be >= 0)

    Returns:
        AvailabilityResult. A shortage is a normal result, not an error.

    Raises:
        InvalidQuantityError: If either quantity breaks the contract above
    """
    _check_quantity("requested_qty", requested_qty, 1)
    _check_quantity("reserved_qty", reserved_qty, 0)

    ceiling = resolve_stock(product, selection)
    if ceiling is UNLIMITED:
        return AvailabilityResult(available=True, ceiling=UNLIMITED)

    if reserved_qty + requested_qty <= ceiling:
        return AvailabilityResult(available=True, ceiling=ceiling)

    remaining = max(0, ceiling - reserved_qty)
    if remaining > 0:
        message = MESSAGE_N_REMAINING.format(remaining=remaining)
    else:
        message = MESSAGE_NONE_REMAINING

    return AvailabilityResult(
        available=False,
        ceiling=ceiling,
        remaining=remaining,
        message=message
    )


def stock_status(
    ceiling: StockCeiling,
    low_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
) -> StockStatus:
    """Map a resolved ceiling to the badge shown on the product page."""
    if ceiling is UNLIMITED:
        return StockStatus.UNLIMITED
    if ceiling == 0:
        return StockStatus.OUT
    if ceiling <= low_threshold:
        return StockStatus.LOW
    return StockStatus.AVAILABLE


def summarize_stock(product: Product) -> StockCeiling:
    """Total stock figure for the admin product list.

    Unlike resolve_stock this does not depend on a selection: an axis with a
    shared pool contributes the pool, an individually counted axis
    contributes the sum of its counted options. The smallest contribution
    wins. An axis whose options are all uncounted contributes nothing, but
    an axis that totals 0 contributes 0.
    """
    if not product.axes:
        return product.base_stock

    totals = []
    for axis in product.axes:
        if axis.stock_mode is StockMode.NONE:
            continue
        if axis.shared_pool is not None:
            totals.append(axis.shared_pool)
            continue
        counted = [o.stock_count for o in axis.options if o.stock_count is not None]
        if counted:
            totals.append(sum(counted))

    return min(totals) if totals else UNLIMITED
