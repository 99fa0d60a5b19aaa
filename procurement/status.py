"""
Per-line status transitions and edit locks.

A line is in exactly one of none / cancelled / returned.  Transitions are
direct.  While a line is cancelled or returned its product and quantity
are locked; unit price and unit type are always catalog-sourced and never
hand-edited.
"""
import logging
from typing import Any, Optional, Sequence

from models.catalog import Product
from models.line_item import LineItem, LineItemStatus, Totals

from .totals import compute_totals

logger = logging.getLogger(__name__)

ALWAYS_LOCKED_FIELDS = frozenset({"unit_price", "unit_type"})
STATUS_LOCKED_FIELDS = frozenset({"product_id", "quantity"})
EDITABLE_FIELDS = frozenset({"product_id", "quantity"})

_STATUS_ALIASES = {
    "return": LineItemStatus.RETURNED,
    "": LineItemStatus.NONE,
}

_FIELD_ALIASES = {
    "productId": "product_id",
    "unitPrice": "unit_price",
    "unitType": "unit_type",
}


class LineItemLocked(ValueError):
    """Raised when an edit touches a field the line's status has locked."""

    def __init__(self, field: str, status: LineItemStatus):
        self.field = field
        self.status = status
        super().__init__(f"Field {field!r} cannot be edited while the line is {status.value}")


def parse_status(status: Any) -> LineItemStatus:
    """Accept a LineItemStatus, its value, or 'return' as shorthand for returned."""
    if isinstance(status, LineItemStatus):
        return status
    if status is None:
        return LineItemStatus.NONE
    key = str(status).strip().lower()
    if key in _STATUS_ALIASES:
        return _STATUS_ALIASES[key]
    try:
        return LineItemStatus(key)
    except ValueError:
        raise ValueError(
            f"Invalid line status {status!r}. Must be one of "
            f"{[s.value for s in LineItemStatus]}"
        ) from None


def apply_status(item: LineItem, status: Any) -> LineItem:
    """Return a copy of *item* moved directly to *status*."""
    return item.model_copy(update={"status": parse_status(status)})


def set_item_status(
    items: Sequence[LineItem], index: int, status: Any
) -> tuple[list[LineItem], Totals]:
    """Transition one line and recompute totals for the whole list."""
    if not 0 <= index < len(items):
        raise IndexError(f"No line item at index {index}")
    updated = list(items)
    updated[index] = apply_status(items[index], status)
    return updated, compute_totals(updated)


def _field_name(field: str) -> str:
    return _FIELD_ALIASES.get(field, field)


def is_field_editable(item: LineItem, field: str) -> bool:
    name = _field_name(field)
    if name in ALWAYS_LOCKED_FIELDS:
        return False
    if name in STATUS_LOCKED_FIELDS:
        return item.status is LineItemStatus.NONE
    return True


def edit_item(item: LineItem, **changes: Any) -> LineItem:
    """
    Apply hand edits to a line.  Only product_id and quantity can be edited,
    and only while the line has no status.
    """
    update: dict[str, Any] = {}
    for field, value in changes.items():
        name = _field_name(field)
        if name not in EDITABLE_FIELDS:
            if name in ALWAYS_LOCKED_FIELDS:
                raise LineItemLocked(name, item.status)
            raise ValueError(f"Unknown line item field: {field!r}")
        if not is_field_editable(item, name):
            raise LineItemLocked(name, item.status)
        update[name] = str(value) if name == "product_id" else value
    return item.model_copy(update=update)


def select_product(item: LineItem, product: Optional[Product]) -> LineItem:
    """
    Point a line at a catalog product, pulling unit price and unit type from
    the catalog.  Passing None clears the product.
    """
    if not is_field_editable(item, "product_id"):
        raise LineItemLocked("product_id", item.status)
    if product is None:
        return item.model_copy(update={
            "product_id": "", "product_name": None, "unit_price": 0.0, "unit_type": "",
        })
    logger.debug("Line product set to %s (%s)", product.id, product.name)
    return item.model_copy(update={
        "product_id": str(product.id),
        "product_name": product.name,
        "unit_price": product.purchase_rate,
        "unit_type": product.unit_type,
    })
