"""
Totals engine.

Folds a list of line items into subtotal / cancelled / returned / grand
totals.  Each line lands in exactly one bucket, checked in this order:

  cancelled   -> cancelled_total
  returned    -> return_total
  otherwise   -> subtotal

grand_total is the subtotal: cancelled and returned lines are left out of
the payable amount rather than subtracted from it.
"""
from typing import Any, Iterable

from models.line_item import LineItem, LineItemStatus, Totals


def _as_line_item(item: Any) -> LineItem:
    if isinstance(item, LineItem):
        return item
    return LineItem.model_validate(item)


def compute_totals(items: Iterable[Any]) -> Totals:
    """Compute the four totals for *items* (LineItem objects or wire dicts)."""
    subtotal = 0.0
    cancelled_total = 0.0
    return_total = 0.0

    for raw in items:
        item = _as_line_item(raw)
        line_total = item.line_total
        if item.status is LineItemStatus.CANCELLED:
            cancelled_total += line_total
        elif item.status is LineItemStatus.RETURNED:
            return_total += line_total
        else:
            subtotal += line_total

    return Totals(
        subtotal=subtotal,
        cancelled_total=cancelled_total,
        return_total=return_total,
        grand_total=subtotal,
    )


def sum_line_totals(items: Iterable[Any]) -> float:
    """Plain sum of quantity * unit_price over every line, regardless of status."""
    return sum(_as_line_item(item).line_total for item in items)
