"""
Form validation for purchases and purchase orders.

Checks run before anything is submitted; each problem is reported as a
ValidationIssue naming the field so the form can show it inline.

  Purchase:        DB number, supplier, at least one line, per-line rules
  Purchase order:  vendor, status, at least one line, per-line rules
  Per line:        product required, finite quantity >= 1, finite unit price >= 0,
                   unit type required (purchases only)
"""
import logging
import math
from typing import Optional, Sequence

from models.line_item import LineItem
from models.purchase_order import PurchaseOrder
from models.result import ValidationIssue

from .resolver import FormState

logger = logging.getLogger(__name__)

MIN_QUANTITY = 1
PO_STATUSES = ("draft", "approved", "delivered", "cancelled")


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _check_items(items: Sequence[LineItem], require_unit_type: bool) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    if not items:
        issues.append(ValidationIssue(
            field="items",
            message="At least one item is required",
        ))
        return issues

    for i, item in enumerate(items):
        if not item.product_id:
            issues.append(ValidationIssue(
                field=f"items[{i}].productId",
                message="Product is required",
                item_index=i,
            ))
        if not _finite(item.quantity) or item.quantity < MIN_QUANTITY:
            issues.append(ValidationIssue(
                field=f"items[{i}].quantity",
                message="Quantity must be at least 1",
                item_index=i,
            ))
        if not _finite(item.unit_price) or item.unit_price < 0:
            issues.append(ValidationIssue(
                field=f"items[{i}].unitPrice",
                message="Unit price must be positive",
                item_index=i,
            ))
        if require_unit_type and not item.unit_type:
            issues.append(ValidationIssue(
                field=f"items[{i}].unitType",
                message="Unit type is required",
                item_index=i,
            ))

    return issues


class PurchaseValidator:
    """
    Validates the purchase form before submission.

    Usage:
        issues = PurchaseValidator().validate(form_state)
    """

    def validate(self, state: FormState) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        if not state.ref_num:
            issues.append(ValidationIssue(field="ref_num", message="DB Number is required"))
        if not state.vendor:
            issues.append(ValidationIssue(field="vendor", message="Supplier is required"))

        issues.extend(_check_items(state.items, require_unit_type=True))

        if issues:
            logger.debug("Purchase form has %d validation issue(s)", len(issues))
        return issues


class PurchaseOrderValidator:
    """Validates a purchase order before it is created or updated."""

    def validate(self, po: PurchaseOrder, status: Optional[str] = None) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        if not po.ref_num:
            issues.append(ValidationIssue(field="ref_num", message="DB Number is required"))
        if not po.vendor:
            issues.append(ValidationIssue(field="vendor", message="Vendor is required"))
        if (status or po.status) not in PO_STATUSES:
            issues.append(ValidationIssue(
                field="status",
                message=f"Status must be one of: {', '.join(PO_STATUSES)}",
            ))

        issues.extend(_check_items(po.items, require_unit_type=False))
        return issues
