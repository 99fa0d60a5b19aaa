"""
Purchase Order -> Purchase merge resolver.

When the operator picks a DB / reference number on the purchase form, the
working line items are re-seeded from the matching Purchase Order.  In edit
mode each line keeps the cancelled / returned status the existing Purchase
recorded for the same product.

The merge is driven by the order's items: a product the Purchase has but
the order no longer lists is dropped.  A reference that matches no order,
or an order with no items, yields the single blank row so the form is
never left empty.
"""
import logging
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from models.line_item import LineItem, LineItemStatus
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder

logger = logging.getLogger(__name__)


class FormState(BaseModel):
    """The host purchase form's fields that a reference change touches."""
    model_config = ConfigDict(populate_by_name=True)

    ref_num: str = ""
    vendor: str = ""
    invoice_file: Optional[str] = Field(default=None, alias="invoiceFile")
    remarks: str = ""
    received_by: str = Field(default="", alias="receivedBy")
    items: list[LineItem] = Field(default_factory=lambda: [LineItem.blank()])

    @classmethod
    def empty(cls) -> "FormState":
        return cls()


def find_purchase_order(
    ref_num: Optional[str], purchase_orders: Iterable[PurchaseOrder]
) -> Optional[PurchaseOrder]:
    """Return the order whose ref_num equals *ref_num*, or None."""
    if not ref_num:
        return None
    for po in purchase_orders:
        if po.ref_num == ref_num:
            return po
    return None


def _status_by_product(purchase: Optional[Purchase]) -> dict[str, LineItemStatus]:
    if purchase is None:
        return {}
    statuses: dict[str, LineItemStatus] = {}
    for item in purchase.items:
        # First occurrence wins when a purchase lists a product twice
        statuses.setdefault(str(item.product_id), item.status)
    return statuses


def merge_items(
    purchase_order: PurchaseOrder, existing_purchase: Optional[Purchase] = None
) -> list[LineItem]:
    """Build one working line per order item, carrying forward purchase status."""
    if not purchase_order.items:
        return [LineItem.blank()]

    statuses = _status_by_product(existing_purchase)
    merged = [
        LineItem(
            product_id=po_item.product_id,
            quantity=po_item.quantity,
            unit_price=po_item.unit_price,
            unit_type=po_item.unit_type,
            status=statuses.get(str(po_item.product_id), LineItemStatus.NONE),
        )
        for po_item in purchase_order.items
    ]

    if existing_purchase is not None:
        po_products = {str(i.product_id) for i in purchase_order.items}
        dropped = [pid for pid in statuses if pid not in po_products]
        if dropped:
            logger.debug(
                "Dropping purchase lines not on order %s: %s",
                purchase_order.ref_num, dropped,
            )
    return merged


def resolve_items_for_reference(
    ref_num: Optional[str],
    purchase_orders: Sequence[PurchaseOrder],
    existing_purchase: Optional[Purchase] = None,
) -> list[LineItem]:
    """Working line items for the order referenced by *ref_num*."""
    po = find_purchase_order(ref_num, purchase_orders)
    if po is None:
        logger.debug("Reference %r matched no purchase order; using blank row", ref_num)
        return [LineItem.blank()]
    return merge_items(po, existing_purchase)


def on_reference_number_changed(
    new_ref: Optional[str],
    state: FormState,
    purchase_orders: Sequence[PurchaseOrder],
    existing_purchase: Optional[Purchase] = None,
) -> FormState:
    """
    Return the form state after the reference number changes to *new_ref*.

    Found:     items re-seeded, vendor taken from the order, invoice taken
               from the existing purchase, else the order's attachment.
    Not found: blank row, vendor / invoice / reference cleared.
    Remarks and received-by are left as the operator typed them.
    """
    po = find_purchase_order(new_ref, purchase_orders)
    if po is None:
        if new_ref:
            logger.info("Reference number %r not found among purchase orders", new_ref)
        return state.model_copy(update={
            "ref_num": "",
            "vendor": "",
            "invoice_file": None,
            "items": [LineItem.blank()],
        })

    if existing_purchase is not None and existing_purchase.invoice_file:
        invoice_file = existing_purchase.invoice_file
    elif po.attachment:
        invoice_file = po.attachment
    else:
        invoice_file = None

    return state.model_copy(update={
        "ref_num": po.ref_num,
        "vendor": po.vendor,
        "invoice_file": invoice_file,
        "items": merge_items(po, existing_purchase),
    })


def selectable_purchase_orders(
    purchase_orders: Iterable[PurchaseOrder],
    existing_purchase: Optional[Purchase] = None,
) -> list[PurchaseOrder]:
    """
    Orders offered in the reference dropdown.  Deleted orders never are;
    locked orders only when they are the one the edited purchase points at.
    """
    current_ref = existing_purchase.ref_num if existing_purchase else None
    return [
        po for po in purchase_orders
        if not po.is_deleted
        and (not po.is_purchased_created or po.ref_num == current_ref)
    ]
