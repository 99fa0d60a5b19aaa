"""
Purchase form session.

Holds the working state of one open "Record / Edit Purchase" form: the
selected reference, the working line items and the derived totals.  Line
items are seeded from the selected Purchase Order only when the reference
actually changes (or on open); refreshing the order list never overwrites
edits in progress.

Network results arrive after the request that asked for them.  Each request
takes a token from begin_request(); apply_response() drops a result whose
token is stale or whose form has been closed.
"""
import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from models.catalog import Product
from models.line_item import LineItem, Totals
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from models.result import ValidationIssue

from .payload import build_purchase_submission, generate_receipt_number
from .resolver import (
    FormState,
    find_purchase_order,
    on_reference_number_changed,
    selectable_purchase_orders,
)
from .status import edit_item, select_product, set_item_status
from .totals import compute_totals
from .validator import PurchaseValidator

logger = logging.getLogger(__name__)


class FormClosed(RuntimeError):
    """Raised when an edit is attempted on a form that has been closed."""


class PurchaseForm:
    def __init__(
        self,
        purchase_orders: Sequence[PurchaseOrder],
        products: Sequence[Product] = (),
        existing_purchase: Optional[Purchase] = None,
    ):
        self.purchase_orders = list(purchase_orders)
        self.products = list(products)
        self.existing_purchase = existing_purchase
        self.is_open = True
        self._tokens = itertools.count(1)
        self._current_token = 0
        self._lock = threading.Lock()
        self.state = self._initial_state()

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def _initial_state(self) -> FormState:
        purchase = self.existing_purchase
        if purchase is None:
            return FormState.empty()

        base = FormState(
            ref_num=purchase.ref_num,
            vendor=purchase.vendor,
            invoice_file=purchase.invoice_file,
            remarks=purchase.remarks or "",
            received_by=purchase.received_by or "",
            items=[item.model_copy() for item in purchase.items] or [LineItem.blank()],
        )
        if find_purchase_order(purchase.ref_num, self.purchase_orders) is None:
            logger.info(
                "Order %r for purchase %s is not available; editing the purchase's own lines",
                purchase.ref_num, purchase.id,
            )
            return base
        return on_reference_number_changed(
            purchase.ref_num, base, self.purchase_orders, purchase
        )

    @property
    def is_editing(self) -> bool:
        return self.existing_purchase is not None

    @property
    def items(self) -> list[LineItem]:
        return self.state.items

    @property
    def totals(self) -> Totals:
        return compute_totals(self.state.items)

    def reference_options(self) -> list[str]:
        return [
            po.ref_num
            for po in selectable_purchase_orders(self.purchase_orders, self.existing_purchase)
        ]

    def _ensure_open(self) -> None:
        if not self.is_open:
            raise FormClosed("The purchase form has been closed")

    def select_reference(self, ref_num: str) -> FormState:
        """Re-seed from the order for *ref_num*, unless it is already selected."""
        self._ensure_open()
        if ref_num == self.state.ref_num:
            return self.state
        self.state = on_reference_number_changed(
            ref_num, self.state, self.purchase_orders, self.existing_purchase
        )
        return self.state

    def refresh_purchase_orders(self, purchase_orders: Sequence[PurchaseOrder]) -> None:
        """Replace the order list without touching the working lines."""
        self.purchase_orders = list(purchase_orders)

    # ------------------------------------------------------------------
    # Line edits
    # ------------------------------------------------------------------

    def set_status(self, index: int, status: Any) -> Totals:
        self._ensure_open()
        items, totals = set_item_status(self.state.items, index, status)
        self.state = self.state.model_copy(update={"items": items})
        return totals

    def _replace_item(self, index: int, item: LineItem) -> None:
        items = list(self.state.items)
        items[index] = item
        self.state = self.state.model_copy(update={"items": items})

    def update_item(self, index: int, **changes: Any) -> LineItem:
        self._ensure_open()
        item = edit_item(self.state.items[index], **changes)
        self._replace_item(index, item)
        return item

    def select_product(self, index: int, product_id: str) -> LineItem:
        self._ensure_open()
        product = next((p for p in self.products if str(p.id) == str(product_id)), None)
        if product is None and product_id:
            raise KeyError(f"Unknown product: {product_id}")
        item = select_product(self.state.items[index], product)
        self._replace_item(index, item)
        return item

    def add_item(self) -> None:
        self._ensure_open()
        self.state = self.state.model_copy(
            update={"items": [*self.state.items, LineItem.blank()]}
        )

    def remove_item(self, index: int) -> None:
        """Remove a line.  The last remaining line cannot be removed."""
        self._ensure_open()
        if len(self.state.items) <= 1:
            raise ValueError("At least one item is required")
        items = list(self.state.items)
        del items[index]
        self.state = self.state.model_copy(update={"items": items})

    def set_remarks(self, remarks: str) -> None:
        self._ensure_open()
        self.state = self.state.model_copy(update={"remarks": remarks})

    def set_received_by(self, received_by: str) -> None:
        self._ensure_open()
        self.state = self.state.model_copy(update={"received_by": received_by})

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def validate(self) -> list[ValidationIssue]:
        return PurchaseValidator().validate(self.state)

    def build_submission(self, purchase_date: Optional[str] = None) -> dict[str, str]:
        """
        Multipart fields for the current state.  Editing keeps the existing
        receipt number and purchase date.
        """
        purchase = self.existing_purchase
        if purchase is not None:
            receipt_number = purchase.receipt_number or generate_receipt_number()
            date = purchase.purchase_date or purchase_date
        else:
            receipt_number = generate_receipt_number()
            date = purchase_date
        date = date or datetime.now(timezone.utc).isoformat()
        return build_purchase_submission(self.state, self.products, date, receipt_number)

    # ------------------------------------------------------------------
    # Late responses
    # ------------------------------------------------------------------

    def begin_request(self) -> int:
        with self._lock:
            self._current_token = next(self._tokens)
            return self._current_token

    def apply_response(self, token: int, apply: Callable[["PurchaseForm"], Any]) -> bool:
        """
        Run *apply* against this form only if it is still open and *token*
        belongs to the latest request.  Returns whether it was applied.
        """
        with self._lock:
            current = self.is_open and token == self._current_token
        if not current:
            logger.debug("Dropping late response for request %d", token)
            return False
        apply(self)
        return True

    def close(self) -> None:
        with self._lock:
            self.is_open = False
            self._current_token = 0
