"""
Submission payloads for purchases.

The purchase form submits multipart form fields; ``items`` travels as a
JSON array.  Product names and per-line totals are resolved from the
product catalog at submission time, never kept on the working lines.
"""
import json
import logging
from datetime import datetime
from typing import Iterable, Mapping, Optional

from models.catalog import Product
from models.line_item import LineItem

from .resolver import FormState
from .totals import compute_totals

logger = logging.getLogger(__name__)


def generate_receipt_number(now: Optional[datetime] = None) -> str:
    """PUR-YYYYMMDD-HHMMSS"""
    now = now or datetime.now()
    return now.strftime("PUR-%Y%m%d-%H%M%S")


def _catalog_index(products: Iterable[Product]) -> dict[str, Product]:
    return {str(p.id): p for p in products}


def submission_items(
    items: Iterable[LineItem], products: Iterable[Product]
) -> list[dict]:
    """Wire dicts for *items* with productName and total filled in."""
    catalog = _catalog_index(products)
    out: list[dict] = []
    for item in items:
        product = catalog.get(str(item.product_id))
        if product is None and item.product_id:
            logger.warning("Product %s not found in catalog; name left blank", item.product_id)
        out.append({
            "productId": str(item.product_id),
            "productName": product.name if product else (item.product_name or ""),
            "quantity": item.quantity,
            "unitPrice": item.unit_price,
            "unitType": item.unit_type,
            "total": item.line_total,
            "isCancelled": item.is_cancelled,
            "isReturn": item.is_return,
        })
    return out


def build_purchase_submission(
    state: FormState,
    products: Iterable[Product],
    purchase_date: str,
    receipt_number: str,
) -> dict[str, str]:
    """
    Multipart form fields for creating / updating a purchase.

    ``total`` is the grand total, which equals the subtotal.  The invoice
    file itself is attached separately by the caller.
    """
    totals = compute_totals(state.items)
    fields = {
        "ref_num": state.ref_num,
        "receiptNumber": receipt_number,
        "vendor": state.vendor,
        "purchaseDate": purchase_date,
        "subtotal": str(totals.subtotal),
        "cancelledTotal": str(totals.cancelled_total),
        "returnTotal": str(totals.return_total),
        "total": str(totals.grand_total),
        "receivedBy": state.received_by or "",
        "remarks": state.remarks or "",
        "items": json.dumps(submission_items(state.items, products)),
    }
    if state.invoice_file:
        fields["invoiceFile"] = state.invoice_file
    return fields


def parse_items_field(raw: Optional[str]) -> list[LineItem]:
    """Decode the JSON ``items`` form field back into line items."""
    if not raw:
        return []
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"items is not valid JSON: {exc}") from exc
    if not isinstance(decoded, list):
        raise ValueError("items must be a JSON array")
    return [LineItem.model_validate(entry) for entry in decoded]


def enrich_items(items: Iterable[LineItem], products: Mapping[str, Product]) -> list[LineItem]:
    """Fill in catalog product names on lines that do not carry one."""
    enriched: list[LineItem] = []
    for item in items:
        product = products.get(str(item.product_id))
        if product is not None and not item.product_name:
            item = item.model_copy(update={"product_name": product.name})
        enriched.append(item)
    return enriched
