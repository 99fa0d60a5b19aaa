"""
Recycle-bin classification.

Two read-only projections over purchases:

  - filter each purchase's lines by a status flag, dropping purchases left
    with no lines (Cancelled Items screen, and the main Purchases table
    which hides cancelled lines)
  - flatten the flagged lines of many purchases into one report row per line

and the RecycleBin view over soft-deleted purchase orders, purchases and
sales, segmented by entity type.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence, Union

from models.line_item import LineItem
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from models.result import FlaggedItemRow
from models.sale import Sale

from .pagination import Pagination

logger = logging.getLogger(__name__)

FlagName = Literal["isCancelled", "isReturn"]

_FLAG_ATTRS = {
    "isCancelled": "is_cancelled",
    "is_cancelled": "is_cancelled",
    "isReturn": "is_return",
    "is_return": "is_return",
}

ENTITY_PURCHASE_ORDER = "purchaseOrder"
ENTITY_PURCHASE = "purchase"
ENTITY_SALE = "sale"
ENTITY_TYPES = (ENTITY_PURCHASE_ORDER, ENTITY_PURCHASE, ENTITY_SALE)
SEGMENT_ALL = "all"

RecycledRecord = Union[PurchaseOrder, Purchase, Sale]


def _flag_attr(flag_name: str) -> str:
    try:
        return _FLAG_ATTRS[flag_name]
    except KeyError:
        raise ValueError(
            f"Unknown line flag {flag_name!r}. Must be 'isCancelled' or 'isReturn'"
        ) from None


def _item_matches(item: LineItem, attr: str, flag_value: bool) -> bool:
    return getattr(item, attr) is bool(flag_value)


def extract_items_by_flag(
    purchases: Iterable[Purchase], flag_name: str, flag_value: bool
) -> list[Purchase]:
    """
    Keep only the lines whose *flag_name* equals *flag_value*.

    Purchases with no remaining lines are left out of the result.  Source
    purchases are not modified; each result is a copy with a new item list.
    """
    attr = _flag_attr(flag_name)
    result: list[Purchase] = []
    for purchase in purchases:
        kept = [item for item in purchase.items if _item_matches(item, attr, flag_value)]
        if kept:
            result.append(purchase.model_copy(update={"items": kept}))
    return result


def extract_cancelled_items_from_purchases(
    purchases: Iterable[Purchase], cancelled: bool = True
) -> list[Purchase]:
    """Cancelled lines (True) or the non-cancelled view of purchases (False)."""
    return extract_items_by_flag(purchases, "isCancelled", cancelled)


def flatten_flagged_items(
    purchases: Iterable[Purchase], flag_name: str = "isCancelled"
) -> list[FlaggedItemRow]:
    """One report row per flagged line across all *purchases*."""
    rows: list[FlaggedItemRow] = []
    for purchase in extract_items_by_flag(purchases, flag_name, True):
        for item in purchase.items:
            rows.append(FlaggedItemRow(
                purchase_id=purchase.id,
                ref_num=purchase.ref_num,
                receipt_number=purchase.receipt_number,
                vendor=purchase.vendor,
                purchase_date=purchase.purchase_date,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity or 0.0,
                unit_price=item.unit_price or 0.0,
                unit_type=item.unit_type,
                total=item.line_total,
            ))
    return rows


def purchase_order_actions(po: PurchaseOrder) -> dict[str, bool]:
    """
    Which row actions the Purchase Orders list enables for *po*.

    Advisory on the client; the bundled store enforces the same lock.
    """
    locked = po.is_purchased_created
    return {
        "view": True,
        "edit": not locked and not po.is_deleted,
        "delete": not locked and not po.is_deleted,
    }


@dataclass
class RecycleBin:
    """
    Soft-deleted records grouped by entity type, with the paging metadata
    each segment's list call returned.
    """
    purchase_orders: list[PurchaseOrder] = field(default_factory=list)
    purchases: list[Purchase] = field(default_factory=list)
    sales: list[Sale] = field(default_factory=list)
    paging: dict[str, Pagination] = field(default_factory=dict)

    def records(self, segment: str = SEGMENT_ALL) -> list[tuple[str, RecycledRecord]]:
        """(entity_type, record) pairs for *segment*, purchase orders first."""
        if segment != SEGMENT_ALL and segment not in ENTITY_TYPES:
            raise ValueError(f"Unknown recycle-bin segment {segment!r}")
        out: list[tuple[str, RecycledRecord]] = []
        if segment in (SEGMENT_ALL, ENTITY_PURCHASE_ORDER):
            out.extend((ENTITY_PURCHASE_ORDER, r) for r in self.purchase_orders)
        if segment in (SEGMENT_ALL, ENTITY_PURCHASE):
            out.extend((ENTITY_PURCHASE, r) for r in self.purchases)
        if segment in (SEGMENT_ALL, ENTITY_SALE):
            out.extend((ENTITY_SALE, r) for r in self.sales)
        return out

    def _segment_total(self, entity: str) -> int:
        paging = self.paging.get(entity)
        if paging is not None:
            return paging.total
        return len({
            ENTITY_PURCHASE_ORDER: self.purchase_orders,
            ENTITY_PURCHASE: self.purchases,
            ENTITY_SALE: self.sales,
        }[entity])

    def counts(self) -> dict[str, int]:
        counts = {entity: self._segment_total(entity) for entity in ENTITY_TYPES}
        counts[SEGMENT_ALL] = sum(counts.values())
        return counts

    def pagination(self, segment: str, page: int = 1, limit: int = 10) -> Pagination:
        """
        Paging for *segment*.  The combined segment pages as far as the
        longest entity list and totals all three.
        """
        if segment != SEGMENT_ALL:
            return self.paging.get(segment) or Pagination.for_total(
                self._segment_total(segment), page, limit
            )
        pages = max([p.pages for p in self.paging.values()] or [1])
        return Pagination(
            page=page,
            pages=max(pages, 1),
            total=self.counts()[SEGMENT_ALL],
            limit=limit,
        )


def select_records(
    records: Sequence[tuple[str, RecycledRecord]], ids: Iterable[str]
) -> list[tuple[str, RecycledRecord]]:
    """The (entity_type, record) pairs whose id is in *ids*, for bulk actions."""
    wanted = set(ids)
    return [(entity, record) for entity, record in records if record.id in wanted]
