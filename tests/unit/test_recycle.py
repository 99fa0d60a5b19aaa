"""
Unit tests for recycle-bin classification and projections.
"""
import pytest

from models.line_item import LineItem, LineItemStatus
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from models.sale import Sale
from procurement.pagination import Pagination
from procurement.recycle import (
    RecycleBin,
    extract_cancelled_items_from_purchases,
    extract_items_by_flag,
    flatten_flagged_items,
    purchase_order_actions,
    select_records,
)


@pytest.fixture
def purchases(sample_purchase) -> list[Purchase]:
    returned = Purchase(
        id="pur2", ref_num="DB-205", vendor="Sharma Hardware",
        items=[
            LineItem(product_id="P3", quantity=2, unit_price=1800, status=LineItemStatus.RETURNED),
            LineItem(product_id="P1", quantity=1, unit_price=350, status=LineItemStatus.CANCELLED),
        ],
    )
    clean = Purchase(id="pur3", ref_num="DB-300", items=[LineItem(product_id="P2", quantity=1, unit_price=65)])
    return [sample_purchase, returned, clean]


@pytest.mark.unit
class TestExtractByFlag:
    """Tests for per-purchase line filtering."""

    def test_every_kept_line_matches(self, purchases):
        for flag, value in [("isCancelled", True), ("isCancelled", False), ("isReturn", True)]:
            for purchase in extract_items_by_flag(purchases, flag, value):
                attr = "is_cancelled" if flag == "isCancelled" else "is_return"
                assert purchase.items
                assert all(getattr(i, attr) is value for i in purchase.items)

    def test_purchases_without_matches_dropped(self, purchases):
        cancelled = extract_cancelled_items_from_purchases(purchases)
        assert [p.id for p in cancelled] == ["pur1", "pur2"]

    def test_non_cancelled_view(self, purchases):
        visible = extract_cancelled_items_from_purchases(purchases, cancelled=False)
        assert [p.id for p in visible] == ["pur1", "pur2", "pur3"]
        assert [i.product_id for i in visible[0].items] == ["P2"]

    def test_sources_not_mutated(self, purchases):
        before = [p.model_copy(deep=True) for p in purchases]
        extract_items_by_flag(purchases, "isReturn", True)
        assert purchases == before

    def test_unknown_flag(self, purchases):
        with pytest.raises(ValueError, match="Unknown line flag"):
            extract_items_by_flag(purchases, "isLost", True)


@pytest.mark.unit
class TestFlatten:
    """Tests for the one-row-per-line report."""

    def test_cancelled_rows(self, purchases):
        rows = flatten_flagged_items(purchases)
        assert [(r.ref_num, r.product_id, r.total) for r in rows] == [
            ("DB-101", "P1", 3500),
            ("DB-205", "P1", 350),
        ]
        assert rows[0].receipt_number == "PUR-20240201-101500"

    def test_returned_rows(self, purchases):
        rows = flatten_flagged_items(purchases, "isReturn")
        assert len(rows) == 1
        assert rows[0].total == 3600

    def test_wire_names(self, purchases):
        row = flatten_flagged_items(purchases)[0].model_dump(by_alias=True)
        assert {"purchaseId", "receiptNumber", "productId", "unitPrice"} <= set(row)


@pytest.mark.unit
class TestPurchaseOrderActions:
    """Tests for the list-row action gating."""

    def test_open_order(self):
        assert purchase_order_actions(PurchaseOrder(ref_num="A")) == {
            "view": True, "edit": True, "delete": True,
        }

    def test_locked_order(self):
        actions = purchase_order_actions(PurchaseOrder(ref_num="A", is_purchased_created=True))
        assert actions == {"view": True, "edit": False, "delete": False}


@pytest.mark.unit
class TestRecycleBin:
    """Tests for the segmented recycle-bin view."""

    @pytest.fixture
    def bin(self) -> RecycleBin:
        return RecycleBin(
            purchase_orders=[PurchaseOrder(id="o1", ref_num="A"), PurchaseOrder(id="o2", ref_num="B")],
            purchases=[Purchase(id="p1", ref_num="A")],
            sales=[Sale(id="s1", customer="Site 4")],
        )

    def test_all_segment_order(self, bin):
        assert [(e, r.id) for e, r in bin.records()] == [
            ("purchaseOrder", "o1"), ("purchaseOrder", "o2"), ("purchase", "p1"), ("sale", "s1"),
        ]

    def test_single_segment(self, bin):
        assert [r.id for _, r in bin.records("sale")] == ["s1"]

    def test_unknown_segment(self, bin):
        with pytest.raises(ValueError):
            bin.records("invoices")

    def test_counts_from_lists(self, bin):
        assert bin.counts() == {"purchaseOrder": 2, "purchase": 1, "sale": 1, "all": 4}

    def test_counts_prefer_paging_totals(self, bin):
        bin.paging["purchaseOrder"] = Pagination.for_total(25, 1, 10)
        counts = bin.counts()
        assert counts["purchaseOrder"] == 25
        assert counts["all"] == 27

    def test_combined_pagination(self, bin):
        bin.paging = {
            "purchaseOrder": Pagination.for_total(25, 1, 10),
            "purchase": Pagination.for_total(5, 1, 10),
        }
        page = bin.pagination("all", page=2)
        assert page.pages == 3
        assert page.page == 2
        assert page.total == 25 + 5 + 1

    def test_select_records(self, bin):
        picked = select_records(bin.records(), ["o2", "s1", "zz"])
        assert [(e, r.id) for e, r in picked] == [("purchaseOrder", "o2"), ("sale", "s1")]
