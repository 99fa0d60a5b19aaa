"""
Unit tests for the purchase order to purchase merge resolver.
"""
import pytest

from models.line_item import LineItem, LineItemStatus
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from procurement.resolver import (
    FormState,
    find_purchase_order,
    merge_items,
    on_reference_number_changed,
    resolve_items_for_reference,
    selectable_purchase_orders,
)


@pytest.mark.unit
class TestMergeItems:
    """Tests for seeding lines from an order."""

    def test_fresh_purchase_has_no_flags(self, sample_purchase_orders):
        """Without an existing purchase every line starts active."""
        items = merge_items(sample_purchase_orders[0])
        assert len(items) == 2
        assert all(i.is_active for i in items)
        assert [i.product_id for i in items] == ["P1", "P2"]
        assert items[0].unit_price == 350

    def test_statuses_carried_from_existing_purchase(self, sample_purchase_orders, sample_purchase):
        items = merge_items(sample_purchase_orders[0], sample_purchase)
        by_product = {i.product_id: i for i in items}
        assert by_product["P1"].is_cancelled
        assert by_product["P2"].is_active

    def test_order_drives_the_merge(self, sample_purchase_orders):
        """Purchase lines missing from the order are dropped."""
        purchase = Purchase(ref_num="DB-101", items=[
            LineItem(product_id="P1", status=LineItemStatus.RETURNED),
            LineItem(product_id="P7", status=LineItemStatus.CANCELLED),
        ])
        items = merge_items(sample_purchase_orders[0], purchase)
        assert [i.product_id for i in items] == ["P1", "P2"]
        assert items[0].is_return

    def test_order_quantities_win(self, sample_purchase_orders):
        purchase = Purchase(ref_num="DB-101", items=[
            LineItem(product_id="P1", quantity=1, unit_price=1, status=LineItemStatus.CANCELLED),
        ])
        item = merge_items(sample_purchase_orders[0], purchase)[0]
        assert item.quantity == 10
        assert item.unit_price == 350

    def test_first_duplicate_product_wins(self):
        po = PurchaseOrder(ref_num="X", vendor="V", items=[LineItem(product_id="A", quantity=1)])
        purchase = Purchase(ref_num="X", items=[
            LineItem(product_id="A", status=LineItemStatus.RETURNED),
            LineItem(product_id="A", status=LineItemStatus.CANCELLED),
        ])
        assert merge_items(po, purchase)[0].is_return

    def test_order_without_items_gives_blank_row(self):
        items = merge_items(PurchaseOrder(ref_num="EMPTY", vendor="V"))
        assert items == [LineItem.blank()]


@pytest.mark.unit
class TestResolveReference:
    """Tests for reference lookups."""

    def test_unknown_reference_gives_blank_row(self, sample_purchase_orders):
        assert resolve_items_for_reference("NOPE", sample_purchase_orders) == [LineItem.blank()]

    def test_empty_reference(self, sample_purchase_orders):
        assert find_purchase_order("", sample_purchase_orders) is None
        assert find_purchase_order(None, sample_purchase_orders) is None

    def test_exact_match_only(self, sample_purchase_orders):
        assert find_purchase_order("db-101", sample_purchase_orders) is None
        assert find_purchase_order("DB-101", sample_purchase_orders).id == "po1"

    def test_resolving_twice_gives_equal_lists(self, sample_purchase_orders):
        first = resolve_items_for_reference("DB-101", sample_purchase_orders)
        second = resolve_items_for_reference("DB-101", sample_purchase_orders)
        assert first == second
        assert first is not second

    def test_resolving_twice_with_existing_purchase(self, sample_purchase_orders, sample_purchase):
        first = resolve_items_for_reference("DB-101", sample_purchase_orders, sample_purchase)
        second = resolve_items_for_reference("DB-101", sample_purchase_orders, sample_purchase)
        assert first == second
        assert first[0].is_cancelled


@pytest.mark.unit
class TestReferenceChanged:
    """Tests for the form fields a reference change rewrites."""

    def test_found_fills_vendor_and_attachment(self, sample_purchase_orders):
        state = FormState(remarks="deliver to gate 2", received_by="Ravi")
        new = on_reference_number_changed("DB-101", state, sample_purchase_orders)
        assert new.ref_num == "DB-101"
        assert new.vendor == "Acme Building Supplies Pvt Ltd"
        assert new.invoice_file == "po-101.pdf"
        assert new.remarks == "deliver to gate 2"
        assert new.received_by == "Ravi"
        assert len(new.items) == 2

    def test_existing_invoice_beats_attachment(self, sample_purchase_orders, sample_purchase):
        new = on_reference_number_changed(
            "DB-101", FormState(), sample_purchase_orders, sample_purchase
        )
        assert new.invoice_file == "acme-inv-77.pdf"

    def test_no_invoice_anywhere(self, sample_purchase_orders):
        new = on_reference_number_changed("DB-102", FormState(), sample_purchase_orders)
        assert new.invoice_file is None

    def test_not_found_clears_fields(self, sample_purchase_orders):
        state = FormState(ref_num="DB-101", vendor="Acme", invoice_file="x.pdf", remarks="keep")
        new = on_reference_number_changed("DB-404", state, sample_purchase_orders)
        assert new.ref_num == ""
        assert new.vendor == ""
        assert new.invoice_file is None
        assert new.items == [LineItem.blank()]
        assert new.remarks == "keep"

    def test_input_state_untouched(self, sample_purchase_orders):
        state = FormState()
        on_reference_number_changed("DB-101", state, sample_purchase_orders)
        assert state.ref_num == ""
        assert state.items == [LineItem.blank()]


@pytest.mark.unit
class TestSelectableOrders:
    """Tests for the reference dropdown options."""

    def test_new_purchase_hides_locked_and_deleted(self, sample_purchase_orders):
        refs = [po.ref_num for po in selectable_purchase_orders(sample_purchase_orders)]
        assert refs == ["DB-101"]

    def test_edit_keeps_own_locked_order(self, sample_purchase_orders):
        purchase = Purchase(ref_num="DB-102")
        refs = [po.ref_num for po in selectable_purchase_orders(sample_purchase_orders, purchase)]
        assert refs == ["DB-101", "DB-102"]
