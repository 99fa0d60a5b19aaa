"""
Unit tests for the purchase form session.
"""
import json

import pytest

from models.line_item import LineItem
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from procurement.form import FormClosed, PurchaseForm


@pytest.mark.unit
class TestSeeding:
    """Tests for when working lines are (re)seeded."""

    def test_new_form_starts_blank(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        assert not form.is_editing
        assert form.items == [LineItem.blank()]
        assert form.reference_options() == ["DB-101"]

    def test_edit_form_seeds_from_order(self, sample_purchase_orders, sample_products, sample_purchase):
        form = PurchaseForm(sample_purchase_orders, sample_products, sample_purchase)
        assert form.state.ref_num == "DB-101"
        assert form.items[0].is_cancelled
        assert form.totals.cancelled_total == 3500
        assert form.totals.grand_total == 13000

    def test_edit_with_missing_order_keeps_purchase_lines(self, sample_products, sample_purchase):
        form = PurchaseForm([], sample_products, sample_purchase)
        assert form.state.ref_num == "DB-101"
        assert [i.product_id for i in form.items] == ["P1", "P2"]
        assert form.items[0].is_cancelled

    def test_reselecting_same_reference_keeps_edits(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        form.select_reference("DB-101")
        form.set_status(1, "cancelled")
        form.update_item(0, quantity=3)
        form.select_reference("DB-101")
        assert form.items[0].quantity == 3
        assert form.items[1].is_cancelled

    def test_selecting_blank_reference_on_blank_form_keeps_edits(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        form.update_item(0, quantity=7)
        form.add_item()
        form.select_reference("")
        assert len(form.items) == 2
        assert form.items[0].quantity == 7

    def test_refresh_does_not_reseed(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        form.select_reference("DB-101")
        form.update_item(0, quantity=7)

        changed = [po.model_copy(update={"items": [LineItem(product_id="P3", quantity=1)]})
                   for po in sample_purchase_orders]
        form.refresh_purchase_orders(changed)

        assert form.items[0].quantity == 7
        assert len(form.items) == 2

    def test_changing_reference_reseeds(self, sample_products):
        orders = [
            PurchaseOrder(ref_num="A-1", vendor="V1", items=[LineItem(product_id="P1", quantity=1)]),
            PurchaseOrder(ref_num="A-2", vendor="V2", items=[
                LineItem(product_id="P2", quantity=2), LineItem(product_id="P3", quantity=3),
            ]),
        ]
        form = PurchaseForm(orders, sample_products)
        form.select_reference("A-1")
        form.set_status(0, "returned")
        form.select_reference("A-2")
        assert form.state.vendor == "V2"
        assert [i.product_id for i in form.items] == ["P2", "P3"]
        assert all(i.is_active for i in form.items)


@pytest.mark.unit
class TestLineEdits:
    """Tests for add / remove / product selection."""

    def test_remove_last_line_refused(self, sample_purchase_orders):
        form = PurchaseForm(sample_purchase_orders)
        with pytest.raises(ValueError, match="At least one item"):
            form.remove_item(0)

    def test_add_then_remove(self, sample_purchase_orders):
        form = PurchaseForm(sample_purchase_orders)
        form.add_item()
        assert len(form.items) == 2
        form.remove_item(1)
        assert len(form.items) == 1

    def test_select_product_uses_catalog(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        item = form.select_product(0, "P3")
        assert item.unit_price == 1800
        assert item.unit_type == "Ton"

    def test_select_unknown_product(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        with pytest.raises(KeyError):
            form.select_product(0, "P404")


@pytest.mark.unit
class TestLateResponses:
    """Tests for request tokens and close()."""

    def test_latest_request_applies(self, sample_purchase_orders):
        form = PurchaseForm(sample_purchase_orders)
        token = form.begin_request()
        assert form.apply_response(token, lambda f: f.select_reference("DB-101"))
        assert form.state.ref_num == "DB-101"

    def test_stale_request_dropped(self, sample_purchase_orders):
        form = PurchaseForm(sample_purchase_orders)
        first = form.begin_request()
        form.begin_request()
        calls = []
        assert form.apply_response(first, calls.append) is False
        assert calls == []

    def test_closed_form_drops_responses(self, sample_purchase_orders):
        form = PurchaseForm(sample_purchase_orders)
        token = form.begin_request()
        form.close()
        calls = []
        assert form.apply_response(token, calls.append) is False
        assert calls == []
        with pytest.raises(FormClosed):
            form.add_item()


@pytest.mark.unit
class TestSubmission:
    """Tests for building the multipart fields."""

    def test_new_purchase_submission(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        form.select_reference("DB-101")
        form.set_status(0, "cancelled")
        fields = form.build_submission(purchase_date="2024-03-01T00:00:00+00:00")

        assert fields["ref_num"] == "DB-101"
        assert fields["receiptNumber"].startswith("PUR-")
        assert fields["purchaseDate"] == "2024-03-01T00:00:00+00:00"
        assert float(fields["total"]) == 13000
        assert float(fields["cancelledTotal"]) == 3500
        items = json.loads(fields["items"])
        assert items[0]["productName"] == "Cement 50kg"
        assert items[0]["isCancelled"] is True
        assert items[1]["total"] == 13000

    def test_edit_keeps_receipt_number_and_date(self, sample_purchase_orders, sample_products, sample_purchase):
        form = PurchaseForm(sample_purchase_orders, sample_products, sample_purchase)
        fields = form.build_submission()
        assert fields["receiptNumber"] == "PUR-20240201-101500"
        assert fields["purchaseDate"] == "2024-02-01T10:15:00+00:00"
        assert fields["invoiceFile"] == "acme-inv-77.pdf"

    def test_validate_blank_form(self, sample_purchase_orders):
        issues = PurchaseForm(sample_purchase_orders).validate()
        fields = {i.field for i in issues}
        assert {"ref_num", "vendor", "items[0].productId", "items[0].unitType"} <= fields

    def test_validate_seeded_form(self, sample_purchase_orders, sample_products):
        form = PurchaseForm(sample_purchase_orders, sample_products)
        form.select_reference("DB-101")
        assert form.validate() == []
