"""
Integration tests for database operations.
"""
import json

import pytest

from models.catalog import Customer, Product
from models.line_item import LineItem, LineItemStatus
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from models.sale import Sale
from procurement.database import DuplicateReference, PurchaseOrderLocked, RecordNotFound
from procurement.po_loader import import_all


def _order(ref_num: str = "DB-101", **kwargs) -> PurchaseOrder:
    return PurchaseOrder(
        ref_num=ref_num,
        vendor=kwargs.pop("vendor", "Acme"),
        items=kwargs.pop("items", [LineItem(product_id="P1", quantity=2, unit_price=100, unit_type="Bag")]),
        **kwargs,
    )


def _purchase(ref_num: str = "DB-101", total: float = 200) -> Purchase:
    return Purchase(
        ref_num=ref_num,
        vendor="Acme",
        receipt_number=f"PUR-{ref_num}",
        purchase_date="2024-02-01T10:00:00+00:00",
        items=[LineItem(product_id="P1", quantity=2, unit_price=100, unit_type="Bag")],
        subtotal=total,
        total=total,
    )


@pytest.mark.integration
class TestCatalog:
    """Integration tests for products, suppliers and customers."""

    def test_product_crud(self, test_db):
        saved = test_db.save_product(Product(id="P1", name="Cement", purchase_rate=350))
        assert test_db.get_product("P1") == saved

        test_db.save_product(saved.model_copy(update={"purchase_rate": 360}))
        assert test_db.get_product("P1").purchase_rate == 360

        assert test_db.delete_product("P1")
        assert not test_db.delete_product("P1")
        assert test_db.get_product("P1") is None

    def test_search_and_paging(self, test_db):
        for i in range(12):
            test_db.save_customer(Customer(id=f"C{i}", name=f"Site {i}", email=f"site{i}@example.com"))
        test_db.save_customer(Customer(id="X", name="Head Office"))

        page, total = test_db.list_customers(search="site", limit=5, offset=5)
        assert total == 12
        assert len(page) == 5

        everything, total = test_db.list_customers()
        assert total == 13
        assert len(everything) == 13

    def test_newest_first(self, test_db):
        test_db.save_product(Product(id="A", name="First"))
        test_db.save_product(Product(id="B", name="Second"))
        products, _ = test_db.list_products()
        assert [p.id for p in products] == ["B", "A"]


@pytest.mark.integration
class TestPurchaseOrderLock:
    """Integration tests for the purchase -> order lock."""

    def test_create_assigns_id(self, test_db):
        po = test_db.save_purchase_order(_order())
        assert po.id
        assert test_db.get_purchase_order_by_ref("DB-101").id == po.id

    def test_purchase_locks_order(self, test_db):
        po = test_db.save_purchase_order(_order())
        purchase = test_db.create_purchase(_purchase())

        assert purchase.id
        assert test_db.get_purchase_order(po.id).is_purchased_created
        with pytest.raises(PurchaseOrderLocked):
            test_db.save_purchase_order(po.model_copy(update={"vendor": "Other"}))
        with pytest.raises(PurchaseOrderLocked):
            test_db.soft_delete("purchaseOrder", po.id)

    def test_second_purchase_refused(self, test_db):
        test_db.save_purchase_order(_order())
        test_db.create_purchase(_purchase())
        with pytest.raises(PurchaseOrderLocked) as exc_info:
            test_db.create_purchase(_purchase())
        assert exc_info.value.ref_num == "DB-101"

    def test_purchase_needs_live_order(self, test_db):
        with pytest.raises(RecordNotFound):
            test_db.create_purchase(_purchase("DB-404"))
        po = test_db.save_purchase_order(_order("DB-5"))
        test_db.soft_delete("purchaseOrder", po.id)
        with pytest.raises(RecordNotFound):
            test_db.create_purchase(_purchase("DB-5"))

    def test_update_keeps_store_flags(self, test_db):
        po = test_db.save_purchase_order(_order())
        test_db.save_purchase_order(po.model_copy(update={"is_purchased_created": True, "status": "approved"}))
        stored = test_db.get_purchase_order(po.id)
        assert stored.status == "approved"
        assert not stored.is_purchased_created

    def test_moving_purchase_moves_lock(self, test_db):
        first = test_db.save_purchase_order(_order("DB-1"))
        second = test_db.save_purchase_order(_order("DB-2"))
        purchase = test_db.create_purchase(_purchase("DB-1"))

        test_db.update_purchase(purchase.id, purchase.model_copy(update={"ref_num": "DB-2"}))

        assert not test_db.get_purchase_order(first.id).is_purchased_created
        assert test_db.get_purchase_order(second.id).is_purchased_created

    def test_update_same_order(self, test_db):
        test_db.save_purchase_order(_order())
        purchase = test_db.create_purchase(_purchase())
        changed = purchase.model_copy(update={"remarks": "short by 2 bags"})
        assert test_db.update_purchase(purchase.id, changed).remarks == "short by 2 bags"
        assert test_db.get_purchase_order_by_ref("DB-101").is_purchased_created

    def test_update_missing_purchase(self, test_db):
        with pytest.raises(RecordNotFound):
            test_db.update_purchase("nope", _purchase())


@pytest.mark.integration
class TestRecycleBin:
    """Integration tests for soft delete / restore / purge."""

    def test_soft_delete_and_restore(self, test_db):
        sale = test_db.save_sale(Sale(customer="Site 4", total=500))

        assert test_db.soft_delete("sale", sale.id)
        assert not test_db.soft_delete("sale", sale.id)
        assert test_db.list_sales()[1] == 0
        assert test_db.list_sales(deleted=True)[1] == 1
        assert test_db.recycle_bin_counts() == {"purchaseOrder": 0, "purchase": 0, "sale": 1, "all": 1}

        assert test_db.restore("sale", sale.id)
        assert not test_db.restore("sale", sale.id)
        assert test_db.list_sales()[1] == 1

    def test_purge_requires_soft_delete(self, test_db):
        sale = test_db.save_sale(Sale(customer="Site 4"))
        with pytest.raises(ValueError):
            test_db.purge("sale", sale.id)
        test_db.soft_delete("sale", sale.id)
        assert test_db.purge("sale", sale.id)
        assert test_db.get_sale(sale.id) is None

    def test_purging_purchase_releases_order(self, test_db):
        po = test_db.save_purchase_order(_order())
        purchase = test_db.create_purchase(_purchase())

        test_db.soft_delete("purchase", purchase.id)
        assert test_db.get_purchase_order(po.id).is_purchased_created

        test_db.purge("purchase", purchase.id)
        assert not test_db.get_purchase_order(po.id).is_purchased_created
        test_db.create_purchase(_purchase())

    def test_restore_refuses_reused_db_number(self, test_db):
        old = test_db.save_purchase_order(_order("DB-7"))
        test_db.soft_delete("purchaseOrder", old.id)
        new = test_db.save_purchase_order(_order("DB-7", vendor="Other"))

        with pytest.raises(DuplicateReference):
            test_db.restore("purchaseOrder", old.id)
        assert test_db.get_purchase_order(old.id).is_deleted
        assert test_db.get_purchase_order_by_ref("DB-7").id == new.id

        test_db.soft_delete("purchaseOrder", new.id)
        assert test_db.restore("purchaseOrder", old.id)

    def test_unknown_entity(self, test_db):
        with pytest.raises(ValueError):
            test_db.soft_delete("invoice", "x")

    def test_missing_record(self, test_db):
        with pytest.raises(RecordNotFound):
            test_db.restore("purchase", "missing")


@pytest.mark.integration
class TestStatsAndAudit:
    """Integration tests for reporting and the audit trail."""

    def test_stats(self, test_db, sample_products):
        for product in sample_products:
            test_db.save_product(product)
        test_db.save_purchase_order(_order("DB-1", status="approved"))
        test_db.save_purchase_order(_order("DB-2"))
        test_db.create_purchase(_purchase("DB-1", total=200))
        test_db.save_sale(Sale(customer="Site 4", total=75))

        stats = test_db.get_stats()
        assert stats["products"] == {"total": 3, "out_of_stock": 1, "low_stock": 1}
        assert stats["purchase_orders"]["total"] == 2
        assert stats["purchase_orders"]["approved"] == 1
        assert stats["purchase_orders"]["locked"] == 1
        assert stats["purchases"]["count"] == 1
        assert stats["purchases"]["total"] == 200
        assert stats["purchases"]["last_purchase"] == "2024-02-01T10:00:00+00:00"
        assert stats["sales"] == {"count": 1, "total": 75}
        assert stats["recycle_bin"]["all"] == 0

    def test_audit_trail(self, test_db):
        po = test_db.save_purchase_order(_order(), actor="manager")
        purchase = test_db.create_purchase(_purchase(), actor="manager")
        test_db.soft_delete("purchase", purchase.id, actor="admin")

        actions = [e["action"] for e in test_db.get_audit_log(po.id)]
        assert actions == ["created", "locked"]

        entries = test_db.get_audit_log(purchase.id)
        assert [(e["action"], e["actor"]) for e in entries] == [("created", "manager"), ("deleted", "admin")]
        assert json.loads(entries[0]["detail"])["ref_num"] == "DB-101"

        recent = test_db.get_recent_audit_log(limit=1)
        assert recent[0]["action"] == "deleted"


@pytest.mark.integration
class TestImport:
    """Integration tests for CSV import into the store."""

    def test_import_all(
        self, test_db, sample_suppliers_csv, sample_products_csv, sample_po_csv, sample_po_lines_csv
    ):
        summary = import_all(
            test_db, sample_suppliers_csv, sample_products_csv, sample_po_csv, sample_po_lines_csv
        )
        assert (summary.suppliers, summary.products, summary.purchase_orders) == (3, 3, 3)
        assert summary.unmatched_vendors == ["Unknown Traders Co"]
        po = test_db.get_purchase_order_by_ref("DB-101")
        assert po.vendor == "Acme Building Supplies Pvt Ltd"
        assert len(po.items) == 2

    def test_reimport_updates_and_skips_locked(
        self, test_db, sample_suppliers_csv, sample_products_csv, sample_po_csv, sample_po_lines_csv
    ):
        paths = (sample_suppliers_csv, sample_products_csv, sample_po_csv, sample_po_lines_csv)
        import_all(test_db, *paths)
        test_db.create_purchase(_purchase("DB-101"))

        summary = import_all(test_db, *paths)

        assert summary.skipped_locked == ["DB-101"]
        assert summary.purchase_orders == 2
        assert test_db.list_purchase_orders()[1] == 3
