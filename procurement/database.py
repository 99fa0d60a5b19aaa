"""
SQLite persistence layer for the procurement console.

A single database file (data/console.db) holds the catalog (products,
suppliers, customers) and the transactional records (purchase orders,
purchases, sales).  Each row keeps:

  - a handful of denormalised columns used for filtering, searching and
    ordering
  - the full record serialised as JSON (wire aliases) in ``data``

Soft delete
-----------
  Purchase orders, purchases and sales are never removed by a normal
  delete: ``is_deleted`` is set and the record moves to the recycle bin,
  from where it can be restored or purged permanently.

Purchase order lock
-------------------
  Recording a purchase against an order sets ``is_purchased_created``.  A
  locked order cannot be edited, deleted or used by a second purchase.
  Purging the purchase releases the lock.
"""
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TypeVar

from pydantic import BaseModel

from models.catalog import Customer, Product
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from models.sale import Sale
from models.supplier import Supplier

from .recycle import ENTITY_PURCHASE, ENTITY_PURCHASE_ORDER, ENTITY_SALE, ENTITY_TYPES

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id                TEXT PRIMARY KEY,
    name              TEXT NOT NULL,
    sku               TEXT,
    category          TEXT,
    current_stock     REAL NOT NULL DEFAULT 0,
    min_stock_level   REAL NOT NULL DEFAULT 0,
    data              TEXT NOT NULL,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS suppliers (
    id                TEXT PRIMARY KEY,
    name              TEXT NOT NULL,
    email             TEXT,
    phone             TEXT,
    data              TEXT NOT NULL,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS customers (
    id                TEXT PRIMARY KEY,
    name              TEXT NOT NULL,
    email             TEXT,
    phone             TEXT,
    data              TEXT NOT NULL,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS purchase_orders (
    id                    TEXT PRIMARY KEY,
    ref_num               TEXT NOT NULL,
    po_number             TEXT,
    vendor                TEXT,
    status                TEXT NOT NULL DEFAULT 'draft',
    is_purchased_created  INTEGER NOT NULL DEFAULT 0,
    is_deleted            INTEGER NOT NULL DEFAULT 0,
    data                  TEXT NOT NULL,
    created_at            TEXT NOT NULL,
    updated_at            TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_po_ref_num ON purchase_orders (ref_num);
CREATE INDEX IF NOT EXISTS idx_po_deleted ON purchase_orders (is_deleted);

CREATE TABLE IF NOT EXISTS purchases (
    id                TEXT PRIMARY KEY,
    ref_num           TEXT NOT NULL,
    receipt_number    TEXT,
    vendor            TEXT,
    purchase_date     TEXT,
    total             REAL NOT NULL DEFAULT 0,
    is_deleted        INTEGER NOT NULL DEFAULT 0,
    data              TEXT NOT NULL,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_purchases_ref_num ON purchases (ref_num);
CREATE INDEX IF NOT EXISTS idx_purchases_deleted ON purchases (is_deleted);

CREATE TABLE IF NOT EXISTS sales (
    id                TEXT PRIMARY KEY,
    sale_number       TEXT,
    customer          TEXT,
    sale_date         TEXT,
    status            TEXT,
    total             REAL NOT NULL DEFAULT 0,
    is_deleted        INTEGER NOT NULL DEFAULT 0,
    data              TEXT NOT NULL,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sales_deleted ON sales (is_deleted);

CREATE TABLE IF NOT EXISTS audit_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    entity      TEXT    NOT NULL,   -- table name
    record_id   TEXT    NOT NULL,
    timestamp   TEXT    NOT NULL,   -- ISO-8601 UTC
    action      TEXT    NOT NULL,   -- created | updated | deleted | restored | purged |
                                    -- locked | unlocked | imported
    actor       TEXT    NOT NULL DEFAULT 'system',
    detail      TEXT                -- optional JSON blob
);

CREATE INDEX IF NOT EXISTS idx_audit_record    ON audit_log (record_id);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp DESC);
"""


class RecordNotFound(LookupError):
    """No record with the given id exists (or it is in the recycle bin)."""


class PurchaseOrderLocked(RuntimeError):
    """The purchase order already has a purchase recorded against it."""

    def __init__(self, ref_num: str):
        super().__init__(f"Purchase order {ref_num!r} already has a purchase and is locked")


class DuplicateReference(RuntimeError):
    """Another live purchase order already uses this DB number."""

    def __init__(self, ref_num: str):
        super().__init__(f"A purchase order with DB number {ref_num!r} already exists")
        self.ref_num = ref_num
        self.ref_num = ref_num


@dataclass(frozen=True)
class _Table:
    name: str
    model: type
    columns: tuple[str, ...]        # denormalised model attributes
    search: tuple[str, ...]         # columns matched by LIKE
    soft_delete: bool = False


_PRODUCTS = _Table(
    "products", Product,
    ("name", "sku", "category", "current_stock", "min_stock_level"),
    ("name", "sku", "category"),
)
_SUPPLIERS = _Table("suppliers", Supplier, ("name", "email", "phone"), ("name", "email", "phone"))
_CUSTOMERS = _Table("customers", Customer, ("name", "email", "phone"), ("name", "email", "phone"))
_PURCHASE_ORDERS = _Table(
    "purchase_orders", PurchaseOrder,
    ("ref_num", "po_number", "vendor", "status", "is_purchased_created", "is_deleted"),
    ("ref_num", "po_number", "vendor"),
    soft_delete=True,
)
_PURCHASES = _Table(
    "purchases", Purchase,
    ("ref_num", "receipt_number", "vendor", "purchase_date", "total", "is_deleted"),
    ("ref_num", "receipt_number", "vendor"),
    soft_delete=True,
)
_SALES = _Table(
    "sales", Sale,
    ("sale_number", "customer", "sale_date", "status", "total", "is_deleted"),
    ("sale_number", "customer"),
    soft_delete=True,
)

# Recycle-bin entity type -> table
_RECYCLABLE = {
    ENTITY_PURCHASE_ORDER: _PURCHASE_ORDERS,
    ENTITY_PURCHASE: _PURCHASES,
    ENTITY_SALE: _SALES,
}


def new_id() -> str:
    return uuid.uuid4().hex


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _column_value(value):
    return int(value) if isinstance(value, bool) else value


class Database:
    """Thin wrapper around an SQLite database file for console records."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Generic row helpers
    # ------------------------------------------------------------------

    def _write(self, conn: sqlite3.Connection, table: _Table, record: M) -> M:
        if not record.id:
            record = record.model_copy(update={"id": new_id()})
        now = _now()
        params = {col: _column_value(getattr(record, col)) for col in table.columns}
        params.update({
            "id": record.id,
            "data": record.model_dump_json(by_alias=True),
            "now": now,
        })
        cols = ", ".join(table.columns)
        values = ", ".join(f":{c}" for c in table.columns)
        updates = ",\n                ".join(f"{c} = excluded.{c}" for c in table.columns)
        conn.execute(
            f"""
            INSERT INTO {table.name} (id, {cols}, data, created_at, updated_at)
            VALUES (:id, {values}, :data, :now, :now)
            ON CONFLICT(id) DO UPDATE SET
                {updates},
                data       = excluded.data,
                updated_at = excluded.updated_at
            """,
            params,
        )
        return record

    def _fetch(self, conn: sqlite3.Connection, table: _Table, record_id: str):
        row = conn.execute(
            f"SELECT data FROM {table.name} WHERE id = ?", (record_id,)
        ).fetchone()
        return table.model.model_validate_json(row["data"]) if row else None

    def _get(self, table: _Table, record_id: str):
        with self._conn() as conn:
            return self._fetch(conn, table, record_id)

    def _require(self, conn: sqlite3.Connection, table: _Table, record_id: str):
        record = self._fetch(conn, table, record_id)
        if record is None:
            raise RecordNotFound(f"{table.name} record {record_id!r} not found")
        return record

    def _list(
        self,
        table: _Table,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        deleted: Optional[bool] = False,
    ) -> tuple[list, int]:
        """
        Records ordered newest first plus the unpaged match count.

        Args:
            search:  Case-insensitive substring match on the table's search
                     columns.
            limit:   Max rows to return, or None for all.
            offset:  Pagination offset.
            deleted: Soft-delete filter for recyclable tables; None for both.
        """
        clauses: list[str] = []
        params: list = []

        if table.soft_delete and deleted is not None:
            clauses.append("is_deleted = ?")
            params.append(int(deleted))
        if search:
            clauses.append("(" + " OR ".join(f"{c} LIKE ?" for c in table.search) + ")")
            params.extend([f"%{search}%"] * len(table.search))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._conn() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM {table.name} {where}", params
            ).fetchone()[0]
            rows = conn.execute(
                f"""
                SELECT data FROM {table.name}
                {where}
                ORDER BY created_at DESC, rowid DESC
                LIMIT ? OFFSET ?
                """,
                [*params, -1 if limit is None else limit, offset],
            ).fetchall()

        return [table.model.model_validate_json(r["data"]) for r in rows], total

    def _delete_row(self, conn: sqlite3.Connection, table: _Table, record_id: str) -> bool:
        conn.execute(f"DELETE FROM {table.name} WHERE id = ?", (record_id,))
        return conn.execute("SELECT changes()").fetchone()[0] > 0

    # ------------------------------------------------------------------
    # Catalog: products, suppliers, customers
    # ------------------------------------------------------------------

    def save_product(self, product: Product) -> Product:
        with self._conn() as conn:
            return self._write(conn, _PRODUCTS, product)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._get(_PRODUCTS, product_id)

    def list_products(
        self, search: Optional[str] = None, limit: Optional[int] = None, offset: int = 0
    ) -> tuple[list[Product], int]:
        return self._list(_PRODUCTS, search, limit, offset)

    def delete_product(self, product_id: str) -> bool:
        with self._conn() as conn:
            return self._delete_row(conn, _PRODUCTS, product_id)

    def save_supplier(self, supplier: Supplier) -> Supplier:
        with self._conn() as conn:
            return self._write(conn, _SUPPLIERS, supplier)

    def get_supplier(self, supplier_id: str) -> Optional[Supplier]:
        return self._get(_SUPPLIERS, supplier_id)

    def list_suppliers(
        self, search: Optional[str] = None, limit: Optional[int] = None, offset: int = 0
    ) -> tuple[list[Supplier], int]:
        return self._list(_SUPPLIERS, search, limit, offset)

    def delete_supplier(self, supplier_id: str) -> bool:
        with self._conn() as conn:
            return self._delete_row(conn, _SUPPLIERS, supplier_id)

    def save_customer(self, customer: Customer) -> Customer:
        with self._conn() as conn:
            return self._write(conn, _CUSTOMERS, customer)

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self._get(_CUSTOMERS, customer_id)

    def list_customers(
        self, search: Optional[str] = None, limit: Optional[int] = None, offset: int = 0
    ) -> tuple[list[Customer], int]:
        return self._list(_CUSTOMERS, search, limit, offset)

    def delete_customer(self, customer_id: str) -> bool:
        with self._conn() as conn:
            return self._delete_row(conn, _CUSTOMERS, customer_id)

    # ------------------------------------------------------------------
    # Purchase orders
    # ------------------------------------------------------------------

    def save_purchase_order(self, po: PurchaseOrder, actor: str = "system") -> PurchaseOrder:
        """
        Create or update a purchase order.  Raises PurchaseOrderLocked when
        updating an order that already has a purchase.
        """
        with self._conn() as conn:
            existing = self._fetch(conn, _PURCHASE_ORDERS, po.id) if po.id else None
            if existing is not None and existing.is_purchased_created:
                raise PurchaseOrderLocked(existing.ref_num)
            if existing is not None:
                # lock and soft-delete state are owned by the store
                po = po.model_copy(update={
                    "is_purchased_created": existing.is_purchased_created,
                    "is_deleted": existing.is_deleted,
                })
            saved = self._write(conn, _PURCHASE_ORDERS, po)
        self.log_audit(
            _PURCHASE_ORDERS.name, saved.id,
            "updated" if existing is not None else "created", actor=actor,
            detail={"ref_num": saved.ref_num},
        )
        return saved

    def get_purchase_order(self, po_id: str) -> Optional[PurchaseOrder]:
        return self._get(_PURCHASE_ORDERS, po_id)

    def get_purchase_order_by_ref(self, ref_num: str) -> Optional[PurchaseOrder]:
        """The live (not deleted) order with *ref_num*, or None."""
        with self._conn() as conn:
            return self._live_order_by_ref(conn, ref_num)

    def _live_order_by_ref(self, conn: sqlite3.Connection, ref_num: str) -> Optional[PurchaseOrder]:
        row = conn.execute(
            """SELECT data FROM purchase_orders
               WHERE ref_num = ? AND is_deleted = 0
               ORDER BY created_at ASC LIMIT 1""",
            (ref_num,),
        ).fetchone()
        return PurchaseOrder.model_validate_json(row["data"]) if row else None

    def list_purchase_orders(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        deleted: Optional[bool] = False,
    ) -> tuple[list[PurchaseOrder], int]:
        return self._list(_PURCHASE_ORDERS, search, limit, offset, deleted)

    def _set_order_lock(
        self, conn: sqlite3.Connection, po: PurchaseOrder, locked: bool, actor: str
    ) -> None:
        self._write(conn, _PURCHASE_ORDERS, po.model_copy(update={"is_purchased_created": locked}))
        logger.info("Purchase order %s %s", po.ref_num, "locked" if locked else "unlocked")
        self._audit(conn, _PURCHASE_ORDERS.name, po.id, "locked" if locked else "unlocked", actor)

    def _release_order(self, conn: sqlite3.Connection, ref_num: str, actor: str) -> None:
        """Unlock the order for *ref_num* once no purchase row points at it."""
        remaining = conn.execute(
            "SELECT COUNT(*) FROM purchases WHERE ref_num = ?", (ref_num,)
        ).fetchone()[0]
        if remaining:
            return
        po = self._live_order_by_ref(conn, ref_num)
        if po is not None and po.is_purchased_created:
            self._set_order_lock(conn, po, False, actor)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def create_purchase(self, purchase: Purchase, actor: str = "system") -> Purchase:
        """
        Record a purchase against its order and lock the order.

        Raises RecordNotFound if no live order has the purchase's ref_num and
        PurchaseOrderLocked if the order already has a purchase.
        """
        with self._conn() as conn:
            po = self._live_order_by_ref(conn, purchase.ref_num)
            if po is None:
                raise RecordNotFound(f"Purchase order {purchase.ref_num!r} not found")
            if po.is_purchased_created:
                raise PurchaseOrderLocked(po.ref_num)
            saved = self._write(conn, _PURCHASES, purchase.model_copy(update={"id": None}))
            self._set_order_lock(conn, po, True, actor)
            self._audit(conn, _PURCHASES.name, saved.id, "created", actor,
                        {"ref_num": saved.ref_num, "total": saved.total})
        logger.info("Purchase %s recorded against %s", saved.receipt_number, saved.ref_num)
        return saved

    def update_purchase(self, purchase_id: str, purchase: Purchase, actor: str = "system") -> Purchase:
        """
        Replace a purchase.  Moving it to a different order locks the new
        order (which must be free) and releases the old one.
        """
        with self._conn() as conn:
            existing = self._require(conn, _PURCHASES, purchase_id)
            if existing.is_deleted:
                raise RecordNotFound(f"Purchase {purchase_id!r} is in the recycle bin")

            moved = purchase.ref_num != existing.ref_num
            if moved:
                po = self._live_order_by_ref(conn, purchase.ref_num)
                if po is None:
                    raise RecordNotFound(f"Purchase order {purchase.ref_num!r} not found")
                if po.is_purchased_created:
                    raise PurchaseOrderLocked(po.ref_num)

            saved = self._write(conn, _PURCHASES, purchase.model_copy(update={
                "id": purchase_id,
                "is_deleted": False,
            }))
            if moved:
                self._set_order_lock(conn, po, True, actor)
                self._release_order(conn, existing.ref_num, actor)
            self._audit(conn, _PURCHASES.name, purchase_id, "updated", actor,
                        {"ref_num": saved.ref_num, "total": saved.total})
        return saved

    def get_purchase(self, purchase_id: str) -> Optional[Purchase]:
        return self._get(_PURCHASES, purchase_id)

    def list_purchases(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        deleted: Optional[bool] = False,
    ) -> tuple[list[Purchase], int]:
        return self._list(_PURCHASES, search, limit, offset, deleted)

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def save_sale(self, sale: Sale, actor: str = "system") -> Sale:
        with self._conn() as conn:
            created = not sale.id or self._fetch(conn, _SALES, sale.id) is None
            saved = self._write(conn, _SALES, sale)
            self._audit(conn, _SALES.name, saved.id, "created" if created else "updated", actor)
        return saved

    def get_sale(self, sale_id: str) -> Optional[Sale]:
        return self._get(_SALES, sale_id)

    def list_sales(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        deleted: Optional[bool] = False,
    ) -> tuple[list[Sale], int]:
        return self._list(_SALES, search, limit, offset, deleted)

    # ------------------------------------------------------------------
    # Recycle bin: soft delete, restore, purge
    # ------------------------------------------------------------------

    @staticmethod
    def _recyclable(entity: str) -> _Table:
        try:
            return _RECYCLABLE[entity]
        except KeyError:
            raise ValueError(
                f"Unknown entity type {entity!r}. Must be one of {ENTITY_TYPES}"
            ) from None

    def soft_delete(self, entity: str, record_id: str, actor: str = "system") -> bool:
        """
        Move a record to the recycle bin.  Returns False if it was already
        there.  Locked purchase orders cannot be deleted.
        """
        table = self._recyclable(entity)
        with self._conn() as conn:
            record = self._require(conn, table, record_id)
            if record.is_deleted:
                return False
            if table is _PURCHASE_ORDERS and record.is_purchased_created:
                raise PurchaseOrderLocked(record.ref_num)
            self._write(conn, table, record.model_copy(update={"is_deleted": True}))
            self._audit(conn, table.name, record_id, "deleted", actor)
        logger.info("Moved %s %s to the recycle bin", entity, record_id)
        return True

    def restore(self, entity: str, record_id: str, actor: str = "system") -> bool:
        """
        Bring a record back from the recycle bin.  False if it was not there.
        Raises DuplicateReference when a purchase order's DB number has since
        been taken by another live order.
        """
        table = self._recyclable(entity)
        with self._conn() as conn:
            record = self._require(conn, table, record_id)
            if not record.is_deleted:
                return False
            if table is _PURCHASE_ORDERS:
                clash = self._live_order_by_ref(conn, record.ref_num)
                if clash is not None and clash.id != record_id:
                    raise DuplicateReference(record.ref_num)
            self._write(conn, table, record.model_copy(update={"is_deleted": False}))
            self._audit(conn, table.name, record_id, "restored", actor)
        logger.info("Restored %s %s from the recycle bin", entity, record_id)
        return True

    def purge(self, entity: str, record_id: str, actor: str = "system") -> bool:
        """
        Permanently delete a record that is in the recycle bin.  Raises
        ValueError for live records.  Purging a purchase releases its order.
        """
        table = self._recyclable(entity)
        with self._conn() as conn:
            record = self._require(conn, table, record_id)
            if not record.is_deleted:
                raise ValueError(f"{entity} {record_id!r} is not in the recycle bin")
            removed = self._delete_row(conn, table, record_id)
            if table is _PURCHASES:
                self._release_order(conn, record.ref_num, actor)
            self._audit(conn, table.name, record_id, "purged", actor)
        logger.info("Purged %s %s", entity, record_id)
        return removed

    def recycle_bin_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._conn() as conn:
            for entity, table in _RECYCLABLE.items():
                counts[entity] = conn.execute(
                    f"SELECT COUNT(*) FROM {table.name} WHERE is_deleted = 1"
                ).fetchone()[0]
        counts["all"] = sum(counts.values())
        return counts

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Aggregate counts and totals for the dashboard report."""
        with self._conn() as conn:
            products = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN current_stock <= 0 THEN 1 ELSE 0 END) AS out_of_stock,
                    SUM(CASE WHEN current_stock > 0 AND current_stock <= min_stock_level
                             THEN 1 ELSE 0 END) AS low_stock
                FROM products
                """
            ).fetchone()
            orders = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN status = 'draft'     THEN 1 ELSE 0 END) AS draft,
                    SUM(CASE WHEN status = 'approved'  THEN 1 ELSE 0 END) AS approved,
                    SUM(CASE WHEN status = 'delivered' THEN 1 ELSE 0 END) AS delivered,
                    SUM(CASE WHEN status = 'cancelled' THEN 1 ELSE 0 END) AS cancelled,
                    SUM(is_purchased_created) AS locked
                FROM purchase_orders WHERE is_deleted = 0
                """
            ).fetchone()
            purchases = conn.execute(
                """SELECT COUNT(*) AS count, COALESCE(SUM(total), 0) AS total,
                          MAX(purchase_date) AS last_purchase
                   FROM purchases WHERE is_deleted = 0"""
            ).fetchone()
            sales = conn.execute(
                """SELECT COUNT(*) AS count, COALESCE(SUM(total), 0) AS total
                   FROM sales WHERE is_deleted = 0"""
            ).fetchone()
            suppliers = conn.execute("SELECT COUNT(*) FROM suppliers").fetchone()[0]
            customers = conn.execute("SELECT COUNT(*) FROM customers").fetchone()[0]

        return {
            "products": {k: products[k] or 0 for k in products.keys()},
            "purchase_orders": {k: orders[k] or 0 for k in orders.keys()},
            "purchases": dict(purchases),
            "sales": dict(sales),
            "suppliers": suppliers,
            "customers": customers,
            "recycle_bin": self.recycle_bin_counts(),
        }

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def _audit(
        self,
        conn: sqlite3.Connection,
        entity: str,
        record_id: str,
        action: str,
        actor: str = "system",
        detail: Optional[dict] = None,
    ) -> None:
        conn.execute(
            """INSERT INTO audit_log (entity, record_id, timestamp, action, actor, detail)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                entity,
                record_id,
                _now(),
                action,
                actor,
                json.dumps(detail) if detail is not None else None,
            ),
        )

    def log_audit(
        self,
        entity: str,
        record_id: str,
        action: str,
        actor: str = "system",
        detail: Optional[dict] = None,
    ) -> None:
        """Append one entry to the audit log."""
        with self._conn() as conn:
            self._audit(conn, entity, record_id, action, actor, detail)

    def get_audit_log(self, record_id: str) -> list[dict]:
        """Return all audit entries for one record, oldest first."""
        with self._conn() as conn:
            rows = conn.execute(
                """SELECT id, entity, timestamp, action, actor, detail
                   FROM audit_log WHERE record_id = ?
                   ORDER BY timestamp ASC, id ASC""",
                (record_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_recent_audit_log(self, limit: int = 200, offset: int = 0) -> list[dict]:
        """Return recent audit entries across all records, newest first."""
        with self._conn() as conn:
            rows = conn.execute(
                """SELECT id, entity, record_id, timestamp, action, actor, detail
                   FROM audit_log
                   ORDER BY timestamp DESC, id DESC
                   LIMIT ? OFFSET ?""",
                (limit, offset),
            ).fetchall()
        return [dict(r) for r in rows]
