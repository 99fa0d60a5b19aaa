"""
Catalog and purchase-order import.

Loads reference data from CSV files into the store:

  suppliers.csv
    id, name, contact, email, phone, address, aliases
    aliases: pipe-separated alternative names, e.g. "ACME Corp|ACME Pvt Ltd"

  products.csv
    id, name, sku, purchase_rate, sales_rate, unit_type, current_stock,
    min_stock_level, category, vendor

  purchase_orders.csv      (PO header records)
    ref_num, po_number, vendor, status, order_date, delivery_date,
    purpose, remarks

  purchase_order_lines.csv (PO line items, linked by ref_num)
    ref_num, product_id, quantity, unit_price, unit_type

PO vendors are resolved against the supplier master list; lines without a
price or unit type take them from the product catalog.
"""
import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from models.catalog import Product
from models.line_item import LineItem
from models.purchase_order import PurchaseOrder
from models.supplier import Supplier

from .database import Database
from .supplier_matcher import FUZZY_THRESHOLD, SupplierMatcher
from .validator import PO_STATUSES

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    suppliers: int = 0
    products: int = 0
    purchase_orders: int = 0
    skipped_locked: list[str] = field(default_factory=list)
    unmatched_vendors: list[str] = field(default_factory=list)


# ------------------------------------------------------------------
# CSV readers
# ------------------------------------------------------------------

def _rows(path: Path) -> list[dict]:
    if not path.exists():
        logger.warning("CSV file not found: %s", path)
        return []
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def csv_row_count(path: Path) -> int:
    """Data rows in a CSV file (header excluded); 0 when missing."""
    if not path.exists():
        return 0
    with open(path, newline="", encoding="utf-8") as f:
        return max(sum(1 for _ in csv.reader(f)) - 1, 0)


def _text(row: dict, key: str) -> Optional[str]:
    return (row.get(key) or "").strip() or None


def load_suppliers(path: Path) -> list[Supplier]:
    suppliers: list[Supplier] = []
    for row in _rows(path):
        suppliers.append(Supplier(
            id=row["id"].strip(),
            name=row["name"].strip(),
            contact=_text(row, "contact"),
            email=_text(row, "email"),
            phone=_text(row, "phone"),
            address=_text(row, "address"),
            aliases=row.get("aliases") or "",
        ))
    logger.info("Loaded %d suppliers from %s", len(suppliers), path.name)
    return suppliers


def load_products(path: Path) -> list[Product]:
    products: list[Product] = []
    for row in _rows(path):
        products.append(Product(
            id=row["id"].strip(),
            name=row["name"].strip(),
            sku=_text(row, "sku") or "",
            purchase_rate=_to_float(row.get("purchase_rate")) or 0.0,
            sales_rate=_to_float(row.get("sales_rate")) or 0.0,
            unit_type=_text(row, "unit_type") or "Nos",
            current_stock=_to_float(row.get("current_stock")) or 0.0,
            min_stock_level=_to_float(row.get("min_stock_level")) or 0.0,
            category=_text(row, "category"),
            vendor=_text(row, "vendor"),
        ))
    logger.info("Loaded %d products from %s", len(products), path.name)
    return products


def load_purchase_orders(
    po_path: Path,
    lines_path: Path,
    products: Iterable[Product] = (),
    matcher: Optional[SupplierMatcher] = None,
    unmatched: Optional[list[str]] = None,
) -> list[PurchaseOrder]:
    """
    Read PO headers and lines.  Vendors are replaced by their master-list
    name when *matcher* resolves them; unresolved names are kept verbatim
    and appended to *unmatched*.
    """
    catalog = {p.id: p for p in products}
    orders: dict[str, PurchaseOrder] = {}

    for row in _rows(po_path):
        ref_num = row["ref_num"].strip()
        vendor = _text(row, "vendor") or ""
        if matcher is not None and vendor:
            canonical = matcher.canonical_name(vendor)
            if canonical is None:
                logger.warning("PO %s vendor %r not in supplier list; kept as entered", ref_num, vendor)
                if unmatched is not None:
                    unmatched.append(vendor)
            else:
                vendor = canonical
        status = (_text(row, "status") or "draft").lower()
        if status not in PO_STATUSES:
            logger.warning("PO %s has unknown status %r; imported as draft", ref_num, status)
            status = "draft"
        orders[ref_num] = PurchaseOrder(
            ref_num=ref_num,
            po_number=_text(row, "po_number"),
            vendor=vendor,
            status=status,
            order_date=_text(row, "order_date"),
            delivery_date=_text(row, "delivery_date"),
            purpose=_text(row, "purpose"),
            remarks=_text(row, "remarks"),
        )

    if lines_path.exists():
        for row in _rows(lines_path):
            ref_num = row["ref_num"].strip()
            po = orders.get(ref_num)
            if po is None:
                logger.warning("PO line references unknown PO: %s", ref_num)
                continue
            product_id = row["product_id"].strip()
            product = catalog.get(product_id)
            unit_price = _to_float(row.get("unit_price"))
            if unit_price is None and product is not None:
                unit_price = product.purchase_rate
            po.items.append(LineItem(
                product_id=product_id,
                product_name=product.name if product else None,
                quantity=_to_float(row.get("quantity")),
                unit_price=unit_price,
                unit_type=_text(row, "unit_type") or (product.unit_type if product else ""),
            ))
    else:
        logger.info("No PO lines CSV found at %s; orders imported without lines", lines_path)

    logger.info(
        "Loaded %d POs (%d with line items)",
        len(orders),
        sum(1 for po in orders.values() if po.items),
    )
    return list(orders.values())


# ------------------------------------------------------------------
# Import into the store
# ------------------------------------------------------------------

def import_all(
    db: Database,
    suppliers_csv: Path,
    products_csv: Path,
    po_csv: Path,
    po_lines_csv: Path,
    fuzzy_threshold: int = FUZZY_THRESHOLD,
    actor: str = "system",
) -> ImportSummary:
    """
    Upsert suppliers and products by id, then purchase orders by ref_num.
    Orders that already have a purchase are left untouched.
    """
    summary = ImportSummary()

    suppliers = load_suppliers(suppliers_csv)
    for supplier in suppliers:
        db.save_supplier(supplier)
    summary.suppliers = len(suppliers)

    products = load_products(products_csv)
    for product in products:
        db.save_product(product)
    summary.products = len(products)

    matcher = SupplierMatcher(db.list_suppliers()[0], fuzzy_threshold)
    all_products, _ = db.list_products()
    orders = load_purchase_orders(
        po_csv, po_lines_csv, all_products, matcher, summary.unmatched_vendors
    )
    for po in orders:
        existing = db.get_purchase_order_by_ref(po.ref_num)
        if existing is not None and existing.is_purchased_created:
            logger.info("PO %s is locked by a purchase; not re-imported", po.ref_num)
            summary.skipped_locked.append(po.ref_num)
            continue
        if existing is not None:
            po = po.model_copy(update={"id": existing.id})
        db.save_purchase_order(po, actor=actor)
        summary.purchase_orders += 1

    logger.info(
        "Import complete: %d suppliers, %d products, %d purchase orders",
        summary.suppliers, summary.products, summary.purchase_orders,
    )
    return summary


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _to_float(value: Optional[str]) -> Optional[float]:
    if not value or not str(value).strip():
        return None
    cleaned = re.sub(r"[^\d.\-]", "", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return None
