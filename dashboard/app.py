"""
Procurement Console FastAPI backend.

Serves the REST API behind the console: catalog, purchase orders,
purchases, sales, the recycle bin, the purchase-form helpers and reports.
All state lives in a single SQLite database (data/console.db); uploaded
invoice files are kept in data/uploads/.

Every endpoint except login and health needs a bearer token
(``Authorization: Bearer <token>``) from /api/auth/login.  Role checks
follow the console navigation: managers and admins handle procurement,
every role handles products, customers and sales, only admins change
settings.

Endpoints
---------
  POST   /api/auth/login                    → {token, user}
  POST   /api/auth/logout
  GET    /api/auth/me                       → current user
  POST   /api/auth/change-password          → {currentPassword, newPassword}
  GET    /api/navigation                    → sidebar entries for the caller's role
  GET    /api/products | /api/vendors | /api/customers           (paged, ?search=)
  GET    /api/products/{id} | /api/vendors/{id} | /api/customers/{id}
| /api/vendors | /api/customers           (paged, ?search=)
  POST / PUT / DELETE on the same catalog collections
  GET    /api/purchase-orders               → paged list with row actions
  GET    /api/purchase-orders/{id}
  POST   /api/purchase-orders               → create (422 on validation issues)
  PUT    /api/purchase-orders/{id}          → update (409 when locked)
  DELETE /api/purchase-orders/{id}          → soft delete (409 when locked)
  GET    /api/purchases                     → paged list, cancelled lines hidden
  GET    /api/purchases/cancelled-items     → flat report of cancelled / returned lines
  GET    /api/purchases/{id}
  GET    /api/purchases/{id}/receipt        → HTML receipt
  POST   /api/purchases                     → multipart create, locks the order
  PUT    /api/purchases/{id}                → multipart update
  DELETE /api/purchases/{id}                → soft delete
  GET / POST / PUT / DELETE /api/sales
  GET    /api/sales/{id}
  GET    /api/recycle-bin                   → ?type=all|purchaseOrder|purchase|sale
  POST   /api/recycle-bin/restore           → {entityType, ids}
  POST   /api/recycle-bin/purge             → {entityType, ids}
  POST   /api/purchase-form/resolve         → form state after a DB number change
  POST   /api/totals                        → totals for a list of lines
  GET    /api/reports/dashboard             → aggregate counts and totals
  GET    /api/settings | PUT /api/settings  → admin-tunable settings
  GET    /api/health                        → liveness check
"""
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse

from config import Config
from models.auth import ALL_ROLES, AuthSession, Role
from models.catalog import Customer, Product
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder
from models.result import ValidationIssue
from models.sale import Sale
from models.supplier import Supplier
from procurement.access import MANAGERS, visible_navigation
from procurement.database import (
    Database,
    DuplicateReference,
    PurchaseOrderLocked,
    RecordNotFound,
    new_id,
)
from procurement.pagination import Pagination
from procurement.payload import enrich_items, generate_receipt_number, parse_items_field
from procurement.recycle import (
    ENTITY_PURCHASE,
    ENTITY_PURCHASE_ORDER,
    ENTITY_SALE,
    ENTITY_TYPES,
    SEGMENT_ALL,
    RecycleBin,
    extract_cancelled_items_from_purchases,
    flatten_flagged_items,
    purchase_order_actions,
)
from procurement.resolver import FormState, on_reference_number_changed, selectable_purchase_orders
from procurement.totals import compute_totals, sum_line_totals
from procurement.validator import PurchaseOrderValidator, PurchaseValidator

from .models import (
    ChangePasswordRequest,
    CustomerBody,
    LoginRequest,
    ProductBody,
    RecycleAction,
    ResolveRequest,
    SettingsUpdate,
    SupplierBody,
    TotalsRequest,
)
from .services.auth import AuthService, PasswordChangeError
from .services.receipt import render_receipt

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config, database and auth (opened lazily on first request)
# ---------------------------------------------------------------------------
_config: Optional[Config] = None
_dbs: dict[Path, Database] = {}
_auth: dict[Path, AuthService] = {}


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_db(config: Config = Depends(get_config)) -> Database:
    db = _dbs.get(config.db_path)
    if db is None:
        db = _dbs[config.db_path] = Database(config.db_path)
    return db


def get_auth(config: Config = Depends(get_config)) -> AuthService:
    auth = _auth.get(config.users_file)
    if auth is None:
        auth = _auth[config.users_file] = AuthService.from_config(config)
    return auth


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    return token.strip() if scheme.lower() == "bearer" and token.strip() else None


def current_session(
    authorization: Optional[str] = Header(default=None),
    auth: AuthService = Depends(get_auth),
) -> AuthSession:
    return auth.session_for(_bearer_token(authorization))


def require_roles(*roles: Role) -> Callable[..., AuthSession]:
    """Dependency: 401 for anonymous callers, 403 for roles not in *roles*."""
    def dependency(session: AuthSession = Depends(current_session)) -> AuthSession:
        if not session.is_authenticated:
            raise HTTPException(401, "Not authenticated")
        if not session.has_any_role(roles):
            raise HTTPException(403, "Your role does not have access to this resource")
        return session
    return dependency


any_user = require_roles(*ALL_ROLES)
manager = require_roles(*MANAGERS)
admin = require_roles("admin")


def _actor(session: AuthSession) -> str:
    return session.user.username if session.user else "anonymous"


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Procurement Console", docs_url=None, redoc_url=None)


@app.exception_handler(RecordNotFound)
async def _not_found(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PurchaseOrderLocked)
async def _locked(request: Request, exc: PurchaseOrderLocked):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(DuplicateReference)
async def _duplicate(request: Request, exc: DuplicateReference):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def _unprocessable(issues: list[ValidationIssue]) -> HTTPException:
    return HTTPException(422, detail=[i.model_dump() for i in issues])


def _wire(record) -> dict:
    return record.model_dump(by_alias=True)


def _page(config: Config, page: int, limit: Optional[int]) -> tuple[int, int, int]:
    limit = limit or config.page_size
    return page, limit, (page - 1) * limit


def _listing(key: str, records: list, total: int, page: int, limit: int) -> dict:
    return {
        key: [_wire(r) for r in records],
        "pagination": Pagination.for_total(total, page, limit).model_dump(),
    }


# ── Health / auth ────────────────────────────────────────────────────────────

@app.get("/api/health")
def health(config: Config = Depends(get_config)):
    return {
        "status": "ok",
        "db_path": str(config.db_path),
        "db_exists": config.db_path.exists(),
        "users_file_exists": config.users_file.exists(),
    }


@app.post("/api/auth/login")
def login(body: LoginRequest, auth: AuthService = Depends(get_auth)):
    session = auth.login(body.username, body.password, body.remember)
    if session is None:
        raise HTTPException(401, "Invalid username or password")
    return {"token": session.token, "user": _wire(session.user), "remember": session.remember}


@app.post("/api/auth/logout")
def logout(
    authorization: Optional[str] = Header(default=None),
    auth: AuthService = Depends(get_auth),
):
    auth.logout(_bearer_token(authorization))
    return {"loggedOut": True}


@app.get("/api/auth/me")
def me(session: AuthSession = Depends(any_user)):
    return {"user": _wire(session.user)}


@app.post("/api/auth/change-password")
def change_password(
    body: ChangePasswordRequest,
    session: AuthSession = Depends(any_user),
    auth: AuthService = Depends(get_auth),
):
    try:
        auth.users.change_password(session.user.username, body.current_password, body.new_password)
    except PasswordChangeError as exc:
        raise HTTPException(400, str(exc))
    return {"changed": True}


@app.get("/api/navigation")
def navigation(session: AuthSession = Depends(any_user)):
    return [{"name": item.name, "href": item.href} for item in visible_navigation(session)]


# ── Catalog ──────────────────────────────────────────────────────────────────

@app.get("/api/products")
def list_products(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(any_user),
):
    page, limit, offset = _page(config, page, limit)
    products, total = db.list_products(search or None, limit, offset)
    return _listing("products", products, total, page, limit)


@app.get("/api/products/{product_id}")
def get_product(
    product_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(any_user),
):
    product = db.get_product(product_id)
    if product is None:
        raise HTTPException(404, f"Product not found: {product_id}")
    return _wire(product)


@app.post("/api/products", status_code=201)
def create_product(
    body: ProductBody,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    return _wire(db.save_product(Product(id=new_id(), **body.model_dump())))


@app.put("/api/products/{product_id}")
def update_product(
    product_id: str,
    body: ProductBody,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    if db.get_product(product_id) is None:
        raise HTTPException(404, f"Product not found: {product_id}")
    return _wire(db.save_product(Product(id=product_id, **body.model_dump())))


@app.delete("/api/products/{product_id}")
def delete_product(
    product_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    if not db.delete_product(product_id):
        raise HTTPException(404, f"Product not found: {product_id}")
    return {"id": product_id, "deleted": True}


@app.get("/api/vendors")
def list_vendors(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(manager),
):
    page, limit, offset = _page(config, page, limit)
    suppliers, total = db.list_suppliers(search or None, limit, offset)
    return _listing("vendors", suppliers, total, page, limit)


@app.get("/api/vendors/{supplier_id}")
def get_vendor(
    supplier_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    supplier = db.get_supplier(supplier_id)
    if supplier is None:
        raise HTTPException(404, f"Vendor not found: {supplier_id}")
    return _wire(supplier)


@app.post("/api/vendors", status_code=201)
def create_vendor(
    body: SupplierBody,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    return _wire(db.save_supplier(Supplier(id=new_id(), **body.model_dump())))


@app.put("/api/vendors/{supplier_id}")
def update_vendor(
    supplier_id: str,
    body: SupplierBody,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    if db.get_supplier(supplier_id) is None:
        raise HTTPException(404, f"Vendor not found: {supplier_id}")
    return _wire(db.save_supplier(Supplier(id=supplier_id, **body.model_dump())))


@app.delete("/api/vendors/{supplier_id}")
def delete_vendor(
    supplier_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    if not db.delete_supplier(supplier_id):
        raise HTTPException(404, f"Vendor not found: {supplier_id}")
    return {"id": supplier_id, "deleted": True}


@app.get("/api/customers")
def list_customers(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(any_user),
):
    page, limit, offset = _page(config, page, limit)
    customers, total = db.list_customers(search or None, limit, offset)
    return _listing("customers", customers, total, page, limit)


@app.get("/api/customers/{customer_id}")
def get_customer(
    customer_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(any_user),
):
    customer = db.get_customer(customer_id)
    if customer is None:
        raise HTTPException(404, f"Customer not found: {customer_id}")
    return _wire(customer)


@app.post("/api/customers", status_code=201)
def create_customer(
    body: CustomerBody,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(any_user),
):
    return _wire(db.save_customer(Customer(id=new_id(), **body.model_dump())))


@app.put("/api/customers/{customer_id}")
def update_customer(
    customer_id: str,
    body: CustomerBody,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(any_user),
):
    if db.get_customer(customer_id) is None:
        raise HTTPException(404, f"Customer not found: {customer_id}")
    return _wire(db.save_customer(Customer(id=customer_id, **body.model_dump())))


@app.delete("/api/customers/{customer_id}")
def delete_customer(
    customer_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    if not db.delete_customer(customer_id):
        raise HTTPException(404, f"Customer not found: {customer_id}")
    return {"id": customer_id, "deleted": True}


# ── Purchase orders ──────────────────────────────────────────────────────────

def _po_row(po: PurchaseOrder) -> dict:
    return {**_wire(po), "actions": purchase_order_actions(po)}


@app.get("/api/purchase-orders")
def list_purchase_orders(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(manager),
):
    page, limit, offset = _page(config, page, limit)
    orders, total = db.list_purchase_orders(search or None, limit, offset)
    return {
        "purchaseOrders": [_po_row(po) for po in orders],
        "pagination": Pagination.for_total(total, page, limit).model_dump(),
    }


@app.get("/api/purchase-orders/{po_id}")
def get_purchase_order(
    po_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    po = db.get_purchase_order(po_id)
    if po is None:
        raise HTTPException(404, f"Purchase order not found: {po_id}")
    return _po_row(po)


def _check_order(po: PurchaseOrder, db: Database, po_id: Optional[str] = None) -> None:
    issues = PurchaseOrderValidator().validate(po)
    if issues:
        raise _unprocessable(issues)
    clash = db.get_purchase_order_by_ref(po.ref_num)
    if clash is not None and clash.id != po_id:
        raise HTTPException(409, f"A purchase order with DB number {po.ref_num!r} already exists")


@app.post("/api/purchase-orders", status_code=201)
def create_purchase_order(
    body: PurchaseOrder,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(manager),
):
    po = body.model_copy(update={"id": None, "is_purchased_created": False, "is_deleted": False})
    _check_order(po, db)
    return _po_row(db.save_purchase_order(po, actor=_actor(session)))


@app.put("/api/purchase-orders/{po_id}")
def update_purchase_order(
    po_id: str,
    body: PurchaseOrder,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(manager),
):
    if db.get_purchase_order(po_id) is None:
        raise HTTPException(404, f"Purchase order not found: {po_id}")
    po = body.model_copy(update={"id": po_id})
    _check_order(po, db, po_id)
    return _po_row(db.save_purchase_order(po, actor=_actor(session)))


@app.delete("/api/purchase-orders/{po_id}")
def delete_purchase_order(
    po_id: str,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(manager),
):
    db.soft_delete(ENTITY_PURCHASE_ORDER, po_id, actor=_actor(session))
    return {"id": po_id, "isDeleted": True}


# ── Purchases ────────────────────────────────────────────────────────────────

@app.get("/api/purchases")
def list_purchases(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    include_cancelled: bool = Query(default=False, alias="includeCancelled"),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(manager),
):
    page, limit, offset = _page(config, page, limit)
    if include_cancelled:
        purchases, total = db.list_purchases(search or None, limit, offset)
        return _listing("purchases", purchases, total, page, limit)
    # purchases whose lines are all cancelled drop out, so page after filtering
    purchases, _total = db.list_purchases(search or None)
    visible = extract_cancelled_items_from_purchases(purchases, cancelled=False)
    return _listing("purchases", visible[offset:offset + limit], len(visible), page, limit)


@app.get("/api/purchases/cancelled-items")
def cancelled_items(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    flag: str = Query(default="isCancelled"),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(manager),
):
    """One row per cancelled (or, with flag=isReturn, returned) line."""
    page, limit, offset = _page(config, page, limit)
    purchases, _total = db.list_purchases(search or None)
    try:
        rows = flatten_flagged_items(purchases, flag)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {
        "items": [r.model_dump(by_alias=True) for r in rows[offset:offset + limit]],
        "total": sum(r.total for r in rows),
        "pagination": Pagination.for_total(len(rows), page, limit).model_dump(),
    }


@app.get("/api/purchases/{purchase_id}")
def get_purchase(
    purchase_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    purchase = db.get_purchase(purchase_id)
    if purchase is None:
        raise HTTPException(404, f"Purchase not found: {purchase_id}")
    return _wire(purchase)


@app.get("/api/purchases/{purchase_id}/receipt", response_class=HTMLResponse)
def purchase_receipt(
    purchase_id: str,
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(manager),
):
    purchase = db.get_purchase(purchase_id)
    if purchase is None:
        raise HTTPException(404, f"Purchase not found: {purchase_id}")
    html = render_receipt(
        purchase,
        currency_symbol=config.currency_symbol,
        template_file=config.templates_dir / config.receipt_template,
    )
    return HTMLResponse(content=html)


async def _store_upload(upload: UploadFile, uploads_dir: Path) -> str:
    """Save an uploaded invoice under a sanitised, non-clashing name."""
    filename = upload.filename or "invoice"
    raw = Path(filename)
    safe_stem = re.sub(r"[^\w\-.]", "_", raw.stem).strip("_") or "invoice"
    suffix = re.sub(r"[^\w.]", "", raw.suffix)
    dest = uploads_dir / f"{safe_stem}{suffix}"

    counter = 1
    while dest.exists():
        dest = uploads_dir / f"{safe_stem}_{counter}{suffix}"
        counter += 1

    contents = await upload.read()
    if len(contents) == 0:
        raise HTTPException(400, "Uploaded file is empty")

    uploads_dir.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(contents)
    logger.info("Invoice uploaded: %s (%d bytes)", dest, len(contents))
    return dest.name


def _discard_upload(uploads_dir: Path, name: Optional[str]) -> None:
    """Remove an upload whose purchase was not saved."""
    if name:
        (uploads_dir / name).unlink(missing_ok=True)
        logger.info("Discarded invoice upload: %s", name)


async def _purchase_from_form(
    db: Database,
    config: Config,
    ref_num: str,
    vendor: str,
    items: str,
    receipt_number: Optional[str],
    purchase_date: Optional[str],
    received_by: Optional[str],
    remarks: Optional[str],
    invoice_file: Optional[str],
    invoice: Optional[UploadFile],
) -> tuple[Purchase, Optional[str]]:
    """
    Build a Purchase from multipart fields.  Totals sent by the client are
    ignored and recomputed from the lines.

    Returns the purchase and the name of the upload stored for it, if any.
    """
    try:
        lines = parse_items_field(items)
    except ValueError as exc:
        raise HTTPException(400, str(exc))

    state = FormState(
        ref_num=ref_num,
        vendor=vendor,
        items=lines,
        remarks=remarks or "",
        received_by=received_by or "",
    )
    issues = PurchaseValidator().validate(state)
    if issues:
        raise _unprocessable(issues)

    stored = None
    if invoice is not None and invoice.filename:
        invoice_file = stored = await _store_upload(invoice, config.uploads_dir)

    products, _ = db.list_products()
    lines = enrich_items(lines, {p.id: p for p in products})
    totals = compute_totals(lines)
    purchase = Purchase(
        ref_num=ref_num,
        receipt_number=receipt_number or generate_receipt_number(),
        vendor=vendor,
        purchase_date=purchase_date or datetime.now(timezone.utc).isoformat(),
        invoice_file=invoice_file or None,
        remarks=remarks or None,
        received_by=received_by or None,
        subtotal=totals.subtotal,
        cancelled_total=totals.cancelled_total,
        return_total=totals.return_total,
        total=totals.grand_total,
        items=lines,
    )
    return purchase, stored


@app.post("/api/purchases", status_code=201)
async def create_purchase(
    ref_num: str = Form(default=""),
    vendor: str = Form(default=""),
    items: str = Form(default="[]"),
    receipt_number: Optional[str] = Form(default=None, alias="receiptNumber"),
    purchase_date: Optional[str] = Form(default=None, alias="purchaseDate"),
    received_by: Optional[str] = Form(default=None, alias="receivedBy"),
    remarks: Optional[str] = Form(default=None),
    invoice_file: Optional[str] = Form(default=None, alias="invoiceFile"),
    invoice: Optional[UploadFile] = File(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    session: AuthSession = Depends(manager),
):
    purchase, stored = await _purchase_from_form(
        db, config, ref_num, vendor, items, receipt_number, purchase_date,
        received_by, remarks, invoice_file, invoice,
    )
    try:
        saved = db.create_purchase(purchase, actor=_actor(session))
    except Exception:
        _discard_upload(config.uploads_dir, stored)
        raise
    return _wire(saved)


@app.put("/api/purchases/{purchase_id}")
async def update_purchase(
    purchase_id: str,
    ref_num: str = Form(default=""),
    vendor: str = Form(default=""),
    items: str = Form(default="[]"),
    receipt_number: Optional[str] = Form(default=None, alias="receiptNumber"),
    purchase_date: Optional[str] = Form(default=None, alias="purchaseDate"),
    received_by: Optional[str] = Form(default=None, alias="receivedBy"),
    remarks: Optional[str] = Form(default=None),
    invoice_file: Optional[str] = Form(default=None, alias="invoiceFile"),
    invoice: Optional[UploadFile] = File(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    session: AuthSession = Depends(manager),
):
    existing = db.get_purchase(purchase_id)
    if existing is None:
        raise HTTPException(404, f"Purchase not found: {purchase_id}")
    purchase, stored = await _purchase_from_form(
        db, config, ref_num, vendor, items,
        receipt_number or existing.receipt_number,
        purchase_date or existing.purchase_date,
        received_by, remarks, invoice_file, invoice,
    )
    try:
        saved = db.update_purchase(purchase_id, purchase, actor=_actor(session))
    except Exception:
        _discard_upload(config.uploads_dir, stored)
        raise
    return _wire(saved)


@app.delete("/api/purchases/{purchase_id}")
def delete_purchase(
    purchase_id: str,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(manager),
):
    db.soft_delete(ENTITY_PURCHASE, purchase_id, actor=_actor(session))
    return {"id": purchase_id, "isDeleted": True}


# ── Sales ────────────────────────────────────────────────────────────────────

@app.get("/api/sales")
def list_sales(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(any_user),
):
    page, limit, offset = _page(config, page, limit)
    sales, total = db.list_sales(search or None, limit, offset)
    return _listing("sales", sales, total, page, limit)


@app.get("/api/sales/{sale_id}")
def get_sale(
    sale_id: str,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(any_user),
):
    sale = db.get_sale(sale_id)
    if sale is None or sale.is_deleted:
        raise HTTPException(404, f"Sale not found: {sale_id}")
    return _wire(sale)


def _priced_sale(sale: Sale) -> Sale:
    total = sum_line_totals(sale.items)
    return sale.model_copy(update={"subtotal": total, "total": total})


@app.post("/api/sales", status_code=201)
def create_sale(
    body: Sale,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(any_user),
):
    if not body.customer:
        raise _unprocessable([ValidationIssue(field="customer", message="Customer is required")])
    sale = _priced_sale(body.model_copy(update={"id": None, "is_deleted": False}))
    return _wire(db.save_sale(sale, actor=_actor(session)))


@app.put("/api/sales/{sale_id}")
def update_sale(
    sale_id: str,
    body: Sale,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(any_user),
):
    existing = db.get_sale(sale_id)
    if existing is None or existing.is_deleted:
        raise HTTPException(404, f"Sale not found: {sale_id}")
    sale = _priced_sale(body.model_copy(update={"id": sale_id, "is_deleted": False}))
    return _wire(db.save_sale(sale, actor=_actor(session)))


@app.delete("/api/sales/{sale_id}")
def delete_sale(
    sale_id: str,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(any_user),
):
    db.soft_delete(ENTITY_SALE, sale_id, actor=_actor(session))
    return {"id": sale_id, "isDeleted": True}


# ── Recycle bin ──────────────────────────────────────────────────────────────

@app.get("/api/recycle-bin")
def recycle_bin(
    segment: str = Query(default=SEGMENT_ALL, alias="type"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    _: AuthSession = Depends(manager),
):
    """
    Soft-deleted records.  The ``all`` segment fetches the same page of
    every entity type.
    """
    if segment != SEGMENT_ALL and segment not in ENTITY_TYPES:
        raise HTTPException(400, f"type must be one of: {(SEGMENT_ALL, *ENTITY_TYPES)}")
    page, limit, offset = _page(config, page, limit)

    listers = {
        ENTITY_PURCHASE_ORDER: db.list_purchase_orders,
        ENTITY_PURCHASE: db.list_purchases,
        ENTITY_SALE: db.list_sales,
    }
    found: dict[str, list] = {}
    paging: dict[str, Pagination] = {}
    for entity, lister in listers.items():
        if segment not in (SEGMENT_ALL, entity):
            continue
        records, total = lister(search or None, limit, offset, deleted=True)
        found[entity] = records
        paging[entity] = Pagination.for_total(total, page, limit)

    bin_ = RecycleBin(
        purchase_orders=found.get(ENTITY_PURCHASE_ORDER, []),
        purchases=found.get(ENTITY_PURCHASE, []),
        sales=found.get(ENTITY_SALE, []),
        paging=paging,
    )
    return {
        "records": [{"entityType": entity, **_wire(r)} for entity, r in bin_.records(segment)],
        "counts": db.recycle_bin_counts(),
        "pagination": bin_.pagination(segment, page, limit).model_dump(),
    }


@app.post("/api/recycle-bin/restore")
def restore_records(
    body: RecycleAction,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(manager),
):
    if body.entity_type not in ENTITY_TYPES:
        raise HTTPException(400, f"entityType must be one of: {ENTITY_TYPES}")
    restored = [i for i in body.ids if db.restore(body.entity_type, i, actor=_actor(session))]
    return {"restored": restored}


@app.post("/api/recycle-bin/purge")
def purge_records(
    body: RecycleAction,
    db: Database = Depends(get_db),
    session: AuthSession = Depends(manager),
):
    if body.entity_type not in ENTITY_TYPES:
        raise HTTPException(400, f"entityType must be one of: {ENTITY_TYPES}")
    try:
        purged = [i for i in body.ids if db.purge(body.entity_type, i, actor=_actor(session))]
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"purged": purged}


# ── Purchase form helpers ────────────────────────────────────────────────────

@app.post("/api/purchase-form/resolve")
def resolve_reference(
    body: ResolveRequest,
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    """Form state after the DB number changes, plus the selectable references."""
    existing = None
    if body.purchase_id:
        existing = db.get_purchase(body.purchase_id)
        if existing is None:
            raise HTTPException(404, f"Purchase not found: {body.purchase_id}")
    orders, _total = db.list_purchase_orders()
    state = on_reference_number_changed(body.ref_num, body.state, orders, existing)
    return {
        "state": state.model_dump(by_alias=True),
        "totals": compute_totals(state.items).model_dump(by_alias=True),
        "references": [po.ref_num for po in selectable_purchase_orders(orders, existing)],
    }


@app.post("/api/totals")
def totals(body: TotalsRequest, _: AuthSession = Depends(any_user)):
    return compute_totals(body.items).model_dump(by_alias=True)


# ── Reports / settings ───────────────────────────────────────────────────────

@app.get("/api/reports/dashboard")
def dashboard_report(
    db: Database = Depends(get_db),
    _: AuthSession = Depends(manager),
):
    stats = db.get_stats()
    purchases, _total = db.list_purchases()
    cancelled = flatten_flagged_items(purchases, "isCancelled")
    returned = flatten_flagged_items(purchases, "isReturn")
    stats["cancelled_items"] = {"count": len(cancelled), "total": sum(r.total for r in cancelled)}
    stats["returned_items"] = {"count": len(returned), "total": sum(r.total for r in returned)}
    return stats


_TUNABLE = tuple(SettingsUpdate.model_fields)


@app.get("/api/settings")
def get_settings(
    config: Config = Depends(get_config),
    _: AuthSession = Depends(admin),
):
    return {key: getattr(config, key) for key in _TUNABLE}


@app.put("/api/settings")
def update_settings(
    body: SettingsUpdate,
    config: Config = Depends(get_config),
    session: AuthSession = Depends(admin),
):
    """Persist changed settings to console_settings.json and apply them."""
    settings_file = config.config_dir / "console_settings.json"
    current: dict = {}
    if settings_file.exists():
        with open(settings_file, encoding="utf-8") as f:
            current = json.load(f)
    changes = body.model_dump(exclude_none=True)
    current.update(changes)
    config.config_dir.mkdir(parents=True, exist_ok=True)
    with open(settings_file, "w", encoding="utf-8") as f:
        json.dump(current, f, indent=2)
    for key, value in changes.items():
        setattr(config, key, value)
    logger.info("Settings updated by %s: %s", _actor(session), sorted(changes))
    return {key: getattr(config, key) for key in _TUNABLE}
