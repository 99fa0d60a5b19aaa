from .totals import compute_totals, sum_line_totals
from .status import LineItemLocked, apply_status, edit_item, is_field_editable, set_item_status
from .resolver import (
    FormState,
    on_reference_number_changed,
    resolve_items_for_reference,
    selectable_purchase_orders,
)
from .recycle import (
    RecycleBin,
    extract_cancelled_items_from_purchases,
    extract_items_by_flag,
    flatten_flagged_items,
)
from .pagination import Debouncer, Pagination, Paginator, Poller, SearchState
from .validator import PurchaseOrderValidator, PurchaseValidator
from .form import PurchaseForm
from .supplier_matcher import SupplierMatcher
from .database import Database, DuplicateReference, PurchaseOrderLocked, RecordNotFound

__all__ = [
    "compute_totals", "sum_line_totals",
    "LineItemLocked", "apply_status", "edit_item", "is_field_editable", "set_item_status",
    "FormState", "on_reference_number_changed", "resolve_items_for_reference",
    "selectable_purchase_orders",
    "RecycleBin", "extract_cancelled_items_from_purchases", "extract_items_by_flag",
    "flatten_flagged_items",
    "Debouncer", "Pagination", "Paginator", "Poller", "SearchState",
    "PurchaseOrderValidator", "PurchaseValidator",
    "PurchaseForm", "SupplierMatcher",
    "Database", "DuplicateReference", "PurchaseOrderLocked", "RecordNotFound",
]
