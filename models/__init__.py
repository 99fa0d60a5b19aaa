from .line_item import LineItem, LineItemStatus, Totals
from .purchase_order import PurchaseOrder
from .purchase import Purchase
from .sale import Sale
from .catalog import Product, Customer
from .supplier import Supplier
from .auth import AuthSession, User
from .result import ValidationIssue, FlaggedItemRow

__all__ = [
    "LineItem", "LineItemStatus", "Totals",
    "PurchaseOrder", "Purchase", "Sale",
    "Product", "Customer", "Supplier",
    "AuthSession", "User",
    "ValidationIssue", "FlaggedItemRow",
]
