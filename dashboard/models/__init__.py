"""
Pydantic models for dashboard API requests.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from procurement.resolver import FormState


class LoginRequest(BaseModel):
    username: str
    password: str
    remember: bool = False


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")


class ProductBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    sku: str = ""
    purchase_rate: float = Field(default=0.0, alias="purchaseRate")
    sales_rate: float = Field(default=0.0, alias="salesRate")
    unit_type: str = Field(default="Nos", alias="unitType")
    current_stock: float = Field(default=0.0, alias="currentStock")
    min_stock_level: float = Field(default=0.0, alias="minStockLevel")
    category: Optional[str] = None
    vendor: Optional[str] = None


class SupplierBody(BaseModel):
    name: str
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    aliases: list[str] = []


class CustomerBody(BaseModel):
    name: str
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ResolveRequest(BaseModel):
    """A reference-number change on the purchase form."""
    model_config = ConfigDict(populate_by_name=True)

    ref_num: str = Field(default="", alias="refNum")
    purchase_id: Optional[str] = Field(default=None, alias="purchaseId")   # edit mode
    state: FormState = Field(default_factory=FormState.empty)


class TotalsRequest(BaseModel):
    items: list[dict] = []


class RecycleAction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entity_type: str = Field(alias="entityType")   # purchaseOrder | purchase | sale
    ids: list[str]


class SettingsUpdate(BaseModel):
    page_size: Optional[int] = None
    search_debounce_ms: Optional[int] = None
    poll_interval_seconds: Optional[int] = None
    session_ttl_hours: Optional[int] = None
    remember_ttl_days: Optional[int] = None
    supplier_fuzzy_threshold: Optional[int] = None
    currency_symbol: Optional[str] = None
    currency_code: Optional[str] = None
