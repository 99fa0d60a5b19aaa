from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ValidationIssue(BaseModel):
    """A single form validation problem, reported next to the offending field."""
    field: str                              # e.g. "ref_num", "items[1].quantity"
    message: str                            # Human-readable explanation
    item_index: Optional[int] = None        # Line index for per-item problems


class FlaggedItemRow(BaseModel):
    """One row of the flattened cancelled / returned items report."""
    model_config = ConfigDict(populate_by_name=True)

    purchase_id: Optional[str] = Field(default=None, alias="purchaseId")
    ref_num: str = ""
    receipt_number: Optional[str] = Field(default=None, alias="receiptNumber")
    vendor: str = ""
    purchase_date: Optional[str] = Field(default=None, alias="purchaseDate")
    product_id: str = Field(default="", alias="productId")
    product_name: Optional[str] = Field(default=None, alias="productName")
    quantity: float = 0.0
    unit_price: float = Field(default=0.0, alias="unitPrice")
    unit_type: str = Field(default="", alias="unitType")
    total: float = 0.0
