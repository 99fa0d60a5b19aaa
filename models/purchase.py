from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .line_item import LineItem


class Purchase(BaseModel):
    """
    A goods-receipt record created against a Purchase Order.

    Carries its own copy of the line items, which may diverge from the
    order's via per-line cancellation / return status, plus the totals as
    they were at the last save.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    ref_num: str = ""
    receipt_number: Optional[str] = Field(default=None, alias="receiptNumber")
    vendor: str = ""
    purchase_date: Optional[str] = Field(default=None, alias="purchaseDate")
    invoice_file: Optional[str] = Field(default=None, alias="invoiceFile")
    remarks: Optional[str] = None
    received_by: Optional[str] = Field(default=None, alias="receivedBy")
    subtotal: float = 0.0
    cancelled_total: float = Field(default=0.0, alias="cancelledTotal")
    return_total: float = Field(default=0.0, alias="returnTotal")
    total: float = 0.0
    is_deleted: bool = Field(default=False, alias="isDeleted")
    items: list[LineItem] = Field(default_factory=list)
