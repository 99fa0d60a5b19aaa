from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .line_item import LineItem

PurchaseOrderStatus = Literal["draft", "approved", "delivered", "cancelled"]


class PurchaseOrder(BaseModel):
    """
    A Purchase Order: a requested set of line items against a vendor.

    ref_num (the "DB number") is the key a Purchase uses to point back at
    its order.  Once a Purchase exists for it, is_purchased_created locks the
    order against editing, deletion and reuse.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    ref_num: str = ""
    po_number: Optional[str] = Field(default=None, alias="poNumber")
    vendor: str = ""
    status: PurchaseOrderStatus = "draft"
    order_date: Optional[str] = Field(default=None, alias="orderDate")        # ISO 8601
    delivery_date: Optional[str] = Field(default=None, alias="deliveryDate")  # ISO 8601
    attachment: Optional[str] = None
    purpose: Optional[str] = None
    remarks: Optional[str] = None
    is_purchased_created: bool = Field(default=False, alias="isPurchasedCreated")
    is_deleted: bool = Field(default=False, alias="isDeleted")
    items: list[LineItem] = Field(default_factory=list)

    @property
    def is_locked(self) -> bool:
        return self.is_purchased_created
