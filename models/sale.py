from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .line_item import LineItem

SaleStatus = Literal["paid", "pending", "overdue"]


class Sale(BaseModel):
    """A sale / site delivery to a customer."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    sale_number: Optional[str] = Field(default=None, alias="saleNumber")
    customer: str = ""
    sale_date: Optional[str] = Field(default=None, alias="saleDate")
    status: SaleStatus = "pending"
    subtotal: float = 0.0
    total: float = 0.0
    is_deleted: bool = Field(default=False, alias="isDeleted")
    items: list[LineItem] = Field(default_factory=list)
