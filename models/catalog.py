from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    """
    A catalog product.  purchase_rate and unit_type are the values a line
    item's unit price and unit type are sourced from.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    sku: str = ""
    purchase_rate: float = Field(default=0.0, alias="purchaseRate")
    sales_rate: float = Field(default=0.0, alias="salesRate")
    unit_type: str = Field(default="Nos", alias="unitType")
    current_stock: float = Field(default=0.0, alias="currentStock")
    min_stock_level: float = Field(default=0.0, alias="minStockLevel")
    category: Optional[str] = None
    vendor: Optional[str] = None

    @property
    def is_out_of_stock(self) -> bool:
        return self.current_stock <= 0

    @property
    def is_low_stock(self) -> bool:
        return 0 < self.current_stock <= self.min_stock_level


class Customer(BaseModel):
    """A customer that sales / site deliveries are made to."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
