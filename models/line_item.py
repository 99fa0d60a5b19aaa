import logging
import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

logger = logging.getLogger(__name__)


class LineItemStatus(str, Enum):
    """Exclusive status of a line: exactly one of these at any time."""
    NONE = "none"
    CANCELLED = "cancelled"
    RETURNED = "returned"


def _finite(value: Optional[float]) -> float:
    """Missing or non-finite numbers count as zero."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class LineItem(BaseModel):
    """
    One product row within a Purchase Order or Purchase.

    The cancelled / returned state is stored as a single ``status`` value.
    Wire payloads still carry the two booleans ``isCancelled`` / ``isReturn``;
    they are folded into ``status`` on input and derived from it on output.
    """
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(default="", alias="productId")
    product_name: Optional[str] = Field(default=None, alias="productName")
    quantity: Optional[float] = None
    unit_price: Optional[float] = Field(default=None, alias="unitPrice")
    unit_type: str = Field(default="", alias="unitType")
    status: LineItemStatus = Field(default=LineItemStatus.NONE, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _fold_flags(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "status" in data:
            return data
        data = dict(data)
        cancelled = bool(data.pop("isCancelled", data.pop("is_cancelled", False)))
        returned = bool(data.pop("isReturn", data.pop("is_return", False)))
        data.pop("total", None)  # derived, never stored on the working line
        if cancelled and returned:
            logger.warning(
                "Line item %s is flagged both cancelled and returned; treating as cancelled",
                data.get("productId", data.get("product_id")),
            )
        if cancelled:
            data["status"] = LineItemStatus.CANCELLED
        elif returned:
            data["status"] = LineItemStatus.RETURNED
        return data

    @field_validator("product_id", mode="before")
    @classmethod
    def _stringify_product_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("unit_type", mode="before")
    @classmethod
    def _blank_unit_type(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @computed_field(alias="isCancelled")
    @property
    def is_cancelled(self) -> bool:
        return self.status is LineItemStatus.CANCELLED

    @computed_field(alias="isReturn")
    @property
    def is_return(self) -> bool:
        return self.status is LineItemStatus.RETURNED

    @property
    def is_active(self) -> bool:
        return self.status is LineItemStatus.NONE

    @property
    def line_total(self) -> float:
        """quantity * unit_price, never NaN."""
        return _finite(self.quantity) * _finite(self.unit_price)

    @classmethod
    def blank(cls) -> "LineItem":
        """The default empty row a line-items form always falls back to."""
        return cls(product_id="", quantity=1, unit_price=0, unit_type="")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class Totals(BaseModel):
    """Derived totals for a list of line items. Recomputed, never edited."""
    model_config = ConfigDict(populate_by_name=True)

    subtotal: float = 0.0
    cancelled_total: float = Field(default=0.0, alias="cancelledTotal")
    return_total: float = Field(default=0.0, alias="returnTotal")
    grand_total: float = Field(default=0.0, alias="grandTotal")
