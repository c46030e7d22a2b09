import re
from datetime import date
from decimal import Decimal
from typing import Annotated, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from pharmacy_api.models.purchase_order import PurchaseOrderStatus

UNIT_COST_PATTERN = re.compile(r"^\d{1,8}(\.\d{1,2})?$")


def _check_unit_cost(value: Optional[str], message: str = "Invalid unit cost") -> Optional[str]:
    if value is None:
        return None
    if not UNIT_COST_PATTERN.match(value):
        raise ValueError(message)
    return value


class PurchaseOrderItemIn(BaseModel):
    product_id: UUID
    quantity: int = Field(..., ge=1)
    unit_cost: Optional[str] = None

    @field_validator("unit_cost")
    @classmethod
    def validate_unit_cost(cls, v: Optional[str]) -> Optional[str]:
        return _check_unit_cost(v)


class PurchaseOrderCreate(BaseModel):
    supplier_id: UUID
    order_date: date
    notes: Optional[str] = Field(None, max_length=255)
    items: List[PurchaseOrderItemIn]

    @field_validator("items")
    @classmethod
    def validate_items(cls, v: List[PurchaseOrderItemIn]) -> List[PurchaseOrderItemIn]:
        if not v:
            raise ValueError("At least one item is required")
        return v


class PurchaseOrderUpdate(PurchaseOrderCreate):
    """Full replacement: the item list sent here becomes the order's line set."""


class StatusUpdateRequest(BaseModel):
    status: PurchaseOrderStatus


class ConfirmedItem(BaseModel):
    unit_cost: Optional[str] = None
    available: bool

    @field_validator("unit_cost")
    @classmethod
    def validate_unit_cost(cls, v: Optional[str]) -> Optional[str]:
        return _check_unit_cost(v, "Invalid unit cost format")


class ConfirmPurchaseOrderRequest(BaseModel):
    confirmed_items: Dict[str, ConfirmedItem]

    @model_validator(mode="after")
    def check_available_items(self) -> "ConfirmPurchaseOrderRequest":
        available = [item for item in self.confirmed_items.values() if item.available]
        if not available:
            raise ValueError("At least one item must be available for confirmation")
        if not all(item.unit_cost and Decimal(item.unit_cost) > 0 for item in available):
            raise ValueError("All available items must have a valid price greater than 0")
        return self


class ReceiveItemsRequest(BaseModel):
    received_items: Dict[str, Annotated[int, Field(ge=0)]]
    update_inventory: bool = True


class ReceiveAllRequest(BaseModel):
    update_inventory: bool = True


class PurchaseOrderLineResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    unit_cost: Optional[Decimal] = None
    received_quantity: int = 0

    model_config = {"from_attributes": True}


class PurchaseOrderResponse(BaseModel):
    id: str
    pharmacy_id: str
    order_number: str
    supplier_id: str
    user_id: Optional[str] = None
    order_date: str
    status: str
    notes: Optional[str] = None
    total_cost: Decimal
    lines: List[PurchaseOrderLineResponse] = []
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class PurchaseOrderSummary(BaseModel):
    id: str
    order_number: str
    supplier_id: str
    order_date: str
    status: str
    notes: Optional[str] = None
    total_cost: Decimal
    total_items: int
    total_quantity: int
    created_at: str
