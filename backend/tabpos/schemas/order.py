"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from tabpos.models.order import OrderStatus, PaymentType


class OrderItemResponse(BaseModel):
    """One stored order line."""

    line_id: str
    product_id: Optional[int] = None
    name: str
    price: Decimal
    qty: int
    note: str = ""
    options: List[str] = []


class OrderResponse(BaseModel):
    id: str
    short_id: str
    table_num: int
    user_name: str
    items: List[OrderItemResponse]
    total: Decimal
    discount_amount: Decimal
    amount_due: Decimal
    status: OrderStatus
    lifecycle_status: str
    payment_status: str
    payment_type: str
    note: Optional[str] = None
    member_id: Optional[int] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StaffOrderLine(BaseModel):
    """A staff draft line as sent by the client; prices come from the catalog."""

    product_id: int
    qty: int = Field(default=1, ge=1, le=999)
    note: str = Field(default="", max_length=500)
    option_ids: List[int] = []


class StaffOrderCreate(BaseModel):
    lines: List[StaffOrderLine]
    user_name: Optional[str] = Field(default=None, max_length=100)
    payment_type: PaymentType = PaymentType.CASH
    note: Optional[str] = Field(default=None, max_length=500)


class CustomerOrderItem(BaseModel):
    product_id: int
    qty: int = Field(default=1, ge=1, le=99)


class CustomerOrderCreate(BaseModel):
    table_num: int = Field(..., ge=1)
    items: List[CustomerOrderItem]
    payment_type: str
    note: Optional[str] = Field(default=None, max_length=500)
    member_id: Optional[int] = None
    redeem_points: bool = False


class PointsSummary(BaseModel):
    discount: Decimal
    points_spent: int
    points_earned: int
    charged: Decimal


class CustomerOrderResponse(BaseModel):
    order: OrderResponse
    short_id: str
    subtotal: Decimal
    service_charge: Decimal
    points: Optional[PointsSummary] = None


class StatusUpdate(BaseModel):
    status: OrderStatus
    expected_version: Optional[int] = None


class PopularItem(BaseModel):
    name: str
    qty: int


class DashboardStats(BaseModel):
    waiting: int
    active: int
    done: int
    revenue: Decimal
    popular: List[PopularItem]


class PrintResponse(BaseModel):
    success: bool = True
    text: str
    queued: bool


class VersionedRequest(BaseModel):
    """Optional optimistic-concurrency guard: order id -> version last seen."""

    expected_versions: Optional[Dict[str, int]] = None
