"""Table view, table action and seating configuration schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from tabpos.models.order import PaymentType
from tabpos.schemas.order import OrderResponse, VersionedRequest


class OpenTableResponse(BaseModel):
    table_num: int
    label: str
    total: Decimal
    item_count: int
    order_count: int
    urgency: Optional[str] = None
    opened_at: Optional[datetime] = None


class ClosedTableResponse(BaseModel):
    table_num: int
    label: str
    total: Decimal
    order_count: int
    payment_types: List[str]
    dispositions: List[str]
    closed_at: Optional[datetime] = None
    has_open_orders: bool


class TableItemRow(BaseModel):
    """A flattened order line, addressable by ``order_id`` + ``line_id``."""

    order_id: str
    order_version: int
    line_id: str
    product_id: Optional[int] = None
    name: str
    price: Decimal
    qty: int
    amount: Decimal
    note: str = ""
    options: List[str] = []
    status: str


class TableDetailResponse(BaseModel):
    table_num: int
    label: str
    orders: List[OrderResponse]
    items: List[TableItemRow]
    total: Decimal
    urgency: Optional[str] = None
    is_open: bool


# ========== Item mutation ==========

class ItemEdit(BaseModel):
    qty: int = Field(..., le=999)
    note: Optional[str] = Field(default=None, max_length=500)
    expected_version: Optional[int] = None


class ItemCancel(BaseModel):
    expected_version: Optional[int] = None


# ========== Settlement ==========

class PayRequest(VersionedRequest):
    payment_type: PaymentType
    discount_pct: int = 0


class PaySelectedRequest(PayRequest):
    line_ids: List[str]


class CancelSelectedRequest(VersionedRequest):
    line_ids: List[str]


class SettlementResponse(BaseModel):
    success: bool = True
    table_num: int
    gross: Decimal
    discount_pct: int
    collected: Decimal
    collected_rounded: int
    closed: bool


# ========== Transfers ==========

class TransferRequest(VersionedRequest):
    target: int = Field(..., ge=1)


class TransferItemsRequest(TransferRequest):
    line_ids: List[str]


class ToAccountRequest(VersionedRequest):
    account_id: int


class PaymentTypeChange(BaseModel):
    payment_type: PaymentType


# ========== Areas & tables ==========

class AreaCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class AreaUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    sort_order: Optional[int] = None


class DiningTableBase(BaseModel):
    table_num: int = Field(..., ge=1)
    name: Optional[str] = Field(default=None, max_length=100)
    area_id: Optional[int] = None
    capacity: int = Field(default=4, ge=1, le=100)


class DiningTableCreate(DiningTableBase):
    pass


class DiningTableUpdate(BaseModel):
    table_num: Optional[int] = Field(default=None, ge=1)
    name: Optional[str] = Field(default=None, max_length=100)
    area_id: Optional[int] = None
    capacity: Optional[int] = Field(default=None, ge=1, le=100)
    is_active: Optional[bool] = None


class DiningTableResponse(DiningTableBase):
    id: int
    is_active: bool

    model_config = {"from_attributes": True}


class AreaResponse(BaseModel):
    id: int
    name: str
    sort_order: int
    tables: List[DiningTableResponse] = []

    model_config = {"from_attributes": True}


class GenerateTablesRequest(BaseModel):
    cols: int = Field(..., ge=1, le=20)
    rows: int = Field(..., ge=1, le=20)
    capacity: int = Field(default=4, ge=1, le=100)
