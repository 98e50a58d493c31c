"""Loyalty member and points schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from tabpos.models.loyalty import PointTransactionType


class MemberCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=30)


class MemberResponse(BaseModel):
    id: int
    name: str
    phone: str
    total_points: int
    used_points: int
    available_points: int
    total_spent: Decimal
    visit_count: int
    last_visit_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PointTransactionResponse(BaseModel):
    id: int
    type: PointTransactionType
    points: int
    description: Optional[str] = None
    order_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberDetailResponse(BaseModel):
    member: MemberResponse
    transactions: List[PointTransactionResponse]


class PointAdjust(BaseModel):
    """Manual adjustment; the service rejects zero and non-integers."""

    points: Union[int, str]
    reason: Optional[str] = Field(default=None, max_length=255)


class RedemptionQuote(BaseModel):
    eligible: bool
    available_points: int
    min_redeem_points: int
    discount: Decimal
    point_cost: int


class LedgerCheck(BaseModel):
    member_id: int
    ledger_earned: int
    ledger_spent: int
    total_points: int
    used_points: int
    consistent: bool


class LoyaltySettingsResponse(BaseModel):
    is_enabled: bool
    points_per_currency: Decimal
    point_value: Decimal
    min_redeem_points: int

    model_config = {"from_attributes": True}


class LoyaltySettingsUpdate(BaseModel):
    is_enabled: Optional[bool] = None
    points_per_currency: Optional[Decimal] = Field(default=None, ge=0)
    point_value: Optional[Decimal] = Field(default=None, gt=0)
    min_redeem_points: Optional[int] = Field(default=None, ge=0)
