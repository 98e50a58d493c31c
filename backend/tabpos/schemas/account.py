"""Running account schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from tabpos.models.account import AccountTransactionType


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=30)
    note: Optional[str] = None


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=30)
    note: Optional[str] = None


class AccountResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    note: Optional[str] = None
    balance: Decimal
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AccountTransactionResponse(BaseModel):
    id: int
    type: AccountTransactionType
    amount: Decimal
    description: Optional[str] = None
    table_num: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountDetailResponse(BaseModel):
    account: AccountResponse
    transactions: List[AccountTransactionResponse]


class AccountPayment(BaseModel):
    """Amount as entered; the service parses and rejects non-positive values."""

    amount: Union[Decimal, str]
    description: Optional[str] = Field(default=None, max_length=255)
