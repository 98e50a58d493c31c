"""Activity log schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ActivityEntryResponse(BaseModel):
    id: int
    table_num: int
    user_name: str
    action: str
    details: Optional[str] = None
    amount: Optional[Decimal] = None
    payment_type: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
