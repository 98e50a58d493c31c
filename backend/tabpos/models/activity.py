"""Activity log model."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tabpos.db.base import Base, TenantMixin, utcnow


class ActivityAction(str, enum.Enum):
    """Fixed vocabulary of table-affecting actions."""

    ORDER_ADDED = "order added"
    ITEM_CANCELLED = "item cancelled"
    ITEMS_CANCELLED = "items cancelled"
    ITEM_INCREASED = "item increased"
    ITEM_REDUCED = "item reduced"
    ITEM_NOTE_CHANGED = "item note changed"
    PAYMENT_RECEIVED = "payment received"
    PARTIAL_PAYMENT_RECEIVED = "partial payment received"
    TABLE_CLOSED = "table closed"
    TABLE_REOPENED = "table reopened"
    ORDERS_CANCELLED = "orders cancelled"
    TABLE_MOVED = "table moved"
    ITEMS_MOVED = "items moved"
    MOVED_TO_ACCOUNT = "moved to account"
    PAYMENT_TYPE_CHANGED = "payment type changed"


class ActivityLogEntry(Base, TenantMixin):
    """Append-only audit trail row for one table action."""

    __tablename__ = "activity_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    table_num: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    payment_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True,
    )
