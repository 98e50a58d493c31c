"""Order model and the order disposition enum.

An order's item list is stored as JSON. Each line is a dict::

    {"line_id": "a1b2c3d4e5f6", "product_id": 7, "name": "Cola",
     "price": "35.00", "qty": 2, "note": "", "options": ["Ice"]}

``price`` is the effective unit price (base plus selected options) kept as
a decimal string. ``total`` is only ever written through
``Order.replace_items`` so it always equals the sum of ``price * qty``.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from sqlalchemy import JSON, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from tabpos.db.base import Base, TenantMixin, TimestampMixin, VersionMixin
from tabpos.models.validators import non_negative, validate_list

QUICK_ORDER_TABLE = 0
CENT = Decimal("0.01")


class OrderStatus(str, enum.Enum):
    """Single disposition of an order.

    ``waiting``/``preparing``/``ready`` are open; the rest are closed and
    record how the order ended.
    """

    WAITING = "waiting"
    PREPARING = "preparing"
    READY = "ready"
    PAID = "paid"
    CANCELLED = "cancelled"
    ACCOUNT = "account"
    TRANSFERRED = "transferred"

    @property
    def is_open(self) -> bool:
        return self in OPEN_STATUSES


OPEN_STATUSES = frozenset({OrderStatus.WAITING, OrderStatus.PREPARING, OrderStatus.READY})
CLOSED_STATUSES = frozenset(set(OrderStatus) - OPEN_STATUSES)

# Lower rank is more urgent
URGENCY_RANK = {
    OrderStatus.WAITING: 0,
    OrderStatus.PREPARING: 1,
    OrderStatus.READY: 2,
}


class PaymentType(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    POS = "pos"
    TRANSFER = "transfer"
    CARI = "cari"


PAYMENT_LABELS = {
    PaymentType.CASH.value: "Cash",
    PaymentType.CARD.value: "Credit card",
    PaymentType.POS.value: "Card at table (POS)",
    PaymentType.TRANSFER.value: "Bank transfer",
    PaymentType.CARI.value: "Running account",
}


def to_money(value) -> Decimal:
    """Coerce to a two-place Decimal."""
    return Decimal(str(value)).quantize(CENT)


def round_currency(value) -> int:
    """Nearest whole currency unit, halves rounded up."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(value) -> str:
    return f"₺{to_money(value)}"


def line_amount(item: dict) -> Decimal:
    return to_money(Decimal(str(item["price"])) * int(item["qty"]))


def items_total(items: Iterable[dict]) -> Decimal:
    return sum((line_amount(i) for i in items), Decimal("0.00"))


def new_line_id() -> str:
    return uuid.uuid4().hex[:12]


def normalize_item(item: dict) -> dict:
    """Return a clean copy of an item dict in storage form."""
    qty = int(item["qty"])
    if qty < 1:
        raise ValueError(f"qty must be at least 1, got {qty}")
    price = to_money(item["price"])
    if price < 0:
        raise ValueError(f"price cannot be negative, got {price}")
    return {
        "line_id": item.get("line_id") or new_line_id(),
        "product_id": item.get("product_id"),
        "name": str(item["name"]),
        "price": str(price),
        "qty": qty,
        "note": item.get("note") or "",
        "options": list(item.get("options") or []),
    }


class Order(Base, TenantMixin, TimestampMixin, VersionMixin):
    """One ticket of items placed against a table (0 for quick orders)."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_tenant_table_status", "tenant_id", "table_num", "status"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    user_name: Mapped[str] = mapped_column(String(100), nullable=False)
    table_num: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False,
    )
    status: Mapped[OrderStatus] = mapped_column(
        Enum(
            OrderStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=OrderStatus.WAITING,
        nullable=False,
        index=True,
    )
    payment_type: Mapped[str] = mapped_column(String(20), default=PaymentType.CASH.value, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    member_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True,
    )

    @validates("items")
    def _validate_items(self, key, value):
        return validate_list(key, value)

    @validates("total", "discount_amount")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)

    def replace_items(self, items: List[dict]) -> None:
        """Write a new item list and its total together."""
        normalized = [normalize_item(i) for i in items]
        self.items = normalized
        self.total = items_total(normalized)

    def find_line(self, line_id: str) -> Optional[dict]:
        for item in self.items or []:
            if item["line_id"] == line_id:
                return item
        return None

    @property
    def is_open(self) -> bool:
        return OrderStatus(self.status).is_open

    @property
    def amount_due(self) -> Decimal:
        """Total less any loyalty redemption, never below zero."""
        due = to_money(self.total or 0) - to_money(self.discount_amount or 0)
        return max(due, Decimal("0.00"))

    @property
    def lifecycle_status(self) -> str:
        """Kitchen-facing status: open states as-is, every closed state as ``paid``."""
        status = OrderStatus(self.status)
        return status.value if status.is_open else OrderStatus.PAID.value

    @property
    def payment_status(self) -> str:
        status = OrderStatus(self.status)
        return "pending" if status.is_open else status.value

    @property
    def short_id(self) -> str:
        return self.id[:6].upper()

    def close(self, disposition: OrderStatus, payment_type: Optional[str] = None) -> None:
        if disposition in OPEN_STATUSES:
            raise ValueError(f"{disposition.value} is not a closing disposition")
        self.status = disposition
        if payment_type:
            self.payment_type = payment_type


def local_created_at(order: Order, tz) -> datetime:
    """created_at converted to the business timezone."""
    created = order.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.astimezone(tz)
