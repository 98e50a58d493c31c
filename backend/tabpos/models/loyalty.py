"""Loyalty program models."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabpos.db.base import Base, TenantMixin, TimestampMixin
from tabpos.models.validators import non_negative, positive


class PointTransactionType(str, enum.Enum):
    EARN = "earn"
    SPEND = "spend"


class Member(Base, TenantMixin, TimestampMixin):
    """Loyalty participant identified by phone number.

    ``total_points`` and ``used_points`` cache the sums of the member's
    earn and spend transactions and are only changed by LoyaltyService.
    """

    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("tenant_id", "phone", name="uq_members_tenant_phone"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    used_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_spent: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    visit_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_visit_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    transactions: Mapped[List["PointTransaction"]] = relationship(
        back_populates="member", cascade="all, delete-orphan",
    )

    @property
    def available_points(self) -> int:
        return (self.total_points or 0) - (self.used_points or 0)

    @validates("total_points", "used_points", "visit_count", "total_spent")
    def _validate_counters(self, key, value):
        return non_negative(key, value)


class PointTransaction(Base, TenantMixin, TimestampMixin):
    """Append-only point ledger row; points are always positive."""

    __tablename__ = "point_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type: Mapped[PointTransactionType] = mapped_column(
        Enum(PointTransactionType, native_enum=False, length=10,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    order_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True,
    )

    member: Mapped[Member] = relationship(back_populates="transactions")

    @validates("points")
    def _validate_points(self, key, value):
        return positive(key, value)


class LoyaltySettings(Base, TenantMixin, TimestampMixin):
    """Per-tenant accrual and redemption rates."""

    __tablename__ = "loyalty_settings"
    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_loyalty_settings_tenant"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    points_per_currency: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("1"), nullable=False,
    )
    point_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), default=Decimal("0.10"), nullable=False,
    )
    min_redeem_points: Mapped[int] = mapped_column(Integer, default=50, nullable=False)

    @validates("points_per_currency", "min_redeem_points")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    @validates("point_value")
    def _validate_point_value(self, key, value):
        return positive(key, value)
