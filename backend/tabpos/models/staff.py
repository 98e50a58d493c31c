"""Staff and permission models."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabpos.db.base import Base, TenantMixin, TimestampMixin
from tabpos.models.validators import validate_list

WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)
DEFAULT_WORK_DAYS = list(WEEKDAYS[:5])

PERMISSION_KEYS = (
    "take_orders",
    "take_payment",
    "cancel_items",
    "transfer_tables",
    "manage_accounts",
    "manage_members",
    "view_reports",
    "manage_menu",
)


class Staff(Base, TenantMixin, TimestampMixin):
    """Staff member linked to a login identity."""

    __tablename__ = "staff"
    __table_args__ = (
        UniqueConstraint("tenant_id", "username", name="uq_staff_tenant_username"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    pin_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    work_days: Mapped[list] = mapped_column(JSON, default=lambda: list(DEFAULT_WORK_DAYS), nullable=False)
    shift_start: Mapped[str] = mapped_column(String(5), default="09:00", nullable=False)
    shift_end: Mapped[str] = mapped_column(String(5), default="23:00", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    permissions: Mapped[List["StaffPermission"]] = relationship(
        back_populates="staff", cascade="all, delete-orphan",
    )

    @validates("work_days")
    def _validate_work_days(self, key, value):
        return validate_list(key, value)

    def effective_permissions(self) -> dict:
        """Every known key, granted unless a row disables it."""
        flags = {key: True for key in PERMISSION_KEYS}
        for perm in self.permissions:
            flags[perm.perm_key] = perm.enabled
        return flags


class StaffPermission(Base):
    """Explicit capability flag for one staff member."""

    __tablename__ = "staff_permissions"
    __table_args__ = (
        UniqueConstraint("staff_id", "perm_key", name="uq_staff_permissions_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    staff_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    perm_key: Mapped[str] = mapped_column(String(50), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    staff: Mapped[Staff] = relationship(back_populates="permissions")
