"""Tenant-level operational settings and printers."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from tabpos.db.base import Base, TenantMixin, TimestampMixin
from tabpos.models.validators import paper_size, validate_list


class TenantSettings(Base, TenantMixin, TimestampMixin):
    """Payment methods, notifications and printing preferences."""

    __tablename__ = "tenant_settings"
    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_tenant_settings_tenant"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    card_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    cash_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    pos_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sound_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    waiter_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    auto_print_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paper_size: Mapped[str] = mapped_column(String(2), default="80", nullable=False)
    printer_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    @validates("paper_size")
    def _validate_paper_size(self, key, value):
        return paper_size(key, value)

    def enabled_payment_types(self) -> list:
        enabled = []
        if self.card_enabled:
            enabled.append("card")
        if self.pos_enabled:
            enabled.append("pos")
        if self.cash_enabled:
            enabled.append("cash")
        return enabled


class Printer(Base, TenantMixin, TimestampMixin):
    """Network receipt printer (ESC/POS over TCP)."""

    __tablename__ = "printers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    port: Mapped[int] = mapped_column(Integer, default=9100, nullable=False)
    paper_size: Mapped[str] = mapped_column(String(2), default="80", nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    auto_print_categories: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    header_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    footer_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @validates("paper_size")
    def _validate_paper_size(self, key, value):
        return paper_size(key, value)

    @validates("auto_print_categories")
    def _validate_categories(self, key, value):
        return validate_list(key, value)
