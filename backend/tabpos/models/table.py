"""Seating models: areas and tables."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabpos.db.base import Base, TenantMixin, TimestampMixin
from tabpos.models.validators import positive


class TableArea(Base, TenantMixin, TimestampMixin):
    """Named zone grouping tables (garden, terrace, hall)."""

    __tablename__ = "table_areas"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    tables: Mapped[List["DiningTable"]] = relationship(
        back_populates="area",
        cascade="all, delete-orphan",
        order_by="DiningTable.table_num",
    )


class DiningTable(Base, TenantMixin, TimestampMixin):
    """A seating and billing unit identified by its number."""

    __tablename__ = "dining_tables"
    __table_args__ = (
        UniqueConstraint("tenant_id", "table_num", name="uq_dining_tables_tenant_num"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    table_num: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    area_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("table_areas.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    area: Mapped[Optional[TableArea]] = relationship(back_populates="tables")

    @validates("table_num", "capacity")
    def _validate_positive(self, key, value):
        return positive(key, value)
