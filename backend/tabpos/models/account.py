"""Running account ("cari") models."""

from __future__ import annotations

import enum
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabpos.db.base import Base, TenantMixin, TimestampMixin
from tabpos.models.validators import positive


class AccountTransactionType(str, enum.Enum):
    DEBT = "debt"
    PAYMENT = "payment"


class Account(Base, TenantMixin, TimestampMixin):
    """Standing-credit customer. ``balance`` is the amount owed.

    A negative balance is credit held for the customer.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    transactions: Mapped[List["AccountTransaction"]] = relationship(
        back_populates="account", cascade="all, delete-orphan",
    )


class AccountTransaction(Base, TenantMixin, TimestampMixin):
    """Append-only account ledger row."""

    __tablename__ = "account_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type: Mapped[AccountTransactionType] = mapped_column(
        Enum(AccountTransactionType, native_enum=False, length=10,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    table_num: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    account: Mapped[Account] = relationship(back_populates="transactions")

    @validates("amount")
    def _validate_amount(self, key, value):
        return positive(key, value)
