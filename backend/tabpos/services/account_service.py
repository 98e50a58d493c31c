"""
Running Accounts ("cari") Service

Standing-credit customers who settle periodically:
- Account management
- Charging a table's bill to an account (debt)
- Recording payments against the balance

``Account.balance`` is always written in the same session as the
AccountTransaction that justifies it.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.account import Account, AccountTransaction, AccountTransactionType
from tabpos.models.order import to_money

logger = logging.getLogger(__name__)


def parse_amount(value) -> Decimal:
    """Positive two-place amount, or ValidationFailed."""
    if isinstance(value, bool):
        raise ValidationFailed("Enter a valid amount")
    try:
        amount = to_money(str(value).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        raise ValidationFailed("Enter a valid amount")
    if not amount.is_finite() or amount <= 0:
        raise ValidationFailed("Amount must be greater than zero")
    return amount


class AccountService:
    """Running account management for one tenant."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    # ========== ACCOUNT MANAGEMENT ==========

    def list_accounts(self) -> List[Account]:
        return (
            self.db.query(Account)
            .filter(Account.tenant_id == self.tenant_id)
            .order_by(Account.name)
            .all()
        )

    def get_account(self, account_id: int) -> Account:
        account = (
            self.db.query(Account)
            .filter(Account.id == account_id, Account.tenant_id == self.tenant_id)
            .first()
        )
        if account is None:
            raise NotFound("Account", account_id)
        return account

    def create_account(self, name: str, phone: Optional[str] = None,
                       note: Optional[str] = None) -> Account:
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Account name is required")
        account = Account(
            tenant_id=self.tenant_id,
            name=name,
            phone=(phone or "").strip() or None,
            note=note or None,
            balance=Decimal("0.00"),
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"Account created: {account.id} ({name})")
        return account

    def update_account(self, account_id: int, **changes) -> Account:
        account = self.get_account(account_id)
        if "name" in changes and changes["name"] is not None and not changes["name"].strip():
            raise ValidationFailed("Account name is required")
        for key in ("name", "phone", "note"):
            if changes.get(key) is not None:
                setattr(account, key, changes[key].strip() if key == "name" else changes[key])
        self.db.commit()
        self.db.refresh(account)
        return account

    def delete_account(self, account_id: int) -> None:
        self.db.delete(self.get_account(account_id))
        self.db.commit()

    def transactions(self, account_id: int) -> List[AccountTransaction]:
        return (
            self.db.query(AccountTransaction)
            .filter(
                AccountTransaction.account_id == account_id,
                AccountTransaction.tenant_id == self.tenant_id,
            )
            .order_by(AccountTransaction.created_at.desc(), AccountTransaction.id.desc())
            .all()
        )

    # ========== LEDGER ==========

    def _post(self, account: Account, kind: AccountTransactionType, amount: Decimal,
              description: str, table_num: Optional[int] = None) -> AccountTransaction:
        txn = AccountTransaction(
            tenant_id=self.tenant_id,
            account_id=account.id,
            type=kind,
            amount=amount,
            description=description,
            table_num=table_num,
        )
        self.db.add(txn)
        if kind == AccountTransactionType.DEBT:
            account.balance = to_money(account.balance or 0) + amount
        else:
            account.balance = to_money(account.balance or 0) - amount
        return txn

    def charge(self, account: Account, amount, description: str,
               table_num: Optional[int] = None) -> AccountTransaction:
        """Post a debt. Flushes only; the caller commits with its own writes."""
        txn = self._post(account, AccountTransactionType.DEBT, parse_amount(amount), description, table_num)
        self.db.flush()
        return txn

    def record_payment(self, account_id: int, amount, description: Optional[str] = None) -> dict:
        """Record money received against an account's balance.

        Payments larger than the balance are accepted and leave a credit
        (negative balance).
        """
        value = parse_amount(amount)
        account = self.get_account(account_id)
        txn = self._post(
            account, AccountTransactionType.PAYMENT, value, description or "Payment received",
        )
        self.db.commit()
        self.db.refresh(account)
        if account.balance < 0:
            logger.info(f"Account {account.id} overpaid; credit balance {account.balance}")
        return {"success": True, "account": account, "transaction_id": txn.id, "balance": account.balance}

    def ledger_balance(self, account_id: int) -> dict:
        """Re-derive the balance from transactions and compare."""
        account = self.get_account(account_id)
        rows = (
            self.db.query(AccountTransaction.type, func.coalesce(func.sum(AccountTransaction.amount), 0))
            .filter(AccountTransaction.account_id == account.id)
            .group_by(AccountTransaction.type)
            .all()
        )
        sums = {AccountTransactionType(kind): to_money(total) for kind, total in rows}
        derived = sums.get(AccountTransactionType.DEBT, Decimal("0.00")) - sums.get(
            AccountTransactionType.PAYMENT, Decimal("0.00")
        )
        return {
            "account_id": account.id,
            "ledger_balance": derived,
            "balance": to_money(account.balance),
            "consistent": derived == to_money(account.balance),
        }
