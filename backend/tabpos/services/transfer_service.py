"""Moving open orders between tables, and onto running accounts."""

import logging
import uuid
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from tabpos.core.exceptions import ValidationFailed
from tabpos.models.activity import ActivityAction
from tabpos.models.order import Order, OrderStatus, PaymentType, format_money
from tabpos.services.account_service import AccountService
from tabpos.services.activity_service import ActivityService, describe_items
from tabpos.services.order_service import check_versions
from tabpos.services.table_service import TableService

logger = logging.getLogger(__name__)


class TransferService:
    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.activity = ActivityService(db, tenant_id)
        self.tables = TableService(db, tenant_id)

    def _source_orders(self, source: int, target: Optional[int] = None) -> List[Order]:
        if target is not None:
            if source == target:
                raise ValidationFailed("Source and target table must differ")
            if target < 1:
                raise ValidationFailed("Target table number must be at least 1")
        orders = self.tables.open_orders(source)
        if not orders:
            raise ValidationFailed(f"Table {source} has no open orders")
        return orders

    def transfer_table(self, source: int, target: int, user_name: str,
                       expected_versions: Optional[Dict[str, int]] = None) -> dict:
        """Re-point every open order at ``source`` to ``target``."""
        orders = self._source_orders(source, target)
        check_versions(orders, expected_versions)

        total = sum((o.amount_due for o in orders), Decimal("0.00"))
        for order in orders:
            order.table_num = target
            order.increment_version()

        self.activity.record(
            source,
            user_name,
            ActivityAction.TABLE_MOVED,
            details=f"Table {source} → Table {target} ({format_money(total)})",
            amount=total,
        )
        self.db.commit()
        logger.info(f"Table {source} moved to {target}: {len(orders)} orders, {total}")
        return {"success": True, "source": source, "target": target, "orders": len(orders), "total": total}

    def transfer_items(self, source: int, target: int, line_ids: Sequence[str], user_name: str,
                       expected_versions: Optional[Dict[str, int]] = None) -> dict:
        """Move selected lines into new orders at ``target``.

        Each affected source order gets a sibling at the target carrying the
        moved lines with the same owner, status and payment type. A source
        order left empty closes as ``transferred``.
        """
        orders = self._source_orders(source, target)
        wanted = set(line_ids)
        if not wanted:
            raise ValidationFailed("Select at least one item to move")
        known = {i["line_id"] for o in orders for i in (o.items or [])}
        if wanted - known:
            raise ValidationFailed("Some selected items are no longer on this table")
        check_versions(orders, expected_versions)

        moved_all: List[dict] = []
        created: List[Order] = []
        for order in orders:
            moved = [i for i in order.items if i["line_id"] in wanted]
            if not moved:
                continue
            remaining = [i for i in order.items if i["line_id"] not in wanted]

            sibling = Order(
                id=str(uuid.uuid4()),
                tenant_id=self.tenant_id,
                user_id=order.user_id,
                user_name=order.user_name,
                table_num=target,
                status=order.status,
                payment_type=order.payment_type,
                note=order.note,
                member_id=order.member_id,
            )
            sibling.replace_items(moved)
            if remaining:
                order.replace_items(remaining)
            else:
                # the whole order moved, so its redemption moves with it
                sibling.discount_amount = order.discount_amount
                order.close(OrderStatus.TRANSFERRED)
            order.increment_version()
            self.db.add(sibling)
            created.append(sibling)
            moved_all.extend(moved)

        self.activity.record(
            source,
            user_name,
            ActivityAction.ITEMS_MOVED,
            details=f"Table {source} → Table {target} ({describe_items(moved_all)})",
        )
        self.db.commit()
        logger.info(f"{len(moved_all)} lines moved from table {source} to {target}")
        return {
            "success": True,
            "source": source,
            "target": target,
            "created_orders": [o.id for o in created],
            "items": len(moved_all),
        }

    def transfer_to_account(self, table_num: int, account_id: int, user_name: str,
                            expected_versions: Optional[Dict[str, int]] = None) -> dict:
        """Charge the table's bill to a running account and close it.

        The debt posting, the balance change and the order closures commit
        together.
        """
        accounts = AccountService(self.db, self.tenant_id)
        account = accounts.get_account(account_id)
        orders = self._source_orders(table_num)
        check_versions(orders, expected_versions)

        total = sum((o.amount_due for o in orders), Decimal("0.00"))
        if total <= 0:
            raise ValidationFailed("Nothing to charge for this table")
        accounts.charge(account, total, f"Table {table_num}", table_num=table_num)
        for order in orders:
            order.close(OrderStatus.ACCOUNT, PaymentType.CARI.value)
            order.increment_version()

        self.activity.record(
            table_num,
            user_name,
            ActivityAction.MOVED_TO_ACCOUNT,
            details=f"{account.name} ({format_money(total)})",
            amount=total,
            payment_type=PaymentType.CARI.value,
        )
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"Table {table_num} charged to account {account.id}: {total}")
        return {"success": True, "table_num": table_num, "account": account, "total": total}
