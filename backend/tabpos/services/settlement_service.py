"""Table settlement: full payment, payment of selected items, and
cancellation of selected items.

Discounts apply to the collected amount only. Stored order totals are
never discounted; the activity entry carries what was actually taken.
The amount is kept to the cent, and the whole-unit figure shown to staff
is rounded half up.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from tabpos.core.exceptions import ValidationFailed
from tabpos.models.activity import ActivityAction
from tabpos.models.order import (
    PAYMENT_LABELS, Order, OrderStatus, PaymentType, line_amount, round_currency, to_money,
)
from tabpos.services.activity_service import ActivityService, describe_items
from tabpos.services.order_service import check_versions
from tabpos.services.table_service import TableService

logger = logging.getLogger(__name__)

ALLOWED_DISCOUNTS = (0, 5, 10, 15, 20)
SETTLEMENT_PAYMENT_TYPES = (
    PaymentType.CASH.value,
    PaymentType.CARD.value,
    PaymentType.POS.value,
    PaymentType.TRANSFER.value,
)


def apply_discount(amount: Decimal, discount_pct: int) -> Decimal:
    """``amount - amount * pct / 100`` to the cent."""
    amount = to_money(amount)
    return to_money(amount - amount * Decimal(discount_pct) / Decimal(100))


def _discount_suffix(discount_pct: int) -> str:
    return f" ({discount_pct}% discount)" if discount_pct else ""


class SettlementService:
    """Close out some or all of a table's open orders."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.activity = ActivityService(db, tenant_id)

    def _validate(self, payment_type: Optional[str], discount_pct: int) -> None:
        if payment_type is not None and payment_type not in SETTLEMENT_PAYMENT_TYPES:
            raise ValidationFailed(f"Unsupported payment method: {payment_type}")
        if discount_pct not in ALLOWED_DISCOUNTS:
            raise ValidationFailed(
                f"Discount must be one of {', '.join(str(d) for d in ALLOWED_DISCOUNTS)}"
            )

    def _table_orders(self, table_num: int) -> List[Order]:
        orders = TableService(self.db, self.tenant_id).open_orders(table_num)
        if not orders:
            raise ValidationFailed(f"Table {table_num} has no open orders")
        return orders

    def pay_table(
        self,
        table_num: int,
        payment_type: str,
        user_name: str,
        discount_pct: int = 0,
        expected_versions: Optional[Dict[str, int]] = None,
    ) -> dict:
        """Settle every open order at the table and close it."""
        self._validate(payment_type, discount_pct)
        orders = self._table_orders(table_num)
        check_versions(orders, expected_versions)

        gross = sum((o.amount_due for o in orders), Decimal("0.00"))
        collected = apply_discount(gross, discount_pct)
        for order in orders:
            order.close(OrderStatus.PAID, payment_type)
            order.increment_version()

        label = PAYMENT_LABELS.get(payment_type, payment_type)
        self.activity.record(
            table_num,
            user_name,
            ActivityAction.PAYMENT_RECEIVED,
            details=f"{label} - ₺{round_currency(collected)}{_discount_suffix(discount_pct)}",
            amount=collected,
            payment_type=payment_type,
        )
        self.activity.record(
            table_num,
            user_name,
            ActivityAction.TABLE_CLOSED,
            details=f"Table {table_num} closed",
        )
        self.db.commit()
        logger.info(
            f"Table {table_num} paid by {payment_type}: gross={gross} "
            f"discount={discount_pct}% collected={collected}"
        )
        return {
            "success": True,
            "table_num": table_num,
            "gross": gross,
            "discount_pct": discount_pct,
            "collected": collected,
            "collected_rounded": round_currency(collected),
            "closed": True,
            "orders": len(orders),
        }

    def _split_selection(
        self, orders: List[Order], line_ids: Sequence[str],
    ) -> Tuple[bool, List[Tuple[Order, List[dict], List[dict]]]]:
        """Group selected lines by owning order.

        Returns whether the selection covers every line, and for each
        affected order its (selected, remaining) lines.
        """
        wanted = set(line_ids)
        if not wanted:
            raise ValidationFailed("Select at least one item")
        all_ids = {i["line_id"] for o in orders for i in (o.items or [])}
        unknown = wanted - all_ids
        if unknown:
            raise ValidationFailed("Some selected items are no longer on this table")

        groups = []
        for order in orders:
            selected = [i for i in order.items if i["line_id"] in wanted]
            if selected:
                remaining = [i for i in order.items if i["line_id"] not in wanted]
                groups.append((order, selected, remaining))
        return wanted == all_ids, groups

    def pay_selected(
        self,
        table_num: int,
        line_ids: Sequence[str],
        payment_type: str,
        user_name: str,
        discount_pct: int = 0,
        expected_versions: Optional[Dict[str, int]] = None,
    ) -> dict:
        """Settle only the chosen lines; the table stays open for the rest.

        Choosing every line is the same as ``pay_table``.
        """
        self._validate(payment_type, discount_pct)
        orders = self._table_orders(table_num)
        covers_all, groups = self._split_selection(orders, line_ids)
        check_versions(orders, expected_versions)
        if covers_all:
            return self.pay_table(table_num, payment_type, user_name, discount_pct)

        value = Decimal("0.00")
        paid_items: List[dict] = []
        for order, selected, remaining in groups:
            paid_items.extend(selected)
            if remaining:
                value += sum((line_amount(i) for i in selected), Decimal("0.00"))
                order.replace_items(remaining)
            else:
                value += order.amount_due
                order.close(OrderStatus.PAID, payment_type)
            order.increment_version()

        collected = apply_discount(value, discount_pct)
        label = PAYMENT_LABELS.get(payment_type, payment_type)
        self.activity.record(
            table_num,
            user_name,
            ActivityAction.PARTIAL_PAYMENT_RECEIVED,
            details=(
                f"{label} - ₺{round_currency(collected)}{_discount_suffix(discount_pct)}"
                f" - {describe_items(paid_items)}"
            ),
            amount=collected,
            payment_type=payment_type,
        )
        self.db.commit()
        logger.info(f"Table {table_num} partial payment {collected} ({len(paid_items)} lines)")
        return {
            "success": True,
            "table_num": table_num,
            "gross": value,
            "discount_pct": discount_pct,
            "collected": collected,
            "collected_rounded": round_currency(collected),
            "closed": False,
            "items": len(paid_items),
        }

    def cancel_selected(
        self,
        table_num: int,
        line_ids: Sequence[str],
        user_name: str,
        expected_versions: Optional[Dict[str, int]] = None,
    ) -> dict:
        """Void the chosen lines; orders left empty close as cancelled."""
        orders = self._table_orders(table_num)
        _, groups = self._split_selection(orders, line_ids)
        check_versions(orders, expected_versions)

        value = Decimal("0.00")
        cancelled: List[dict] = []
        for order, selected, remaining in groups:
            cancelled.extend(selected)
            value += sum((line_amount(i) for i in selected), Decimal("0.00"))
            order.replace_items(remaining)
            if not remaining:
                order.close(OrderStatus.CANCELLED)
            order.increment_version()

        self.activity.record(
            table_num,
            user_name,
            ActivityAction.ITEMS_CANCELLED,
            details=describe_items(cancelled),
            amount=value,
        )
        self.db.commit()
        return {"success": True, "table_num": table_num, "cancelled_value": value, "items": len(cancelled)}
