"""Item-level changes to already submitted orders."""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.activity import ActivityAction
from tabpos.models.order import Order, OrderStatus, format_money, line_amount
from tabpos.services.activity_service import ActivityService, describe_items
from tabpos.services.order_service import OrderService, PrintRequest, check_versions
from tabpos.services.table_service import TableService

logger = logging.getLogger(__name__)


class OrderMutationService:
    """Cancel, edit and void items on open orders."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.activity = ActivityService(db, tenant_id)

    def _open_order(self, order_id: str, expected_version: Optional[int]) -> Order:
        order = OrderService(self.db, self.tenant_id).get_order(order_id)
        if expected_version is not None:
            check_versions([order], {order.id: expected_version})
        if not order.is_open:
            raise ValidationFailed("Order is already closed")
        return order

    def cancel_item(self, order_id: str, line_id: str, user_name: str,
                    expected_version: Optional[int] = None) -> dict:
        """Remove one line; an order left empty is closed as cancelled."""
        order = self._open_order(order_id, expected_version)
        item = order.find_line(line_id)
        if item is None:
            raise NotFound("Order line", line_id)

        remaining = [i for i in order.items if i["line_id"] != line_id]
        order.replace_items(remaining)
        if not remaining:
            order.close(OrderStatus.CANCELLED)
        order.increment_version()

        value = line_amount(item)
        self.activity.record(
            order.table_num,
            user_name,
            ActivityAction.ITEM_CANCELLED,
            details=f"{item['qty']}x {item['name']} ({format_money(value)})",
            amount=value,
        )
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Line {line_id} cancelled on order {order.short_id}")
        return {"success": True, "order": order, "order_closed": not remaining}

    def edit_item(self, order_id: str, line_id: str, qty: int, note: Optional[str],
                  user_name: str, expected_version: Optional[int] = None) -> dict:
        """Change a line's quantity and/or note.

        A quantity of zero or less cancels the line. Quantity changes produce
        an addendum print request holding only the signed difference.
        """
        order = self._open_order(order_id, expected_version)
        item = order.find_line(line_id)
        if item is None:
            raise NotFound("Order line", line_id)
        if qty <= 0:
            return self.cancel_item(order_id, line_id, user_name)

        delta = qty - int(item["qty"])
        new_note = item.get("note", "") if note is None else note
        if delta == 0 and new_note == item.get("note", ""):
            return {"success": True, "order": order, "delta": 0, "print_requests": []}

        updated = [
            {**i, "qty": qty, "note": new_note} if i["line_id"] == line_id else i
            for i in order.items
        ]
        order.replace_items(updated)
        order.increment_version()

        print_requests = []
        unit = line_amount({**item, "qty": 1})
        if delta > 0:
            action = ActivityAction.ITEM_INCREASED
            details = f"{item['name']} {item['qty']} -> {qty} (+{delta})"
        elif delta < 0:
            action = ActivityAction.ITEM_REDUCED
            details = f"{item['name']} {item['qty']} -> {qty} ({delta})"
        else:
            action = ActivityAction.ITEM_NOTE_CHANGED
            details = f"{item['name']}: {new_note or '-'}"

        self.activity.record(
            order.table_num,
            user_name,
            action,
            details=details,
            amount=abs(unit * delta) if delta else None,
        )
        if delta:
            addendum = [{
                "name": item["name"],
                "qty": f"{delta:+d}",
                "amount": unit * delta,
                "note": new_note,
                "options": item.get("options") or [],
            }]
            print_requests.append(PrintRequest(order, lines=addendum, title="ADDENDUM"))

        self.db.commit()
        self.db.refresh(order)
        return {"success": True, "order": order, "delta": delta, "print_requests": print_requests}

    def cancel_table(self, table_num: int, user_name: str,
                     expected_versions: Optional[Dict[str, int]] = None) -> dict:
        """Cancel every open order at a table."""
        orders = TableService(self.db, self.tenant_id).open_orders(table_num)
        if not orders:
            raise NotFound("Open table", table_num)
        check_versions(orders, expected_versions)

        cancelled: List[dict] = []
        for order in orders:
            cancelled.extend(order.items or [])
            order.close(OrderStatus.CANCELLED)
            order.increment_version()

        total = sum((o.amount_due for o in orders), Decimal("0.00"))
        self.activity.record(
            table_num,
            user_name,
            ActivityAction.ORDERS_CANCELLED,
            details=describe_items(cancelled),
            amount=total,
        )
        self.db.commit()
        logger.info(f"Table {table_num}: {len(orders)} orders cancelled by {user_name}")
        return {"success": True, "table_num": table_num, "cancelled_orders": len(orders), "total": total}
