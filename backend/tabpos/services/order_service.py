"""Order submission, lookup and kitchen status changes."""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from tabpos.core.config import settings
from tabpos.core.exceptions import ConflictError, NotFound, ValidationFailed
from tabpos.models.activity import ActivityAction
from tabpos.models.order import (
    OPEN_STATUSES, Order, OrderStatus, PaymentType, round_currency,
    to_money,
)
from tabpos.services.activity_service import ActivityService, describe_items
from tabpos.services.cart_service import CustomerCart, StaffDraft
from tabpos.services.loyalty_service import LoyaltyService
from tabpos.services.menu_service import MenuService
from tabpos.services.table_service import local_day_bounds

logger = logging.getLogger(__name__)

SERVICE_CHARGE_NAME = "Service charge"


@dataclass
class PrintRequest:
    """Something a mutation wants printed; ``lines`` set means an addendum."""

    order: Order
    lines: Optional[List[dict]] = None
    title: Optional[str] = None


def check_versions(orders: Iterable[Order], expected: Optional[Dict[str, int]]) -> None:
    """Raise ConflictError when a caller-supplied version is stale."""
    if not expected:
        return
    for order in orders:
        if order.id not in expected:
            continue
        try:
            order.check_version(expected[order.id])
        except ValueError:
            raise ConflictError(order.id, expected[order.id], order.version)


class OrderService:
    """Order store operations for one tenant."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    def get_order(self, order_id: str) -> Order:
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.tenant_id == self.tenant_id)
            .first()
        )
        if order is None:
            raise NotFound("Order", order_id)
        return order

    def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        table_num: Optional[int] = None,
        member_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[Order]:
        query = self.db.query(Order).filter(Order.tenant_id == self.tenant_id)
        if status is not None:
            query = query.filter(Order.status == status)
        if table_num is not None:
            query = query.filter(Order.table_num == table_num)
        if member_id is not None:
            query = query.filter(Order.member_id == member_id)
        return query.order_by(Order.created_at.desc()).limit(limit).all()

    # ========== SUBMISSION ==========

    def build_staff_draft(self, lines: List[dict]) -> StaffDraft:
        """Rebuild a draft from client lines using catalog prices.

        Each line is ``{"product_id", "qty", "note", "option_ids"}``.
        """
        menu = MenuService(self.db, self.tenant_id)
        products = menu.available_products([line["product_id"] for line in lines])
        draft = StaffDraft()
        for line in lines:
            product = products[line["product_id"]]
            qty = int(line.get("qty", 1))
            if qty < 1:
                raise ValidationFailed(f"Quantity for {product.name} must be at least 1")
            entry = draft.add_product(product.id, product.name, product.price)
            options = {o.id: o for o in product.options}
            for option_id in line.get("option_ids") or []:
                option = options.get(option_id)
                if option is None:
                    raise ValidationFailed(f"Option {option_id} does not belong to {product.name}")
                draft.toggle_option(entry.line_id, option.name, option.extra_price)
            if qty > 1:
                draft.change_quantity(entry.line_id, qty - 1)
            draft.set_note(entry.line_id, line.get("note") or "")
        return draft

    def submit_staff_order(
        self,
        table_num: int,
        user_id: str,
        user_name: str,
        lines: List[dict],
        payment_type: str = PaymentType.CASH.value,
        note: Optional[str] = None,
    ) -> dict:
        """Persist a staff draft as a ``preparing`` order."""
        user_name = (user_name or "").strip()
        if not lines:
            raise ValidationFailed("Add at least one item before confirming")
        if not user_name:
            raise ValidationFailed("A responsible staff name is required")
        if table_num < 0:
            raise ValidationFailed("Table number cannot be negative")

        draft = self.build_staff_draft(lines)
        order = Order(
            id=str(uuid.uuid4()),
            tenant_id=self.tenant_id,
            user_id=user_id,
            user_name=user_name,
            table_num=table_num,
            status=OrderStatus.PREPARING,
            payment_type=payment_type,
            note=note,
        )
        order.replace_items(draft.to_order_items())
        self.db.add(order)

        summary = [{"name": n, "qty": q} for n, q in draft.merged_summary().items()]
        ActivityService(self.db, self.tenant_id).record(
            table_num,
            user_name,
            ActivityAction.ORDER_ADDED,
            details=f"{user_name} - {describe_items(summary)}",
            amount=order.total,
        )
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.short_id} added to table {table_num} by {user_name} ({order.total})")
        return {"success": True, "order": order, "print_requests": [PrintRequest(order)]}

    def submit_customer_order(
        self,
        table_num: int,
        user_id: str,
        user_name: str,
        items: List[dict],
        payment_type: str,
        enabled_payment_types: List[str],
        note: Optional[str] = None,
        member_id: Optional[int] = None,
        redeem_points: bool = False,
    ) -> dict:
        """Persist a customer cart as a ``waiting`` order with service charge."""
        if not items:
            raise ValidationFailed("Your cart is empty")
        if payment_type not in enabled_payment_types:
            raise ValidationFailed(f"Payment method not available: {payment_type}")
        if table_num < 1:
            raise ValidationFailed("Table number must be at least 1")

        menu = MenuService(self.db, self.tenant_id)
        products = menu.available_products([i["product_id"] for i in items])
        cart = CustomerCart()
        for item in items:
            product = products[item["product_id"]]
            qty = int(item.get("qty", 1))
            if qty < 1:
                raise ValidationFailed(f"Quantity for {product.name} must be at least 1")
            for _ in range(qty):
                cart.add_product(product.id, product.name, product.price)

        loyalty = LoyaltyService(self.db, self.tenant_id)
        member = loyalty.get_member(member_id) if member_id is not None else None

        subtotal = cart.total
        service_charge = to_money(round_currency(subtotal * settings.service_charge_rate))
        order_items = cart.to_order_items()
        if service_charge > 0:
            order_items.append({
                "product_id": None, "name": SERVICE_CHARGE_NAME,
                "price": service_charge, "qty": 1,
            })

        order = Order(
            id=str(uuid.uuid4()),
            tenant_id=self.tenant_id,
            user_id=user_id,
            user_name=(user_name or "Guest").strip() or "Guest",
            table_num=table_num,
            status=OrderStatus.WAITING,
            payment_type=payment_type,
            note=note,
            member_id=member.id if member else None,
        )
        order.replace_items(order_items)
        self.db.add(order)
        self.db.flush()

        points = None
        if member is not None:
            points = loyalty.apply_checkout(member, order, redeem=redeem_points)

        ActivityService(self.db, self.tenant_id).record(
            table_num,
            order.user_name,
            ActivityAction.ORDER_ADDED,
            details=f"{order.user_name} - {describe_items(cart.to_order_items())}",
            amount=order.amount_due,
        )
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Customer order {order.short_id} at table {table_num} ({order.amount_due})")
        return {
            "success": True,
            "order": order,
            "short_id": order.short_id,
            "subtotal": subtotal,
            "service_charge": service_charge,
            "points": points,
            "print_requests": [PrintRequest(order)],
        }

    # ========== STATUS ==========

    def update_status(self, order_id: str, status: OrderStatus,
                      expected_version: Optional[int] = None) -> Order:
        """Move an open order between waiting, preparing and ready."""
        order = self.get_order(order_id)
        check_versions([order], {order.id: expected_version} if expected_version is not None else None)
        if status not in OPEN_STATUSES:
            raise ValidationFailed("Use payment, cancellation or transfer to close an order")
        if not order.is_open:
            raise ValidationFailed("Order is closed; reopen the table to change it")
        order.status = status
        order.increment_version()
        self.db.commit()
        self.db.refresh(order)
        return order

    # ========== DASHBOARD ==========

    def dashboard_stats(self) -> dict:
        """Today's counts, revenue and most popular items."""
        start, end = local_day_bounds()
        today = (
            self.db.query(Order)
            .filter(
                Order.tenant_id == self.tenant_id,
                Order.created_at >= start,
                Order.created_at < end,
            )
            .all()
        )
        popular: Counter = Counter()
        revenue = Decimal("0.00")
        for order in today:
            status = OrderStatus(order.status)
            if status in (OrderStatus.PAID, OrderStatus.ACCOUNT):
                revenue += order.amount_due
            if status not in (OrderStatus.CANCELLED, OrderStatus.TRANSFERRED):
                for item in order.items or []:
                    if item.get("product_id") is not None:
                        popular[item["name"]] += int(item["qty"])

        return {
            "waiting": sum(1 for o in today if o.status == OrderStatus.WAITING),
            "active": sum(1 for o in today if o.status in (OrderStatus.PREPARING, OrderStatus.READY)),
            "done": sum(1 for o in today if not o.is_open),
            "revenue": revenue,
            "popular": [{"name": n, "qty": q} for n, q in popular.most_common(5)],
        }