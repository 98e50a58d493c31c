"""Tests for order submission, status changes and the dashboard."""

from decimal import Decimal

import pytest

from tabpos.core.exceptions import ConflictError, NotFound, ValidationFailed
from tabpos.models.activity import ActivityAction, ActivityLogEntry
from tabpos.models.order import Order, OrderStatus
from tabpos.services.order_service import OrderService


class TestStaffOrders:
    def test_staff_order_is_preparing_with_catalog_prices(self, db_session, tenant, menu):
        result = OrderService(db_session, tenant.id).submit_staff_order(
            table_num=5,
            user_id="1",
            user_name="Ayse",
            lines=[
                {"product_id": menu["burger"].id, "qty": 2, "note": "well done",
                 "option_ids": [menu["cheese"].id]},
                {"product_id": menu["cola"].id, "qty": 1},
            ],
        )
        order = result["order"]
        assert order.status == OrderStatus.PREPARING
        assert order.total == Decimal("305.00")
        burger = order.items[0]
        assert burger["price"] == "135.00"
        assert burger["qty"] == 2
        assert burger["options"] == ["Extra cheese"]
        assert burger["note"] == "well done"
        assert len(result["print_requests"]) == 1

    def test_staff_order_logs_activity(self, db_session, tenant, place_order):
        place_order(7, [("cola", 2), ("fries", 1)])
        entry = db_session.query(ActivityLogEntry).one()
        assert entry.action == ActivityAction.ORDER_ADDED.value
        assert entry.table_num == 7
        assert entry.details == "Ayse - 2x Cola, 1x Fries"
        assert entry.amount == Decimal("115.50")

    def test_empty_draft_rejected(self, db_session, tenant, menu):
        with pytest.raises(ValidationFailed):
            OrderService(db_session, tenant.id).submit_staff_order(5, "1", "Ayse", [])
        assert db_session.query(Order).count() == 0

    def test_missing_staff_name_rejected(self, db_session, tenant, menu):
        with pytest.raises(ValidationFailed):
            OrderService(db_session, tenant.id).submit_staff_order(
                5, "1", "  ", [{"product_id": menu["cola"].id, "qty": 1}],
            )

    def test_unavailable_product_rejected(self, db_session, tenant, menu):
        menu["fries"].is_available = False
        db_session.commit()
        with pytest.raises(ValidationFailed):
            OrderService(db_session, tenant.id).submit_staff_order(
                5, "1", "Ayse", [{"product_id": menu["fries"].id, "qty": 1}],
            )

    def test_foreign_option_rejected(self, db_session, tenant, menu):
        with pytest.raises(ValidationFailed):
            OrderService(db_session, tenant.id).submit_staff_order(
                5, "1", "Ayse",
                [{"product_id": menu["cola"].id, "qty": 1, "option_ids": [menu["cheese"].id]}],
            )

    def test_quick_order_uses_table_zero(self, db_session, tenant, place_order):
        order = place_order(0, [("cola", 1)])
        assert order.table_num == 0


class TestCustomerOrders:
    def _submit(self, db_session, tenant, menu, **overrides):
        params = dict(
            table_num=3,
            user_id="guest-1",
            user_name="Deniz",
            items=[{"product_id": menu["burger"].id, "qty": 2}],
            payment_type="card",
            enabled_payment_types=["card", "pos", "cash"],
        )
        params.update(overrides)
        return OrderService(db_session, tenant.id).submit_customer_order(**params)

    def test_customer_order_waits_and_adds_service_charge(self, db_session, tenant, menu):
        result = self._submit(db_session, tenant, menu)
        order = result["order"]
        assert order.status == OrderStatus.WAITING
        assert result["subtotal"] == Decimal("240.00")
        # 5% of 240 is 12
        assert result["service_charge"] == Decimal("12.00")
        assert order.total == Decimal("252.00")
        assert order.items[-1]["name"] == "Service charge"
        assert order.items[-1]["product_id"] is None
        assert result["short_id"] == order.id[:6].upper()

    def test_service_charge_rounds_half_up(self, db_session, tenant, menu):
        result = self._submit(
            db_session, tenant, menu, items=[{"product_id": menu["cola"].id, "qty": 3}],
        )
        # 5% of 105 is 5.25 -> 5
        assert result["service_charge"] == Decimal("5.00")

    def test_disabled_payment_type_rejected(self, db_session, tenant, menu):
        with pytest.raises(ValidationFailed):
            self._submit(db_session, tenant, menu, payment_type="cash", enabled_payment_types=["card"])

    def test_empty_cart_rejected(self, db_session, tenant, menu):
        with pytest.raises(ValidationFailed):
            self._submit(db_session, tenant, menu, items=[])

    def test_unknown_member_rejected(self, db_session, tenant, menu):
        with pytest.raises(NotFound):
            self._submit(db_session, tenant, menu, member_id=999)
        assert db_session.query(Order).count() == 0


class TestStatus:
    def test_kitchen_status_progression(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        service = OrderService(db_session, tenant.id)
        updated = service.update_status(order.id, OrderStatus.READY, expected_version=1)
        assert updated.status == OrderStatus.READY
        assert updated.version == 2

    def test_stale_version_conflicts(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        service = OrderService(db_session, tenant.id)
        service.update_status(order.id, OrderStatus.READY)
        with pytest.raises(ConflictError):
            service.update_status(order.id, OrderStatus.WAITING, expected_version=1)

    def test_status_cannot_close_order(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        with pytest.raises(ValidationFailed):
            OrderService(db_session, tenant.id).update_status(order.id, OrderStatus.PAID)

    def test_closed_order_status_is_frozen(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        order.close(OrderStatus.PAID, "cash")
        db_session.commit()
        with pytest.raises(ValidationFailed):
            OrderService(db_session, tenant.id).update_status(order.id, OrderStatus.READY)

    def test_lifecycle_and_payment_views(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        assert order.lifecycle_status == "preparing"
        assert order.payment_status == "pending"
        order.close(OrderStatus.ACCOUNT, "cari")
        assert order.lifecycle_status == "paid"
        assert order.payment_status == "account"


class TestDashboard:
    def test_stats_count_today(self, db_session, tenant, place_order):
        paid = place_order(1, [("burger", 1)])
        place_order(2, [("cola", 3)])
        cancelled = place_order(3, [("fries", 2)])
        paid.close(OrderStatus.PAID, "cash")
        cancelled.close(OrderStatus.CANCELLED)
        db_session.commit()

        stats = OrderService(db_session, tenant.id).dashboard_stats()
        assert stats["active"] == 1
        assert stats["done"] == 2
        assert stats["revenue"] == Decimal("120.00")
        assert stats["popular"][0] == {"name": "Cola", "qty": 3}
        assert all(p["name"] != "Fries" for p in stats["popular"])
