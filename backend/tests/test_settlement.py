"""Tests for full and partial table settlement."""

import uuid
from decimal import Decimal

import pytest

from tabpos.core.exceptions import ConflictError, ValidationFailed
from tabpos.models.activity import ActivityAction, ActivityLogEntry
from tabpos.models.order import Order, OrderStatus
from tabpos.services.settlement_service import SettlementService, apply_discount


def _order(db_session, tenant, table_num, items, status=OrderStatus.PREPARING):
    order = Order(
        id=str(uuid.uuid4()),
        tenant_id=tenant.id,
        user_id="1",
        user_name="Ayse",
        table_num=table_num,
        status=status,
        payment_type="cash",
    )
    order.replace_items(items)
    db_session.add(order)
    db_session.commit()
    return order


def _log(db_session):
    return db_session.query(ActivityLogEntry).order_by(ActivityLogEntry.id).all()


class TestApplyDiscount:
    @pytest.mark.parametrize("pct,expected", [
        (0, "145.00"), (5, "137.75"), (10, "130.50"), (15, "123.25"), (20, "116.00"),
    ])
    def test_percentages(self, pct, expected):
        assert apply_discount(Decimal("145.00"), pct) == Decimal(expected)


class TestPayTable:
    def test_discounted_settlement(self, db_session, tenant):
        first = _order(db_session, tenant, 4, [{"name": "Menu", "price": "100.00", "qty": 1}])
        second = _order(db_session, tenant, 4, [{"name": "Dessert", "price": "45.00", "qty": 1}])

        result = SettlementService(db_session, tenant.id).pay_table(4, "cash", "Ayse", discount_pct=10)
        assert result["gross"] == Decimal("145.00")
        assert result["collected"] == Decimal("130.50")
        assert result["collected_rounded"] == 131
        assert result["closed"] is True

        for order in (first, second):
            db_session.refresh(order)
            assert order.status == OrderStatus.PAID
            assert order.payment_type == "cash"
            assert order.payment_status == "paid"
            # stored totals are never discounted
        assert first.total == Decimal("100.00")

        entries = _log(db_session)
        assert [e.action for e in entries] == [
            ActivityAction.PAYMENT_RECEIVED.value, ActivityAction.TABLE_CLOSED.value,
        ]
        assert entries[0].amount == Decimal("130.50")
        assert entries[0].payment_type == "cash"
        assert entries[0].details == "Cash - ₺131 (10% discount)"

    def test_leaves_other_tables_alone(self, db_session, tenant):
        _order(db_session, tenant, 4, [{"name": "Menu", "price": "100.00", "qty": 1}])
        other = _order(db_session, tenant, 5, [{"name": "Menu", "price": "100.00", "qty": 1}])
        SettlementService(db_session, tenant.id).pay_table(4, "card", "Ayse")
        db_session.refresh(other)
        assert other.is_open

    def test_rejects_unknown_discount(self, db_session, tenant):
        _order(db_session, tenant, 4, [{"name": "Menu", "price": "100.00", "qty": 1}])
        with pytest.raises(ValidationFailed):
            SettlementService(db_session, tenant.id).pay_table(4, "cash", "Ayse", discount_pct=12)

    def test_rejects_account_as_payment_method(self, db_session, tenant):
        _order(db_session, tenant, 4, [{"name": "Menu", "price": "100.00", "qty": 1}])
        with pytest.raises(ValidationFailed):
            SettlementService(db_session, tenant.id).pay_table(4, "cari", "Ayse")

    def test_empty_table(self, db_session, tenant):
        with pytest.raises(ValidationFailed):
            SettlementService(db_session, tenant.id).pay_table(4, "cash", "Ayse")
        assert _log(db_session) == []

    def test_stale_versions_abort_everything(self, db_session, tenant):
        order = _order(db_session, tenant, 4, [{"name": "Menu", "price": "100.00", "qty": 1}])
        with pytest.raises(ConflictError):
            SettlementService(db_session, tenant.id).pay_table(
                4, "cash", "Ayse", expected_versions={order.id: 7},
            )
        db_session.rollback()
        db_session.refresh(order)
        assert order.is_open
        assert _log(db_session) == []


class TestPaySelected:
    def test_partial_payment_keeps_table_open(self, db_session, tenant):
        order = _order(db_session, tenant, 4, [
            {"name": "Burger", "price": "120.00", "qty": 1},
            {"name": "Cola", "price": "35.00", "qty": 2},
        ])
        cola = order.items[1]["line_id"]

        result = SettlementService(db_session, tenant.id).pay_selected(4, [cola], "card", "Ayse")
        assert result["closed"] is False
        assert result["collected"] == Decimal("70.00")
        db_session.refresh(order)
        assert order.is_open
        assert order.total == Decimal("120.00")
        entries = _log(db_session)
        assert [e.action for e in entries] == [ActivityAction.PARTIAL_PAYMENT_RECEIVED.value]
        assert entries[0].details == "Credit card - ₺70 - 2x Cola"

    def test_fully_selected_order_closes_paid(self, db_session, tenant):
        paid = _order(db_session, tenant, 4, [{"name": "Cola", "price": "35.00", "qty": 1}])
        kept = _order(db_session, tenant, 4, [{"name": "Burger", "price": "120.00", "qty": 1}])

        SettlementService(db_session, tenant.id).pay_selected(
            4, [paid.items[0]["line_id"]], "cash", "Ayse", discount_pct=20,
        )
        db_session.refresh(paid)
        db_session.refresh(kept)
        assert paid.status == OrderStatus.PAID
        assert kept.is_open
        assert _log(db_session)[0].amount == Decimal("28.00")

    def test_selecting_everything_is_full_payment(self, db_session, tenant):
        order = _order(db_session, tenant, 4, [
            {"name": "Burger", "price": "120.00", "qty": 1},
            {"name": "Cola", "price": "35.00", "qty": 1},
        ])
        result = SettlementService(db_session, tenant.id).pay_selected(
            4, [i["line_id"] for i in order.items], "cash", "Ayse",
        )
        assert result["closed"] is True
        assert [e.action for e in _log(db_session)] == [
            ActivityAction.PAYMENT_RECEIVED.value, ActivityAction.TABLE_CLOSED.value,
        ]

    def test_empty_selection_rejected(self, db_session, tenant):
        _order(db_session, tenant, 4, [{"name": "Cola", "price": "35.00", "qty": 1}])
        with pytest.raises(ValidationFailed):
            SettlementService(db_session, tenant.id).pay_selected(4, [], "cash", "Ayse")

    def test_line_from_other_table_rejected(self, db_session, tenant):
        _order(db_session, tenant, 4, [{"name": "Cola", "price": "35.00", "qty": 1}])
        elsewhere = _order(db_session, tenant, 5, [{"name": "Cola", "price": "35.00", "qty": 1}])
        with pytest.raises(ValidationFailed):
            SettlementService(db_session, tenant.id).pay_selected(
                4, [elsewhere.items[0]["line_id"]], "cash", "Ayse",
            )


class TestCancelSelected:
    def test_cancel_selected_lines(self, db_session, tenant):
        order = _order(db_session, tenant, 4, [
            {"name": "Burger", "price": "120.00", "qty": 1},
            {"name": "Cola", "price": "35.00", "qty": 2},
        ])
        emptied = _order(db_session, tenant, 4, [{"name": "Fries", "price": "45.50", "qty": 1}])

        result = SettlementService(db_session, tenant.id).cancel_selected(
            4, [order.items[1]["line_id"], emptied.items[0]["line_id"]], "Ayse",
        )
        assert result["cancelled_value"] == Decimal("115.50")
        db_session.refresh(order)
        db_session.refresh(emptied)
        assert order.total == Decimal("120.00")
        assert emptied.status == OrderStatus.CANCELLED
        [entry] = _log(db_session)
        assert entry.action == ActivityAction.ITEMS_CANCELLED.value
        assert entry.details == "2x Cola, 1x Fries"
