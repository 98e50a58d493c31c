"""Tests for item cancel/edit and whole-table cancellation."""

from decimal import Decimal

import pytest

from tabpos.core.exceptions import ConflictError, NotFound, ValidationFailed
from tabpos.models.activity import ActivityAction, ActivityLogEntry
from tabpos.models.order import OrderStatus
from tabpos.services.order_mutation_service import OrderMutationService


def _actions(db_session):
    return [
        e.action for e in db_session.query(ActivityLogEntry).order_by(ActivityLogEntry.id).all()
    ]


class TestCancelItem:
    def test_cancel_one_line_recomputes_total(self, db_session, tenant, place_order):
        order = place_order(5, [("burger", 1), ("cola", 2)])
        cola = order.items[1]

        result = OrderMutationService(db_session, tenant.id).cancel_item(order.id, cola["line_id"], "Ayse")
        assert result["order_closed"] is False
        assert order.total == Decimal("120.00")
        assert [i["name"] for i in order.items] == ["Burger"]
        assert order.version == 2
        assert _actions(db_session)[-1] == ActivityAction.ITEM_CANCELLED.value

    def test_cancel_last_line_closes_order(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        result = OrderMutationService(db_session, tenant.id).cancel_item(
            order.id, order.items[0]["line_id"], "Ayse",
        )
        assert result["order_closed"] is True
        assert order.status == OrderStatus.CANCELLED
        assert order.total == Decimal("0.00")

    def test_unknown_line(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        with pytest.raises(NotFound):
            OrderMutationService(db_session, tenant.id).cancel_item(order.id, "nope", "Ayse")

    def test_stale_version(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1), ("fries", 1)])
        service = OrderMutationService(db_session, tenant.id)
        service.cancel_item(order.id, order.items[0]["line_id"], "Ayse", expected_version=1)
        with pytest.raises(ConflictError):
            service.cancel_item(order.id, order.items[0]["line_id"], "Ayse", expected_version=1)

    def test_closed_order_cannot_change(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 1)])
        order.close(OrderStatus.PAID, "cash")
        db_session.commit()
        with pytest.raises(ValidationFailed):
            OrderMutationService(db_session, tenant.id).cancel_item(order.id, order.items[0]["line_id"], "Ayse")


class TestEditItem:
    def test_increase_prints_addendum_with_delta_only(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 2)])
        line_id = order.items[0]["line_id"]

        result = OrderMutationService(db_session, tenant.id).edit_item(order.id, line_id, 5, None, "Ayse")
        assert result["delta"] == 3
        assert order.total == Decimal("175.00")
        assert order.items[0]["line_id"] == line_id

        [request] = result["print_requests"]
        assert request.title == "ADDENDUM"
        assert request.lines[0]["qty"] == "+3"
        assert request.lines[0]["amount"] == Decimal("105.00")
        assert _actions(db_session)[-1] == ActivityAction.ITEM_INCREASED.value

    def test_decrease_logs_reduction(self, db_session, tenant, place_order):
        order = place_order(5, [("cola", 3)])
        result = OrderMutationService(db_session, tenant.id).edit_item(
            order.id, order.items[0]["line_id"], 1, None, "Ayse",
        )
        assert result["delta"] == -2
        assert result["print_requests"][0].lines[0]["qty"] == "-2"
        entry = db_session.query(ActivityLogEntry).order_by(ActivityLogEntry.id.desc()).first()
        assert entry.action == ActivityAction.ITEM_REDUCED.value
        assert entry.amount == Decimal("70.00")

    def test_note_only_change_does_not_print(self, db_session, tenant, place_order):
        order = place_order(5, [("burger", 1)])
        result = OrderMutationService(db_session, tenant.id).edit_item(
            order.id, order.items[0]["line_id"], 1, "no onions", "Ayse",
        )
        assert result["print_requests"] == []
        assert order.items[0]["note"] == "no onions"
        assert _actions(db_session)[-1] == ActivityAction.ITEM_NOTE_CHANGED.value

    @pytest.mark.parametrize("note", [None, ""])
    def test_unchanged_edit_writes_nothing(self, db_session, tenant, place_order, note):
        order = place_order(5, [("burger", 2)])
        version = order.version
        logged = len(_actions(db_session))
        result = OrderMutationService(db_session, tenant.id).edit_item(
            order.id, order.items[0]["line_id"], 2, note, "Ayse",
        )
        assert result["delta"] == 0
        assert result["print_requests"] == []
        assert order.version == version
        assert len(_actions(db_session)) == logged

    def test_zero_quantity_cancels_line(self, db_session, tenant, place_order):
        order = place_order(5, [("burger", 1), ("cola", 1)])
        result = OrderMutationService(db_session, tenant.id).edit_item(
            order.id, order.items[1]["line_id"], 0, None, "Ayse",
        )
        assert "print_requests" not in result
        assert [i["name"] for i in order.items] == ["Burger"]


class TestCancelTable:
    def test_cancels_every_open_order(self, db_session, tenant, place_order):
        first = place_order(5, [("burger", 1)])
        second = place_order(5, [("cola", 2)])
        other = place_order(6, [("cola", 1)])

        result = OrderMutationService(db_session, tenant.id).cancel_table(5, "Ayse")
        assert result["cancelled_orders"] == 2
        assert result["total"] == Decimal("190.00")
        assert first.status == OrderStatus.CANCELLED
        assert second.status == OrderStatus.CANCELLED
        assert other.status == OrderStatus.PREPARING

        entry = db_session.query(ActivityLogEntry).order_by(ActivityLogEntry.id.desc()).first()
        assert entry.action == ActivityAction.ORDERS_CANCELLED.value
        assert entry.details == "1x Burger, 2x Cola"

    def test_empty_table(self, db_session, tenant):
        with pytest.raises(NotFound):
            OrderMutationService(db_session, tenant.id).cancel_table(5, "Ayse")
