"""Tests for table moves, item moves and charging a table to an account."""

from decimal import Decimal

import pytest

from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.account import AccountTransaction, AccountTransactionType
from tabpos.models.activity import ActivityAction, ActivityLogEntry
from tabpos.models.order import Order, OrderStatus
from tabpos.services.account_service import AccountService
from tabpos.services.table_service import TableService
from tabpos.services.transfer_service import TransferService


class TestTransferTable:
    def test_moves_every_open_order(self, db_session, tenant, place_order):
        place_order(3, [("burger", 1)])
        place_order(3, [("cola", 1)])

        result = TransferService(db_session, tenant.id).transfer_table(3, 8, "Ayse")
        assert result["orders"] == 2
        assert result["total"] == Decimal("155.00")

        tables = TableService(db_session, tenant.id)
        assert tables.open_orders(3) == []
        assert len(tables.open_orders(8)) == 2

        entry = db_session.query(ActivityLogEntry).filter(
            ActivityLogEntry.action == ActivityAction.TABLE_MOVED.value,
        ).one()
        assert entry.table_num == 3
        assert entry.details == "Table 3 → Table 8 (₺155.00)"

    def test_merges_into_occupied_table(self, db_session, tenant, place_order):
        place_order(3, [("burger", 1)])
        place_order(8, [("cola", 1)])
        TransferService(db_session, tenant.id).transfer_table(3, 8, "Ayse")
        assert len(TableService(db_session, tenant.id).open_orders(8)) == 2

    def test_same_table_rejected(self, db_session, tenant, place_order):
        place_order(3, [("burger", 1)])
        with pytest.raises(ValidationFailed):
            TransferService(db_session, tenant.id).transfer_table(3, 3, "Ayse")

    def test_empty_source_rejected(self, db_session, tenant):
        with pytest.raises(ValidationFailed):
            TransferService(db_session, tenant.id).transfer_table(3, 4, "Ayse")


class TestTransferItems:
    def test_selected_lines_move_to_sibling_order(self, db_session, tenant, place_order):
        order = place_order(3, [("burger", 1), ("cola", 2)])
        cola_line = order.items[1]["line_id"]

        result = TransferService(db_session, tenant.id).transfer_items(3, 9, [cola_line], "Ayse")
        [sibling_id] = result["created_orders"]
        sibling = db_session.get(Order, sibling_id)

        assert sibling.table_num == 9
        assert sibling.items[0]["line_id"] == cola_line
        assert sibling.total == Decimal("70.00")
        assert sibling.status == OrderStatus.PREPARING
        assert sibling.user_name == order.user_name
        db_session.refresh(order)
        assert order.total == Decimal("120.00")
        assert order.is_open

        entry = db_session.query(ActivityLogEntry).filter(
            ActivityLogEntry.action == ActivityAction.ITEMS_MOVED.value,
        ).one()
        assert entry.details == "Table 3 → Table 9 (2x Cola)"

    def test_emptied_source_closes_transferred(self, db_session, tenant, place_order):
        order = place_order(3, [("cola", 1)])
        TransferService(db_session, tenant.id).transfer_items(3, 9, [order.items[0]["line_id"]], "Ayse")
        db_session.refresh(order)
        assert order.status == OrderStatus.TRANSFERRED
        assert TableService(db_session, tenant.id).open_orders(3) == []

    def test_unknown_line_rejected(self, db_session, tenant, place_order):
        place_order(3, [("cola", 1)])
        with pytest.raises(ValidationFailed):
            TransferService(db_session, tenant.id).transfer_items(3, 9, ["missing"], "Ayse")


class TestTransferToAccount:
    def test_charges_account_and_closes_table(self, db_session, tenant, place_order):
        account = AccountService(db_session, tenant.id).create_account("Mehmet Bey")
        first = place_order(6, [("burger", 1)])
        second = place_order(6, [("fries", 1)])

        result = TransferService(db_session, tenant.id).transfer_to_account(6, account.id, "Ayse")
        assert result["total"] == Decimal("165.50")
        assert result["account"].balance == Decimal("165.50")

        for order in (first, second):
            db_session.refresh(order)
            assert order.status == OrderStatus.ACCOUNT
            assert order.payment_type == "cari"

        [txn] = db_session.query(AccountTransaction).all()
        assert txn.type == AccountTransactionType.DEBT
        assert txn.amount == Decimal("165.50")
        assert txn.table_num == 6

        entry = db_session.query(ActivityLogEntry).filter(
            ActivityLogEntry.action == ActivityAction.MOVED_TO_ACCOUNT.value,
        ).one()
        assert entry.details == "Mehmet Bey (₺165.50)"

    def test_unknown_account(self, db_session, tenant, place_order):
        place_order(6, [("burger", 1)])
        with pytest.raises(NotFound):
            TransferService(db_session, tenant.id).transfer_to_account(6, 404, "Ayse")
        assert len(TableService(db_session, tenant.id).open_orders(6)) == 1
