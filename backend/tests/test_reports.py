"""Tests for period reports."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from tabpos.core.exceptions import ValidationFailed
from tabpos.models.order import Order, OrderStatus
from tabpos.services.report_service import ReportService, period_bounds

IST = ZoneInfo("Europe/Istanbul")


@pytest.fixture
def add_order(db_session, tenant):
    def _add(created_at, status, items, payment_type="cash", table_num=1, discount="0.00"):
        order = Order(
            id=str(uuid.uuid4()),
            tenant_id=tenant.id,
            user_id="1",
            user_name="Ayse",
            table_num=table_num,
            status=status,
            payment_type=payment_type,
            created_at=created_at,
        )
        order.replace_items(items)
        order.discount_amount = Decimal(discount)
        db_session.add(order)
        db_session.commit()
        return order

    return _add


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestPeriodBounds:
    def test_daily_uses_local_midnight(self):
        start, end = period_bounds("daily", date(2026, 3, 14), IST)
        assert start == _utc(2026, 3, 13, 21, 0)
        assert end == _utc(2026, 3, 14, 21, 0)

    def test_december_rolls_into_next_year(self):
        start, end = period_bounds("monthly", date(2026, 12, 5), IST)
        assert start == _utc(2026, 11, 30, 21, 0)
        assert end == _utc(2026, 12, 31, 21, 0)

    def test_yearly(self):
        start, end = period_bounds("yearly", date(2026, 6, 1), IST)
        assert start == _utc(2025, 12, 31, 21, 0)
        assert end == _utc(2026, 12, 31, 21, 0)

    def test_unknown_period(self):
        with pytest.raises(ValidationFailed):
            period_bounds("weekly", date(2026, 3, 14), IST)


class TestPeriodReport:
    BURGER = {"product_id": 1, "name": "Burger", "price": "120.00", "qty": 1}
    COLA = {"product_id": 3, "name": "Cola", "price": "35.00", "qty": 2}

    def test_daily_totals(self, db_session, tenant, add_order):
        add_order(_utc(2026, 3, 14, 10, 0), OrderStatus.PAID, [self.BURGER, self.COLA])
        add_order(_utc(2026, 3, 14, 11, 0), OrderStatus.ACCOUNT, [self.COLA], payment_type="cari", table_num=2)
        add_order(_utc(2026, 3, 14, 12, 0), OrderStatus.CANCELLED, [self.BURGER])
        add_order(_utc(2026, 3, 14, 13, 0), OrderStatus.PREPARING, [self.BURGER])
        # 23:30 local on the 14th is the 14th
        add_order(_utc(2026, 3, 14, 20, 30), OrderStatus.PAID, [self.BURGER], payment_type="card", discount="20.00")
        # 00:30 local on the 15th is not
        add_order(_utc(2026, 3, 14, 21, 30), OrderStatus.PAID, [self.BURGER])

        report = ReportService(db_session, tenant.id).period_report("daily", date(2026, 3, 14))

        assert report["order_count"] == 5
        assert report["paid_count"] == 3
        assert report["cancelled_count"] == 1
        assert report["revenue"] == Decimal("360.00")
        assert report["cancelled_total"] == Decimal("120.00")
        assert report["by_payment_type"] == {
            "cash": Decimal("190.00"), "card": Decimal("100.00"), "cari": Decimal("70.00"),
        }
        assert report["unique_tables"] == 2
        assert report["daily_breakdown"] == []

        top = report["top_products"]
        assert [p["name"] for p in top] == ["Cola", "Burger"]
        assert top[0]["qty"] == 4
        assert top[0]["revenue"] == Decimal("140.00")
        assert top[1]["revenue"] == Decimal("240.00")

    def test_monthly_breakdown_by_local_day(self, db_session, tenant, add_order):
        add_order(_utc(2026, 3, 2, 9, 0), OrderStatus.PAID, [self.BURGER])
        add_order(_utc(2026, 3, 2, 22, 0), OrderStatus.PAID, [self.COLA])
        add_order(_utc(2026, 4, 2, 9, 0), OrderStatus.PAID, [self.COLA])

        report = ReportService(db_session, tenant.id).period_report("monthly", date(2026, 3, 20))
        assert report["revenue"] == Decimal("190.00")
        assert report["daily_breakdown"] == [
            {"date": "2026-03-03", "revenue": Decimal("70.00")},
            {"date": "2026-03-02", "revenue": Decimal("120.00")},
        ]

    def test_lines_without_product_are_not_ranked(self, db_session, tenant, add_order):
        add_order(_utc(2026, 3, 14, 10, 0), OrderStatus.PAID,
                  [{"name": "Corkage", "price": "50.00", "qty": 1}, self.BURGER])
        report = ReportService(db_session, tenant.id).period_report("daily", date(2026, 3, 14))
        assert [p["name"] for p in report["top_products"]] == ["Burger"]
        assert report["revenue"] == Decimal("170.00")

    def test_other_tenant_excluded(self, db_session, tenant, other_tenant, add_order):
        order = add_order(_utc(2026, 3, 14, 10, 0), OrderStatus.PAID, [self.BURGER])
        report = ReportService(db_session, other_tenant.id).period_report("daily", date(2026, 3, 14))
        assert report["order_count"] == 0
        assert report["revenue"] == Decimal("0.00")
        assert order.tenant_id == tenant.id
