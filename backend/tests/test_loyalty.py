"""Tests for the loyalty points ledger."""

import uuid
from decimal import Decimal

import pytest

from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.loyalty import PointTransaction, PointTransactionType
from tabpos.models.order import Order, OrderStatus
from tabpos.services.loyalty_service import LoyaltyService, normalize_phone
from tabpos.services.order_service import OrderService


@pytest.fixture
def loyalty(db_session, tenant):
    return LoyaltyService(db_session, tenant.id)


@pytest.fixture
def member(loyalty):
    return loyalty.create_member("Deniz Kaya", "0532 111 22 33")


def _pending_order(db_session, tenant, member, total):
    order = Order(
        id=str(uuid.uuid4()),
        tenant_id=tenant.id,
        user_id="guest-1",
        user_name="Deniz",
        table_num=2,
        status=OrderStatus.WAITING,
        payment_type="card",
        member_id=member.id,
    )
    order.replace_items([{"name": "Menu", "price": total, "qty": 1}])
    db_session.add(order)
    db_session.flush()
    return order


class TestMembers:
    def test_phone_is_normalized(self, member):
        assert member.phone == "05321112233"
        assert normalize_phone(" 0532 111 22 33 ") == "05321112233"

    def test_duplicate_phone_rejected(self, loyalty, member):
        with pytest.raises(ValidationFailed):
            loyalty.create_member("Someone Else", "05321112233")

    def test_short_phone_rejected(self, loyalty):
        with pytest.raises(ValidationFailed):
            loyalty.create_member("Deniz", "12345")

    def test_find_by_phone(self, loyalty, member):
        assert loyalty.find_by_phone("0532 111 2233").id == member.id
        with pytest.raises(NotFound):
            loyalty.find_by_phone("05000000000")

    def test_search_by_name_or_phone(self, loyalty, member):
        loyalty.create_member("Ali Veli", "05559998877")
        assert [m.name for m in loyalty.search("deniz")] == ["Deniz Kaya"]
        assert [m.name for m in loyalty.search("999")] == ["Ali Veli"]
        assert len(loyalty.search()) == 2


class TestRedemption:
    def test_not_eligible_below_minimum(self, loyalty, member):
        loyalty.adjust_points(member.id, 49)
        quote = loyalty.quote_redemption(member, Decimal("100.00"))
        assert quote["eligible"] is False
        assert quote["discount"] == Decimal("0.00")
        assert quote["point_cost"] == 0

    def test_discount_is_floor_of_points_value(self, loyalty, member):
        loyalty.adjust_points(member.id, 255)
        quote = loyalty.quote_redemption(member, Decimal("100.00"))
        # 255 * 0.10 = 25.5 -> 25
        assert quote["discount"] == Decimal("25.00")
        assert quote["point_cost"] == 250

    def test_discount_capped_at_order_total(self, db_session, tenant, loyalty, member):
        loyalty.adjust_points(member.id, 1000)
        order = _pending_order(db_session, tenant, member, "60.00")

        result = loyalty.apply_checkout(member, order, redeem=True)
        db_session.commit()

        assert result["discount"] == Decimal("60.00")
        assert result["points_spent"] == 600
        assert result["charged"] == Decimal("0.00")
        assert result["points_earned"] == 0
        assert order.amount_due == Decimal("0.00")
        assert order.total == Decimal("60.00")
        assert member.available_points == 400

    def test_accrual_without_redemption(self, db_session, tenant, loyalty, member):
        order = _pending_order(db_session, tenant, member, "87.90")
        result = loyalty.apply_checkout(member, order, redeem=False)
        db_session.commit()
        assert result["points_earned"] == 87
        assert member.total_points == 87
        assert member.visit_count == 1
        assert member.total_spent == Decimal("87.90")

    def test_redeem_flag_ignored_when_not_eligible(self, db_session, tenant, loyalty, member):
        order = _pending_order(db_session, tenant, member, "50.00")
        result = loyalty.apply_checkout(member, order, redeem=True)
        assert result["points_spent"] == 0
        assert result["discount"] == Decimal("0.00")

    def test_customer_checkout_with_redemption(self, db_session, tenant, menu, loyalty, member):
        loyalty.adjust_points(member.id, 300)
        result = OrderService(db_session, tenant.id).submit_customer_order(
            table_num=2,
            user_id="guest-1",
            user_name="Deniz",
            items=[{"product_id": menu["burger"].id, "qty": 1}],
            payment_type="card",
            enabled_payment_types=["card"],
            member_id=member.id,
            redeem_points=True,
        )
        order = result["order"]
        # 120 + 6 service charge, minus 30 for 300 points
        assert order.total == Decimal("126.00")
        assert order.discount_amount == Decimal("30.00")
        assert order.amount_due == Decimal("96.00")
        assert result["points"]["points_earned"] == 96
        db_session.refresh(member)
        assert member.available_points == 96


class TestLedger:
    def test_manual_adjustments_post_transactions(self, db_session, loyalty, member):
        loyalty.adjust_points(member.id, "120")
        loyalty.adjust_points(member.id, -20, "Correction")
        kinds = sorted((t.type, t.points) for t in db_session.query(PointTransaction).all())
        assert kinds == sorted([
            (PointTransactionType.EARN, 120),
            (PointTransactionType.SPEND, 20),
        ])
        assert loyalty.get_member(member.id).available_points == 100

    @pytest.mark.parametrize("points", [0, "abc", "1.5", True])
    def test_bad_adjustments_rejected(self, loyalty, member, points):
        with pytest.raises(ValidationFailed):
            loyalty.adjust_points(member.id, points)

    def test_counters_match_ledger(self, db_session, tenant, loyalty, member):
        loyalty.adjust_points(member.id, 500)
        order = _pending_order(db_session, tenant, member, "40.00")
        loyalty.apply_checkout(member, order, redeem=True)
        db_session.commit()
        check = loyalty.ledger_totals(member.id)
        assert check["consistent"] is True
        assert check["ledger_earned"] == member.total_points
        assert check["ledger_spent"] == member.used_points

    def test_settings_defaults_then_update(self, loyalty):
        assert loyalty.get_settings().point_value == Decimal("0.10")
        updated = loyalty.update_settings(min_redeem_points=100, point_value=Decimal("0.20"))
        assert updated.min_redeem_points == 100
        assert loyalty.get_settings().point_value == Decimal("0.20")
