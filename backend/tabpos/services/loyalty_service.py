"""Loyalty points ledger.

Every change to a member's point counters goes through this service and
is paired with a PointTransaction row in the same session. The rows are
the source of truth; ``Member.total_points`` and ``Member.used_points``
are a cache of their sums.
"""

import logging
import re
from datetime import datetime, timezone
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.loyalty import LoyaltySettings, Member, PointTransaction, PointTransactionType
from tabpos.models.order import Order, to_money

logger = logging.getLogger(__name__)

MIN_PHONE_LENGTH = 10


def normalize_phone(phone: str) -> str:
    return re.sub(r"\s+", "", phone or "")


def _floor(value: Decimal) -> int:
    return int(Decimal(value).to_integral_value(rounding=ROUND_FLOOR))


def _ceil(value: Decimal) -> int:
    return int(Decimal(value).to_integral_value(rounding=ROUND_CEILING))


class LoyaltyService:
    """Member management, redemption quotes and point postings."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    # ========== SETTINGS ==========

    def get_settings(self) -> LoyaltySettings:
        """Stored settings, or unsaved defaults when none exist yet."""
        stored = (
            self.db.query(LoyaltySettings)
            .filter(LoyaltySettings.tenant_id == self.tenant_id)
            .first()
        )
        if stored is not None:
            return stored
        return LoyaltySettings(
            tenant_id=self.tenant_id,
            is_enabled=True,
            points_per_currency=Decimal("1"),
            point_value=Decimal("0.10"),
            min_redeem_points=50,
        )

    def update_settings(self, **changes) -> LoyaltySettings:
        current = self.get_settings()
        try:
            for key, value in changes.items():
                if value is not None:
                    setattr(current, key, value)
        except ValueError as e:
            raise ValidationFailed(str(e))
        if current.id is None:
            self.db.add(current)
        self.db.commit()
        self.db.refresh(current)
        return current

    # ========== MEMBERS ==========

    def _members(self):
        return self.db.query(Member).filter(Member.tenant_id == self.tenant_id)

    def get_member(self, member_id: int) -> Member:
        member = self._members().filter(Member.id == member_id).first()
        if member is None:
            raise NotFound("Member", member_id)
        return member

    def find_by_phone(self, phone: str) -> Member:
        member = self._members().filter(Member.phone == normalize_phone(phone)).first()
        if member is None:
            raise NotFound("Member", phone)
        return member

    def search(self, query: Optional[str] = None, limit: int = 100) -> List[Member]:
        members = self._members()
        if query:
            like = f"%{query.strip().lower()}%"
            members = members.filter(or_(
                func.lower(Member.name).like(like),
                Member.phone.like(f"%{normalize_phone(query)}%"),
            ))
        return members.order_by(Member.name).limit(limit).all()

    def create_member(self, name: str, phone: str) -> Member:
        name = (name or "").strip()
        phone = normalize_phone(phone)
        if not name:
            raise ValidationFailed("Name is required")
        if len(phone) < MIN_PHONE_LENGTH:
            raise ValidationFailed(f"Phone number must be at least {MIN_PHONE_LENGTH} digits")
        if self._members().filter(Member.phone == phone).first() is not None:
            raise ValidationFailed("A member with this phone number already exists")

        member = Member(
            tenant_id=self.tenant_id, name=name, phone=phone,
            total_points=0, used_points=0, total_spent=Decimal("0"), visit_count=0,
        )
        self.db.add(member)
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"Member registered: {member.id} ({name})")
        return member

    def delete_member(self, member_id: int) -> None:
        self.db.delete(self.get_member(member_id))
        self.db.commit()

    def transactions(self, member_id: int) -> List[PointTransaction]:
        return (
            self.db.query(PointTransaction)
            .filter(
                PointTransaction.member_id == member_id,
                PointTransaction.tenant_id == self.tenant_id,
            )
            .order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
            .all()
        )

    # ========== REDEMPTION & ACCRUAL ==========

    def quote_redemption(self, member: Member, pre_discount_total) -> dict:
        """What redeeming would be worth against ``pre_discount_total``."""
        config = self.get_settings()
        available = member.available_points
        point_value = Decimal(str(config.point_value))
        eligible = bool(config.is_enabled) and available >= config.min_redeem_points and available > 0

        discount = Decimal("0")
        point_cost = 0
        if eligible:
            max_discount = Decimal(_floor(available * point_value))
            discount = min(max_discount, to_money(pre_discount_total))
            point_cost = min(_ceil(discount / point_value), available)
        return {
            "eligible": eligible,
            "available_points": available,
            "min_redeem_points": config.min_redeem_points,
            "discount": to_money(discount),
            "point_cost": point_cost,
        }

    def accrue(self, charged) -> int:
        """Points earned on a charged amount."""
        config = self.get_settings()
        if not config.is_enabled:
            return 0
        return max(_floor(to_money(charged) * Decimal(str(config.points_per_currency))), 0)

    def _post(self, member: Member, kind: PointTransactionType, points: int,
              description: str, order_id: Optional[str] = None) -> PointTransaction:
        txn = PointTransaction(
            tenant_id=self.tenant_id,
            member_id=member.id,
            type=kind,
            points=points,
            description=description,
            order_id=order_id,
        )
        self.db.add(txn)
        if kind == PointTransactionType.EARN:
            member.total_points = (member.total_points or 0) + points
        else:
            member.used_points = (member.used_points or 0) + points
        return txn

    def apply_checkout(self, member: Member, order: Order, redeem: bool = False) -> dict:
        """Redeem (optionally) and accrue for a freshly inserted order.

        Writes into the caller's session; the caller commits it together
        with the order.
        """
        pre_total = order.total
        quote = self.quote_redemption(member, pre_total)
        spent = 0
        discount = Decimal("0.00")
        if redeem and quote["eligible"] and quote["point_cost"] > 0:
            discount = quote["discount"]
            spent = quote["point_cost"]
            order.discount_amount = discount
            self._post(
                member, PointTransactionType.SPEND, spent,
                f"Redeemed on order #{order.short_id}", order.id,
            )

        charged = order.amount_due
        earned = self.accrue(charged)
        if earned > 0:
            self._post(
                member, PointTransactionType.EARN, earned,
                f"Earned on order #{order.short_id}", order.id,
            )

        member.total_spent = to_money(member.total_spent or 0) + charged
        member.visit_count = (member.visit_count or 0) + 1
        member.last_visit_at = datetime.now(timezone.utc)
        self.db.flush()
        logger.info(
            f"Member {member.id} checkout: order={order.short_id} "
            f"spent={spent} earned={earned} charged={charged}"
        )
        return {"discount": discount, "points_spent": spent, "points_earned": earned, "charged": charged}

    def adjust_points(self, member_id: int, delta, reason: Optional[str] = None) -> dict:
        """Manual adjustment: positive posts earn, negative posts spend."""
        if isinstance(delta, bool):
            raise ValidationFailed("Points must be a whole number")
        try:
            points = int(str(delta).strip())
        except (TypeError, ValueError):
            raise ValidationFailed("Points must be a whole number")
        if points == 0:
            raise ValidationFailed("Points must not be zero")
        member = self.get_member(member_id)

        if points > 0:
            txn = self._post(member, PointTransactionType.EARN, points, reason or "Manual points added")
        else:
            txn = self._post(member, PointTransactionType.SPEND, abs(points), reason or "Manual points removed")
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"Member {member.id} points adjusted by {points}")
        return {"success": True, "member": member, "transaction_id": txn.id}

    def ledger_totals(self, member_id: int) -> dict:
        """Re-derive a member's counters from the ledger and compare."""
        member = self.get_member(member_id)
        rows = (
            self.db.query(PointTransaction.type, func.coalesce(func.sum(PointTransaction.points), 0))
            .filter(PointTransaction.member_id == member.id)
            .group_by(PointTransaction.type)
            .all()
        )
        sums = {PointTransactionType(kind): int(total) for kind, total in rows}
        earned = sums.get(PointTransactionType.EARN, 0)
        spent = sums.get(PointTransactionType.SPEND, 0)
        return {
            "member_id": member.id,
            "ledger_earned": earned,
            "ledger_spent": spent,
            "total_points": member.total_points,
            "used_points": member.used_points,
            "consistent": earned == member.total_points and spent == member.used_points,
        }
