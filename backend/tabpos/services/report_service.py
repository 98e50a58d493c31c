"""Period reports over settled orders."""

import logging
from collections import Counter, defaultdict
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from tabpos.core.config import settings
from tabpos.core.exceptions import ValidationFailed
from tabpos.models.order import Order, OrderStatus, line_amount, local_created_at
from tabpos.services.table_service import BILLED_STATUSES

logger = logging.getLogger(__name__)

PERIODS = ("daily", "monthly", "yearly")
TOP_PRODUCTS = 10


def period_bounds(period: str, day: date, tz: ZoneInfo):
    """UTC [start, end) of the local day, month or year containing ``day``."""
    if period == "daily":
        first = day
        last = date.fromordinal(day.toordinal() + 1)
    elif period == "monthly":
        first = day.replace(day=1)
        last = date(day.year + (day.month == 12), day.month % 12 + 1, 1)
    elif period == "yearly":
        first = date(day.year, 1, 1)
        last = date(day.year + 1, 1, 1)
    else:
        raise ValidationFailed(f"Period must be one of: {', '.join(PERIODS)}")
    start = datetime.combine(first, time.min, tzinfo=tz).astimezone(timezone.utc)
    end = datetime.combine(last, time.min, tzinfo=tz).astimezone(timezone.utc)
    return start, end


class ReportService:
    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    def period_report(self, period: str = "daily", day: Optional[date] = None) -> dict:
        """Revenue, cancellations and product mix for a day, month or year.

        Revenue counts orders closed as paid or charged to an account.
        Quick orders are included.
        """
        tz = ZoneInfo(settings.timezone)
        day = day or datetime.now(tz).date()
        start, end = period_bounds(period, day, tz)
        orders = (
            self.db.query(Order)
            .filter(
                Order.tenant_id == self.tenant_id,
                Order.created_at >= start,
                Order.created_at < end,
            )
            .order_by(Order.created_at.desc())
            .all()
        )

        billed = [o for o in orders if OrderStatus(o.status) in BILLED_STATUSES]
        cancelled = [o for o in orders if OrderStatus(o.status) == OrderStatus.CANCELLED]

        by_payment: Dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        quantities: Counter = Counter()
        revenues: Dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        daily: Dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        for order in billed:
            by_payment[order.payment_type or "other"] += order.amount_due
            for item in order.items or []:
                if item.get("product_id") is None:
                    continue
                quantities[item["name"]] += int(item["qty"])
                revenues[item["name"]] += line_amount(item)
            if period != "daily":
                daily[local_created_at(order, tz).date().isoformat()] += order.amount_due

        top = [
            {"name": name, "qty": qty, "revenue": revenues[name]}
            for name, qty in sorted(quantities.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_PRODUCTS]
        ]
        report = {
            "period": period,
            "date": day.isoformat(),
            "revenue": sum((o.amount_due for o in billed), Decimal("0.00")),
            "cancelled_total": sum((o.total for o in cancelled), Decimal("0.00")),
            "order_count": len(orders),
            "paid_count": len(billed),
            "cancelled_count": len(cancelled),
            "by_payment_type": dict(sorted(by_payment.items(), key=lambda kv: -kv[1])),
            "top_products": top,
            "unique_tables": len({o.table_num for o in billed}),
            "daily_breakdown": [
                {"date": d, "revenue": amount}
                for d, amount in sorted(daily.items(), reverse=True)
            ],
        }
        logger.debug(f"Report {period} {day}: {report['order_count']} orders, revenue {report['revenue']}")
        return report
