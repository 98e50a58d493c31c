"""Activity log service.

Entries are added to the caller's session and flushed, never committed
here, so an entry lands in the same transaction as the mutation it
describes.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from tabpos.core.config import settings
from tabpos.models.activity import ActivityAction, ActivityLogEntry
from tabpos.models.order import to_money

logger = logging.getLogger("activity")

DEFAULT_LIMIT = 200


def describe_items(items: List[dict], qty_key: str = "qty") -> str:
    """``2x Cola, 1x Burger``."""
    return ", ".join(f"{item[qty_key]}x {item['name']}" for item in items)


class ActivityService:
    """Append and query table activity for one tenant."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    def record(
        self,
        table_num: int,
        user_name: str,
        action: ActivityAction,
        details: str = "",
        amount: Optional[Decimal] = None,
        payment_type: Optional[str] = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            tenant_id=self.tenant_id,
            table_num=table_num,
            user_name=user_name or "-",
            action=ActivityAction(action).value,
            details=details,
            amount=to_money(amount) if amount is not None else None,
            payment_type=payment_type,
        )
        self.db.add(entry)
        self.db.flush()
        logger.info(
            f"tenant={self.tenant_id} table={table_num} user={entry.user_name} "
            f"action='{entry.action}' amount={entry.amount}"
        )
        return entry

    def list_entries(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        table_num: Optional[int] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[ActivityLogEntry]:
        """Entries between ``start`` and ``end`` (inclusive local days), newest first.

        Defaults to yesterday through today.
        """
        tz = ZoneInfo(settings.timezone)
        today = datetime.now(tz).date()
        start = start or today - timedelta(days=1)
        end = end or today
        start_utc = datetime.combine(start, time.min, tzinfo=tz).astimezone(timezone.utc)
        end_utc = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)

        query = self.db.query(ActivityLogEntry).filter(
            ActivityLogEntry.tenant_id == self.tenant_id,
            ActivityLogEntry.created_at >= start_utc,
            ActivityLogEntry.created_at < end_utc,
        )
        if table_num is not None:
            query = query.filter(ActivityLogEntry.table_num == table_num)
        return (
            query.order_by(ActivityLogEntry.created_at.desc(), ActivityLogEntry.id.desc())
            .limit(min(limit, DEFAULT_LIMIT))
            .all()
        )
