"""Table views and table configuration.

``aggregate_open_tables`` is the one place open orders are grouped into
tables. Every view that needs "which tables are open" re-derives it from
the current order set through this function.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from tabpos.core.config import settings
from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.activity import ActivityAction
from tabpos.models.order import (
    CLOSED_STATUSES, OPEN_STATUSES, PAYMENT_LABELS, QUICK_ORDER_TABLE, URGENCY_RANK,
    Order, OrderStatus, format_money, line_amount,
)
from tabpos.models.table import DiningTable, TableArea
from tabpos.services.activity_service import ActivityService

logger = logging.getLogger(__name__)

# Closed dispositions that represent money collected or owed
BILLED_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.ACCOUNT})


@dataclass
class TableSummary:
    """Aggregated view of one table's orders."""

    table_num: int
    orders: List[Order] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((o.amount_due for o in self.orders), Decimal("0.00"))

    @property
    def item_count(self) -> int:
        return sum(int(i["qty"]) for o in self.orders for i in (o.items or []))

    @property
    def urgency(self) -> Optional[str]:
        """Most urgent open status present: waiting, then preparing, then ready."""
        open_statuses = [OrderStatus(o.status) for o in self.orders if o.is_open]
        if not open_statuses:
            return None
        return min(open_statuses, key=URGENCY_RANK.__getitem__).value

    @property
    def opened_at(self) -> Optional[datetime]:
        return min((o.created_at for o in self.orders), default=None)

    @property
    def last_activity_at(self) -> Optional[datetime]:
        return max((o.updated_at or o.created_at for o in self.orders), default=None)


def aggregate_open_tables(orders: Iterable[Order]) -> List[TableSummary]:
    """Group open orders by table number; quick orders (table 0) are left out.

    Tables are returned most urgent first, then by table number.
    """
    groups: Dict[int, TableSummary] = {}
    for order in orders:
        if not order.is_open or order.table_num == QUICK_ORDER_TABLE:
            continue
        groups.setdefault(order.table_num, TableSummary(order.table_num)).orders.append(order)
    return sorted(
        groups.values(),
        key=lambda t: (URGENCY_RANK[OrderStatus(t.urgency)], t.table_num),
    )


def flatten_items(orders: Iterable[Order]) -> List[dict]:
    """One row per order line, tagged with its owning order."""
    rows = []
    for order in orders:
        for item in order.items or []:
            rows.append({
                "order_id": order.id,
                "order_version": order.version,
                "line_id": item["line_id"],
                "product_id": item.get("product_id"),
                "name": item["name"],
                "price": Decimal(item["price"]),
                "qty": int(item["qty"]),
                "amount": line_amount(item),
                "note": item.get("note") or "",
                "options": item.get("options") or [],
                "status": OrderStatus(order.status).value,
            })
    return rows


def local_day_bounds(day=None):
    """UTC bounds of a business-local calendar day."""
    tz = ZoneInfo(settings.timezone)
    day = day or datetime.now(tz).date()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


class TableService:
    """Open/closed table views and seating configuration."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    # ========== ORDER VIEWS ==========

    def _orders(self):
        return self.db.query(Order).filter(Order.tenant_id == self.tenant_id)

    def open_orders(self, table_num: Optional[int] = None) -> List[Order]:
        query = self._orders().filter(Order.status.in_(list(OPEN_STATUSES)))
        if table_num is not None:
            query = query.filter(Order.table_num == table_num)
        return query.order_by(Order.created_at.asc(), Order.id.asc()).all()

    def open_tables(self) -> List[dict]:
        labels = self.table_labels()
        return [
            {
                "table_num": t.table_num,
                "label": labels.get(t.table_num, f"Table {t.table_num}"),
                "total": t.total,
                "item_count": t.item_count,
                "order_count": len(t.orders),
                "urgency": t.urgency,
                "opened_at": t.opened_at,
            }
            for t in aggregate_open_tables(self.open_orders())
        ]

    def table_detail(self, table_num: int) -> dict:
        orders = self.open_orders(table_num)
        summary = TableSummary(table_num, orders)
        newest_first = sorted(orders, key=lambda o: o.created_at, reverse=True)
        return {
            "table_num": table_num,
            "label": self.table_label(table_num),
            "orders": newest_first,
            "items": flatten_items(orders),
            "total": summary.total,
            "urgency": summary.urgency,
            "is_open": bool(orders),
        }

    def closed_orders_today(self, table_num: Optional[int] = None) -> List[Order]:
        start, end = local_day_bounds()
        query = self._orders().filter(
            Order.status.in_(list(CLOSED_STATUSES)),
            Order.created_at >= start,
            Order.created_at < end,
            Order.table_num != QUICK_ORDER_TABLE,
        )
        if table_num is not None:
            query = query.filter(Order.table_num == table_num)
        return query.order_by(Order.updated_at.desc()).all()

    def closed_tables_today(self) -> List[dict]:
        """Today's settled tables, most recently closed first.

        Tables that currently have open orders again are still listed; the
        caller can tell them apart with ``has_open_orders``.
        """
        labels = self.table_labels()
        open_nums = {t.table_num for t in aggregate_open_tables(self.open_orders())}
        grouped: "OrderedDict[int, List[Order]]" = OrderedDict()
        for order in self.closed_orders_today():
            grouped.setdefault(order.table_num, []).append(order)

        tables = []
        for table_num, orders in grouped.items():
            payment_types = sorted({o.payment_type for o in orders})
            tables.append({
                "table_num": table_num,
                "label": labels.get(table_num, f"Table {table_num}"),
                "total": sum(
                    (o.amount_due for o in orders if OrderStatus(o.status) in BILLED_STATUSES),
                    Decimal("0.00"),
                ),
                "order_count": len(orders),
                "payment_types": payment_types,
                "dispositions": sorted({OrderStatus(o.status).value for o in orders}),
                "closed_at": max(o.updated_at for o in orders),
                "has_open_orders": table_num in open_nums,
            })
        return tables

    def reopen_table(self, table_num: int, user_name: str) -> dict:
        """Put today's paid orders of a table back to ``ready``.

        Orders that ended as cancelled, moved to an account or transferred stay
        closed; reopening only voids payments.
        """
        orders = [
            o for o in self.closed_orders_today(table_num)
            if OrderStatus(o.status) == OrderStatus.PAID
        ]
        if not orders:
            raise NotFound("Closed table", table_num)

        total = sum((o.amount_due for o in orders), Decimal("0.00"))
        for order in orders:
            order.status = OrderStatus.READY
            order.increment_version()

        ActivityService(self.db, self.tenant_id).record(
            table_num,
            user_name,
            ActivityAction.TABLE_REOPENED,
            details=f"Payment voided - {format_money(total)}",
            amount=total,
        )
        self.db.commit()
        logger.info(f"Table {table_num} reopened ({len(orders)} orders) by {user_name}")
        return {"success": True, "table_num": table_num, "reopened": len(orders), "total": total}

    def change_payment_type(self, table_num: int, payment_type: str, user_name: str) -> dict:
        """Correct the payment method recorded on today's settled orders."""
        orders = [
            o for o in self.closed_orders_today(table_num)
            if OrderStatus(o.status) == OrderStatus.PAID
        ]
        if not orders:
            raise NotFound("Paid table", table_num)

        previous = sorted({o.payment_type for o in orders})
        for order in orders:
            order.payment_type = payment_type
            order.increment_version()

        old_labels = ", ".join(PAYMENT_LABELS.get(p, p) for p in previous)
        ActivityService(self.db, self.tenant_id).record(
            table_num,
            user_name,
            ActivityAction.PAYMENT_TYPE_CHANGED,
            details=f"{old_labels} -> {PAYMENT_LABELS.get(payment_type, payment_type)}",
            payment_type=payment_type,
        )
        self.db.commit()
        return {"success": True, "table_num": table_num, "updated": len(orders)}

    # ========== LABELS ==========

    def table_labels(self) -> Dict[int, str]:
        """Display names: explicit name, else ``<area> <position>``, else ``Table <n>``."""
        labels: Dict[int, str] = {}
        areas = (
            self.db.query(TableArea)
            .filter(TableArea.tenant_id == self.tenant_id)
            .order_by(TableArea.sort_order, TableArea.id)
            .all()
        )
        for area in areas:
            for position, table in enumerate(area.tables, start=1):
                labels[table.table_num] = table.name or f"{area.name} {position}"
        loose = (
            self.db.query(DiningTable)
            .filter(DiningTable.tenant_id == self.tenant_id, DiningTable.area_id.is_(None))
            .all()
        )
        for table in loose:
            labels[table.table_num] = table.name or f"Table {table.table_num}"
        return labels

    def table_label(self, table_num: int) -> str:
        if table_num == QUICK_ORDER_TABLE:
            return "Quick order"
        return self.table_labels().get(table_num, f"Table {table_num}")

    # ========== AREAS ==========

    def list_areas(self) -> List[TableArea]:
        return (
            self.db.query(TableArea)
            .filter(TableArea.tenant_id == self.tenant_id)
            .order_by(TableArea.sort_order, TableArea.id)
            .all()
        )

    def get_area(self, area_id: int) -> TableArea:
        area = (
            self.db.query(TableArea)
            .filter(TableArea.id == area_id, TableArea.tenant_id == self.tenant_id)
            .first()
        )
        if area is None:
            raise NotFound("Area", area_id)
        return area

    def create_area(self, name: str) -> TableArea:
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Area name is required")
        max_order = (
            self.db.query(func.max(TableArea.sort_order))
            .filter(TableArea.tenant_id == self.tenant_id)
            .scalar()
        )
        area = TableArea(tenant_id=self.tenant_id, name=name, sort_order=(max_order or 0) + 1)
        self.db.add(area)
        self.db.commit()
        self.db.refresh(area)
        return area

    def rename_area(self, area_id: int, name: str, sort_order: Optional[int] = None) -> TableArea:
        area = self.get_area(area_id)
        if name is not None:
            if not name.strip():
                raise ValidationFailed("Area name is required")
            area.name = name.strip()
        if sort_order is not None:
            area.sort_order = sort_order
        self.db.commit()
        self.db.refresh(area)
        return area

    def delete_area(self, area_id: int) -> None:
        """Delete an area together with its tables."""
        area = self.get_area(area_id)
        self.db.delete(area)
        self.db.commit()

    # ========== TABLES ==========

    def list_tables(self) -> List[DiningTable]:
        return (
            self.db.query(DiningTable)
            .filter(DiningTable.tenant_id == self.tenant_id)
            .order_by(DiningTable.table_num)
            .all()
        )

    def get_table(self, table_id: int) -> DiningTable:
        table = (
            self.db.query(DiningTable)
            .filter(DiningTable.id == table_id, DiningTable.tenant_id == self.tenant_id)
            .first()
        )
        if table is None:
            raise NotFound("Table", table_id)
        return table

    def _ensure_number_free(self, table_num: int, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(DiningTable).filter(
            DiningTable.tenant_id == self.tenant_id, DiningTable.table_num == table_num,
        )
        if exclude_id is not None:
            query = query.filter(DiningTable.id != exclude_id)
        if query.first() is not None:
            raise ValidationFailed(f"Table number {table_num} is already in use")

    def create_table(self, table_num: int, name: Optional[str] = None,
                     area_id: Optional[int] = None, capacity: int = 4) -> DiningTable:
        if table_num < 1:
            raise ValidationFailed("Table number must be at least 1")
        if capacity < 1:
            raise ValidationFailed("Capacity must be at least 1")
        if area_id is not None:
            self.get_area(area_id)
        self._ensure_number_free(table_num)
        table = DiningTable(
            tenant_id=self.tenant_id, table_num=table_num, name=name,
            area_id=area_id, capacity=capacity,
        )
        self.db.add(table)
        self.db.commit()
        self.db.refresh(table)
        return table

    def update_table(self, table_id: int, **changes) -> DiningTable:
        table = self.get_table(table_id)
        if changes.get("table_num") is not None:
            if changes["table_num"] < 1:
                raise ValidationFailed("Table number must be at least 1")
            self._ensure_number_free(changes["table_num"], exclude_id=table.id)
        if changes.get("capacity") is not None and changes["capacity"] < 1:
            raise ValidationFailed("Capacity must be at least 1")
        if changes.get("area_id") is not None:
            self.get_area(changes["area_id"])
        for key, value in changes.items():
            if value is not None:
                setattr(table, key, value)
        self.db.commit()
        self.db.refresh(table)
        return table

    def delete_table(self, table_id: int) -> None:
        self.db.delete(self.get_table(table_id))
        self.db.commit()

    def generate_tables(self, area_id: int, cols: int, rows: int, capacity: int = 4) -> List[DiningTable]:
        """Replace an area's tables with a ``cols x rows`` grid.

        Numbering continues after the highest table number used by other areas.
        """
        if cols < 1 or rows < 1:
            raise ValidationFailed("Columns and rows must be at least 1")
        if cols * rows > 200:
            raise ValidationFailed("At most 200 tables can be generated at once")
        if capacity < 1:
            raise ValidationFailed("Capacity must be at least 1")
        area = self.get_area(area_id)

        max_other = (
            self.db.query(func.max(DiningTable.table_num))
            .filter(
                DiningTable.tenant_id == self.tenant_id,
                (DiningTable.area_id != area.id) | DiningTable.area_id.is_(None),
            )
            .scalar()
        ) or 0

        area.tables.clear()
        self.db.flush()

        created = []
        for offset in range(cols * rows):
            table = DiningTable(
                tenant_id=self.tenant_id,
                table_num=max_other + offset + 1,
                area_id=area.id,
                capacity=capacity,
            )
            self.db.add(table)
            created.append(table)
        self.db.commit()
        for table in created:
            self.db.refresh(table)
        logger.info(f"Generated {len(created)} tables for area {area.name}")
        return created
