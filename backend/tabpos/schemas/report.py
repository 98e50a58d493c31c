"""Report schemas."""

from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel


class ProductSales(BaseModel):
    name: str
    qty: int
    revenue: Decimal


class DailyRevenue(BaseModel):
    date: str
    revenue: Decimal


class PeriodReport(BaseModel):
    period: str
    date: str
    revenue: Decimal
    cancelled_total: Decimal
    order_count: int
    paid_count: int
    cancelled_count: int
    by_payment_type: Dict[str, Decimal]
    top_products: List[ProductSales]
    unique_tables: int
    daily_breakdown: List[DailyRevenue]
