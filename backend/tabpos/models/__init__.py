"""SQLAlchemy models."""

from tabpos.models.tenant import Tenant
from tabpos.models.user import User
from tabpos.models.menu import Category, Product, ProductOption
from tabpos.models.loyalty import Member, PointTransaction, PointTransactionType, LoyaltySettings
from tabpos.models.order import Order, OrderStatus, PaymentType
from tabpos.models.table import TableArea, DiningTable
from tabpos.models.account import Account, AccountTransaction, AccountTransactionType
from tabpos.models.staff import Staff, StaffPermission
from tabpos.models.activity import ActivityLogEntry, ActivityAction
from tabpos.models.settings import TenantSettings, Printer

__all__ = [
    "Tenant",
    "User",
    "Category",
    "Product",
    "ProductOption",
    "Member",
    "PointTransaction",
    "PointTransactionType",
    "LoyaltySettings",
    "Order",
    "OrderStatus",
    "PaymentType",
    "TableArea",
    "DiningTable",
    "Account",
    "AccountTransaction",
    "AccountTransactionType",
    "Staff",
    "StaffPermission",
    "ActivityLogEntry",
    "ActivityAction",
    "TenantSettings",
    "Printer",
]
