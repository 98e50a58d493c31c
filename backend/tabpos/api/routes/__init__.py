"""API routes."""

from fastapi import APIRouter

from tabpos.api.routes import (
    accounts, auth, logs, members, menu, orders, reports, settings, staff, tables,
)

api_router = APIRouter()

# Business profile, settings and printers share the root
api_router.include_router(settings.router, tags=["settings"])

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(members.router, prefix="/members", tags=["loyalty"])
api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(logs.router, prefix="/logs", tags=["activity"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
