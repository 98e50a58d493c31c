"""Order routes: customer checkout, quick orders, kitchen status, printing."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, status

from tabpos.api.deps import dispatch_prints, notify_change
from tabpos.core.rate_limit import limiter
from tabpos.core.rbac import CanTakeOrders, RequireGuest, RequireStaff, UserRole
from tabpos.core.responses import list_response
from tabpos.core.tenancy import CurrentTenant
from tabpos.db.session import DbSession
from tabpos.models.order import QUICK_ORDER_TABLE, OrderStatus
from tabpos.schemas.order import (
    CustomerOrderCreate, CustomerOrderResponse, DashboardStats, OrderResponse,
    PrintResponse, StaffOrderCreate, StatusUpdate,
)
from tabpos.services.order_service import OrderService, PrintRequest
from tabpos.services.settings_service import SettingsService

router = APIRouter()


@router.post("/", response_model=CustomerOrderResponse, status_code=201)
@limiter.limit("30/minute")
def submit_customer_order(
    request: Request,
    body: CustomerOrderCreate,
    current_user: RequireGuest,
    tenant: CurrentTenant,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Customer checkout: a ``waiting`` order with the service charge added."""
    enabled = SettingsService(db, tenant.id).get_settings().enabled_payment_types()
    result = OrderService(db, tenant.id).submit_customer_order(
        table_num=body.table_num,
        user_id=current_user.user_id,
        user_name=current_user.name,
        items=[i.model_dump() for i in body.items],
        payment_type=body.payment_type,
        enabled_payment_types=enabled,
        note=body.note,
        member_id=body.member_id,
        redeem_points=body.redeem_points,
    )
    dispatch_prints(background_tasks, db, tenant, result["print_requests"])
    notify_change(background_tasks, tenant.id, "INSERT", result["order"].id)
    return result


@router.post("/quick", response_model=OrderResponse, status_code=201)
def submit_quick_order(
    body: StaffOrderCreate,
    current_user: CanTakeOrders,
    tenant: CurrentTenant,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Counter sale not tied to a table (table 0)."""
    result = OrderService(db, tenant.id).submit_staff_order(
        table_num=QUICK_ORDER_TABLE,
        user_id=current_user.user_id,
        user_name=body.user_name or current_user.name,
        lines=[line.model_dump() for line in body.lines],
        payment_type=body.payment_type.value,
        note=body.note,
    )
    dispatch_prints(background_tasks, db, tenant, result["print_requests"])
    notify_change(background_tasks, tenant.id, "INSERT", result["order"].id)
    return result["order"]


@router.get("/")
def list_orders(
    current_user: RequireStaff,
    db: DbSession,
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    table_num: Optional[int] = Query(None, ge=0),
    member_id: Optional[int] = None,
    limit: int = Query(50, ge=1, le=500),
):
    """Orders newest first."""
    orders = OrderService(db, current_user.tenant_id).list_orders(
        status=order_status, table_num=table_num, member_id=member_id, limit=limit,
    )
    return list_response([OrderResponse.model_validate(o) for o in orders])


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(current_user: RequireStaff, db: DbSession):
    return OrderService(db, current_user.tenant_id).dashboard_stats()


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, current_user: RequireGuest, db: DbSession):
    """Staff see any order; guests only their own."""
    order = OrderService(db, current_user.tenant_id).get_order(order_id)
    if current_user.role == UserRole.GUEST and order.user_id != current_user.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your order")
    return order


@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_status(
    order_id: str,
    body: StatusUpdate,
    current_user: RequireStaff,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Kitchen progress: waiting, preparing, ready."""
    order = OrderService(db, current_user.tenant_id).update_status(
        order_id, body.status, expected_version=body.expected_version,
    )
    notify_change(background_tasks, current_user.tenant_id, "UPDATE", order.id, tables=("orders",))
    return order


@router.post("/{order_id}/print", response_model=PrintResponse)
def print_order(
    order_id: str,
    current_user: RequireStaff,
    tenant: CurrentTenant,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Manual print; allowed on any device."""
    order = OrderService(db, tenant.id).get_order(order_id)
    texts = dispatch_prints(background_tasks, db, tenant, [PrintRequest(order)], manual=True)
    return PrintResponse(text=texts[0], queued=True)
