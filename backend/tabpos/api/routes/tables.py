"""Table routes: open/closed views, staff ordering, item changes, settlement,
transfers and seating configuration."""

from fastapi import APIRouter, BackgroundTasks, Request

from tabpos.api.deps import dispatch_prints, notify_change
from tabpos.core.exceptions import PermissionDenied
from tabpos.core.rate_limit import limiter
from tabpos.core.rbac import (
    CanCancelItems, CanManageAccounts, CanTakeOrders, CanTakePayment, CanTransferTables,
    RequireAdmin, RequireStaff,
)
from tabpos.core.responses import list_response, success_response
from tabpos.core.tenancy import CurrentTenant
from tabpos.db.session import DbSession
from tabpos.schemas.order import OrderResponse, StaffOrderCreate, VersionedRequest
from tabpos.schemas.table import (
    AreaCreate, AreaResponse, AreaUpdate, CancelSelectedRequest, ClosedTableResponse,
    DiningTableCreate, DiningTableResponse, DiningTableUpdate, GenerateTablesRequest,
    ItemCancel, ItemEdit, OpenTableResponse, PayRequest, PaySelectedRequest,
    PaymentTypeChange, SettlementResponse, TableDetailResponse, ToAccountRequest,
    TransferItemsRequest, TransferRequest,
)
from tabpos.services.order_mutation_service import OrderMutationService
from tabpos.services.order_service import OrderService
from tabpos.services.settlement_service import SettlementService
from tabpos.services.staff_service import StaffService
from tabpos.services.table_service import TableService
from tabpos.services.transfer_service import TransferService

router = APIRouter()


# ========== VIEWS ==========

@router.get("/open")
def open_tables(current_user: RequireStaff, db: DbSession):
    """Tables with open orders, most urgent first."""
    tables = TableService(db, current_user.tenant_id).open_tables()
    return list_response([OpenTableResponse(**t) for t in tables])


@router.get("/closed")
def closed_tables(current_user: RequireStaff, db: DbSession):
    """Tables settled today, most recently closed first."""
    tables = TableService(db, current_user.tenant_id).closed_tables_today()
    return list_response([ClosedTableResponse(**t) for t in tables])


# ========== SEATING CONFIGURATION ==========

@router.get("/areas")
def list_areas(current_user: RequireStaff, db: DbSession):
    areas = TableService(db, current_user.tenant_id).list_areas()
    return list_response([AreaResponse.model_validate(a) for a in areas])


@router.post("/areas", response_model=AreaResponse, status_code=201)
def create_area(body: AreaCreate, current_user: RequireAdmin, db: DbSession):
    return TableService(db, current_user.tenant_id).create_area(body.name)


@router.patch("/areas/{area_id}", response_model=AreaResponse)
def update_area(area_id: int, body: AreaUpdate, current_user: RequireAdmin, db: DbSession):
    return TableService(db, current_user.tenant_id).rename_area(area_id, body.name, body.sort_order)


@router.delete("/areas/{area_id}")
def delete_area(area_id: int, current_user: RequireAdmin, db: DbSession):
    TableService(db, current_user.tenant_id).delete_area(area_id)
    return success_response("Area deleted")


@router.post("/areas/{area_id}/generate")
def generate_tables(area_id: int, body: GenerateTablesRequest, current_user: RequireAdmin, db: DbSession):
    """Replace the area's tables with a grid numbered after the other areas."""
    tables = TableService(db, current_user.tenant_id).generate_tables(
        area_id, body.cols, body.rows, body.capacity,
    )
    return list_response([DiningTableResponse.model_validate(t) for t in tables])


@router.get("/config")
def list_table_config(current_user: RequireStaff, db: DbSession):
    tables = TableService(db, current_user.tenant_id).list_tables()
    return list_response([DiningTableResponse.model_validate(t) for t in tables])


@router.post("/config", response_model=DiningTableResponse, status_code=201)
def create_table(body: DiningTableCreate, current_user: RequireAdmin, db: DbSession):
    return TableService(db, current_user.tenant_id).create_table(**body.model_dump())


@router.patch("/config/{table_id}", response_model=DiningTableResponse)
def update_table(table_id: int, body: DiningTableUpdate, current_user: RequireAdmin, db: DbSession):
    return TableService(db, current_user.tenant_id).update_table(
        table_id, **body.model_dump(exclude_unset=True),
    )


@router.delete("/config/{table_id}")
def delete_table(table_id: int, current_user: RequireAdmin, db: DbSession):
    TableService(db, current_user.tenant_id).delete_table(table_id)
    return success_response("Table deleted")


# ========== ITEM MUTATION ==========

@router.patch("/items/{order_id}/{line_id}", response_model=OrderResponse)
def edit_item(
    order_id: str,
    line_id: str,
    body: ItemEdit,
    current_user: CanTakeOrders,
    tenant: CurrentTenant,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Change quantity and/or note; quantity changes print an addendum."""
    if body.qty <= 0 and not current_user.is_admin:
        if not StaffService(db, tenant.id).user_has_permission(current_user.user_id, "cancel_items"):
            raise PermissionDenied("Missing permission: cancel_items")
    result = OrderMutationService(db, tenant.id).edit_item(
        order_id, line_id, body.qty, body.note, current_user.name,
        expected_version=body.expected_version,
    )
    dispatch_prints(background_tasks, db, tenant, result.get("print_requests", []))
    notify_change(background_tasks, tenant.id, "UPDATE", order_id)
    return result["order"]


@router.post("/items/{order_id}/{line_id}/cancel", response_model=OrderResponse)
def cancel_item(
    order_id: str,
    line_id: str,
    body: ItemCancel,
    current_user: CanCancelItems,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    result = OrderMutationService(db, current_user.tenant_id).cancel_item(
        order_id, line_id, current_user.name, expected_version=body.expected_version,
    )
    notify_change(background_tasks, current_user.tenant_id, "UPDATE", order_id)
    return result["order"]


# ========== PER TABLE ==========

@router.get("/{table_num}", response_model=TableDetailResponse)
def table_detail(table_num: int, current_user: RequireStaff, db: DbSession):
    """Open orders (newest first) and every line with its owning order."""
    return TableService(db, current_user.tenant_id).table_detail(table_num)


@router.post("/{table_num}/orders", response_model=OrderResponse, status_code=201)
@limiter.limit("60/minute")
def submit_staff_order(
    request: Request,
    table_num: int,
    body: StaffOrderCreate,
    current_user: CanTakeOrders,
    tenant: CurrentTenant,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Confirm a staff draft as a ``preparing`` order."""
    result = OrderService(db, tenant.id).submit_staff_order(
        table_num=table_num,
        user_id=current_user.user_id,
        user_name=body.user_name or current_user.name,
        lines=[line.model_dump() for line in body.lines],
        payment_type=body.payment_type.value,
        note=body.note,
    )
    dispatch_prints(background_tasks, db, tenant, result["print_requests"])
    notify_change(background_tasks, tenant.id, "INSERT", result["order"].id)
    return result["order"]


@router.post("/{table_num}/cancel-all")
def cancel_table(
    table_num: int,
    body: VersionedRequest,
    current_user: CanCancelItems,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    result = OrderMutationService(db, current_user.tenant_id).cancel_table(
        table_num, current_user.name, expected_versions=body.expected_versions,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return success_response(
        f"{result['cancelled_orders']} orders cancelled",
        cancelled_orders=result["cancelled_orders"],
        total=str(result["total"]),
    )


@router.post("/{table_num}/pay", response_model=SettlementResponse)
def pay_table(
    table_num: int,
    body: PayRequest,
    current_user: CanTakePayment,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Settle the whole table with an optional percentage discount."""
    result = SettlementService(db, current_user.tenant_id).pay_table(
        table_num, body.payment_type.value, current_user.name,
        discount_pct=body.discount_pct, expected_versions=body.expected_versions,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return result


@router.post("/{table_num}/pay-selected", response_model=SettlementResponse)
def pay_selected(
    table_num: int,
    body: PaySelectedRequest,
    current_user: CanTakePayment,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    result = SettlementService(db, current_user.tenant_id).pay_selected(
        table_num, body.line_ids, body.payment_type.value, current_user.name,
        discount_pct=body.discount_pct, expected_versions=body.expected_versions,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return result


@router.post("/{table_num}/cancel-selected")
def cancel_selected(
    table_num: int,
    body: CancelSelectedRequest,
    current_user: CanCancelItems,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    result = SettlementService(db, current_user.tenant_id).cancel_selected(
        table_num, body.line_ids, current_user.name, expected_versions=body.expected_versions,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return success_response(
        f"{result['items']} items cancelled",
        items=result["items"],
        cancelled_value=str(result["cancelled_value"]),
    )


@router.post("/{table_num}/transfer")
def transfer_table(
    table_num: int,
    body: TransferRequest,
    current_user: CanTransferTables,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    result = TransferService(db, current_user.tenant_id).transfer_table(
        table_num, body.target, current_user.name, expected_versions=body.expected_versions,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return success_response(
        f"Table {table_num} moved to table {body.target}",
        orders=result["orders"],
        total=str(result["total"]),
    )


@router.post("/{table_num}/transfer-items")
def transfer_items(
    table_num: int,
    body: TransferItemsRequest,
    current_user: CanTransferTables,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    result = TransferService(db, current_user.tenant_id).transfer_items(
        table_num, body.target, body.line_ids, current_user.name,
        expected_versions=body.expected_versions,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return success_response(
        f"{result['items']} items moved to table {body.target}",
        created_orders=result["created_orders"],
    )


@router.post("/{table_num}/to-account")
def transfer_to_account(
    table_num: int,
    body: ToAccountRequest,
    current_user: CanManageAccounts,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Charge the table to a running account and close it."""
    result = TransferService(db, current_user.tenant_id).transfer_to_account(
        table_num, body.account_id, current_user.name, expected_versions=body.expected_versions,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return success_response(
        f"Table {table_num} charged to {result['account'].name}",
        total=str(result["total"]),
        balance=str(result["account"].balance),
    )


@router.post("/{table_num}/reopen")
def reopen_table(
    table_num: int,
    current_user: CanTakePayment,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    """Void today's payment for a table and put its orders back to ``ready``."""
    result = TableService(db, current_user.tenant_id).reopen_table(table_num, current_user.name)
    notify_change(background_tasks, current_user.tenant_id)
    return success_response(
        f"Table {table_num} reopened",
        reopened=result["reopened"],
        total=str(result["total"]),
    )


@router.post("/{table_num}/payment-type")
def change_payment_type(
    table_num: int,
    body: PaymentTypeChange,
    current_user: CanTakePayment,
    db: DbSession,
    background_tasks: BackgroundTasks,
):
    result = TableService(db, current_user.tenant_id).change_payment_type(
        table_num, body.payment_type.value, current_user.name,
    )
    notify_change(background_tasks, current_user.tenant_id)
    return success_response("Payment type updated", updated=result["updated"])
