"""Business profile, operational settings and printer routes."""

from fastapi import APIRouter

from tabpos.core.rbac import RequireAdmin
from tabpos.core.responses import list_response, success_response
from tabpos.core.tenancy import CurrentTenant
from tabpos.db.session import DbSession
from tabpos.schemas.settings import (
    PrinterCreate, PrinterResponse, PrinterUpdate, TenantPublic,
    TenantSettingsResponse, TenantSettingsUpdate,
)
from tabpos.services.settings_service import SettingsService

router = APIRouter()


def _settings_payload(current) -> TenantSettingsResponse:
    return TenantSettingsResponse(
        card_enabled=current.card_enabled,
        cash_enabled=current.cash_enabled,
        pos_enabled=current.pos_enabled,
        sound_enabled=current.sound_enabled,
        waiter_enabled=current.waiter_enabled,
        auto_print_enabled=current.auto_print_enabled,
        paper_size=current.paper_size,
        printer_name=current.printer_name,
        enabled_payment_types=current.enabled_payment_types(),
    )


@router.get("/tenant", response_model=TenantPublic)
def get_tenant(tenant: CurrentTenant):
    """Public profile of the business resolved from the request host."""
    return tenant


@router.get("/settings", response_model=TenantSettingsResponse)
def get_settings(tenant: CurrentTenant, db: DbSession):
    return _settings_payload(SettingsService(db, tenant.id).get_settings())


@router.patch("/settings", response_model=TenantSettingsResponse)
def update_settings(body: TenantSettingsUpdate, current_user: RequireAdmin, db: DbSession):
    updated = SettingsService(db, current_user.tenant_id).update_settings(**body.model_dump(exclude_unset=True))
    return _settings_payload(updated)


# ========== PRINTERS ==========

@router.get("/printers")
def list_printers(current_user: RequireAdmin, db: DbSession):
    printers = SettingsService(db, current_user.tenant_id).list_printers()
    return list_response([PrinterResponse.model_validate(p) for p in printers])


@router.post("/printers", response_model=PrinterResponse, status_code=201)
def create_printer(body: PrinterCreate, current_user: RequireAdmin, db: DbSession):
    return SettingsService(db, current_user.tenant_id).create_printer(**body.model_dump())


@router.patch("/printers/{printer_id}", response_model=PrinterResponse)
def update_printer(printer_id: int, body: PrinterUpdate, current_user: RequireAdmin, db: DbSession):
    return SettingsService(db, current_user.tenant_id).update_printer(
        printer_id, **body.model_dump(exclude_unset=True),
    )


@router.delete("/printers/{printer_id}")
def delete_printer(printer_id: int, current_user: RequireAdmin, db: DbSession):
    SettingsService(db, current_user.tenant_id).delete_printer(printer_id)
    return success_response("Printer deleted")
