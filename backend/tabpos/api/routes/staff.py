"""Staff management routes."""

from fastapi import APIRouter, Request

from tabpos.core.rate_limit import limiter
from tabpos.core.rbac import RequireAdmin, RequireStaff
from tabpos.core.responses import list_response
from tabpos.db.session import DbSession
from tabpos.schemas.staff import StaffManageRequest, StaffResponse
from tabpos.services.staff_service import StaffService, staff_to_dict

router = APIRouter()


@router.get("/")
def list_staff(current_user: RequireAdmin, db: DbSession):
    staff = StaffService(db, current_user.tenant_id).list_staff()
    return list_response([StaffResponse(**s) for s in staff])


@router.get("/{staff_id}", response_model=StaffResponse)
def get_staff(staff_id: int, current_user: RequireAdmin, db: DbSession):
    return staff_to_dict(StaffService(db, current_user.tenant_id).get_staff(staff_id))


@router.post("/manage")
@limiter.limit("30/minute")
def manage_staff(request: Request, body: StaffManageRequest, current_user: RequireStaff, db: DbSession):
    """Create, update, delete or PIN-check a staff member.

    Open to any signed-in staff identity; the service rejects non-admins.
    """
    payload = body.model_dump(exclude={"action"}, exclude_none=True)
    return StaffService(db, current_user.tenant_id).manage(body.action, payload, current_user)
