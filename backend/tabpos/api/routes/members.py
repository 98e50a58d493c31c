"""Loyalty member routes."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query, Request

from tabpos.core.rate_limit import limiter
from tabpos.core.rbac import CanManageMembers, RequireAdmin, RequireGuest, RequireStaff
from tabpos.core.responses import list_response, success_response
from tabpos.db.session import DbSession
from tabpos.schemas.loyalty import (
    LedgerCheck, LoyaltySettingsResponse, LoyaltySettingsUpdate, MemberCreate,
    MemberDetailResponse, MemberResponse, PointAdjust, PointTransactionResponse,
    RedemptionQuote,
)
from tabpos.schemas.order import OrderResponse
from tabpos.services.loyalty_service import LoyaltyService
from tabpos.services.order_service import OrderService

router = APIRouter()


@router.get("/settings", response_model=LoyaltySettingsResponse)
def get_loyalty_settings(current_user: RequireGuest, db: DbSession):
    return LoyaltyService(db, current_user.tenant_id).get_settings()


@router.patch("/settings", response_model=LoyaltySettingsResponse)
def update_loyalty_settings(body: LoyaltySettingsUpdate, current_user: RequireAdmin, db: DbSession):
    return LoyaltyService(db, current_user.tenant_id).update_settings(**body.model_dump(exclude_unset=True))


@router.get("/lookup", response_model=MemberResponse)
@limiter.limit("20/minute")
def lookup_member(request: Request, current_user: RequireGuest, db: DbSession, phone: str = Query(...)):
    """Find a member by phone number at checkout."""
    return LoyaltyService(db, current_user.tenant_id).find_by_phone(phone)


@router.get("/")
def search_members(current_user: RequireStaff, db: DbSession, q: Optional[str] = None):
    members = LoyaltyService(db, current_user.tenant_id).search(q)
    return list_response([MemberResponse.model_validate(m) for m in members])


@router.post("/", response_model=MemberResponse, status_code=201)
@limiter.limit("10/minute")
def create_member(request: Request, body: MemberCreate, current_user: RequireGuest, db: DbSession):
    """Customers may register themselves at checkout."""
    return LoyaltyService(db, current_user.tenant_id).create_member(body.name, body.phone)


@router.get("/{member_id}", response_model=MemberDetailResponse)
def get_member(member_id: int, current_user: RequireStaff, db: DbSession):
    service = LoyaltyService(db, current_user.tenant_id)
    member = service.get_member(member_id)
    return MemberDetailResponse(
        member=MemberResponse.model_validate(member),
        transactions=[PointTransactionResponse.model_validate(t) for t in service.transactions(member_id)],
    )


@router.get("/{member_id}/quote", response_model=RedemptionQuote)
def quote_redemption(
    member_id: int,
    current_user: RequireGuest,
    db: DbSession,
    total: Decimal = Query(..., ge=0),
):
    """What the member's points would take off a basket of ``total``."""
    service = LoyaltyService(db, current_user.tenant_id)
    return service.quote_redemption(service.get_member(member_id), total)


@router.get("/{member_id}/orders")
def member_orders(member_id: int, current_user: RequireStaff, db: DbSession, limit: int = Query(50, le=200)):
    LoyaltyService(db, current_user.tenant_id).get_member(member_id)
    orders = OrderService(db, current_user.tenant_id).list_orders(member_id=member_id, limit=limit)
    return list_response([OrderResponse.model_validate(o) for o in orders])


@router.get("/{member_id}/verify", response_model=LedgerCheck)
def verify_member_ledger(member_id: int, current_user: CanManageMembers, db: DbSession):
    """Compare the cached point counters with the transaction ledger."""
    return LoyaltyService(db, current_user.tenant_id).ledger_totals(member_id)


@router.post("/{member_id}/points", response_model=MemberResponse)
def adjust_points(member_id: int, body: PointAdjust, current_user: CanManageMembers, db: DbSession):
    result = LoyaltyService(db, current_user.tenant_id).adjust_points(member_id, body.points, body.reason)
    return result["member"]


@router.delete("/{member_id}")
def delete_member(member_id: int, current_user: RequireAdmin, db: DbSession):
    LoyaltyService(db, current_user.tenant_id).delete_member(member_id)
    return success_response("Member deleted")
