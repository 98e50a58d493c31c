"""Role-Based Access Control (RBAC) utilities."""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from tabpos.core.roles import ROLE_HIERARCHY, UserRole
from tabpos.core.security import decode_access_token
from tabpos.core.tenancy import get_current_tenant
from tabpos.db.session import get_db


class TokenData:
    """Decoded token data.

    Attributes:
        user_id: Identity id (numeric user id, or ``guest-<hex>`` for guests).
        username: Login name, or the guest display name.
        role: admin/staff/guest.
        tenant_id: Business the token was issued for.
        name: Display name written into orders and activity entries.
    """

    def __init__(self, user_id: str, username: str, role: UserRole,
                 tenant_id: int, name: str = ""):
        self.user_id = user_id
        self.username = username
        self.role = role
        self.tenant_id = tenant_id
        self.name = name or username

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            return token
    return request.cookies.get("access_token")


def _payload_to_token_data(payload: dict) -> Optional[TokenData]:
    user_id = payload.get("sub")
    role = payload.get("role")
    tenant_id = payload.get("tenant_id")
    if user_id is None or role is None or tenant_id is None:
        return None
    try:
        user_role = UserRole(role)
    except ValueError:
        return None
    return TokenData(
        user_id=str(user_id),
        username=payload.get("username", ""),
        role=user_role,
        tenant_id=int(tenant_id),
        name=payload.get("name", ""),
    )


async def get_current_user(request: Request) -> TokenData:
    """Get the current authenticated identity from the bearer token or cookie."""
    token = _token_from_request(request)
    payload = decode_access_token(token) if token else None

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = _payload_to_token_data(payload)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return token_data


def require_role(minimum_role: UserRole):
    """Dependency requiring a minimum role within the request's tenant."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)],
        tenant=Depends(get_current_tenant),
    ) -> TokenData:
        if current_user.tenant_id != tenant.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Token was issued for a different business",
            )
        user_level = ROLE_HIERARCHY.get(current_user.role, 0)
        required_level = ROLE_HIERARCHY.get(minimum_role, 0)
        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


def require_capability(perm_key: str):
    """Dependency requiring staff role plus an enabled capability flag.

    Admins pass unconditionally. Staff pass unless their permission row
    for ``perm_key`` exists and is disabled.
    """

    async def capability_checker(
        current_user: Annotated[TokenData, Depends(require_role(UserRole.STAFF))],
        db: Session = Depends(get_db),
    ) -> TokenData:
        if current_user.is_admin:
            return current_user
        from tabpos.services.staff_service import StaffService

        if not StaffService(db, current_user.tenant_id).user_has_permission(
            current_user.user_id, perm_key
        ):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {perm_key}",
            )
        return current_user

    return capability_checker


# Common role dependencies
RequireAdmin = Annotated[TokenData, Depends(require_role(UserRole.ADMIN))]
RequireStaff = Annotated[TokenData, Depends(require_role(UserRole.STAFF))]
RequireGuest = Annotated[TokenData, Depends(require_role(UserRole.GUEST))]
CurrentUser = Annotated[TokenData, Depends(get_current_user)]

# Capability dependencies (admins always pass)
CanTakeOrders = Annotated[TokenData, Depends(require_capability("take_orders"))]
CanTakePayment = Annotated[TokenData, Depends(require_capability("take_payment"))]
CanCancelItems = Annotated[TokenData, Depends(require_capability("cancel_items"))]
CanTransferTables = Annotated[TokenData, Depends(require_capability("transfer_tables"))]
CanManageAccounts = Annotated[TokenData, Depends(require_capability("manage_accounts"))]
CanManageMembers = Annotated[TokenData, Depends(require_capability("manage_members"))]
CanViewReports = Annotated[TokenData, Depends(require_capability("view_reports"))]
CanManageMenu = Annotated[TokenData, Depends(require_capability("manage_menu"))]
