"""Authentication routes."""

import logging
import uuid

from fastapi import APIRouter, HTTPException, Request, status

from tabpos.core.rate_limit import limiter
from tabpos.core.rbac import CurrentUser, UserRole
from tabpos.core.security import create_access_token, verify_password
from tabpos.core.tenancy import CurrentTenant
from tabpos.db.session import DbSession
from tabpos.models.staff import PERMISSION_KEYS
from tabpos.models.user import User
from tabpos.schemas.auth import GuestRequest, LoginRequest, MeResponse, PinLoginRequest, Token
from tabpos.services.staff_service import StaffService

logger = logging.getLogger("auth")

router = APIRouter()


def _issue_token(user_id: str, username: str, role: UserRole, tenant_id: int, name: str) -> Token:
    token = create_access_token(data={
        "sub": user_id,
        "username": username,
        "role": role.value,
        "tenant_id": tenant_id,
        "name": name,
    })
    return Token(access_token=token, role=role.value, name=name)


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, tenant: CurrentTenant, db: DbSession):
    """Authenticate an admin or staff user and return a JWT token."""
    client_ip = request.client.host if request.client else "unknown"
    user = db.query(User).filter(
        User.tenant_id == tenant.id,
        User.username == login_request.username.strip(),
    ).first()

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(f"Failed login attempt for {login_request.username}@{tenant.slug} from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user {user.username} (ID: {user.id}) from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
        )

    logger.info(f"Successful login: {user.username}@{tenant.slug} (ID: {user.id}, role: {user.role.value})")
    return _issue_token(str(user.id), user.username, user.role, tenant.id, user.name or user.username)


@router.post("/login/pin", response_model=Token)
@limiter.limit("5/minute")
def login_with_pin(request: Request, pin_request: PinLoginRequest, tenant: CurrentTenant, db: DbSession):
    """Authenticate a staff member by username and PIN."""
    client_ip = request.client.host if request.client else "unknown"
    user = StaffService(db, tenant.id).authenticate_pin(pin_request.username, pin_request.pin)
    if user is None:
        logger.warning(f"Failed PIN login for {pin_request.username}@{tenant.slug} from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or PIN",
        )
    logger.info(f"Successful PIN login: {user.username}@{tenant.slug} (ID: {user.id})")
    return _issue_token(str(user.id), user.username, user.role, tenant.id, user.name or user.username)


@router.post("/guest", response_model=Token)
@limiter.limit("20/minute")
def guest_session(request: Request, guest: GuestRequest, tenant: CurrentTenant):
    """Anonymous customer identity for ordering from a table."""
    name = guest.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Name is required")
    guest_id = f"guest-{uuid.uuid4().hex[:16]}"
    logger.info(f"Guest session {guest_id} for table {guest.table_num}@{tenant.slug}")
    return _issue_token(guest_id, name, UserRole.GUEST, tenant.id, name)


@router.get("/me", response_model=MeResponse)
def get_me(current_user: CurrentUser, db: DbSession):
    """Get the current identity and, for staff, its capability flags."""
    permissions = None
    if current_user.role == UserRole.STAFF:
        service = StaffService(db, current_user.tenant_id)
        permissions = {
            key: service.user_has_permission(current_user.user_id, key)
            for key in PERMISSION_KEYS
        }
    return MeResponse(
        user_id=current_user.user_id,
        username=current_user.username,
        name=current_user.name,
        role=current_user.role.value,
        tenant_id=current_user.tenant_id,
        permissions=permissions,
    )
