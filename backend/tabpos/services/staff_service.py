"""
Staff Management Service

Staff members are a login identity (User, role ``staff``) plus a Staff
row holding the PIN hash, schedule and capability flags. All writes go
through the admin-only ``manage`` entry point.
"""

import logging
import re
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from tabpos.core.exceptions import NotFound, PermissionDenied, ValidationFailed
from tabpos.core.rbac import TokenData, UserRole
from tabpos.core.security import get_password_hash, get_pin_hash, verify_pin
from tabpos.models.staff import DEFAULT_WORK_DAYS, PERMISSION_KEYS, WEEKDAYS, Staff, StaffPermission
from tabpos.models.user import User

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{2,50}$")
PIN_PATTERN = re.compile(r"^\d{4,6}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
MIN_PASSWORD_LENGTH = 6

MANAGE_ACTIONS = ("create", "update", "delete", "verify_pin")


def validate_username(username: str) -> str:
    username = (username or "").strip()
    if not USERNAME_PATTERN.match(username):
        raise ValidationFailed(
            "Username must be 2-50 characters of letters, digits or underscore"
        )
    return username


def validate_password(password: str) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def validate_pin(pin: str) -> str:
    pin = str(pin or "").strip()
    if not PIN_PATTERN.match(pin):
        raise ValidationFailed("PIN must be 4-6 digits")
    return pin


def validate_work_days(days) -> List[str]:
    if not isinstance(days, (list, tuple)) or not days:
        raise ValidationFailed("Select at least one work day")
    normalized = [str(d).strip().lower() for d in days]
    unknown = [d for d in normalized if d not in WEEKDAYS]
    if unknown:
        raise ValidationFailed(f"Unknown work days: {', '.join(unknown)}")
    # keep calendar order, drop duplicates
    return [d for d in WEEKDAYS if d in normalized]


def validate_shift_time(value: str, field: str) -> str:
    value = (value or "").strip()
    if not TIME_PATTERN.match(value):
        raise ValidationFailed(f"{field} must be in HH:MM format")
    return value


def validate_permissions(permissions) -> Dict[str, bool]:
    if not isinstance(permissions, dict):
        raise ValidationFailed("Permissions must be an object of key: enabled")
    unknown = [k for k in permissions if k not in PERMISSION_KEYS]
    if unknown:
        raise ValidationFailed(f"Unknown permission keys: {', '.join(unknown)}")
    return {k: bool(v) for k, v in permissions.items()}


def staff_to_dict(staff: Staff) -> dict:
    """Public view of a staff member; hashes never leave the service."""
    return {
        "id": staff.id,
        "user_id": staff.user_id,
        "name": staff.name,
        "username": staff.username,
        "work_days": list(staff.work_days or []),
        "shift_start": staff.shift_start,
        "shift_end": staff.shift_end,
        "is_active": staff.is_active,
        "has_pin": bool(staff.pin_hash),
        "permissions": staff.effective_permissions(),
    }


class StaffService:
    """Staff accounts and capability flags for one tenant."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    # ========== READ ==========

    def _staff(self):
        return (
            self.db.query(Staff)
            .options(selectinload(Staff.permissions))
            .filter(Staff.tenant_id == self.tenant_id)
        )

    def list_staff(self) -> List[dict]:
        return [staff_to_dict(s) for s in self._staff().order_by(Staff.name).all()]

    def get_staff(self, staff_id: int) -> Staff:
        staff = self._staff().filter(Staff.id == staff_id).first()
        if staff is None:
            raise NotFound("Staff", staff_id)
        return staff

    def find_by_username(self, username: str) -> Optional[Staff]:
        return self._staff().filter(Staff.username == (username or "").strip()).first()

    def user_has_permission(self, user_id, perm_key: str) -> bool:
        """Whether a staff login may use ``perm_key``.

        Staff logins without a Staff row get every capability. An inactive
        Staff row gets none.
        """
        try:
            uid = int(user_id)
        except (TypeError, ValueError):
            return False
        staff = self._staff().filter(Staff.user_id == uid).first()
        if staff is None:
            return True
        if not staff.is_active:
            return False
        return staff.effective_permissions().get(perm_key, False)

    # ========== PIN ==========

    def authenticate_pin(self, username: str, pin: str) -> Optional[User]:
        """Login identity for a matching active staff username and PIN."""
        staff = self.find_by_username(username)
        if staff is None or not staff.is_active or not staff.pin_hash or staff.user_id is None:
            return None
        if not verify_pin(str(pin), staff.pin_hash):
            return None
        user = self.db.get(User, staff.user_id)
        if user is None or not user.is_active:
            return None
        return user

    # ========== MANAGE ==========

    def manage(self, action: str, payload: dict, caller: TokenData) -> dict:
        """Admin-only staff management: create, update, delete, verify_pin."""
        if caller.role != UserRole.ADMIN or caller.tenant_id != self.tenant_id:
            raise PermissionDenied("Admin permission required")
        if action not in MANAGE_ACTIONS:
            raise ValidationFailed(f"Invalid action: {action}")
        handler = getattr(self, f"_{action}")
        return handler(payload or {})

    def _ensure_username_free(self, username: str, staff_id: Optional[int] = None) -> None:
        taken = self.db.query(User).filter(
            User.tenant_id == self.tenant_id, User.username == username,
        ).first()
        own_user_id = None
        if staff_id is not None:
            own_user_id = self.get_staff(staff_id).user_id
        if taken is not None and taken.id != own_user_id:
            raise ValidationFailed(f"Username already taken: {username}")
        clash = self._staff().filter(Staff.username == username).first()
        if clash is not None and clash.id != staff_id:
            raise ValidationFailed(f"Username already taken: {username}")

    def _set_permissions(self, staff: Staff, permissions: Dict[str, bool]) -> None:
        staff.permissions.clear()
        self.db.flush()
        for key, enabled in permissions.items():
            staff.permissions.append(StaffPermission(perm_key=key, enabled=enabled))

    def _create(self, payload: dict) -> dict:
        name = (payload.get("name") or "").strip()
        if not name:
            raise ValidationFailed("Name is required")
        username = validate_username(payload.get("username"))
        password = validate_password(payload.get("password"))
        pin = validate_pin(payload["pin"]) if payload.get("pin") else None
        work_days = validate_work_days(payload.get("work_days") or DEFAULT_WORK_DAYS)
        shift_start = validate_shift_time(payload.get("shift_start") or "09:00", "Shift start")
        shift_end = validate_shift_time(payload.get("shift_end") or "23:00", "Shift end")
        permissions = validate_permissions(payload.get("permissions") or {})
        self._ensure_username_free(username)

        user = User(
            tenant_id=self.tenant_id,
            username=username,
            password_hash=get_password_hash(password),
            role=UserRole.STAFF,
            name=name,
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()

        staff = Staff(
            tenant_id=self.tenant_id,
            user_id=user.id,
            name=name,
            username=username,
            pin_hash=get_pin_hash(pin) if pin else None,
            work_days=work_days,
            shift_start=shift_start,
            shift_end=shift_end,
            is_active=True,
        )
        for key, enabled in permissions.items():
            staff.permissions.append(StaffPermission(perm_key=key, enabled=enabled))
        self.db.add(staff)
        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"Staff created: {username} (staff {staff.id}, user {user.id})")
        return {"success": True, "staff": staff_to_dict(staff)}

    def _update(self, payload: dict) -> dict:
        staff_id = payload.get("staff_id")
        if staff_id is None:
            raise ValidationFailed("staff_id is required")
        staff = self.get_staff(staff_id)

        # validate everything before touching the rows
        changes = {}
        if payload.get("name") is not None:
            name = payload["name"].strip()
            if not name:
                raise ValidationFailed("Name is required")
            changes["name"] = name
        if payload.get("username") is not None:
            changes["username"] = validate_username(payload["username"])
            self._ensure_username_free(changes["username"], staff.id)
        if payload.get("work_days") is not None:
            changes["work_days"] = validate_work_days(payload["work_days"])
        if payload.get("shift_start") is not None:
            changes["shift_start"] = validate_shift_time(payload["shift_start"], "Shift start")
        if payload.get("shift_end") is not None:
            changes["shift_end"] = validate_shift_time(payload["shift_end"], "Shift end")
        if payload.get("is_active") is not None:
            changes["is_active"] = bool(payload["is_active"])
        password = validate_password(payload["password"]) if payload.get("password") else None
        pin = validate_pin(payload["pin"]) if payload.get("pin") else None
        permissions = (
            validate_permissions(payload["permissions"])
            if payload.get("permissions") is not None else None
        )

        for key, value in changes.items():
            setattr(staff, key, value)
        if pin:
            staff.pin_hash = get_pin_hash(pin)
        if permissions is not None:
            self._set_permissions(staff, permissions)

        user = self.db.get(User, staff.user_id) if staff.user_id else None
        if user is not None:
            if "name" in changes:
                user.name = changes["name"]
            if "username" in changes:
                user.username = changes["username"]
            if "is_active" in changes:
                user.is_active = changes["is_active"]
            if password:
                user.password_hash = get_password_hash(password)

        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"Staff {staff.id} updated: {sorted(changes) + (['password'] if password else [])}")
        return {"success": True, "staff": staff_to_dict(staff)}

    def _delete(self, payload: dict) -> dict:
        staff_id = payload.get("staff_id")
        if staff_id is None:
            raise ValidationFailed("staff_id is required")
        staff = self.get_staff(staff_id)
        user = self.db.get(User, staff.user_id) if staff.user_id else None
        self.db.delete(staff)
        if user is not None:
            self.db.delete(user)
        self.db.commit()
        logger.info(f"Staff {staff_id} deleted")
        return {"success": True}

    def _verify_pin(self, payload: dict) -> dict:
        staff_id = payload.get("staff_id")
        if staff_id is None:
            raise ValidationFailed("staff_id is required")
        staff = self.get_staff(staff_id)
        pin = str(payload.get("pin") or "")
        valid = bool(staff.pin_hash) and PIN_PATTERN.match(pin) is not None and verify_pin(pin, staff.pin_hash)
        return {"success": True, "valid": valid}
